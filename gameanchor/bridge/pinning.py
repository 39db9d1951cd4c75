"""Pinning service client — uploads a multipart payload, returns a CID receipt.

Failure classification
----------------------
- **Reachable but rejected** (any non-2xx response, or a 2xx without a CID):
  ``StoreUploadFailed``. Never retried; the payload is presumed bad.
- **Unreachable** (``httpx.TransportError``: connect errors, read/write
  timeouts, resets): retried with exponential backoff and full jitter, then
  ``StoreUnavailable``.
- **Out of time** (the request deadline ran out): ``StoreTimeout``.
- **No credential**: ``StoreNotConfigured``, raised at call time only.

The response fields of Pinata's ``pinFileToIPFS`` map 1:1 onto
``PinningReceipt``: ``IpfsHash -> cid``, ``PinSize -> pin_size_bytes``,
``Timestamp -> timestamp``.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from gameanchor.config import AppConfig
from gameanchor.core.deadline import Deadline
from gameanchor.core.errors import (
    StoreNotConfigured,
    StoreTimeout,
    StoreUnavailable,
    StoreUploadFailed,
)
from gameanchor.core.packager import MultipartPayload
from gameanchor.models.receipts import PinningReceipt

logger = logging.getLogger(__name__)

# Upper bound on a single backoff sleep, whatever the attempt number.
MAX_BACKOFF_SECONDS = 8.0


def playable_url(gateway_base: str, cid: str) -> str:
    """``<gateway-base>/<cid>/index.html``.

    Assumes the uploaded tree is a static site rooted at ``index.html``;
    that precondition is not checked.
    """
    return f"{gateway_base.rstrip('/')}/{cid}/index.html"


class PinningClient:
    """HTTP client for an IPFS pinning endpoint.

    Parameters
    ----------
    jwt:
        Bearer credential. May be empty; uploads then fail at call time.
    endpoint:
        Full URL of the pin-file endpoint.
    gateway_base:
        Public gateway prefix used to build playable URLs.
    timeout:
        Per-attempt timeout in seconds (further capped by the request deadline).
    max_attempts:
        Total attempts on transport failures, including the first.
    backoff_base:
        Base delay in seconds for the jittered exponential backoff.
    transport:
        Optional httpx transport (tests pass ``httpx.MockTransport``).
    sleep:
        Optional sleep function for the retry loop.
    """

    def __init__(
        self,
        *,
        jwt: str,
        endpoint: str,
        gateway_base: str,
        timeout: float = 120.0,
        max_attempts: int = 3,
        backoff_base: float = 0.5,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._jwt = jwt.strip()
        self._endpoint = endpoint
        self._gateway_base = gateway_base.rstrip("/")
        self._timeout = timeout
        self._max_attempts = max(1, max_attempts)
        self._backoff_base = backoff_base
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_config(
        cls, cfg: AppConfig, *, transport: httpx.BaseTransport | None = None
    ) -> PinningClient:
        return cls(
            jwt=cfg.pinata_jwt,
            endpoint=cfg.pinning_endpoint,
            gateway_base=cfg.gateway_base,
            timeout=cfg.store_timeout_seconds,
            max_attempts=cfg.store_max_attempts,
            backoff_base=cfg.store_backoff_base_seconds,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self._jwt)

    def playable_url(self, cid: str) -> str:
        return playable_url(self._gateway_base, cid)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload(
        self,
        payload: MultipartPayload,
        *,
        name: str | None = None,
        deadline: Deadline | None = None,
    ) -> PinningReceipt:
        """POST *payload* to the pinning endpoint and return its receipt."""
        if not self.configured:
            raise StoreNotConfigured(
                "Pinning credential is not configured; set GAMEANCHOR_PINATA_JWT"
            )

        def _out_of_time(_state: Any) -> bool:
            return deadline is not None and deadline.expired

        retrying = Retrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self._max_attempts) | _out_of_time,
            wait=wait_random_exponential(
                multiplier=self._backoff_base, max=MAX_BACKOFF_SECONDS
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
            sleep=self._sleep or time.sleep,
        )

        try:
            response = retrying(self._post_once, payload, name, deadline)
        except httpx.TransportError as exc:
            if deadline is not None and deadline.expired:
                raise StoreTimeout(
                    "Request deadline exceeded while uploading to the pinning service",
                    details=str(exc),
                ) from exc
            raise StoreUnavailable(
                f"Pinning service unreachable after {self._max_attempts} attempts",
                details=f"{type(exc).__name__}: {exc}",
            ) from exc

        return self._parse_response(response)

    def _post_once(
        self,
        payload: MultipartPayload,
        name: str | None,
        deadline: Deadline | None,
    ) -> httpx.Response:
        timeout = self._timeout
        if deadline is not None:
            timeout = deadline.timeout_for(self._timeout)
            if timeout <= 0:
                raise httpx.TimeoutException("request deadline exhausted before upload")

        data = {"pinataMetadata": json.dumps({"name": name})} if name else None
        with httpx.Client(transport=self._transport, timeout=timeout) as client:
            return client.post(
                self._endpoint,
                headers={"Authorization": f"Bearer {self._jwt}"},
                files=payload,
                data=data,
            )

    @staticmethod
    def _parse_response(response: httpx.Response) -> PinningReceipt:
        if not response.is_success:
            logger.error(
                "Pinning service rejected upload: HTTP %d %s",
                response.status_code, response.text[:300],
            )
            raise StoreUploadFailed(response.status_code, response.text)

        try:
            body = response.json()
        except ValueError as exc:
            raise StoreUploadFailed(response.status_code, response.text) from exc
        if not isinstance(body, dict):
            raise StoreUploadFailed(response.status_code, response.text)

        cid = str(body.get("IpfsHash") or "").strip()
        if not cid:
            raise StoreUploadFailed(
                response.status_code, f"Success response without IpfsHash: {response.text}"
            )
        try:
            pin_size = int(body["PinSize"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Pinning response for %s has no usable PinSize: %r", cid, body.get("PinSize"))
            pin_size = 0

        timestamp = str(body.get("Timestamp") or "").strip()
        if not timestamp:
            timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
            logger.warning("Pinning response for %s has no Timestamp; using local time %s", cid, timestamp)

        receipt = PinningReceipt(cid=cid, pin_size_bytes=pin_size, timestamp=timestamp)
        logger.info("Pinned %s (%d bytes)", receipt.cid, receipt.pin_size_bytes)
        return receipt
