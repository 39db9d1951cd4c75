"""Startup configuration check — runs once per process.

Unlike a hard guard, missing secrets do not stop the process: the pinning
credential and the signer keypair are optional so that non-upload paths can
be exercised locally. The check reports what is missing once, at startup,
and the stages that need a missing piece fail (or are skipped) at call time.

Production is stricter about debug mode only.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from gameanchor.config import AppConfig

logger = logging.getLogger(__name__)


class StartupConfigError(RuntimeError):
    """Raised when the configuration cannot be used at all.

    Must not be caught and ignored; the process should exit.
    """


class StartupReport(BaseModel):
    """Queryable result of the startup check."""

    model_config = ConfigDict(frozen=True)

    store_configured: bool
    signer_configured: bool
    warnings: list[str] = []


def inspect_startup(cfg: AppConfig) -> StartupReport:
    """Validate *cfg* and log every finding once.

    Raises ``StartupConfigError`` for violations that make the process
    unsafe to run (debug mode in production).
    """
    if cfg.is_production and cfg.debug:
        msg = "debug=True is not allowed in production. Set GAMEANCHOR_DEBUG=false."
        logger.critical(msg)
        raise StartupConfigError(msg)

    warnings: list[str] = []
    if not cfg.store_configured:
        warnings.append(
            "GAMEANCHOR_PINATA_JWT is not set; every upload will fail at the storage stage."
        )
    if not cfg.signer_configured:
        warnings.append(
            "GAMEANCHOR_SIGNER_KEYPAIR_PATH is not set; on-chain anchoring will be skipped."
        )
    elif not cfg.signer_keypair_path.expanduser().is_file():
        warnings.append(f"Signer keypair file not found: {cfg.signer_keypair_path}")

    for warning in warnings:
        logger.warning(warning)
    if not warnings:
        logger.info("Startup configuration check passed.")

    return StartupReport(
        store_configured=cfg.store_configured,
        signer_configured=cfg.signer_configured,
        warnings=warnings,
    )
