"""FastAPI application factory.

Routes
------
``POST /api/uploadFolder``
    JSON ``{folderPath, walletPublicKey?}``. Uploads a folder readable by
    this process.
``POST /api/uploadFiles``
    Multipart ``files`` parts (filename = relative path) plus an optional
    ``walletPublicKey`` form field. Uploads a folder the browser sent.
``OPTIONS`` on both
    200 with an empty body and the CORS headers.
``GET /healthz``
    Whether the pinning credential and a signer are configured.

Fatal pipeline errors map to ``{error, details?}`` with the error's
``status_code``. A degraded run (chain write skipped or failed) is still a
200: the content is pinned and the manifest is usable.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from gameanchor import __version__
from gameanchor.api.schemas import (
    ErrorResponse,
    HealthResponse,
    UploadFolderRequest,
    UploadResponse,
)
from gameanchor.config import AppConfig, config
from gameanchor.core.errors import MissingFolderPath, PipelineError
from gameanchor.core.identity import SignerRegistry
from gameanchor.core.orchestrator import Orchestrator
from gameanchor.core.startup_check import inspect_startup
from gameanchor.models.files import UploadRequest
from gameanchor.models.pipeline import PipelineResult

logger = logging.getLogger(__name__)

UPLOAD_ROUTES = ("/api/uploadFolder", "/api/uploadFiles")
CORS_METHODS = ("POST", "OPTIONS")
CORS_HEADERS = ("Content-Type", "Authorization")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _ok(result: PipelineResult) -> JSONResponse:
    body = UploadResponse.from_result(result)
    return JSONResponse(status_code=200, content=body.model_dump(mode="json", by_alias=True))


def create_app(
    cfg: AppConfig | None = None,
    *,
    orchestrator: Orchestrator | None = None,
    registry: SignerRegistry | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    cfg:
      Configuration; defaults to the module-level ``config`` singleton.
    orchestrator / registry:
      Injected by tests; built from *cfg* otherwise.

    Runs the startup check once. A configured but unreadable signer keypair
    aborts app creation.
    """
    cfg = cfg or config
    logging.basicConfig(level=cfg.log_level.upper(), format=LOG_FORMAT)

    report = inspect_startup(cfg)
    registry = registry if registry is not None else SignerRegistry.from_config(cfg)
    orchestrator = orchestrator or Orchestrator.from_config(cfg)
    origins = cfg.cors_origins

    # Disable docs in production.
    if cfg.is_production:
        app = FastAPI(
            title="gameanchor",
            version=__version__,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
    else:
        app = FastAPI(title="gameanchor", version=__version__)

    app.state.cfg = cfg
    app.state.startup = report
    app.state.registry = registry
    app.state.orchestrator = orchestrator

    # --- Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=list(CORS_METHODS),
        allow_headers=list(CORS_HEADERS),
    )

    # --- Error mapping ---
    @app.exception_handler(PipelineError)
    async def _pipeline_error(request: Request, exc: PipelineError) -> JSONResponse:
        body = ErrorResponse.from_error(exc)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": error},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "details": str(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body = ErrorResponse(error="Internal server error", details=type(exc).__name__)
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

    # --- Routes ---
    def _preflight(request: Request) -> Response:
        headers = {
            "Access-Control-Allow-Methods": ",".join(CORS_METHODS),
            "Access-Control-Allow-Headers": ",".join(CORS_HEADERS),
        }
        origin = request.headers.get("origin")
        if "*" in origins:
            headers["Access-Control-Allow-Origin"] = "*"
        elif origin in origins:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
        return Response(status_code=200, headers=headers)

    for path in UPLOAD_ROUTES:
        app.add_api_route(path, _preflight, methods=["OPTIONS"], include_in_schema=False)

    @app.post("/api/uploadFolder")
    def upload_folder(body: UploadFolderRequest | None = None) -> JSONResponse:
        body = body or UploadFolderRequest()
        folder_path = (body.folder_path or "").strip()
        if not folder_path:
            raise MissingFolderPath()
        identity = registry.resolve(body.wallet_public_key)
        result = orchestrator.run(UploadRequest(root_path=folder_path, uploader_identity=identity))
        return _ok(result)

    @app.post("/api/uploadFiles")
    async def upload_files(
        files: list[UploadFile] | None = File(None),
        wallet_public_key: str | None = Form(None, alias="walletPublicKey"),
    ) -> JSONResponse:
        identity = registry.resolve(wallet_public_key)
        received = [(f.filename or "", await f.read()) for f in files or []]
        result = await run_in_threadpool(orchestrator.run_files, received, identity)
        return _ok(result)

    @app.get("/healthz")
    def healthz() -> dict:
        return HealthResponse(
            store_configured=cfg.store_configured,
            signer_configured=len(registry) > 0,
        ).model_dump(by_alias=True)

    logger.info(
        "gameanchor API ready (store configured: %s, signers: %d)",
        report.store_configured,
        len(registry),
    )
    return app
