"""
FastAPI application entry point.

Sets up the app, lifespan (stores, background dispatcher, reaper), CORS,
logging, error rendering and API routers. Uploads return as soon as the
pending record exists; processing runs as asyncio tasks owned by the
dispatcher and is observed by polling GET /documents.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import auth, documents
from app.config import Settings, get_settings
from app.database import close_stores, open_stores
from app.exceptions import VaultError
from app.services.container import build_services
from app.services.extraction_service import Extractor

# Configure logging - single place for log format and level
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

# Room for multipart boundaries and headers on top of the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message}, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(VaultError)
    async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            f"{location}: {message}" if location else message,
        )


def create_application(settings: Optional[Settings] = None, extractor: Optional[Extractor] = None) -> FastAPI:
    """Factory for the FastAPI app. Tests pass their own settings and extractor."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open stores and start background workers; tear down in reverse."""
        if not settings.jwt_secret:
            logger.warning("JWT_SECRET is not set. Login and every document route will return 503.")
        upload_path = Path(settings.upload_dir)
        upload_path.mkdir(parents=True, exist_ok=True)
        logger.info("Upload directory ready: %s", upload_path.resolve())

        document_store, user_store = await open_stores(settings)
        services = build_services(settings, document_store, user_store, extractor=extractor)
        app.state.services = services
        services.reaper.start()
        yield
        await services.reaper.stop()
        await services.dispatcher.shutdown()
        await close_stores(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Upload property grant documents and track their OCR processing.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_upload_size(request: Request, call_next):
        # Reject oversized uploads from the declared length, before the body is parsed.
        # This runs ahead of the type check, so an oversized file of a bad type gets 413.
        if request.method == "POST" and request.url.path.rstrip("/") == "/documents":
            declared = request.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES:
                return _error(
                    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    f"File size exceeds {settings.max_upload_size_mb} MB",
                )
        return await call_next(request)

    register_error_handlers(app)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "OK", "store": settings.store_backend}

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(documents.router, prefix="/documents", tags=["documents"])

    return app


app = create_application()
