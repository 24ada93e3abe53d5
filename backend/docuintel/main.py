"""
FastAPI Application — Entry Point

Document upload and search API.

Architecture:
  - All routes are versioned under /api/v1/
  - Authentication is JWT-based (any OIDC provider publishing a JWKS)
  - Database RLS is set per-request via SQLAlchemy dependency
  - S3 access is user-scoped via dependency injection; only the admin
    delete route receives service-role credentials
  - Structured JSON error responses on all 4xx/5xx

Middleware stack (innermost → outermost):
  1. Gzip — compress responses > 1 KB
  2. CORS — restrict to configured origins
  3. Trusted host — reject unexpected Host headers in production
  4. Request ID + logging — X-Request-ID header and one log line per request
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docuintel import __version__
from docuintel.api.v1.documents import router as documents_router
from docuintel.api.v1.extraction import router as extraction_router
from docuintel.core.config import settings
from docuintel.core.errors import DocuIntelError
from docuintel.db.session import check_db_health, dispose_engines
from docuintel.schemas.documents import ErrorResponse

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

_HTTP_KINDS: dict[int, str] = {
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID") or str(uuid.uuid4())


def _error_json(status_code: int, body: ErrorResponse, headers: dict | None = None) -> JSONResponse:
    hdrs = {"X-Request-ID": body.request_id} if body.request_id else {}
    hdrs.update(headers or {})
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=hdrs,
    )


# ---------------------------------------------------------------------------
# Application lifespan — startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: log a config summary and check the database. An unreachable
    database is logged, not fatal; /ready reports it.
    Shutdown: dispose both connection pools.
    """
    logger.info(
        "Starting DocuIntel API | env=%s version=%s",
        settings.app_env, __version__,
    )

    db_health = await check_db_health()
    if db_health["status"] != "ok":
        logger.critical("Database health check failed at startup: %s", db_health)
    else:
        logger.info("Database: connected")
    logger.info("Auth issuer: %s", settings.auth_issuer)
    logger.info("S3 bucket: %s", settings.s3_bucket)

    yield

    logger.info("Shutting down DocuIntel API")
    await dispose_engines()


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    app = FastAPI(
        title="DocuIntel",
        description=(
            "Upload PDFs, images and Word documents, index their text and "
            "search it with PostgreSQL full-text search."
        ),
        version=__version__,
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # ----------------------------------------------------------------
    # Middleware (applied in reverse order — last added = outermost)
    # ----------------------------------------------------------------

    app.add_middleware(GZipMiddleware, minimum_size=1024)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    if settings.is_production and settings.allowed_hosts != ["*"]:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    # ----------------------------------------------------------------
    # Request ID + structured logging middleware
    # ----------------------------------------------------------------

    @app.middleware("http")
    async def request_id_and_logging(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "HTTP %s %s %d %.1fms | request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id,
        )
        return response

    # ----------------------------------------------------------------
    # Exception handlers — uniform structured error responses
    # ----------------------------------------------------------------

    @app.exception_handler(DocuIntelError)
    async def domain_exception_handler(request: Request, exc: DocuIntelError):
        request_id = _request_id(request)
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request failed | path=%s kind=%s request_id=%s message=%s",
            request.url.path, exc.kind, request_id, exc.message,
        )
        return _error_json(exc.status_code, ErrorResponse.from_exception(exc, request_id))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        body = ErrorResponse(
            message=str(exc.detail),
            kind=_HTTP_KINDS.get(exc.status_code, "http_error"),
            request_id=_request_id(request),
        )
        return _error_json(exc.status_code, body, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies are reported with the same kind as business validation."""
        fields = {
            " → ".join(str(loc) for loc in err["loc"]): err["msg"]
            for err in exc.errors()
        }
        body = ErrorResponse(
            message="Request validation failed.",
            kind="validation_error",
            details={"fields": fields},
            request_id=_request_id(request),
        )
        return _error_json(status.HTTP_400_BAD_REQUEST, body)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch-all for unhandled exceptions — never expose stack traces."""
        request_id = _request_id(request)
        logger.exception(
            "Unhandled exception | path=%s request_id=%s",
            request.url.path, request_id,
        )
        body = ErrorResponse(
            message="An unexpected error occurred.",
            kind="internal_error",
            request_id=request_id,
        )
        return _error_json(status.HTTP_500_INTERNAL_SERVER_ERROR, body)

    # ----------------------------------------------------------------
    # Routers
    # ----------------------------------------------------------------

    app.include_router(documents_router,  prefix="/api/v1")
    app.include_router(extraction_router, prefix="/api/v1")

    # ----------------------------------------------------------------
    # Health & readiness endpoints (no auth — used by load balancer)
    # ----------------------------------------------------------------

    @app.get(
        "/health",
        tags=["Operations"],
        summary="Liveness probe",
        description="Returns 200 if the process is alive. No external checks.",
    )
    async def health() -> dict:
        return {"status": "ok", "service": "docuintel-api"}

    @app.get(
        "/ready",
        tags=["Operations"],
        summary="Readiness probe",
        description="Returns 200 only if the database is reachable.",
    )
    async def readiness() -> JSONResponse:
        db_status = await check_db_health()
        if db_status["status"] != "ok":
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready", "database": db_status},
            )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "ready", "database": db_status},
        )

    return app


# ---------------------------------------------------------------------------
# Application instance (imported by uvicorn)
# ---------------------------------------------------------------------------

app = create_app()


# ---------------------------------------------------------------------------
# Local development entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docuintel.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app_env == "development",
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )
