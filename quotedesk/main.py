from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.config import settings
from quotedesk.database import init_db, close_db, get_db
from quotedesk.errors import InternalError, QuoteDeskError, RateLimited
from quotedesk.logging_config import setup_logging
from quotedesk.services.cache import cache
from quotedesk.services.rate_limiter import SubmissionRateLimiter
from quotedesk.middleware.correlation import CorrelationIdMiddleware

# Import models so they are registered with Base.metadata
import quotedesk.models  # noqa: F401

logger = structlog.get_logger()

ADMIN_PREFIX = "/api/v1/admin"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_quotedesk", env=settings.ENVIRONMENT)
    await init_db()
    yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# One limiter per process, shared by every legacy submission
app.state.quote_rate_limiter = SubmissionRateLimiter(
    limit=settings.LEGACY_QUOTE_RATE_LIMIT,
    window_seconds=settings.LEGACY_QUOTE_RATE_WINDOW_SECONDS,
)


# ---------------------------------------------------------------------------
# Exception handlers: every error leaves as
# {"error": {"code": "...", "message": "..."}}
# ---------------------------------------------------------------------------

@app.exception_handler(QuoteDeskError)
async def quotedesk_error_handler(request: Request, exc: QuoteDeskError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_content(), headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        detail = {"error": {"code": "HTTP_ERROR", "message": detail}}
    elif isinstance(detail, dict) and "error" not in detail:
        detail = {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            }
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", path=request.url.path, error=str(exc))
    err = InternalError()
    content = err.to_content()
    if request.url.path.startswith(ADMIN_PREFIX):
        content["error"]["details"] = str(exc)
    return JSONResponse(status_code=err.status_code, content=content)


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
    expose_headers=["Retry-After", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except SQLAlchemyError as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"

    if cache.enabled:
        try:
            await cache.ping()
            health_status["checks"]["redis"] = "ok"
        except Exception as e:
            # Redis only backs the global limiter, which fails open
            logger.warning("health_check_redis_failed", error=str(e))
            health_status["checks"]["redis"] = "error"

    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from quotedesk.routes.vendor_portal import router as vendor_portal_router  # noqa: E402
from quotedesk.routes.quote_requests import router as quote_requests_router  # noqa: E402
from quotedesk.routes.vendor_quotes import router as vendor_quotes_router  # noqa: E402
from quotedesk.routes.vendor_quotes import legacy_router as legacy_quotes_router  # noqa: E402

# Global per-client limiter (Upstash Redis), skipped when not configured
from quotedesk.middleware.rate_limit import rate_limit_middleware  # noqa: E402

app.middleware("http")(rate_limit_middleware)

app.include_router(vendor_portal_router, prefix="/api/v1/vendor", tags=["Vendor Portal"])
app.include_router(
    quote_requests_router, prefix=f"{ADMIN_PREFIX}/vendor-quote-requests", tags=["Quote Requests"]
)
app.include_router(vendor_quotes_router, prefix=f"{ADMIN_PREFIX}/vendor-quotes", tags=["Vendor Quotes"])
app.include_router(legacy_quotes_router, prefix=f"{ADMIN_PREFIX}/legacy-quotes", tags=["Legacy Quotes"])
