"""
Sphire store API: storefront, checkout and the admin dashboard backend.
"""
import time
import uuid
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from sphire.core.config import settings
from sphire.core.database import init_db, close_db
from sphire.core.logging_config import configure_logging
from sphire.core.redis import redis_client
from sphire.api.endpoints import (
    admin_catalog,
    admin_dashboard,
    admin_locations,
    admin_orders,
    admin_reviews,
    admin_settings,
    admin_users,
    auth,
    cart,
    categories,
    health,
    newsletter,
    orders,
    products,
    reviews,
    users,
)

configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

STOREFRONT_ROUTERS = (
    (auth.router, "auth", "Authentication"),
    (users.router, "users", "Users"),
    (products.router, "products", "Products"),
    (categories.router, "categories", "Categories"),
    (cart.router, "cart", "Cart"),
    (orders.router, "orders", "Orders"),
    (reviews.router, "reviews", "Reviews"),
    (newsletter.router, "newsletter", "Newsletter"),
)

ADMIN_ROUTERS = (
    admin_dashboard.router,
    admin_users.router,
    admin_orders.router,
    admin_catalog.router,
    admin_reviews.router,
    admin_locations.router,
    admin_settings.router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("store_api_starting", environment=settings.ENVIRONMENT, version=settings.APP_VERSION)
    try:
        await init_db()
        logger.info("database_initialized")
        # Runs without a cache when Redis is unreachable
        await redis_client.connect()
        yield
    finally:
        await redis_client.disconnect()
        await close_db()
        logger.info("store_api_stopped")


def setup_metrics(app: FastAPI) -> None:
    """Expose Prometheus request metrics, leaving out probes and docs."""
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=[settings.METRICS_PATH, "/health.*", "/docs", "/redoc", "/openapi.json"],
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    ).instrument(app).expose(app, endpoint=settings.METRICS_PATH)
    logger.info("prometheus_metrics_enabled", path=settings.METRICS_PATH)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Storefront, checkout and store administration API",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag the request with an id, then log its outcome and duration."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error("request_failed", method=request.method, path=request.url.path, error=str(e))
        raise

    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
        client_host=request.client.host if request.client else None,
    )
    return response


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


if settings.METRICS_ENABLED:
    setup_metrics(app)

app.include_router(health.router, tags=["Health"])
for router, prefix, tag in STOREFRONT_ROUTERS:
    app.include_router(router, prefix=f"{settings.API_V1_PREFIX}/{prefix}", tags=[tag])
for router in ADMIN_ROUTERS:
    app.include_router(router, prefix=f"{settings.API_V1_PREFIX}/admin", tags=["Admin"])


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "api": settings.API_V1_PREFIX,
        "docs": "/docs" if settings.DEBUG else "disabled",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sphire.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
