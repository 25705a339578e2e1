"""
LiveScore FastAPI Application
Main entry point for the application
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import JSONResponse, Response
from fastapi import Request
import asyncio
import logging
import subprocess
import time

from app.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Sentry integration
if settings.sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    from sentry_sdk.integrations.redis import RedisIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            RedisIntegration(),
        ],
        traces_sample_rate=0.1,
        environment=settings.app_env,
    )

from app.api.health import router as health_router
from app.api.matches import router as matches_router
from app.api.realtime import router as realtime_router
from app.core.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    PersistenceError,
    ScoringError,
    StateViolation,
    ValidationError,
)
from app.core.metrics import ACTIVE_CONNECTIONS, REQUEST_COUNT, REQUEST_DURATION
from app.core.redis_client import create_redis_client
from app.middleware.rate_limit import RateLimitMiddleware
from app.services.broadcaster import create_broadcaster

# Create FastAPI app instance
app = FastAPI(
    title="LiveScore API",
    description="Live multi-sport scoring backend",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    StateViolation: 409,
    ConcurrentModificationError: 409,
    PersistenceError: 503,
}


def _run_migrations() -> None:
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        capture_output=True,
        text=True,
        timeout=60
    )
    if result.returncode == 0:
        logger.info("Database migrations completed successfully")
    else:
        logger.warning(f"Migration warning: {result.stderr}")


@app.on_event("startup")
async def startup_event():
    """Optionally migrate, then wire Redis and the broadcaster onto app.state"""
    if settings.run_migrations_on_startup:
        logger.info("Running database migrations...")
        await asyncio.to_thread(_run_migrations)

    needs_redis = settings.rate_limit_enabled or settings.broadcast_backend == "redis"
    app.state.redis = create_redis_client() if needs_redis else None
    app.state.broadcaster = create_broadcaster(app.state.redis)
    await app.state.broadcaster.start()
    logger.info(f"{settings.app_name} started with {settings.broadcast_backend} broadcaster")


@app.on_event("shutdown")
async def shutdown_event():
    broadcaster = getattr(app.state, "broadcaster", None)
    if broadcaster is not None:
        await broadcaster.stop()
    redis_client = getattr(app.state, "redis", None)
    if redis_client is not None:
        await redis_client.aclose()


# Map scoring errors to HTTP responses
@app.exception_handler(ScoringError)
async def scoring_error_handler(request: Request, exc: ScoringError):
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        500,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"error": ValidationError.code, "detail": detail},
    )


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Redis client is resolved from app.state per request
app.add_middleware(RateLimitMiddleware)


# Add metrics middleware
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    ACTIVE_CONNECTIONS.inc()
    response = None

    try:
        response = await call_next(request)
        return response
    finally:
        duration = time.time() - start_time
        ACTIVE_CONNECTIONS.dec()

        # Record metrics only if response is available
        if response:
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code
            ).inc()

            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)


# Add metrics endpoint
@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Include routers
app.include_router(health_router, prefix=settings.api_v1_prefix, tags=["health"])
app.include_router(matches_router, prefix=settings.api_v1_prefix, tags=["matches"])
app.include_router(realtime_router, tags=["realtime"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
