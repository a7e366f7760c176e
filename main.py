"""FastAPI application entrypoint for the yoga studio management API."""
import os
import time
import uuid

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.core.config import settings
from app.core.errors import register_exception_handlers, server_error_body
from app.core.logging import get_logger, setup_logging
from app.infrastructure.mongo import StudioStore, close_mongo_client, get_store

# Initialize structured logging
setup_logging(level=settings.log_level, json_format=settings.is_production)
logger = get_logger(__name__)

# Application metadata
APP_VERSION = "1.0.0"
APP_NAME = "Yoga Studio API"

app = FastAPI(
    title=APP_NAME,
    description="Accounts, passes, class scheduling, attendance and reports for a yoga studio",
    version=APP_VERSION,
    docs_url="/docs" if not settings.is_production else None,  # Disable in prod
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with timing; turn unhandled errors into a 500 body."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path}",
        extra={
            "request_id": request_id,
            "method": request.method,
            "endpoint": request.url.path,
        }
    )

    try:
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "endpoint": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            }
        )

        response.headers["X-Request-ID"] = request_id
        return response

    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"Request failed: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "endpoint": request.url.path,
                "duration_ms": round(duration_ms, 2),
                "error_type": type(e).__name__,
            },
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content=server_error_body(e, request_id, expose=not settings.is_production),
            headers={"X-Request-ID": request_id},
        )


@app.on_event("startup")
async def startup_event():
    """Create indexes; the API still starts when Mongo is down (see /ready)."""
    logger.info("Application starting up", extra={"version": APP_VERSION})
    try:
        get_store().ensure_indexes()
    except Exception as e:
        logger.error(f"Could not ensure MongoDB indexes: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutting down")
    close_mongo_client()


app.include_router(router, prefix=settings.api_prefix)


@app.get("/")
def root():
    """Root endpoint with basic service info."""
    return {
        "service": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.environment
    }


@app.get("/health")
def health_check():
    """Liveness probe. Does not touch the database."""
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "checks": {"api": "ok"}
    }


@app.get("/ready")
def readiness_check(store: StudioStore = Depends(get_store)):
    """Readiness probe - verifies MongoDB is reachable."""
    checks = {"config": "ok" if settings.mongo_uri else "error"}

    try:
        store.ping()
        checks["mongodb"] = "ok"
    except Exception as e:
        logger.warning(f"MongoDB ping failed: {e}")
        checks["mongodb"] = "unreachable"

    all_ok = all(value == "ok" for value in checks.values())

    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
