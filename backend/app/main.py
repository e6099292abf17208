"""Main FastAPI application."""
import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.settings import settings
from app.api.accounts import router as accounts_router
from app.api.messages import router as messages_router
from app.domain.common.errors import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from app.infra.db.base import Base, engine
# Import all models to ensure they're registered with Base
from app.infra.db.models import MessageModel, SkillModel, UserModel  # noqa: F401
from app.infra.messaging.redis_bus import redis_bus
from app.infra.realtime.conversation_ws_manager import (
    CONVERSATION_UPDATES_CHANNEL,
    conversation_ws_manager,
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    if settings.debug and engine is not None:
        # Alembic owns the schema; create_all is a local convenience only
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            logger.warning("Could not create tables during startup: %s", e)

    # Redis subscriber so conversation pushes reach sockets on every instance
    subscriber_task = None
    if settings.redis_url:
        try:
            await redis_bus.ping()
            subscriber_task = asyncio.create_task(
                redis_bus.subscribe_forever(
                    CONVERSATION_UPDATES_CHANNEL, conversation_ws_manager.handle_bus_message
                )
            )
            conversation_ws_manager.use_redis = True
            logger.info("Conversation updates Redis subscriber started")
        except Exception as e:
            logger.warning("Could not connect to Redis during startup, pushes stay local: %s", e)

    yield

    # Shutdown
    try:
        if subscriber_task is not None:
            subscriber_task.cancel()
            try:
                await subscriber_task
            except asyncio.CancelledError:
                pass
        conversation_ws_manager.use_redis = False
        await redis_bus.disconnect()
        if engine is not None:
            await engine.dispose()
    except asyncio.CancelledError:
        logger.info("Lifespan shutdown cancelled (e.g. Ctrl+C); cleanup attempted.")
        raise


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    max_age=3600,
)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests and responses."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        logger.info("[SERVER REQUEST] %s %s", request.method, request.url.path)
        logger.debug("   Query params: %s", dict(request.query_params))

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            "[SERVER RESPONSE] %s %s - %s (%.3fs)",
            request.method, request.url.path, response.status_code, process_time,
        )
        return response


# Add logging middleware AFTER CORS (CORS must be first)
app.add_middleware(LoggingMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors with detailed logging."""
    errors = exc.errors()
    logger.error("[VALIDATION ERROR] %s %s (%d errors)", request.method, request.url.path, len(errors))
    for i, error in enumerate(errors, 1):
        logger.error("   Error %d: %s", i, json.dumps(error, default=str))
    return JSONResponse(
        status_code=422,
        content={"detail": json.loads(json.dumps(errors, default=str)), "code": "request_validation_error"},
    )


# Domain error handlers: map domain exceptions to HTTP status + machine code
def _domain_error_response(status_code: int, exc: DomainError) -> JSONResponse:
    detail = exc.message if hasattr(exc, "message") else str(exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "code": exc.code, **exc.extra()},
    )


@app.exception_handler(NotFoundError)
async def domain_not_found_handler(request: Request, exc: NotFoundError):
    """Return 404 when a resource is not found."""
    return _domain_error_response(404, exc)


@app.exception_handler(AuthorizationError)
async def domain_authorization_handler(request: Request, exc: AuthorizationError):
    """Return 403 when the user is not authorized."""
    return _domain_error_response(403, exc)


@app.exception_handler(ValidationError)
async def domain_validation_handler(request: Request, exc: ValidationError):
    """Return 422 for domain validation errors."""
    return _domain_error_response(422, exc)


@app.exception_handler(ConflictError)
async def domain_conflict_handler(request: Request, exc: ConflictError):
    """Return 409 for conflicts: already resolved, insufficient credits, failed settlement."""
    logger.info("[CONFLICT] %s %s: %s", request.method, request.url.path, exc)
    return _domain_error_response(409, exc)


# Health check (root and under /v1)
@app.get("/health")
@app.get(f"{settings.api_v1_prefix}/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": settings.app_version}


@app.get("/ready")
async def readiness():
    """Readiness endpoint: run all checks and return 200 if ready, 503 otherwise."""
    from app.readiness import run_all_checks_async, is_ready
    checks = await run_all_checks_async()
    ready, summary = is_ready(checks)
    if ready:
        return {"ready": True, "checks": summary}
    return JSONResponse(
        status_code=503,
        content={"ready": False, "checks": summary},
    )


# API v1 routes
app.include_router(accounts_router, prefix=settings.api_v1_prefix)
app.include_router(messages_router, prefix=settings.api_v1_prefix)
