# backend/stagebook/main.py

import asyncio
import contextlib
import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .api import api_booking, api_contract, api_notification, api_rider, auth
from .core.config import settings
from .core.observability import setup_logging, setup_tracer
from .database import Base, engine, is_sqlite
from .services.ops_scheduler import run_maintenance
from .utils.errors import WorkflowError
from .utils.status_logger import register_status_listeners, unregister_status_listeners

# Configure logging before creating any loggers
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME, default_response_class=ORJSONResponse)
setup_tracer(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError):
    """Render workflow errors as ``{"detail": {"message", "field_errors", "code"}}``."""
    logger.warning(
        "%s at %s: %s %s",
        type(exc).__name__,
        request.url.path,
        exc.message,
        exc.field_errors,
    )
    return ORJSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation errors with details and log them for debugging."""
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    field_errors = {
        ".".join(str(p) for p in err.get("loc", ()) if p != "body"): err.get("msg", "invalid")
        for err in errors
    }
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": {
                "message": "Request validation failed",
                "field_errors": field_errors,
                "code": "validation_error",
            }
        },
    )


api_prefix = settings.API_V1_STR  # usually something like "/api/v1"

app.include_router(auth.router, prefix=f"{api_prefix}/auth", tags=["auth"])
app.include_router(api_booking.router, prefix=f"{api_prefix}/bookings", tags=["bookings"])
app.include_router(api_rider.router, prefix=f"{api_prefix}", tags=["riders"])
app.include_router(api_contract.router, prefix=f"{api_prefix}", tags=["contracts"])
app.include_router(api_notification.router, prefix=f"{api_prefix}", tags=["notifications"])


@app.get("/healthz", tags=["health"])
def healthz():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except OperationalError as exc:
        logger.warning("Health check failed: %s", exc)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable"},
        )
    return {"status": "ok"}


async def ops_maintenance_loop(interval_seconds: int) -> None:
    """Periodic operational tasks: auto-completion, rider reminders, outbox delivery."""
    while True:
        await asyncio.sleep(interval_seconds)
        delay = 5
        max_retries = 5
        for attempt in range(max_retries):
            try:
                summary = await asyncio.to_thread(run_maintenance)
                logger.info("Maintenance summary: %s", summary)
                break
            except OperationalError as exc:  # pragma: no cover - transient DB outage
                logger.exception("Maintenance run failed: %s", exc)
                if attempt < max_retries - 1:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, 60)
                    continue
                # Give up for this cycle; try again next tick
                break
            except Exception as exc:  # pragma: no cover - continue running
                logger.exception("Maintenance run failed: %s", exc)
                break


@app.on_event("startup")
async def on_startup() -> None:
    register_status_listeners()
    if is_sqlite and os.getenv("PYTEST_RUN") != "1":
        # Local SQLite databases are created on the fly; others use Alembic
        Base.metadata.create_all(bind=engine)
    interval = settings.MAINTENANCE_INTERVAL_SECONDS
    if interval > 0 and os.getenv("PYTEST_RUN") != "1":
        app.state.maintenance_task = asyncio.create_task(ops_maintenance_loop(interval))
        logger.info("Maintenance loop started (every %ss)", interval)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    task = getattr(app.state, "maintenance_task", None)
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
    unregister_status_listeners()
    logger.info("Shutdown complete")
