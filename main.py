"""
Main FastAPI application (entrypoint).

Responsibilities:
- Wire API routers (user/admin)
- Register centralized exception handlers
- Provide middleware: request-id logging
- Add health / status endpoints
- Start the periodic disruption scheduler on startup, stop it on shutdown
"""
from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI
import uvicorn

from api import routes_admin, routes_user
from config.settings import settings
from core.exception_handlers import register_exception_handlers
from core.logging import configure_logging, request_logging_middleware
from core.response import ok
from core.singleton import disruption_scheduler, get_scheduler, push_backend, snapshot_mirror
from services.scheduler import DisruptionScheduler

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SCHEDULER_ENABLED:
        disruption_scheduler.start()
    else:
        logger.warning("SCHEDULER_ENABLED=false; cycles run only on explicit triggers")
    try:
        yield
    finally:
        await disruption_scheduler.stop()
        await push_backend.close()
        if snapshot_mirror is not None:
            await snapshot_mirror.close()


app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION, lifespan=lifespan)

app.include_router(routes_user.router, prefix="", tags=["user"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])

# Register centralized exception handlers
register_exception_handlers(app)

# Add request logging middleware (adds X-Request-ID header and logs)
app.middleware("http")(request_logging_middleware)


@app.get("/health")
async def health():
    """Simple health endpoint used by load balancers and orchestrators."""
    return ok({"status": "ok"})


@app.get("/status")
async def status(scheduler: DisruptionScheduler = Depends(get_scheduler)):
    """Scheduler state, seeding and the last cycle report."""
    return ok(scheduler.status())


if __name__ == "__main__":
    # Run with: python main.py for local dev. For production use uvicorn with workers=1 (state is per process).
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
