import logging

from fastapi import FastAPI

from textback.api import auth, routes, webhooks
from textback.config import get_settings
from textback.services.scheduler import start_scheduler, stop_scheduler

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug
)

# Include routers
app.include_router(routes.router)
app.include_router(webhooks.router)
app.include_router(auth.router)


@app.on_event("startup")
async def startup_event():
    """Start background scheduler on app startup when enabled"""
    if settings.scheduler_enabled:
        start_scheduler(settings)
    logger.info("%s started", settings.app_name)


@app.on_event("shutdown")
async def shutdown_event():
    """Stop background scheduler on app shutdown"""
    stop_scheduler()
    logger.info("%s stopped", settings.app_name)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
