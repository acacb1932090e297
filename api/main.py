"""
FastAPI application initialization
"""

from contextlib import AsyncExitStack

from fastapi import FastAPI
from api import middleware
from api.routes import health, stats, sync
from connector.bootstrap import open_runner
from connector.scheduler import SyncScheduler
from core.config import settings
from core.exceptions import ConfigError
from core.logging import setup_logging
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Glossary Search Connector",
    description="Synchronises glossary terms from the source catalog into the enterprise search index",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

middleware.install(app)

app.state.runner = None
app.state.scheduler = None

# Include routers
app.include_router(health.router)
app.include_router(stats.router)
app.include_router(sync.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Glossary Search Connector API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    stack = AsyncExitStack()
    app.state.exit_stack = stack
    try:
        app.state.runner = await stack.enter_async_context(open_runner(settings))
    except ConfigError as e:
        logger.error(
            f"Connector not configured, operator endpoints disabled: {e.message}",
            extra={"error_context": e.to_dict()}
        )
        return

    if settings.SCHEDULER_ENABLED:
        app.state.scheduler = SyncScheduler(settings)
        app.state.scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Glossary Search Connector API")
    if app.state.scheduler:
        app.state.scheduler.stop()
    stack = getattr(app.state, "exit_stack", None)
    if stack:
        await stack.aclose()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Glossary Search Connector",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "stats": "/stats",
            "sync": ["/sync/incremental", "/sync/full"],
            "connections": "/connections"
        }
    }
