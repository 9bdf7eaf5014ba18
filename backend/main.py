"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api import configurations, event_logs, historical_sync, records
from database import init_db
from logging_config import setup_logging
from services.event_logger import shutdown_log_executor

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup; drain pending log writes on shutdown."""
    try:
        init_db()
    except Exception:
        logger.warning("Database initialisation failed on startup", exc_info=True)
    yield
    shutdown_log_executor(wait=True)


app = FastAPI(
    title="CET Sync",
    description="Maps CRM record changes to customer engagement profiles and events",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(records.router)
app.include_router(historical_sync.router)
app.include_router(event_logs.router)
app.include_router(configurations.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
