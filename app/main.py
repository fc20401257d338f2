"""
Breezy CRM Gateway
FastAPI application entry point.
"""
import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from app.core.config import Settings, get_settings
from app.core.errors import add_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
# httpx logs full request URLs at INFO, and the Gemini key is a query parameter
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Apply the configured log level to the root logger."""
    logging.getLogger().setLevel(settings.log_level.upper())


def mount_static(app: FastAPI, settings: Settings) -> None:
    """Serve the dashboard UI at / when it is deployed next to the API."""
    if not os.path.isdir(settings.static_dir):
        return
    if any(getattr(route, "name", None) == "static" for route in app.routes):
        return
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    logger.info(f"Static files served from: {settings.static_dir}")


def load_settings() -> Settings:
    """
    Load settings, exiting the process when HUBSPOT_ACCESS_TOKEN is missing.
    """
    try:
        return get_settings()
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        logger.error(
            "HUBSPOT_ACCESS_TOKEN not found. Create a .env file and add your "
            "HubSpot Private App token."
        )
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    settings = load_settings()
    configure_logging(settings)
    mount_static(app, settings)
    logger.info(f"Starting {settings.app_name} {settings.app_version}...")
    logger.info(f"AI provider: {settings.ai_provider}")
    if settings.enforce_single_trial_per_contact:
        logger.info("Single trial deal per contact is enforced")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    logger.info("Shutdown complete")


# Initialize FastAPI application
app = FastAPI(
    title="Breezy CRM Gateway",
    description=(
        "Admin backend for HubSpot contacts, deals and subscriptions, "
        "with AI customer health insights."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

# Include routers
from app.routers import hubspot, insights
app.include_router(hubspot.router)
app.include_router(insights.router)


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {
        "status": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def run():
    """Start the API server."""
    import uvicorn

    settings = load_settings()
    configure_logging(settings)
    logger.info(f"API available at: http://{settings.host}:{settings.port}")
    logger.info(f"Health check: http://{settings.host}:{settings.port}/health")

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
    )


if __name__ == "__main__":
    run()
