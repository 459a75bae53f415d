"""
FastAPI application lifecycle.

Startup configures logging, checks the configuration and opens the shared
backend API client; shutdown closes it.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from order_editor.clients.backend_client import BackendAPIClient
from order_editor.core.config import get_environment_info, get_settings
from order_editor.core.logging_config import setup_logging
from order_editor.version import version_string

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle.

    Args:
        app: FastAPI instance
    """
    # === STARTUP ===
    try:
        setup_logging()
        logger.info(f"🚀 Starting {settings.APP_NAME} {version_string()}...")

        verify_configuration()

        client = BackendAPIClient(settings)
        await client.initialize()
        app.state.backend_client = client

        logger.info("🎉 Application started")

    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        sys.exit(1)

    yield

    # === SHUTDOWN ===
    logger.info(f"🛑 Shutting down {settings.APP_NAME}...")
    client = getattr(app.state, "backend_client", None)
    if client is not None:
        await client.close()
    logger.info("👋 Application stopped")


def verify_configuration() -> None:
    """
    Check settings that the service cannot run without.

    Raises:
        ValueError: If a required setting is missing
    """
    if settings.is_production and not settings.BACKEND_API_TOKEN:
        raise ValueError("BACKEND_API_TOKEN is required in production")

    if not settings.FBR_SELLER_NTN_CNIC:
        logger.warning("⚠️ FBR_SELLER_NTN_CNIC not set; previews rely on the backend seller record")

    logger.info(f"✅ Configuration verified (environment: {settings.ENVIRONMENT}, backend: {settings.BACKEND_API_URL})")
    logger.debug(f"Environment: {get_environment_info()}")
