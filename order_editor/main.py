"""
FBR Order Editor - FastAPI application entry point.

Exposes the line item tax resolver, order totals, loyalty redemption and
FBR invoice preview engines, plus the order edit operations backed by the
admin backend API.
"""

import logging

import uvicorn
from fastapi import FastAPI

from order_editor.core.config import get_settings
from order_editor.core.exception_handlers import configure_exception_handlers
from order_editor.core.lifespan import lifespan
from order_editor.core.middleware import configure_all_middleware
from order_editor.core.routers import configure_all_routers

settings = get_settings()
logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    """
    Build a fully configured FastAPI application.

    Returns:
        FastAPI: Configured application
    """
    logger.info("🏗️ Creating FastAPI application...")

    docs_enabled = settings.DEBUG or settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.APP_NAME,
        description="Order editing engine for FBR digital invoicing",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    # Order matters: middleware, then handlers, then routes
    configure_all_middleware(app)
    configure_exception_handlers(app)
    configure_all_routers(app)

    logger.info("✅ FastAPI application created")
    return app


app = create_application()


if __name__ == "__main__":
    uvicorn.run(
        "order_editor.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
