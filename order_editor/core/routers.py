"""
Router registration for the FastAPI application.

Registers the API v1 routers and the root, health and version endpoints.
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from order_editor.api.v1.endpoints.fbr import router as fbr_router
from order_editor.api.v1.endpoints.orders import router as orders_router
from order_editor.api.v1.endpoints.pricing import router as pricing_router
from order_editor.core.config import get_settings
from order_editor.version import version_info

settings = get_settings()
logger = logging.getLogger(__name__)


def create_root_endpoints(app: FastAPI) -> None:
    """
    Root endpoints.

    Args:
        app: FastAPI instance
    """

    @app.get("/", tags=["Root"], summary="API Info")
    async def root():
        return {
            "message": f"{settings.APP_NAME} API",
            "description": "Order editing engine for FBR digital invoicing",
            "version": settings.APP_VERSION,
            "status": "running",
            "documentation": "/docs" if (settings.DEBUG or settings.ENABLE_DOCS) else "disabled",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": {
                "health": "/health",
                "pricing": "/api/v1/pricing",
                "fbr": "/api/v1/fbr",
                "orders": "/api/v1/orders",
            },
        }

    @app.get("/ping", tags=["Root"], summary="Simple Ping")
    async def ping():
        return {"message": "pong", "timestamp": datetime.now(timezone.utc).isoformat()}


def create_health_endpoints(app: FastAPI) -> None:
    """
    Health check endpoints.

    Args:
        app: FastAPI instance
    """

    @app.get("/health", tags=["Health"], summary="Health Check")
    async def health_check(request: Request):
        """
        Report whether the backend API client is ready.

        The pricing and FBR engines need no backend, so an unready client
        degrades only the order endpoints.
        """
        client = getattr(request.app.state, "backend_client", None)
        backend_ready = client is not None and client.session is not None

        return JSONResponse(
            status_code=200,
            content={
                "status": "healthy" if backend_ready else "degraded",
                "version": settings.APP_VERSION,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": {
                    "pricing_engine": {"status": "healthy"},
                    "backend_api": {
                        "status": "healthy" if backend_ready else "unavailable",
                        "url": settings.BACKEND_API_URL,
                    },
                },
                "environment": settings.ENVIRONMENT,
            },
        )


def create_info_endpoints(app: FastAPI) -> None:
    @app.get("/version", tags=["Info"], summary="Version Info")
    async def version():
        return {
            **version_info(),
            "name": settings.APP_NAME,
            "environment": settings.ENVIRONMENT,
            "debug": settings.DEBUG,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


def configure_api_v1_routers(app: FastAPI) -> None:
    """
    Register the API v1 routers.

    Args:
        app: FastAPI instance
    """
    logger.info("🔧 Configuring API v1 routers...")

    app.include_router(
        pricing_router,
        prefix="/api/v1/pricing",
        tags=["Pricing"],
        responses={422: {"description": "Invalid pricing input"}},
    )
    app.include_router(
        fbr_router,
        prefix="/api/v1/fbr",
        tags=["FBR"],
        responses={422: {"description": "Invalid order data"}},
    )
    app.include_router(
        orders_router,
        prefix="/api/v1/orders",
        tags=["Orders"],
        responses={
            404: {"description": "Order not found"},
            502: {"description": "Backend or FBR failure"},
        },
    )

    logger.info("✅ API v1 routers configured")


def configure_all_routers(app: FastAPI) -> None:
    """
    Register every router and base endpoint.

    Args:
        app: FastAPI instance
    """
    create_root_endpoints(app)
    create_health_endpoints(app)
    create_info_endpoints(app)
    configure_api_v1_routers(app)

    logger.info("✅ All routers configured")
