"""
FastAPI application for the QUE Accounting API.

Every tenant-scoped route runs the authorization pipeline
(token -> principal -> tenant -> subscription -> permission) as a
dependency chain; see que_accounting.api.dependencies.access.
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from que_accounting.api.routes import (
    auth,
    business,
    customers,
    members,
    modules,
    permissions,
    settings as business_settings,
    subscriptions,
    users,
)
from que_accounting.config.settings import ConfigurationError, get_settings
from que_accounting.platform.responses import register_exception_handlers

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting QUE Accounting API")

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error("Configuration invalid", extra={"error": str(e)})
        raise

    app.state.database_configured = bool(settings.database.url)
    if not settings.database.url:
        logger.error(
            "DATABASE_URL is not set. Endpoints that need the datastore will return 503."
        )
    else:
        masked = settings.database.url.split("@")[-1]
        logger.info("DATABASE_URL configured", extra={"host_db": masked})

    logger.info(
        "Authentication configured",
        extra={
            "issuer": settings.auth.issuer,
            "audience": settings.auth.audience,
            "bootstrap_admin_enabled": settings.bootstrap_admin.enabled,
        },
    )

    yield

    logger.info("Shutting down QUE Accounting API")


def create_app() -> FastAPI:
    """Build the application with routers and exception handlers installed."""
    app = FastAPI(
        title="QUE Accounting API",
        description="Multi-tenant invoicing with per-business roles and subscriptions",
        version="1.0.0",
        lifespan=lifespan,
    )

    cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Error-Code",
            "X-Subscription-Status",
            "X-Subscription-Expires-At",
            "X-Subscription-Remaining-Days",
            "X-Subscription-Active",
        ],
    )

    register_exception_handlers(app)

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "ok"}

    app.include_router(auth.router)
    app.include_router(business.router)
    app.include_router(members.router)
    app.include_router(permissions.router)
    app.include_router(modules.router)
    app.include_router(subscriptions.router)
    app.include_router(customers.router)
    app.include_router(business_settings.router)
    app.include_router(users.router)

    return app


app = create_app()
