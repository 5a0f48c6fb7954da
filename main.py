"""
InvoiceFlow - FastAPI Application Entry Point

This is the main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import init_db, close_db, ping_database
from app.utils.error_handling import setup_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Environment: {settings.app_env}")

    # Initialize database (dev only - use migrations in production)
    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    if not settings.oxapay_enabled:
        logger.warning("OXAPAY_MERCHANT_API_KEY not set; plan payments run in stub mode")

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Invoicing for freelancers and agencies: clients, invoices, PDF export, "
                "email delivery, proposals, client portals and plan billing.",
    version=API_VERSION,
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


# ===========================================
# API ROUTES
# ===========================================

@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.app_name,
        "version": API_VERSION,
        "status": "running",
        "environment": settings.app_env,
        "api_docs": "/api/docs" if settings.is_development else "disabled",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    database = "connected" if await ping_database() else "unavailable"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
    }


# ===========================================
# INCLUDE ROUTERS
# ===========================================

from app.routers import (  # noqa: E402
    profile, clients, invoices, payment_methods, proposals,
    dashboard, billing, agency, support, admin, portal,
)

# Profile and company info
app.include_router(profile.router, prefix="/api/v1", tags=["Profile & Company"])

# Core invoicing
app.include_router(clients.router, prefix="/api/v1/clients", tags=["Clients"])
app.include_router(invoices.router, prefix="/api/v1/invoices", tags=["Invoices"])
app.include_router(payment_methods.router, prefix="/api/v1/payment-methods", tags=["Payment Methods"])
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])

# Plans and payments
app.include_router(billing.router, prefix="/api/v1/billing", tags=["Billing"])

# Agency plan
app.include_router(proposals.router, prefix="/api/v1/proposals", tags=["Proposals"])
app.include_router(agency.router, prefix="/api/v1/agency", tags=["Agency"])

# Public client portal
app.include_router(portal.router, prefix="/api/v1/portal", tags=["Client Portal"])

# Support and administration
app.include_router(support.router, prefix="/api/v1/support", tags=["Support"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
