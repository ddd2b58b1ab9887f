"""Main application entry point."""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oidc_admin import __version__
from oidc_admin.application.api import router as mapping_router
from oidc_admin.application.di import get_container, close_container


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("🚀 Starting application...")
    try:
        container = get_container()
        await container.init_workflow()
        logger.info("✅ Application started successfully")
    except Exception as e:
        logger.error(f"❌ Error during startup: {e}")
        raise

    yield

    # Shutdown
    logger.info("🛑 Shutting down application...")
    try:
        await close_container()
        logger.info("✅ Application shut down successfully")
    except Exception as e:
        logger.error(f"❌ Error during shutdown: {e}")


# Create FastAPI application
app = FastAPI(
    title="OIDC Group Mapping Admin",
    description="Manage Looker OIDC group to role mappings with test-before-save",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ALLOW_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Group mapping management routes
app.include_router(mapping_router, prefix="/api/v1", tags=["oidc-mappings"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "OIDC Group Mapping Admin",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "healthy",
        "version": __version__,
        "endpoints": {
            "config": "/api/v1/oidc/config",
            "config_download": "/api/v1/oidc/config/download",
            "mappings": "/api/v1/oidc/mappings",
            "mappings_bulk": "/api/v1/oidc/mappings/bulk",
            "pending": "/api/v1/oidc/pending",
            "pending_confirm": "/api/v1/oidc/pending/confirm",
            "pending_cancel": "/api/v1/oidc/pending/cancel",
            "status": "/api/v1/oidc/status",
            "error": "/api/v1/oidc/error",
        }
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"🚀 Starting server on {host}:{port}")

    uvicorn.run(
        "oidc_admin.main:app",
        host=host,
        port=port,
        reload=os.getenv("ENVIRONMENT") == "development",
        log_level="info",
    )
