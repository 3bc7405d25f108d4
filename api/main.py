"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, checkpoints
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Market Data Sync API",
    description="Diagnostics for the HUD, Census and BLS market data sync",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(checkpoints.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Market Data Sync API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Market Data Sync API")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Market Data Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "checkpoint": "/checkpoints/{session_id}",
            "latest_checkpoint": "/sources/{source}/checkpoint"
        }
    }
