"""
Donation Settings Web API - Main FastAPI Application

Exposes the locally stored donation settings (currencies, subscriber,
cancellation and badge state) to the frontend.
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from donations import configure_logging
from web_ui.api.routes import donation_routes

logger = logging.getLogger(__name__)

# Server configuration from environment
DONATIONS_HOST = os.getenv("DONATIONS_HOST", "localhost")
DONATIONS_PORT = int(os.getenv("DONATIONS_PORT", "8000"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events"""
    # Startup
    configure_logging(settings.LOG_LEVEL)
    settings.create_directories()
    logger.info(f"Donation settings API on http://{DONATIONS_HOST}:{DONATIONS_PORT}")
    logger.info(f"Store file: {settings.get_store_path()}")
    yield
    # Shutdown
    logger.info("Donation settings API shutting down...")


app = FastAPI(
    title="Donation Settings API",
    description="Local donation and subscription settings",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=False,
)

cors_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]

# Add custom hostname origins if configured
if DONATIONS_HOST and DONATIONS_HOST not in ["localhost", "127.0.0.1"]:
    cors_origins.append(f"http://{DONATIONS_HOST}:{DONATIONS_PORT}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
)

app.include_router(donation_routes.router, prefix="/api/v1/donations", tags=["Donations"])


@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "name": "Donation Settings API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=DONATIONS_HOST, port=DONATIONS_PORT)
