"""
Indicator Engine - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from indicator_engine.api.v1 import router as api_v1_router
from indicator_engine.core.config import settings
from indicator_engine.services.data_ingestion import get_market_data_service
from indicator_engine.services.indicators import get_indicator_service
from indicator_engine.services.indicators.registry import keys

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Indicators registered: {len(keys())}")
    logger.info(f"Market data sources: {', '.join(get_market_data_service().sources)}")

    yield

    # Shutdown
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Technical Indicator Engine API

    ## Architecture
    - **Data Ingestion**: Fetches OHLCV candles from pluggable sources
    - **Indicator Engine**: Calculates technical indicators (pure Python/NumPy)

    ## Modes
    - **direct**: full aligned series per indicator
    - **snapshot**: latest value per indicator
    - **backtrack**: replay of the latest value over the last N candles
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    indicators_ok = await get_indicator_service().health_check()
    market_data_ok = await get_market_data_service().health_check()
    return {
        "status": "healthy" if indicators_ok and market_data_ok else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Indicator Engine API",
        "docs": "/docs",
        "health": "/health",
    }
