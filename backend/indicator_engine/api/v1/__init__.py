"""
API v1 Router

All API endpoints of the indicator engine.
"""

from fastapi import APIRouter

from indicator_engine.api.v1.endpoints import indicators, market

router = APIRouter()

# Include all endpoint routers
router.include_router(market.router, prefix="/market", tags=["Market Data"])
router.include_router(indicators.router, prefix="/indicators", tags=["Indicators"])
