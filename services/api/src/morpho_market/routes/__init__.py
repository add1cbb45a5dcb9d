from fastapi import APIRouter

from services.api.src.morpho_market.routes.activities import router as activities_router
from services.api.src.morpho_market.routes.dashboard import router as dashboard_router
from services.api.src.morpho_market.routes.market import router as market_router
from services.api.src.morpho_market.routes.positions import router as positions_router

api_router = APIRouter(prefix="/api")
api_router.include_router(market_router)
api_router.include_router(activities_router)
api_router.include_router(positions_router)

__all__ = ["api_router", "dashboard_router"]
