from services.api.src.morpho_market.schemas.responses import (
    ActivitiesResponse,
    ActivityResponse,
    ActivitySummary,
    ChartPoint,
    DistributionSlice,
    ErrorResponse,
    MarketResponse,
    MarketStats,
    PositionResponse,
    PositionsResponse,
    SnapshotResponse,
)

__all__ = [
    "ActivitiesResponse",
    "ActivityResponse",
    "ActivitySummary",
    "ChartPoint",
    "DistributionSlice",
    "ErrorResponse",
    "MarketResponse",
    "MarketStats",
    "PositionResponse",
    "PositionsResponse",
    "SnapshotResponse",
]
