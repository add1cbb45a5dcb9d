from datetime import datetime

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Returned with HTTP 500 when the store cannot be read."""

    error: str


class SnapshotResponse(BaseModel):
    """Latest market snapshot."""

    id: str
    market_id: str
    total_supply: str
    total_borrow: str
    snapshot_block: int
    timestamp: datetime
    total_supply_formatted: str
    total_borrow_formatted: str


class MarketStats(BaseModel):
    total_users: int
    active_suppliers: int
    active_borrowers: int
    total_supply: str
    total_borrow: str
    total_supply_formatted: str
    total_borrow_formatted: str


class MarketResponse(BaseModel):
    snapshot: SnapshotResponse | None = None
    stats: MarketStats


class ActivityResponse(BaseModel):
    id: str
    type: str
    amount: str
    amount_formatted: str
    user_address: str
    transaction_hash: str
    block_number: int
    timestamp: datetime
    market_id: str
    shares: str | None = None


class ChartPoint(BaseModel):
    """Cumulative net supply/borrow after an activity."""

    timestamp: datetime
    supply: float
    borrow: float


class ActivitySummary(BaseModel):
    total_supply_events: int
    total_withdraw_events: int
    total_borrow_events: int
    total_repay_events: int


class ActivitiesResponse(BaseModel):
    activities: list[ActivityResponse]
    chart_data: list[ChartPoint]
    summary: ActivitySummary


class PositionResponse(BaseModel):
    id: str
    user_address: str
    market_id: str
    total_supplied: str
    total_withdrawn: str
    net_supply: str
    net_supply_formatted: str
    total_borrowed: str
    total_repaid: str
    net_borrow: str
    net_borrow_formatted: str
    borrow_shares: str


class DistributionSlice(BaseModel):
    """Pie chart slice: shortened address label plus value in token units."""

    address: str
    full_address: str
    value: float


class PositionsResponse(BaseModel):
    positions: list[PositionResponse]
    top_suppliers: list[PositionResponse]
    top_borrowers: list[PositionResponse]
    supply_distribution: list[DistributionSlice]
    borrow_distribution: list[DistributionSlice]
