from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from services.api.src.morpho_market.adapters.morpho_blue.config import get_default_config
from services.api.src.morpho_market.db.engine import get_db_engine
from services.api.src.morpho_market.db.repository import (
    MarketSnapshotRepository,
    UserPositionRepository,
)
from services.api.src.morpho_market.domain.positions import (
    active_borrowers,
    active_suppliers,
)
from services.api.src.morpho_market.schemas.responses import (
    ErrorResponse,
    MarketResponse,
    MarketStats,
    SnapshotResponse,
)
from services.api.src.morpho_market.utils.units import format_fixed

router = APIRouter(tags=["market"])


def build_market_response(engine: Engine) -> MarketResponse:
    snapshot = MarketSnapshotRepository(engine).get_latest_snapshot()
    positions = UserPositionRepository(engine).list_positions()
    config = get_default_config()

    total_supply = snapshot.total_supply if snapshot else 0
    total_borrow = snapshot.total_borrow if snapshot else 0
    supply_formatted = format_fixed(total_supply, config.decimals_for("supply"), 2)
    borrow_formatted = format_fixed(total_borrow, config.decimals_for("borrow"), 2)

    snapshot_response = None
    if snapshot:
        snapshot_response = SnapshotResponse(
            id=snapshot.id,
            market_id=snapshot.market_id,
            total_supply=str(snapshot.total_supply),
            total_borrow=str(snapshot.total_borrow),
            snapshot_block=snapshot.snapshot_block,
            timestamp=snapshot.timestamp,
            total_supply_formatted=supply_formatted,
            total_borrow_formatted=borrow_formatted,
        )

    return MarketResponse(
        snapshot=snapshot_response,
        stats=MarketStats(
            total_users=len(positions),
            active_suppliers=len(active_suppliers(positions)),
            active_borrowers=len(active_borrowers(positions)),
            total_supply=str(total_supply),
            total_borrow=str(total_borrow),
            total_supply_formatted=supply_formatted,
            total_borrow_formatted=borrow_formatted,
        ),
    )


@router.get(
    "/market",
    response_model=MarketResponse,
    responses={500: {"model": ErrorResponse}},
)
def get_market(engine: Engine = Depends(get_db_engine)) -> MarketResponse:
    """
    Latest market snapshot plus live supplier/borrower counts.

    Totals come from the most recent snapshot; active counts are computed from
    the current user positions.
    """
    return build_market_response(engine)
