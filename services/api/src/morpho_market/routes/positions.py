from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from services.api.src.morpho_market.adapters.morpho_blue.config import (
    MarketConfig,
    get_default_config,
)
from services.api.src.morpho_market.db.engine import get_db_engine
from services.api.src.morpho_market.db.repository import UserPositionRepository
from services.api.src.morpho_market.domain.charts import distribution, top_n
from services.api.src.morpho_market.domain.models import UserPosition
from services.api.src.morpho_market.schemas.responses import (
    DistributionSlice,
    ErrorResponse,
    PositionResponse,
    PositionsResponse,
)
from services.api.src.morpho_market.utils.units import format_fixed

router = APIRouter(tags=["positions"])


def position_to_response(position: UserPosition, config: MarketConfig) -> PositionResponse:
    return PositionResponse(
        id=position.id,
        user_address=position.user_address,
        market_id=position.market_id,
        total_supplied=str(position.total_supplied),
        total_withdrawn=str(position.total_withdrawn),
        net_supply=str(position.net_supply),
        net_supply_formatted=format_fixed(
            position.net_supply, config.decimals_for("supply"), 4
        ),
        total_borrowed=str(position.total_borrowed),
        total_repaid=str(position.total_repaid),
        net_borrow=str(position.net_borrow),
        net_borrow_formatted=format_fixed(
            position.net_borrow, config.decimals_for("borrow"), 2
        ),
        borrow_shares=str(position.borrow_shares),
    )


def build_positions_response(engine: Engine) -> PositionsResponse:
    positions = UserPositionRepository(engine).list_positions()
    config = get_default_config()

    suppliers = top_n(positions, key=lambda p: p.net_supply)
    borrowers = top_n(positions, key=lambda p: p.net_borrow)

    top_suppliers = [position_to_response(p, config) for p in suppliers]
    top_borrowers = [position_to_response(p, config) for p in borrowers]

    supply_distribution = distribution(
        [(p.user_address, float(p.net_supply_formatted)) for p in top_suppliers]
    )
    borrow_distribution = distribution(
        [(p.user_address, float(p.net_borrow_formatted)) for p in top_borrowers]
    )

    return PositionsResponse(
        positions=[position_to_response(p, config) for p in positions],
        top_suppliers=top_suppliers,
        top_borrowers=top_borrowers,
        supply_distribution=[DistributionSlice(**s) for s in supply_distribution],
        borrow_distribution=[DistributionSlice(**s) for s in borrow_distribution],
    )


@router.get(
    "/positions",
    response_model=PositionsResponse,
    responses={500: {"model": ErrorResponse}},
)
def get_positions(engine: Engine = Depends(get_db_engine)) -> PositionsResponse:
    """
    All user positions, top 10 suppliers and borrowers, and pie chart data.

    Only positions with a strictly positive net value appear in the leaderboards.
    """
    return build_positions_response(engine)
