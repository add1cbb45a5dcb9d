from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from services.api.src.morpho_market.db.engine import get_db_engine
from services.api.src.morpho_market.db.activities_repository import ActivityRepository
from services.api.src.morpho_market.domain.charts import cumulative_series, downsample
from services.api.src.morpho_market.schemas.responses import (
    ActivitiesResponse,
    ActivityResponse,
    ActivitySummary,
    ChartPoint,
    ErrorResponse,
)

router = APIRouter(tags=["activities"])


def build_activities_response(engine: Engine) -> ActivitiesResponse:
    activities = ActivityRepository(engine).list_activities()

    counts = {"supply": 0, "withdraw": 0, "borrow": 0, "repay": 0}
    for a in activities:
        if a.type in counts:
            counts[a.type] += 1

    chart_data = downsample(cumulative_series(activities))

    return ActivitiesResponse(
        activities=[
            ActivityResponse(
                id=a.id,
                type=a.type,
                amount=str(a.amount),
                amount_formatted=a.amount_formatted,
                user_address=a.user_address,
                transaction_hash=a.transaction_hash,
                block_number=a.block_number,
                timestamp=a.timestamp,
                market_id=a.market_id,
                shares=str(a.shares) if a.shares is not None else None,
            )
            for a in activities
        ],
        chart_data=[ChartPoint(**point) for point in chart_data],
        summary=ActivitySummary(
            total_supply_events=counts["supply"],
            total_withdraw_events=counts["withdraw"],
            total_borrow_events=counts["borrow"],
            total_repay_events=counts["repay"],
        ),
    )


@router.get(
    "/activities",
    response_model=ActivitiesResponse,
    responses={500: {"model": ErrorResponse}},
)
def get_activities(engine: Engine = Depends(get_db_engine)) -> ActivitiesResponse:
    """
    All market activities (oldest first) with a cumulative supply/borrow series.

    The series is sampled down to at most 50 points and always ends with the
    latest state.
    """
    return build_activities_response(engine)
