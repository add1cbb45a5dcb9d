"""Server-rendered dashboard over the market, activities and positions views."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from services.api.src.morpho_market.adapters.morpho_blue.config import get_default_config
from services.api.src.morpho_market.db.engine import get_db_engine
from services.api.src.morpho_market.domain.charts import shorten_address
from services.api.src.morpho_market.domain.pagination import (
    ACTIVITY_TYPE_FILTERS,
    filter_activities,
    paginate,
)
from services.api.src.morpho_market.routes.activities import build_activities_response
from services.api.src.morpho_market.routes.market import build_market_response
from services.api.src.morpho_market.routes.positions import build_positions_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])

templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))
templates.env.filters["short_address"] = shorten_address


@router.get("/", response_class=HTMLResponse)
def dashboard(
    request: Request,
    type: str = Query(default="all"),
    address: str = Query(default=""),
    activity_page: int = Query(default=1),
    supplier_page: int = Query(default=1),
    borrower_page: int = Query(default=1),
    engine: Engine = Depends(get_db_engine),
) -> HTMLResponse:
    config = get_default_config()
    type_filter = type if type in ACTIVITY_TYPE_FILTERS else "all"

    try:
        market = build_market_response(engine)
        activities = build_activities_response(engine)
        positions = build_positions_response(engine)
    except SQLAlchemyError as e:
        logger.error(f"Dashboard data unavailable: {e}")
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {"error": str(e), "config": config},
            status_code=500,
        )

    filtered = filter_activities(activities.activities, type_filter, address)
    addresses = sorted({a.user_address for a in activities.activities})

    context = {
        "error": None,
        "config": config,
        "market": market,
        "chart_data": [p.model_dump(mode="json") for p in activities.chart_data],
        "summary": activities.summary,
        "supply_distribution": [s.model_dump() for s in positions.supply_distribution],
        "borrow_distribution": [s.model_dump() for s in positions.borrow_distribution],
        "suppliers": paginate(positions.top_suppliers, supplier_page),
        "borrowers": paginate(positions.top_borrowers, borrower_page),
        "activity_page": paginate(filtered, activity_page),
        "is_filtered": type_filter != "all" or bool(address),
        "type_filter": type_filter,
        "type_filters": ACTIVITY_TYPE_FILTERS,
        "address_filter": address,
        "addresses": addresses,
        "params": {
            "type": type_filter,
            "address": address,
            "activity_page": activity_page,
            "supplier_page": supplier_page,
            "borrower_page": borrower_page,
        },
    }
    return templates.TemplateResponse(request, "dashboard.html", context)
