"""Fold market activity into per-user positions and a market snapshot."""

from datetime import datetime
from typing import Iterable, Sequence

from services.api.src.morpho_market.domain.models import (
    Activity,
    MarketSnapshot,
    UserPosition,
)


def aggregate_positions(
    activities: Iterable[Activity], market_id: str
) -> list[UserPosition]:
    """
    Sum every activity into one position per user (first-seen order).

    Integer addition only, so the result does not depend on activity order.
    """
    positions: dict[str, UserPosition] = {}

    for activity in activities:
        pos = positions.get(activity.user_address)
        if pos is None:
            pos = UserPosition(user_address=activity.user_address, market_id=market_id)
            positions[activity.user_address] = pos

        if activity.type == "supply":
            pos.total_supplied += activity.amount
        elif activity.type == "withdraw":
            pos.total_withdrawn += activity.amount
        elif activity.type == "borrow":
            pos.total_borrowed += activity.amount
            pos.borrow_shares += activity.shares or 0
        elif activity.type == "repay":
            pos.total_repaid += activity.amount
        else:
            raise ValueError(f"Unknown activity type: {activity.type}")

    return list(positions.values())


def compute_market_snapshot(
    positions: Iterable[UserPosition],
    market_id: str,
    snapshot_block: int,
    timestamp: datetime,
) -> MarketSnapshot:
    """Market totals count only users with a strictly positive net position."""
    total_supply = 0
    total_borrow = 0
    for pos in positions:
        if pos.net_supply > 0:
            total_supply += pos.net_supply
        if pos.net_borrow > 0:
            total_borrow += pos.net_borrow

    return MarketSnapshot(
        market_id=market_id,
        total_supply=total_supply,
        total_borrow=total_borrow,
        snapshot_block=snapshot_block,
        timestamp=timestamp,
    )


def active_suppliers(positions: Sequence[UserPosition]) -> list[UserPosition]:
    """Users with net supply > 0, largest first."""
    return sorted(
        (p for p in positions if p.net_supply > 0),
        key=lambda p: p.net_supply,
        reverse=True,
    )


def active_borrowers(positions: Sequence[UserPosition]) -> list[UserPosition]:
    """Users with net borrow > 0, largest first."""
    return sorted(
        (p for p in positions if p.net_borrow > 0),
        key=lambda p: p.net_borrow,
        reverse=True,
    )
