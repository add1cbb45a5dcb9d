"""Chart-ready shapes derived from stored activities and positions."""

import math
from decimal import Decimal
from typing import Any, Sequence, TypeVar

T = TypeVar("T")

MAX_CHART_POINTS = 50
TOP_N = 10


def cumulative_series(activities: Sequence[Any]) -> list[dict[str, Any]]:
    """
    Running net supply/borrow after each activity, oldest first.

    Activities need `type`, `amount_formatted` and `timestamp` attributes.
    """
    ordered = sorted(activities, key=lambda a: a.timestamp)
    running_supply = Decimal(0)
    running_borrow = Decimal(0)
    points = []

    for activity in ordered:
        amount = Decimal(activity.amount_formatted)
        if activity.type == "supply":
            running_supply += amount
        elif activity.type == "withdraw":
            running_supply -= amount
        elif activity.type == "borrow":
            running_borrow += amount
        elif activity.type == "repay":
            running_borrow -= amount

        points.append({
            "timestamp": activity.timestamp,
            "supply": float(running_supply),
            "borrow": float(running_borrow),
        })

    return points


def downsample(points: Sequence[T], max_points: int = MAX_CHART_POINTS) -> list[T]:
    """
    Keep every Nth point so at most `max_points` remain.

    The first and last points are always kept and order is preserved.
    """
    n = len(points)
    if n <= max_points:
        return list(points)
    if max_points < 2:
        return [points[-1]]

    # Stride chosen so the strided points plus the final one fit max_points
    step = math.ceil((n - 1) / (max_points - 1))
    sampled = [points[i] for i in range(0, n, step)]
    if (n - 1) % step != 0:
        sampled.append(points[-1])
    return sampled


def shorten_address(address: str) -> str:
    """0x1234567890abcdef... -> 0x1234...cdef"""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def top_n(items: Sequence[T], key, n: int = TOP_N) -> list[T]:
    """Items with key(item) > 0, largest first, at most n."""
    positive = [item for item in items if key(item) > 0]
    return sorted(positive, key=key, reverse=True)[:n]


def distribution(entries: Sequence[tuple[str, float]]) -> list[dict[str, Any]]:
    """Pie-chart slices from (address, value) pairs."""
    return [
        {
            "address": shorten_address(address),
            "full_address": address,
            "value": value,
        }
        for address, value in entries
    ]
