"""Repository for market activity database operations."""

import uuid
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine

from services.api.src.morpho_market.db.models import market_activities
from services.api.src.morpho_market.domain.models import Activity

ACTIVITY_KEY = ["transaction_hash", "type", "user_address"]


def as_utc(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class ActivityRepository:
    """Repository for market activity database operations."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._is_sqlite = "sqlite" in str(engine.url)

    def insert_activity(self, activity: Activity) -> bool:
        """
        Insert one activity unless (transaction_hash, type, user_address) exists.

        Returns:
            True if a row was written, False if it was already ingested
        """
        if activity.timestamp is None:
            raise ValueError(
                f"Activity {activity.transaction_hash} has no timestamp"
            )

        row = {
            "id": str(uuid.uuid4()),
            "type": activity.type,
            "amount": str(activity.amount),
            "amount_formatted": activity.amount_formatted,
            "user_address": activity.user_address,
            "transaction_hash": activity.transaction_hash,
            "block_number": activity.block_number,
            "timestamp": activity.timestamp,
            "market_id": activity.market_id,
            "shares": str(activity.shares) if activity.shares is not None else None,
        }

        with self.engine.begin() as conn:
            if self._is_sqlite:
                return self._insert_sqlite(conn, row) > 0
            else:
                return self._insert_postgres(conn, row) > 0

    def _insert_postgres(self, conn: Connection, row: dict) -> int:
        stmt = pg_insert(market_activities).values(row)
        stmt = stmt.on_conflict_do_nothing(constraint="uq_activity_key")
        result = conn.execute(stmt)
        return result.rowcount

    def _insert_sqlite(self, conn: Connection, row: dict) -> int:
        stmt = sqlite_insert(market_activities).values(row)
        stmt = stmt.on_conflict_do_nothing(index_elements=ACTIVITY_KEY)
        result = conn.execute(stmt)
        return result.rowcount

    def insert_activities(self, activities: Sequence[Activity]) -> tuple[int, int]:
        """
        Insert activities one by one, in order.

        Returns:
            Tuple of (stored, skipped) where skipped counts duplicates
        """
        stored = 0
        skipped = 0
        for activity in activities:
            if self.insert_activity(activity):
                stored += 1
            else:
                skipped += 1
        return stored, skipped

    def list_activities(self, market_id: str | None = None) -> list[Activity]:
        """All stored activities, oldest first."""
        stmt = select(market_activities)
        if market_id:
            stmt = stmt.where(market_activities.c.market_id == market_id)
        stmt = stmt.order_by(
            market_activities.c.timestamp.asc(),
            market_activities.c.block_number.asc(),
        )

        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            return [
                Activity(
                    id=row.id,
                    type=row.type,
                    amount=int(row.amount),
                    amount_formatted=row.amount_formatted,
                    user_address=row.user_address,
                    transaction_hash=row.transaction_hash,
                    block_number=row.block_number,
                    timestamp=as_utc(row.timestamp),
                    market_id=row.market_id,
                    shares=int(row.shares) if row.shares is not None else None,
                )
                for row in result
            ]

    def count(self) -> int:
        stmt = select(func.count()).select_from(market_activities)
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

