import uuid
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine

from services.api.src.morpho_market.db.activities_repository import as_utc
from services.api.src.morpho_market.db.models import market_snapshots, user_positions
from services.api.src.morpho_market.domain.models import MarketSnapshot, UserPosition

POSITION_FIELDS = [
    "market_id",
    "total_supplied",
    "total_withdrawn",
    "net_supply",
    "total_borrowed",
    "total_repaid",
    "net_borrow",
    "borrow_shares",
]


class UserPositionRepository:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._is_sqlite = "sqlite" in str(engine.url)

    def upsert_positions(self, positions: Sequence[UserPosition]) -> int:
        """Insert or fully overwrite one row per user_address."""
        if not positions:
            return 0

        rows = []
        for p in positions:
            row = {
                "id": str(uuid.uuid4()),
                "user_address": p.user_address,
                "market_id": p.market_id,
                "total_supplied": str(p.total_supplied),
                "total_withdrawn": str(p.total_withdrawn),
                "net_supply": str(p.net_supply),
                "total_borrowed": str(p.total_borrowed),
                "total_repaid": str(p.total_repaid),
                "net_borrow": str(p.net_borrow),
                "borrow_shares": str(p.borrow_shares),
            }
            rows.append(row)

        with self.engine.begin() as conn:
            if self._is_sqlite:
                return self._upsert_sqlite(conn, rows)
            else:
                return self._upsert_postgres(conn, rows)

    def _upsert_postgres(self, conn: Connection, rows: list[dict]) -> int:
        stmt = pg_insert(user_positions).values(rows)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_position_user",
            set_={field: stmt.excluded[field] for field in POSITION_FIELDS},
        )
        result = conn.execute(stmt)
        return result.rowcount

    def _upsert_sqlite(self, conn: Connection, rows: list[dict]) -> int:
        stmt = sqlite_insert(user_positions).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_address"],
            set_={field: stmt.excluded[field] for field in POSITION_FIELDS},
        )
        result = conn.execute(stmt)
        return result.rowcount

    def list_positions(self) -> list[UserPosition]:
        stmt = select(user_positions).order_by(user_positions.c.user_address)

        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            return [
                UserPosition(
                    id=row.id,
                    user_address=row.user_address,
                    market_id=row.market_id,
                    total_supplied=int(row.total_supplied),
                    total_withdrawn=int(row.total_withdrawn),
                    total_borrowed=int(row.total_borrowed),
                    total_repaid=int(row.total_repaid),
                    borrow_shares=int(row.borrow_shares),
                )
                for row in result
            ]

    def count(self) -> int:
        stmt = select(func.count()).select_from(user_positions)
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())


class MarketSnapshotRepository:
    def __init__(self, engine: Engine):
        self.engine = engine

    def insert_snapshot(self, snapshot: MarketSnapshot) -> str:
        """Append a snapshot row; snapshots are never updated."""
        snapshot_id = str(uuid.uuid4())
        row = {
            "id": snapshot_id,
            "market_id": snapshot.market_id,
            "total_supply": str(snapshot.total_supply),
            "total_borrow": str(snapshot.total_borrow),
            "snapshot_block": snapshot.snapshot_block,
            "timestamp": snapshot.timestamp,
        }

        with self.engine.begin() as conn:
            conn.execute(market_snapshots.insert().values(row))
        return snapshot_id

    def get_latest_snapshot(self, market_id: str | None = None) -> MarketSnapshot | None:
        stmt = select(market_snapshots)
        if market_id:
            stmt = stmt.where(market_snapshots.c.market_id == market_id)
        stmt = stmt.order_by(
            market_snapshots.c.timestamp.desc(),
            market_snapshots.c.snapshot_block.desc(),
        ).limit(1)

        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
            if row is None:
                return None
            return MarketSnapshot(
                id=row.id,
                market_id=row.market_id,
                total_supply=int(row.total_supply),
                total_borrow=int(row.total_borrow),
                snapshot_block=row.snapshot_block,
                timestamp=as_utc(row.timestamp),
            )

    def count(self) -> int:
        stmt = select(func.count()).select_from(market_snapshots)
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())
