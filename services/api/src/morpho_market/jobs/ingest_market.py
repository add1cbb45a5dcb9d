"""
Morpho Blue market ingestion job.

Fetches SupplyCollateral, WithdrawCollateral, Borrow and Repay events for the
tracked market, rebuilds every user position and a market snapshot from the full
history, writes JSON backups to the output directory and then stores everything
in the database. A database failure never prevents the JSON backup.

Usage:
    python -m services.api.src.morpho_market.jobs.ingest_market
    python -m services.api.src.morpho_market.jobs.ingest_market --output-dir /tmp/out
"""
import argparse
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from web3 import Web3

from services.api.src.morpho_market.adapters.morpho_blue.block_timestamps import (
    BlockTimestampResolver,
)
from services.api.src.morpho_market.adapters.morpho_blue.config import (
    EVENT_NAMES,
    EVENT_TYPES,
    MarketConfig,
    get_default_config,
)
from services.api.src.morpho_market.adapters.morpho_blue.logs_fetcher import (
    LogsFetcher,
    build_contract,
)
from services.api.src.morpho_market.adapters.morpho_blue.transformer import normalize_logs
from services.api.src.morpho_market.config import settings
from services.api.src.morpho_market.db.activities_repository import ActivityRepository
from services.api.src.morpho_market.db.engine import get_engine, init_db
from services.api.src.morpho_market.db.repository import (
    MarketSnapshotRepository,
    UserPositionRepository,
)
from services.api.src.morpho_market.domain.models import (
    Activity,
    MarketSnapshot,
    UserPosition,
)
from services.api.src.morpho_market.domain.positions import (
    active_borrowers,
    active_suppliers,
    aggregate_positions,
    compute_market_snapshot,
)
from services.api.src.morpho_market.utils.json_backup import write_backups
from services.api.src.morpho_market.utils.units import format_units

logger = logging.getLogger(__name__)

SEPARATOR = "=" * 60


@dataclass
class IngestionResult:
    activities: list[Activity]
    positions: list[UserPosition]
    snapshot: MarketSnapshot
    files: list[Path] = field(default_factory=list)
    db_success: bool = False
    stored: int = 0
    skipped: int = 0


def fetch_activities(
    fetcher: LogsFetcher,
    config: MarketConfig,
    from_block: int,
    to_block: int,
) -> list[Activity]:
    """Fetch and normalize every tracked event type, one type after another."""
    activities: list[Activity] = []

    for event_type in EVENT_TYPES:
        event_name = EVENT_NAMES[event_type]
        logger.info(f"Fetching {event_type} events ({event_name})...")
        logs = fetcher.fetch_logs(event_name, from_block, to_block)
        normalized = normalize_logs(event_type, logs, config)
        logger.info(f"Total: {len(normalized)} {event_type} events")
        activities.extend(normalized)

    return activities


def attach_timestamps(
    activities: list[Activity], resolver: BlockTimestampResolver
) -> None:
    timestamps = resolver.resolve_many(a.block_number for a in activities)
    for activity in activities:
        activity.timestamp = timestamps[activity.block_number]


def snapshot_to_json(snapshot: MarketSnapshot, config: MarketConfig) -> dict:
    return {
        "market_id": snapshot.market_id,
        "total_supply": str(snapshot.total_supply),
        "total_supply_formatted": format_units(
            snapshot.total_supply, config.collateral.decimals
        ),
        "total_borrow": str(snapshot.total_borrow),
        "total_borrow_formatted": format_units(
            snapshot.total_borrow, config.loan.decimals
        ),
        "snapshot_block": snapshot.snapshot_block,
        "timestamp": snapshot.timestamp.isoformat(),
    }


def store_in_database(
    engine: Engine,
    activities: list[Activity],
    positions: list[UserPosition],
    snapshot: MarketSnapshot,
) -> tuple[int, int]:
    """
    Write activities, positions and the snapshot, in that order.

    No transaction spans the three steps; a re-run repairs a partial write
    because positions and the snapshot are recomputed from scratch.

    Returns:
        Tuple of (stored, skipped) activity counts
    """
    init_db(engine)

    logger.info("Storing activities in database...")
    stored, skipped = ActivityRepository(engine).insert_activities(activities)
    logger.info(f"Stored: {stored}, Skipped (duplicates): {skipped}")

    logger.info("Storing user positions in database...")
    position_repo = UserPositionRepository(engine)
    position_repo.upsert_positions(positions)

    MarketSnapshotRepository(engine).insert_snapshot(snapshot)

    logger.info("Database storage completed successfully")
    logger.info(f"Total activities in DB: {ActivityRepository(engine).count()}")
    logger.info(f"Total user positions in DB: {position_repo.count()}")
    return stored, skipped


def log_market_summary(
    positions: list[UserPosition], snapshot: MarketSnapshot, config: MarketConfig
) -> None:
    suppliers = active_suppliers(positions)
    borrowers = active_borrowers(positions)

    logger.info(SEPARATOR)
    logger.info("MARKET SUMMARY")
    logger.info(SEPARATOR)
    logger.info(f"Total unique users: {len(positions)}")
    logger.info(f"Active suppliers: {len(suppliers)}")
    logger.info(f"Active borrowers: {len(borrowers)}")
    logger.info(
        f"Total collateral supplied: "
        f"{format_units(snapshot.total_supply, config.collateral.decimals)} {config.collateral.symbol}"
    )
    logger.info(
        f"Total borrowed: "
        f"{format_units(snapshot.total_borrow, config.loan.decimals)} {config.loan.symbol}"
    )

    logger.info("TOP SUPPLIERS (by collateral)")
    for i, pos in enumerate(suppliers[:10], start=1):
        logger.info(
            f"{i}. {pos.user_address}: "
            f"{format_units(pos.net_supply, config.collateral.decimals)} {config.collateral.symbol}"
        )

    logger.info("TOP BORROWERS")
    for i, pos in enumerate(borrowers[:10], start=1):
        logger.info(
            f"{i}. {pos.user_address}: "
            f"{format_units(pos.net_borrow, config.loan.decimals)} {config.loan.symbol}"
        )


def ingest_market(
    fetcher: LogsFetcher,
    resolver: BlockTimestampResolver,
    to_block: int,
    config: MarketConfig | None = None,
    engine: Engine | None = None,
    database_url: str | None = None,
    output_dir: str | Path | None = None,
    run_time: datetime | None = None,
) -> IngestionResult:
    """
    Run one full ingestion pass from config.from_block to `to_block`.

    Provider errors propagate. Database errors are logged and reflected in
    IngestionResult.db_success; the JSON backup is written before the
    database is touched.

    Args:
        fetcher: LogsFetcher bound to the Morpho contract
        resolver: Per-run block timestamp resolver
        to_block: Last block to scan (current head), also the snapshot block
        config: Market configuration (default: get_default_config())
        engine: Engine to store into; built from database_url when omitted
        database_url: Optional database URL override
        output_dir: JSON backup directory (default: settings.output_dir)
        run_time: Time of the run (default: now, UTC)

    Returns:
        IngestionResult with everything computed in this run
    """
    config = config or get_default_config()
    run_time = run_time or datetime.now(timezone.utc)
    output_dir = output_dir or settings.output_dir

    logger.info(f"Scanning from block {config.from_block} to {to_block}")
    activities = fetch_activities(fetcher, config, config.from_block, to_block)
    logger.info(f"Total activities to store: {len(activities)}")

    attach_timestamps(activities, resolver)

    logger.info("Calculating user positions...")
    positions = aggregate_positions(activities, config.market_id)
    snapshot = compute_market_snapshot(
        positions, config.market_id, snapshot_block=to_block, timestamp=run_time
    )
    result = IngestionResult(activities=activities, positions=positions, snapshot=snapshot)

    # JSON backup always comes first
    logger.info("Saving data to JSON files (backup)...")
    result.files = write_backups(
        output_dir,
        run_time,
        activities=[a.to_json() for a in activities],
        positions=[p.to_json() for p in positions],
        snapshot=snapshot_to_json(snapshot, config),
    )

    try:
        if engine is None:
            engine = get_engine(database_url)
        result.stored, result.skipped = store_in_database(
            engine, activities, positions, snapshot
        )
        result.db_success = True
    except SQLAlchemyError as e:
        logger.error(f"Database storage failed: {e}")
        logger.info(f"Data has been saved to JSON files in {output_dir}")

    log_market_summary(positions, snapshot, config)

    logger.info(SEPARATOR)
    logger.info("DATA STORAGE SUMMARY")
    logger.info(SEPARATOR)
    logger.info(f"Database: {'success' if result.db_success else 'failed (see JSON files)'}")
    logger.info(f"JSON files: saved to {output_dir}")

    return result


def run_ingestion(
    database_url: str | None = None,
    output_dir: str | None = None,
    rpc_url: str | None = None,
) -> IngestionResult:
    """Build the web3 client, fetcher and resolver from settings and ingest."""
    config = get_default_config()
    w3 = Web3(Web3.HTTPProvider(rpc_url or settings.rpc_url))

    fetcher = LogsFetcher(build_contract(w3, config.morpho_address), config.market_id)
    resolver = BlockTimestampResolver(w3)

    current_block = w3.eth.block_number
    logger.info(f"Current block: {current_block}")

    return ingest_market(
        fetcher,
        resolver,
        to_block=current_block,
        config=config,
        database_url=database_url,
        output_dir=output_dir,
    )


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="Ingest Morpho Blue market activity, positions and snapshot"
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Database URL (default: from settings)",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory for JSON backups (default: from settings)",
    )

    args = parser.parse_args()

    try:
        run_ingestion(database_url=args.database_url, output_dir=args.output_dir)
        return 0
    except Exception as e:
        logger.error(f"Ingestion failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
