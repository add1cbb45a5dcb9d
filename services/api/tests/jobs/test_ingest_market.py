"""Tests for the ingest_market job."""

import json
import sys
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from services.api.src.morpho_market.adapters.morpho_blue.block_timestamps import (
    MockBlockTimestampResolver,
)
from services.api.src.morpho_market.adapters.morpho_blue.config import get_default_config
from services.api.src.morpho_market.adapters.morpho_blue.logs_fetcher import MockLogsFetcher
from services.api.src.morpho_market.db.activities_repository import ActivityRepository
from services.api.src.morpho_market.db.engine import get_engine
from services.api.src.morpho_market.db.models import market_snapshots
from services.api.src.morpho_market.db.repository import (
    MarketSnapshotRepository,
    UserPositionRepository,
)
from services.api.src.morpho_market.jobs import ingest_market as job
from services.api.src.morpho_market.jobs.ingest_market import (
    fetch_activities,
    ingest_market,
    snapshot_to_json,
)

ALICE = "0x" + "a" * 40
BOB = "0x" + "b" * 40
RUN_TIME = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)
TO_BLOCK = 1_000


def make_log(block: int, user: str, assets: int, shares: int | None = None) -> dict:
    args = {"onBehalf": user, "assets": assets}
    if shares is not None:
        args["shares"] = shares
    return {"args": args, "transactionHash": f"0x{block:064x}", "blockNumber": block}


@pytest.fixture
def config():
    return get_default_config().model_copy(update={"from_block": 1})


@pytest.fixture
def fetcher(config):
    fetcher = MockLogsFetcher(market_id=config.market_id)
    fetcher.set_mock_logs("SupplyCollateral", [make_log(10, ALICE, 600 * 10**18)])
    fetcher.set_mock_logs("WithdrawCollateral", [make_log(20, ALICE, 200 * 10**18)])
    fetcher.set_mock_logs("Borrow", [make_log(30, BOB, 1_000 * 10**6, shares=10**12)])
    fetcher.set_mock_logs("Repay", [make_log(40, BOB, 400 * 10**6, shares=4 * 10**11)])
    return fetcher


@pytest.fixture
def engine():
    return get_engine("sqlite://")


def run(fetcher, config, engine, output_dir, run_time=RUN_TIME):
    return ingest_market(
        fetcher,
        MockBlockTimestampResolver(),
        to_block=TO_BLOCK,
        config=config,
        engine=engine,
        output_dir=output_dir,
        run_time=run_time,
    )


class TestFetchActivities:

    def test_fetches_every_event_type(self, fetcher, config):
        activities = fetch_activities(fetcher, config, 1, TO_BLOCK)

        assert [a.type for a in activities] == ["supply", "withdraw", "borrow", "repay"]
        assert [name for name, _, _ in fetcher.call_history] == [
            "SupplyCollateral",
            "WithdrawCollateral",
            "Borrow",
            "Repay",
        ]

    def test_formats_with_token_decimals(self, fetcher, config):
        activities = fetch_activities(fetcher, config, 1, TO_BLOCK)

        assert [a.amount_formatted for a in activities] == ["600", "200", "1000", "400"]


class TestIngestMarket:

    def test_positions_and_snapshot(self, fetcher, config, engine, tmp_path):
        result = run(fetcher, config, engine, tmp_path)

        positions = {p.user_address: p for p in result.positions}
        assert positions[ALICE].net_supply == 400 * 10**18
        assert positions[BOB].net_borrow == 600 * 10**6
        assert positions[BOB].borrow_shares == 10**12
        assert result.snapshot.total_supply == 400 * 10**18
        assert result.snapshot.total_borrow == 600 * 10**6
        assert result.snapshot.snapshot_block == TO_BLOCK
        assert result.snapshot.timestamp == RUN_TIME

    def test_activities_get_block_timestamps(self, fetcher, config, engine, tmp_path):
        result = run(fetcher, config, engine, tmp_path)

        supply = result.activities[0]
        assert supply.timestamp == datetime.fromtimestamp(10 * 12, tz=timezone.utc)

    def test_stores_everything(self, fetcher, config, engine, tmp_path):
        result = run(fetcher, config, engine, tmp_path)

        assert result.db_success is True
        assert (result.stored, result.skipped) == (4, 0)
        assert ActivityRepository(engine).count() == 4
        assert UserPositionRepository(engine).count() == 2
        assert MarketSnapshotRepository(engine).count() == 1

    def test_rerun_adds_no_activities(self, fetcher, config, engine, tmp_path):
        first = run(fetcher, config, engine, tmp_path)
        first_positions = UserPositionRepository(engine).list_positions()

        result = run(fetcher, config, engine, tmp_path, run_time=RUN_TIME.replace(hour=13))

        assert (result.stored, result.skipped) == (0, 4)
        assert ActivityRepository(engine).count() == 4
        second_positions = UserPositionRepository(engine).list_positions()
        assert [(p.user_address, p.net_supply, p.net_borrow) for p in second_positions] == [
            (p.user_address, p.net_supply, p.net_borrow) for p in first_positions
        ]
        assert MarketSnapshotRepository(engine).count() == 2
        with engine.connect() as conn:
            rows = conn.execute(
                select(market_snapshots).order_by(market_snapshots.c.timestamp)
            ).fetchall()
        assert [(r.total_supply, r.total_borrow) for r in rows] == [
            (str(400 * 10**18), str(600 * 10**6)),
            (str(400 * 10**18), str(600 * 10**6)),
        ]
        assert (result.snapshot.total_supply, result.snapshot.total_borrow) == (
            first.snapshot.total_supply,
            first.snapshot.total_borrow,
        )

    def test_new_activity_updates_position(self, fetcher, config, engine, tmp_path):
        run(fetcher, config, engine, tmp_path)
        fetcher.set_mock_logs(
            "SupplyCollateral",
            [make_log(10, ALICE, 600 * 10**18), make_log(50, ALICE, 100 * 10**18)],
        )

        result = run(fetcher, config, engine, tmp_path)

        assert (result.stored, result.skipped) == (1, 4)
        alice = next(p for p in UserPositionRepository(engine).list_positions() if p.user_address == ALICE)
        assert alice.net_supply == 500 * 10**18

    def test_writes_json_backups(self, fetcher, config, engine, tmp_path):
        result = run(fetcher, config, engine, tmp_path)

        assert len(result.files) == 6
        activities = json.loads((tmp_path / "activities_latest.json").read_text())
        snapshot = json.loads((tmp_path / "market_snapshot_latest.json").read_text())
        assert len(activities) == 4
        assert activities[0]["amount"] == str(600 * 10**18)
        assert activities[0]["timestamp"] is not None
        assert snapshot["total_supply_formatted"] == "400"
        assert snapshot["total_borrow_formatted"] == "600"

    def test_database_failure_keeps_json_backup(self, fetcher, config, tmp_path):
        broken = get_engine(f"sqlite:///{tmp_path}/missing/dir/market.db")

        result = run(fetcher, config, broken, tmp_path / "out")

        assert result.db_success is False
        assert (tmp_path / "out" / "user_positions_latest.json").exists()
        assert len(result.positions) == 2

    def test_provider_error_propagates_before_any_output(self, fetcher, config, engine, tmp_path):
        fetcher.fail_when_wider_than(0, ConnectionError("connection refused"))

        with pytest.raises(ConnectionError):
            run(fetcher, config, engine, tmp_path / "out")

        assert not (tmp_path / "out").exists()

    def test_no_events(self, config, engine, tmp_path):
        result = run(MockLogsFetcher(config.market_id), config, engine, tmp_path)

        assert result.activities == []
        assert result.positions == []
        assert result.snapshot.total_supply == 0
        assert result.db_success is True


class TestSnapshotToJson:

    def test_formats_totals(self, config):
        from services.api.src.morpho_market.domain.models import MarketSnapshot

        snapshot = MarketSnapshot(
            market_id=config.market_id,
            total_supply=15 * 10**17,
            total_borrow=2_500_000,
            snapshot_block=99,
            timestamp=RUN_TIME,
        )

        data = snapshot_to_json(snapshot, config)

        assert data["total_supply"] == str(15 * 10**17)
        assert data["total_supply_formatted"] == "1.5"
        assert data["total_borrow_formatted"] == "2.5"
        assert data["timestamp"] == "2026-01-05T12:00:00+00:00"


class TestMain:

    def test_returns_zero_on_success(self, monkeypatch):
        calls = []
        monkeypatch.setattr(job, "run_ingestion", lambda **kwargs: calls.append(kwargs))
        monkeypatch.setattr(sys, "argv", ["ingest_market", "--output-dir", "/tmp/out"])

        assert job.main() == 0
        assert calls == [{"database_url": None, "output_dir": "/tmp/out"}]

    def test_returns_one_on_failure(self, monkeypatch):
        def fail(**kwargs):
            raise ConnectionError("rpc down")

        monkeypatch.setattr(job, "run_ingestion", fail)
        monkeypatch.setattr(sys, "argv", ["ingest_market"])

        assert job.main() == 1
