from datetime import datetime, timedelta, timezone

import pytest

from services.api.src.morpho_market.db.activities_repository import ActivityRepository
from services.api.src.morpho_market.db.engine import get_engine, init_db
from services.api.src.morpho_market.domain.models import Activity

START = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
USER = "0x" + "a" * 40


@pytest.fixture
def sqlite_engine():
    engine = get_engine("sqlite://")
    init_db(engine)
    return engine


@pytest.fixture
def repository(sqlite_engine):
    return ActivityRepository(sqlite_engine)


def make_activity(
    type: str = "supply",
    tx: str = "0x01",
    user: str = USER,
    amount: int = 600 * 10**18,
    block: int = 100,
    minutes: int = 0,
    shares: int | None = None,
) -> Activity:
    return Activity(
        type=type,
        amount=amount,
        amount_formatted="600",
        user_address=user,
        transaction_hash=tx,
        block_number=block,
        market_id="0xmarket",
        timestamp=START + timedelta(minutes=minutes),
        shares=shares,
    )


class TestInsertActivity:
    def test_insert_new(self, repository):
        assert repository.insert_activity(make_activity()) is True
        assert repository.count() == 1

    def test_duplicate_key_is_skipped(self, repository):
        repository.insert_activity(make_activity())

        assert repository.insert_activity(make_activity(amount=1)) is False
        assert repository.count() == 1

    def test_duplicate_does_not_overwrite(self, repository):
        repository.insert_activity(make_activity(amount=5))
        repository.insert_activity(make_activity(amount=7))

        assert repository.list_activities()[0].amount == 5

    def test_same_tx_different_type_is_distinct(self, repository):
        repository.insert_activity(make_activity(type="supply"))
        repository.insert_activity(make_activity(type="borrow"))

        assert repository.count() == 2

    def test_same_tx_different_user_is_distinct(self, repository):
        repository.insert_activity(make_activity(user=USER))
        repository.insert_activity(make_activity(user="0x" + "b" * 40))

        assert repository.count() == 2

    def test_missing_timestamp_raises(self, repository):
        activity = make_activity()
        activity.timestamp = None

        with pytest.raises(ValueError, match="no timestamp"):
            repository.insert_activity(activity)


class TestInsertActivities:
    def test_counts_stored_and_skipped(self, repository):
        batch = [make_activity(tx="0x01"), make_activity(tx="0x02")]

        assert repository.insert_activities(batch) == (2, 0)
        assert repository.insert_activities(batch) == (0, 2)
        assert repository.count() == 2

    def test_partial_overlap(self, repository):
        repository.insert_activities([make_activity(tx="0x01")])

        stored, skipped = repository.insert_activities(
            [make_activity(tx="0x01"), make_activity(tx="0x02")]
        )

        assert (stored, skipped) == (1, 1)

    def test_empty(self, repository):
        assert repository.insert_activities([]) == (0, 0)


class TestListActivities:
    def test_oldest_first(self, repository):
        repository.insert_activities([
            make_activity(tx="0x03", minutes=30, block=300),
            make_activity(tx="0x01", minutes=10, block=100),
            make_activity(tx="0x02", minutes=20, block=200),
        ])

        activities = repository.list_activities()

        assert [a.transaction_hash for a in activities] == ["0x01", "0x02", "0x03"]

    def test_round_trips_fields(self, repository):
        original = make_activity(type="borrow", amount=2**255, shares=10**30)
        repository.insert_activity(original)

        stored = repository.list_activities()[0]

        assert stored.id is not None
        assert stored.type == "borrow"
        assert stored.amount == 2**255
        assert stored.shares == 10**30
        assert stored.user_address == USER
        assert stored.block_number == 100
        assert stored.timestamp == START
        assert stored.timestamp.tzinfo is not None

    def test_shares_null_for_supply(self, repository):
        repository.insert_activity(make_activity())

        assert repository.list_activities()[0].shares is None

    def test_filter_by_market(self, repository):
        repository.insert_activity(make_activity())

        assert repository.list_activities(market_id="0xother") == []
        assert len(repository.list_activities(market_id="0xmarket")) == 1
