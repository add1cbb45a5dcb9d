from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)

metadata = MetaData()

# Raw token amounts are uint256 on-chain; stored as decimal strings so no
# backend rounds them.
AMOUNT = String(78)

market_activities = Table(
    "market_activities",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("type", String(20), nullable=False),
    Column("amount", AMOUNT, nullable=False),
    Column("amount_formatted", String(100), nullable=False),
    Column("user_address", String(42), nullable=False),
    Column("transaction_hash", String(66), nullable=False),
    Column("block_number", BigInteger, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("market_id", String(66), nullable=False),
    # Borrow-specific
    Column("shares", AMOUNT, nullable=True),
    UniqueConstraint(
        "transaction_hash", "type", "user_address",
        name="uq_activity_key",
    ),
    Index("ix_activities_timestamp", "timestamp"),
    Index("ix_activities_user", "user_address"),
)

user_positions = Table(
    "user_positions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_address", String(42), nullable=False),
    Column("market_id", String(66), nullable=False),
    Column("total_supplied", AMOUNT, nullable=False),
    Column("total_withdrawn", AMOUNT, nullable=False),
    Column("net_supply", AMOUNT, nullable=False),
    Column("total_borrowed", AMOUNT, nullable=False),
    Column("total_repaid", AMOUNT, nullable=False),
    Column("net_borrow", AMOUNT, nullable=False),
    Column("borrow_shares", AMOUNT, nullable=False),
    UniqueConstraint("user_address", name="uq_position_user"),
)

market_snapshots = Table(
    "market_snapshots",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("market_id", String(66), nullable=False),
    Column("total_supply", AMOUNT, nullable=False),
    Column("total_borrow", AMOUNT, nullable=False),
    Column("snapshot_block", BigInteger, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Index("ix_market_snapshots_timestamp", "timestamp"),
)
