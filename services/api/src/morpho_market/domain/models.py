from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Activity:
    """A single supply/withdraw/borrow/repay event for the market."""

    type: str  # 'supply', 'withdraw', 'borrow', 'repay'
    amount: int  # raw amount in smallest unit
    amount_formatted: str
    user_address: str  # onBehalf
    transaction_hash: str
    block_number: int
    market_id: str
    # Filled in once block timestamps are resolved
    timestamp: Optional[datetime] = None
    # Borrow-specific
    shares: Optional[int] = None
    id: Optional[str] = None

    def to_json(self) -> dict:
        return {
            "type": self.type,
            "amount": str(self.amount),
            "amount_formatted": self.amount_formatted,
            "user_address": self.user_address,
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "market_id": self.market_id,
            "shares": str(self.shares) if self.shares is not None else None,
        }


@dataclass
class UserPosition:
    user_address: str
    market_id: str
    total_supplied: int = 0
    total_withdrawn: int = 0
    total_borrowed: int = 0
    total_repaid: int = 0
    borrow_shares: int = 0
    id: Optional[str] = None

    @property
    def net_supply(self) -> int:
        return self.total_supplied - self.total_withdrawn

    @property
    def net_borrow(self) -> int:
        return self.total_borrowed - self.total_repaid

    def to_json(self) -> dict:
        return {
            "user_address": self.user_address,
            "market_id": self.market_id,
            "total_supplied": str(self.total_supplied),
            "total_withdrawn": str(self.total_withdrawn),
            "net_supply": str(self.net_supply),
            "total_borrowed": str(self.total_borrowed),
            "total_repaid": str(self.total_repaid),
            "net_borrow": str(self.net_borrow),
            "borrow_shares": str(self.borrow_shares),
        }


@dataclass
class MarketSnapshot:
    market_id: str
    # Sum of strictly positive net positions
    total_supply: int
    total_borrow: int
    snapshot_block: int
    timestamp: datetime
    id: Optional[str] = None
