from pydantic import BaseModel

# PT-USDAI-19FEB2026 / USDC market on Arbitrum
MARKET_ID = "0x8147c63f3f6f5a0825c84bf2cb11443c72b609fa39cf9a362e3d4dc2c5ca76c4"
MORPHO_ADDRESS = "0x6c247b1F6182318877311737BaC0844bAa518F5e"

COLLATERAL_DECIMALS = 18  # PT-USDAI
LOAN_DECIMALS = 6  # USDC

# Morpho Blue on Arbitrum went live around block 300M; this market is newer
FROM_BLOCK = 400_000_000

EVENT_TYPES = ["supply", "withdraw", "borrow", "repay"]

# Activity kind -> Morpho Blue event name
EVENT_NAMES = {
    "supply": "SupplyCollateral",
    "withdraw": "WithdrawCollateral",
    "borrow": "Borrow",
    "repay": "Repay",
}


def _event(name: str, inputs: list[tuple[str, str, bool]]) -> dict:
    return {
        "anonymous": False,
        "name": name,
        "type": "event",
        "inputs": [
            {"name": arg, "type": typ, "indexed": indexed}
            for arg, typ, indexed in inputs
        ],
    }


MORPHO_EVENTS_ABI = [
    _event("SupplyCollateral", [
        ("id", "bytes32", True),
        ("caller", "address", True),
        ("onBehalf", "address", True),
        ("assets", "uint256", False),
    ]),
    _event("WithdrawCollateral", [
        ("id", "bytes32", True),
        ("caller", "address", False),
        ("onBehalf", "address", True),
        ("receiver", "address", True),
        ("assets", "uint256", False),
    ]),
    _event("Borrow", [
        ("id", "bytes32", True),
        ("caller", "address", False),
        ("onBehalf", "address", True),
        ("receiver", "address", True),
        ("assets", "uint256", False),
        ("shares", "uint256", False),
    ]),
    _event("Repay", [
        ("id", "bytes32", True),
        ("caller", "address", True),
        ("onBehalf", "address", True),
        ("assets", "uint256", False),
        ("shares", "uint256", False),
    ]),
]


class TokenConfig(BaseModel):
    symbol: str
    decimals: int


class MarketConfig(BaseModel):
    market_id: str
    name: str
    morpho_address: str
    from_block: int
    collateral: TokenConfig
    loan: TokenConfig

    def decimals_for(self, event_type: str) -> int:
        """Supply/withdraw move collateral; borrow/repay move the loan token."""
        if event_type in ("supply", "withdraw"):
            return self.collateral.decimals
        if event_type in ("borrow", "repay"):
            return self.loan.decimals
        raise ValueError(f"Unknown event type: {event_type}")


def get_default_config() -> MarketConfig:
    return MarketConfig(
        market_id=MARKET_ID,
        name="PT-USDAI-19FEB2026 / USDC",
        morpho_address=MORPHO_ADDRESS,
        from_block=FROM_BLOCK,
        collateral=TokenConfig(symbol="PT-USDAI", decimals=COLLATERAL_DECIMALS),
        loan=TokenConfig(symbol="USDC", decimals=LOAN_DECIMALS),
    )
