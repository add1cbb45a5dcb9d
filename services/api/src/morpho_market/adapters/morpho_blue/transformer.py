"""Turn decoded Morpho Blue event logs into Activity records."""

from typing import Any, Mapping

from web3 import Web3

from services.api.src.morpho_market.adapters.morpho_blue.config import MarketConfig
from services.api.src.morpho_market.domain.models import Activity
from services.api.src.morpho_market.utils.units import format_units


def _to_hex(value: Any) -> str:
    if isinstance(value, str):
        return value
    return Web3.to_hex(value)


def normalize_log(
    event_type: str, log: Mapping[str, Any], config: MarketConfig
) -> Activity | None:
    """
    Build an Activity from a decoded log.

    Supply/withdraw amounts use the collateral decimals, borrow/repay the loan
    decimals. Returns None for logs web3 could not decode (no `args`), e.g.
    anonymous or foreign logs returned by the provider.
    """
    decimals = config.decimals_for(event_type)

    args = log.get("args") if hasattr(log, "get") else None
    if not args:
        return None

    amount = int(args["assets"])
    shares = int(args["shares"]) if event_type == "borrow" else None

    return Activity(
        type=event_type,
        amount=amount,
        amount_formatted=format_units(amount, decimals),
        user_address=args["onBehalf"],
        transaction_hash=_to_hex(log["transactionHash"]),
        block_number=int(log["blockNumber"]),
        market_id=config.market_id,
        shares=shares,
    )


def normalize_logs(
    event_type: str, logs: list[Mapping[str, Any]], config: MarketConfig
) -> list[Activity]:
    activities = []
    for log in logs:
        activity = normalize_log(event_type, log, config)
        if activity is not None:
            activities.append(activity)
    return activities
