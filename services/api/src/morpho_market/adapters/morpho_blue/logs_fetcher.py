"""Batched eth_getLogs for Morpho Blue market events."""

import logging
import time
from typing import Any

from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract

from services.api.src.morpho_market.adapters.morpho_blue.config import (
    MORPHO_ADDRESS,
    MORPHO_EVENTS_ABI,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50_000
MIN_BATCH_SIZE = 1_000
# Each retry narrows the window by this factor
SHRINK_FACTOR = 5

# Substrings providers use when a getLogs block span is too wide. Generic
# 5xx server errors are also treated as a span problem and narrowed.
RANGE_LIMIT_MARKERS = (
    "block range",
    "range is too large",
    "range too large",
    "too many blocks",
    "exceed maximum block range",
    "query returned more than",
    "limited to a",
    "response size exceeded",
    "server error",
)


def is_range_limit_error(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in RANGE_LIMIT_MARKERS)


def build_contract(w3: Web3, address: str = MORPHO_ADDRESS) -> Contract:
    return w3.eth.contract(
        address=Web3.to_checksum_address(address), abi=MORPHO_EVENTS_ABI
    )


class LogsFetcher:
    """Fetches decoded event logs for one market, window by window."""

    def __init__(
        self,
        contract: Contract,
        market_id: str,
        delay_seconds: float = 0.1,
    ):
        self.contract = contract
        self.market_id = market_id
        self.delay_seconds = delay_seconds

    def _query(self, event_name: str, from_block: int, to_block: int) -> list[Any]:
        event = getattr(self.contract.events, event_name)
        return list(
            event.get_logs(
                from_block=from_block,
                to_block=to_block,
                argument_filters={"id": HexBytes(self.market_id)},
            )
        )

    def _sleep(self) -> None:
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

    def fetch_logs(
        self,
        event_name: str,
        from_block: int,
        to_block: int,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> list[Any]:
        """
        Return every matching log in [from_block, to_block], in block order.

        Windows are fetched sequentially. When the provider rejects a window
        for spanning too many blocks, the same window is re-fetched with a
        batch size five times smaller; below MIN_BATCH_SIZE the error is raised.

        Args:
            event_name: Contract event name (e.g. 'SupplyCollateral')
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            batch_size: Window width in blocks

        Returns:
            Decoded event logs
        """
        all_logs: list[Any] = []

        for start in range(from_block, to_block + 1, batch_size):
            end = min(start + batch_size - 1, to_block)

            try:
                logs = self._query(event_name, start, end)
                logger.info(f"Fetched blocks {start} to {end}: found {len(logs)} events")
                all_logs.extend(logs)
            except Exception as e:
                if not is_range_limit_error(e):
                    raise
                smaller_batch = batch_size // SHRINK_FACTOR
                if smaller_batch < MIN_BATCH_SIZE:
                    raise
                logger.info(
                    f"Blocks {start} to {end} rejected ({e}); "
                    f"retrying with batch size {smaller_batch}"
                )
                all_logs.extend(
                    self.fetch_logs(event_name, start, end, smaller_batch)
                )

            # Small delay to avoid provider rate limits
            self._sleep()

        return all_logs


class MockLogsFetcher(LogsFetcher):
    """Mock fetcher for testing without network calls."""

    def __init__(self, market_id: str = "0xmarket") -> None:
        super().__init__(contract=None, market_id=market_id, delay_seconds=0)
        self._mock_logs: dict[str, list[Any]] = {}
        self._errors: list[tuple[int, Exception]] = []
        self.call_history: list[tuple[str, int, int]] = []

    def set_mock_logs(self, event_name: str, logs: list[Any]) -> None:
        """Logs are returned for any window containing their blockNumber."""
        self._mock_logs[event_name] = logs

    def fail_when_wider_than(self, width: int, error: Exception) -> None:
        """Raise `error` for any window spanning more than `width` blocks."""
        self._errors.append((width, error))

    def _query(self, event_name: str, from_block: int, to_block: int) -> list[Any]:
        self.call_history.append((event_name, from_block, to_block))
        for width, error in self._errors:
            if to_block - from_block + 1 > width:
                raise error
        return [
            log for log in self._mock_logs.get(event_name, [])
            if from_block <= log["blockNumber"] <= to_block
        ]
