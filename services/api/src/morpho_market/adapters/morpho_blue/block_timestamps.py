"""Block number -> wall-clock time, memoized for one ingestion run."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Iterable

from web3 import Web3

logger = logging.getLogger(__name__)


class BlockTimestampResolver:
    """Resolves block timestamps via eth_getBlockByNumber, once per distinct block.

    Create one per run; the cache lives as long as the instance. A block the
    node does not know raises web3's BlockNotFound.
    """

    def __init__(self, w3: Web3, batch_size: int = 10):
        self.w3 = w3
        self.batch_size = batch_size
        self._cache: dict[int, datetime] = {}

    def _fetch_timestamp(self, block_number: int) -> int:
        block = self.w3.eth.get_block(block_number)
        return int(block["timestamp"])

    def get_timestamp(self, block_number: int) -> datetime:
        if block_number not in self._cache:
            ts = self._fetch_timestamp(block_number)
            self._cache[block_number] = datetime.fromtimestamp(ts, tz=timezone.utc)
        return self._cache[block_number]

    def resolve_many(self, block_numbers: Iterable[int]) -> dict[int, datetime]:
        """
        Resolve timestamps for many blocks with bounded concurrency.

        Distinct uncached blocks are fetched in groups of `batch_size`
        parallel lookups; each group completes before the next starts.

        Returns:
            Dict mapping every requested block number to its timestamp
        """
        unique_blocks = sorted(set(block_numbers))
        pending = [b for b in unique_blocks if b not in self._cache]

        if pending:
            logger.info(f"Fetching timestamps for {len(pending)} unique blocks...")
            with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
                for i in range(0, len(pending), self.batch_size):
                    batch = pending[i:i + self.batch_size]
                    timestamps = list(executor.map(self._fetch_timestamp, batch))
                    for block_number, ts in zip(batch, timestamps):
                        self._cache[block_number] = datetime.fromtimestamp(
                            ts, tz=timezone.utc
                        )
                    logger.info(
                        f"Fetched {min(i + self.batch_size, len(pending))}/{len(pending)} timestamps"
                    )

        return {b: self._cache[b] for b in unique_blocks}

    @property
    def cache_size(self) -> int:
        return len(self._cache)


class MockBlockTimestampResolver(BlockTimestampResolver):
    """Resolver backed by a block -> unix timestamp mapping."""

    def __init__(self, timestamps: dict[int, int] | None = None, batch_size: int = 10):
        super().__init__(w3=None, batch_size=batch_size)
        self.timestamps = timestamps or {}
        self.call_history: list[int] = []

    def _fetch_timestamp(self, block_number: int) -> int:
        self.call_history.append(block_number)
        # Default: 12s blocks from the epoch, good enough for ordering
        return self.timestamps.get(block_number, block_number * 12)
