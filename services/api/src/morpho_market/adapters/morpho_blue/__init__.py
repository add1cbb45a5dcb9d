from services.api.src.morpho_market.adapters.morpho_blue.block_timestamps import (
    BlockTimestampResolver,
)
from services.api.src.morpho_market.adapters.morpho_blue.config import (
    MarketConfig,
    get_default_config,
)
from services.api.src.morpho_market.adapters.morpho_blue.logs_fetcher import LogsFetcher

__all__ = ["BlockTimestampResolver", "LogsFetcher", "MarketConfig", "get_default_config"]
