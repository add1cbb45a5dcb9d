from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from services.api.src.morpho_market.config import settings


def get_engine(database_url: str | None = None) -> Engine:
    url = database_url or settings.database_url
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every connection sees its own empty DB
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=False, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    from services.api.src.morpho_market.db.models import metadata

    metadata.create_all(engine)


@lru_cache(maxsize=1)
def get_db_engine() -> Engine:
    """FastAPI dependency: one engine per process for the configured database."""
    return get_engine()
