import asyncio
from typing import Any, Dict, Optional

from sqlalchemy import Column, Integer, MetaData, Numeric, Table, Text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from catalog_api.config import Settings, get_settings
from catalog_api.exceptions import DatabaseError
from catalog_api.logging_config import get_child_logger

logger = get_child_logger("db")

metadata = MetaData()

products_table = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    # Values come back as float, matching the API models
    Column("price", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("amount", Integer, nullable=False),
    Column("description", Text, nullable=True),
)

_engine: Optional[AsyncEngine] = None
_engine_lock: Optional[asyncio.Lock] = None


def _engine_kwargs(settings: Settings) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": settings.db_echo}

    if settings.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        # An in-memory database only lives as long as its connection
        if make_url(settings.database_url).database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(
            {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
                "pool_pre_ping": True,
            }
        )
    return kwargs


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create an async engine (and its connection pool) for the given settings."""
    return create_async_engine(settings.database_url, **_engine_kwargs(settings))


async def create_schema(engine: AsyncEngine) -> None:
    """Create the products table if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


def _get_engine_lock() -> asyncio.Lock:
    global _engine_lock
    if _engine_lock is None:
        _engine_lock = asyncio.Lock()
    return _engine_lock


async def _ensure_engine() -> AsyncEngine:
    global _engine
    if _engine is not None:
        return _engine

    # Concurrent first requests (cold start without lifespan) wait for a single initialisation
    async with _get_engine_lock():
        if _engine is not None:
            return _engine

        settings = get_settings()
        engine = create_engine_from_settings(settings)
        try:
            await create_schema(engine)
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            logger.error(
                "Error connecting to the database",
                extra={"error_type": type(e).__name__},
                exc_info=True,
            )
            raise DatabaseError("database connection", original_exception=e) from e

        _engine = engine
        logger.info(
            "Database connected and table ready",
            extra={"dialect": engine.dialect.name},
        )
    return _engine


async def get_engine() -> AsyncEngine:
    return await _ensure_engine()


async def dispose_engine() -> None:
    """Close every pooled connection and forget the shared engine."""
    global _engine, _engine_lock
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")
    # The next event loop (e.g. a new test client) gets a fresh lock
    _engine_lock = None
