"""Async database engine and session factory.

The service runs on PostgreSQL through asyncpg. Local runs and the test
suite use SQLite through aiosqlite, usually with a StaticPool so that one
in-memory database is shared by every session. Pool sizing and the schema
search_path only apply to PostgreSQL.
"""

from typing import Any

from loguru import logger
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

POSTGRES_POOL_DEFAULTS: dict[str, Any] = {
    "pool_size": 10,
    "max_overflow": 5,
    "pool_pre_ping": True,
}

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the engine created by ``init_engine``.

    Raises:
        RuntimeError: If ``init_engine`` has not run yet.
    """
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() at startup."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory bound to the current engine.

    Raises:
        RuntimeError: If ``init_engine`` has not run yet.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() at startup."
        raise RuntimeError(msg)
    return _session_factory


def _with_search_path(connect_args: Any, schema: str) -> dict[str, Any]:
    if not isinstance(connect_args, dict):
        msg = "connect_args must be a dict"
        raise TypeError(msg)
    # asyncpg takes session settings through server_settings
    server_settings = connect_args.setdefault("server_settings", {})
    server_settings["search_path"] = f"{schema},public"
    return connect_args


def _engine_options(database_url: str, schema: str | None, options: dict[str, Any]) -> dict[str, Any]:
    backend = make_url(database_url).get_backend_name()
    if backend != "postgresql":
        if schema is not None:
            logger.warning(f"Ignoring database schema {schema!r} for {backend} backend")
        return options

    if schema is not None:
        options["connect_args"] = _with_search_path(options.pop("connect_args", {}), schema)
    if options.get("poolclass") is not StaticPool:
        for key, value in POSTGRES_POOL_DEFAULTS.items():
            options.setdefault(key, value)
    return options


def init_engine(database_url: str, *, schema: str | None = None, **kwargs: Any) -> AsyncEngine:
    """Create the engine and session factory and keep them for the process.

    Args:
        database_url: Async SQLAlchemy URL, ``postgresql+asyncpg://`` in
            production or ``sqlite+aiosqlite://`` for local runs and tests.
        schema: PostgreSQL schema put first on the search_path, for isolated
            preview environments. Ignored for SQLite.
        **kwargs: Passed to ``create_async_engine``. Explicit pool options
            win over the PostgreSQL defaults.

    Returns:
        The created engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(database_url, **_engine_options(database_url, schema, kwargs))
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    logger.debug(f"Database engine initialized for {_engine.url.get_backend_name()}")
    return _engine


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine. Safe to call twice."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
