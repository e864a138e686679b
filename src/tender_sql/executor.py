"""
Executor
========

Runs final statements against the shared connection pool.
"""

from typing import Any, Protocol, runtime_checkable

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from tender_sql.errors import ExecutionError

logger = structlog.get_logger(__name__)


@runtime_checkable
class ConnectionPool(Protocol):
    """The only shared mutable resource used by the pipeline."""

    async def fetch_all(self, sql: str) -> list[dict[str, Any]]:
        """Run a read-only statement and return its rows."""
        ...

    async def ping(self) -> bool:
        """Return True when the database answers."""
        ...


class EnginePool:
    """
    ConnectionPool backed by an SQLAlchemy async engine.

    Statements are read-only by the Safety Validator's contract, so each
    one runs on a pooled connection without explicit transaction handling.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    async def fetch_all(self, sql: str) -> list[dict[str, Any]]:
        try:
            async with self.engine.connect() as conn:
                # Driver-level execution: no bind-parameter parsing of ":name".
                result = await conn.exec_driver_sql(sql)
                return [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            # Driver text stays in logs and the audit record.
            message = str(getattr(e, "orig", None) or e)
            logger.warning("Statement execution failed", error=message)
            raise ExecutionError(message, sql=sql) from e

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database ping failed", error=str(e))
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


def create_pool(database_url: str, **engine_kwargs: Any) -> EnginePool:
    """
    Create an EnginePool for a database URL.

    Args:
        database_url: SQLAlchemy async URL (e.g. ``mssql+aioodbc://...``)
        **engine_kwargs: Passed to ``create_async_engine``

    Returns:
        EnginePool wrapping a new engine
    """
    engine_kwargs.setdefault("pool_pre_ping", True)
    return EnginePool(create_async_engine(database_url, **engine_kwargs))
