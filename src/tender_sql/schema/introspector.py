"""
Schema Introspector
===================

Reads live database metadata (tables, columns, sample rows) into a
:class:`SchemaSnapshot`.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import column, inspect, select, table
from sqlalchemy.engine import Connection
from sqlalchemy.exc import CompileError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.types import TypeEngine

from tender_sql.errors import IntrospectionError
from tender_sql.models import ColumnDescriptor, SchemaSnapshot, TableDescriptor

logger = structlog.get_logger(__name__)

_CHARACTER_TYPES = {"char", "nchar", "varchar", "nvarchar", "character varying"}


def format_column_type(column_type: TypeEngine, dialect=None) -> str:
    """
    Render a column type as a compact, lower-case string.

    Character types keep their length (``nvarchar(255)``, ``nvarchar(MAX)``),
    decimals keep precision and scale (``decimal(18,2)``).
    """
    length = getattr(column_type, "length", None)
    precision = getattr(column_type, "precision", None)
    scale = getattr(column_type, "scale", None)

    try:
        compiled = column_type.compile(dialect=dialect)
    except CompileError:
        return "unknown"

    base = compiled.split("(", 1)[0].strip().lower()
    if base in _CHARACTER_TYPES:
        if length is None and "(max)" in compiled.lower():
            return f"{base}(MAX)"
        return f"{base}({length})" if length else base
    if base in {"decimal", "numeric"}:
        if precision is not None and scale is not None:
            return f"{base}({precision},{scale})"
        return base
    return compiled.replace(", ", ",").lower()


def to_scalar(value: Any) -> Any:
    """Convert a database value into a plain scalar for prompt grounding."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<{len(bytes(value))} bytes>"
    return str(value)


class SchemaIntrospector:
    """
    Builds schema snapshots from an SQLAlchemy async engine.

    Each table is described on its own connection so that a failure on one
    table (permissions, broken view of a synonym, etc.) cannot poison the
    others.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        schema: Optional[str] = None,
        sample_rows: int = 5,
    ) -> None:
        """
        Initialize the introspector.

        Args:
            engine: Engine whose pool is used for catalog and sample queries
            schema: Schema to enumerate (default: the connection's default)
            sample_rows: Number of sample rows per table, capped at 5
        """
        self.engine = engine
        self.schema = schema
        self.sample_rows = max(0, min(sample_rows, 5))

    def _table_names(self, connection: Connection) -> list[str]:
        return inspect(connection).get_table_names(schema=self.schema)

    def _describe(self, connection: Connection, name: str) -> TableDescriptor:
        reflected = inspect(connection).get_columns(name, schema=self.schema)
        columns = [
            ColumnDescriptor(
                name=col["name"],
                logical_type=format_column_type(col["type"], connection.dialect),
                nullable=bool(col.get("nullable", True)),
            )
            for col in reflected
        ]

        rows: list[dict[str, Any]] = []
        if columns and self.sample_rows:
            target = table(name, *(column(c.name) for c in columns), schema=self.schema)
            result = connection.execute(select(target).limit(self.sample_rows))
            rows = [
                {key: to_scalar(value) for key, value in row._mapping.items()}
                for row in result
            ]

        return TableDescriptor(name=name, columns=columns, sample_rows=rows)

    async def introspect(self) -> SchemaSnapshot:
        """
        Enumerate base tables and describe each one.

        Returns:
            SchemaSnapshot in discovery order

        Raises:
            IntrospectionError: If the table list itself cannot be read
        """
        try:
            async with self.engine.connect() as conn:
                names = await conn.run_sync(self._table_names)
        except SQLAlchemyError as e:
            logger.error("Table enumeration failed", error=str(e))
            raise IntrospectionError(f"Failed to retrieve user tables: {e}") from e

        logger.info("Introspecting schema", table_count=len(names), schema=self.schema)

        snapshot = SchemaSnapshot()
        for name in names:
            try:
                async with self.engine.connect() as conn:
                    descriptor = await conn.run_sync(self._describe, name)
            except SQLAlchemyError as e:
                logger.warning("Table introspection failed", table=name, error=str(e))
                descriptor = TableDescriptor(name=name, error=str(e))
            snapshot.tables.append(descriptor)

        logger.info(
            "Schema introspection completed",
            usable_tables=len(snapshot.usable_tables()),
            failed_tables=len(snapshot.tables) - len(snapshot.usable_tables()),
        )
        return snapshot
