"""
Schema Module
=============

Live introspection, snapshot caching and the static fallback schema.
"""

from tender_sql.schema.cache import SnapshotCache
from tender_sql.schema.introspector import SchemaIntrospector, format_column_type
from tender_sql.schema.static import STATIC_TABLES, static_snapshot

__all__ = [
    "SchemaIntrospector",
    "SnapshotCache",
    "STATIC_TABLES",
    "format_column_type",
    "static_snapshot",
]
