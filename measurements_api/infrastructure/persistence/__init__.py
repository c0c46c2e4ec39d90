"""Persistence infrastructure for networks, gateways, sensors and measurements."""

from .in_memory import InMemoryStore
from .schema import ensure_schema
from .sql_store import SqlHierarchyStore, SqlMeasurementStore

__all__ = [
    "InMemoryStore",
    "ensure_schema",
    "SqlHierarchyStore",
    "SqlMeasurementStore",
]
