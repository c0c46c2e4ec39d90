"""Fixtures compartidas.

Jerarquía de prueba:
    NET01 → GW01 → S01, S02
    NET01 → GW02 → S03
    NET02 → GW03 → S04
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from measurements_api.domain.models import Measurement
from measurements_api.infrastructure.persistence import (
    InMemoryStore,
    SqlHierarchyStore,
    SqlMeasurementStore,
    ensure_schema,
)

T0 = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


def ts(minutes: int) -> datetime:
    """Timestamp UTC a ``minutes`` minutos de T0."""
    return T0 + timedelta(minutes=minutes)


def measurements(values, start: int = 0, step: int = 1):
    return [Measurement(created_at=ts(start + i * step), value=v) for i, v in enumerate(values)]


def _seed(store) -> None:
    store.create_network("NET01", "Red 1", "principal")
    store.create_network("NET02", "Red 2", "secundaria")
    store.create_gateway("GW01", "NET01", "Gateway 1")
    store.create_gateway("GW02", "NET01", "Gateway 2")
    store.create_gateway("GW03", "NET02", "Gateway 3")
    store.create_sensor("S01", "GW01", "Temp", "", "temperature", "C")
    store.create_sensor("S02", "GW01", "Hum", "", "humidity", "%")
    store.create_sensor("S03", "GW02", "Pres", "", "pressure", "hPa")
    store.create_sensor("S04", "GW03", "Temp", "", "temperature", "C")


# =============================================================================
# IN-MEMORY
# =============================================================================

@pytest.fixture
def store() -> InMemoryStore:
    """Store en memoria con la jerarquía de prueba y sin mediciones."""
    s = InMemoryStore()
    _seed(s)
    return s


# =============================================================================
# SQLITE
# =============================================================================

@pytest.fixture
def engine():
    """SQLite en memoria compartida entre hilos (TestClient usa threadpool)."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sql_stores(db):
    """(hierarchy, measurements) SQL con la jerarquía de prueba."""
    hierarchy = SqlHierarchyStore(db)
    _seed(hierarchy)
    db.commit()
    return hierarchy, SqlMeasurementStore(db)
