"""Dependencias compartidas por los routers: stores, servicios y transacción."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from common.db import get_db
from ..errors import MeasurementsError
from ..infrastructure.persistence import SqlHierarchyStore, SqlMeasurementStore
from ..services import IngestionService, NetworkQueryService, SensorQueryService
from ..timestamps import parse_date_param

logger = logging.getLogger(__name__)


def get_hierarchy_store(db: Session = Depends(get_db)) -> SqlHierarchyStore:
    return SqlHierarchyStore(db)


def get_measurement_store(db: Session = Depends(get_db)) -> SqlMeasurementStore:
    return SqlMeasurementStore(db)


def get_sensor_query_service(db: Session = Depends(get_db)) -> SensorQueryService:
    return SensorQueryService(SqlHierarchyStore(db), SqlMeasurementStore(db))


def get_network_query_service(db: Session = Depends(get_db)) -> NetworkQueryService:
    # Una Session no se comparte entre hilos: el fan-out SQL es secuencial.
    return NetworkQueryService(SqlHierarchyStore(db), SqlMeasurementStore(db), max_workers=1)


def get_ingestion_service(db: Session = Depends(get_db)) -> IngestionService:
    return IngestionService(SqlHierarchyStore(db), SqlMeasurementStore(db))


def date_range(start_date: Optional[str], end_date: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    return parse_date_param(start_date), parse_date_param(end_date)


def split_sensor_macs(raw: Optional[List[str]]) -> Optional[List[str]]:
    """Acepta ``?sensorMacs=a&sensorMacs=b`` y ``?sensorMacs=a,b``.

    Un filtro vacío (``?sensorMacs=``) equivale a no filtrar.
    """
    if not raw:
        return None
    macs = [m.strip() for item in raw for m in item.split(",")]
    return [m for m in macs if m] or None


@contextmanager
def transaction(db: Session, operation: str) -> Iterator[None]:
    """Commit al salir; rollback ante cualquier error.

    Los errores de dominio se relanzan tal cual (los mapea main.py);
    el resto se loguea y se convierte en 500.
    """
    try:
        yield
        db.commit()
    except MeasurementsError:
        db.rollback()
        raise
    except Exception as e:
        logger.exception("DB error in %s err=%s", operation, type(e).__name__)
        db.rollback()
        detail = f"DB error: {type(e).__name__}"
        if os.getenv("MEASUREMENTS_DEBUG_ERRORS", "").strip() == "1":
            detail = f"{detail}: {e}"
        raise HTTPException(status_code=500, detail=detail)
