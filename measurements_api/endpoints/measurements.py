"""Endpoints de mediciones por sensor y por red."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from common.db import get_db
from ..analytics import HierarchyValidator
from ..auth import require_api_key
from ..domain.models import Reading
from ..errors import InvalidInputError
from ..infrastructure.persistence import SqlHierarchyStore, SqlMeasurementStore
from ..schemas import IngestResult, MeasurementIn, MeasurementsOut, SensorStatsOut, StatsOut
from ..services import IngestionService, NetworkQueryService, SensorQueryService
from ..timestamps import parse_date_param
from .deps import (
    date_range,
    get_hierarchy_store,
    get_ingestion_service,
    get_measurement_store,
    get_network_query_service,
    get_sensor_query_service,
    split_sensor_macs,
    transaction,
)

router = APIRouter(tags=["measurements"], dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)

SENSOR_PATH = "/api/v1/networks/{network_code}/gateways/{gateway_mac}/sensors/{sensor_mac}"
NETWORK_PATH = "/api/v1/networks/{network_code}"


@router.post(SENSOR_PATH + "/measurements", response_model=IngestResult, status_code=201)
def create_measurements(
    network_code: str,
    gateway_mac: str,
    sensor_mac: str,
    payload: List[MeasurementIn],
    db: Session = Depends(get_db),
    service: IngestionService = Depends(get_ingestion_service),
):
    """Ingesta en lote: cada lectura se clasifica contra el histórico previo.

    Todo el lote va en una transacción: si una lectura falla no se guarda ninguna.
    """
    readings = [Reading(created_at=m.created_at, value=float(m.value)) for m in payload]
    with transaction(db, "POST measurements"):
        inserted = service.ingest_many(network_code, gateway_mac, sensor_mac, readings)
    return IngestResult(inserted=len(inserted))


@router.get(SENSOR_PATH + "/measurements", response_model=MeasurementsOut)
def get_sensor_measurements(
    network_code: str,
    gateway_mac: str,
    sensor_mac: str,
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    service: SensorQueryService = Depends(get_sensor_query_service),
):
    start, end = date_range(start_date, end_date)
    return MeasurementsOut.from_domain(service.query(network_code, gateway_mac, sensor_mac, start, end))


@router.get(SENSOR_PATH + "/stats", response_model=StatsOut)
def get_sensor_stats(
    network_code: str,
    gateway_mac: str,
    sensor_mac: str,
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    service: SensorQueryService = Depends(get_sensor_query_service),
):
    start, end = date_range(start_date, end_date)
    return StatsOut.from_domain(service.stats(network_code, gateway_mac, sensor_mac, start, end))


@router.get(SENSOR_PATH + "/outliers", response_model=MeasurementsOut)
def get_sensor_outliers(
    network_code: str,
    gateway_mac: str,
    sensor_mac: str,
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    service: SensorQueryService = Depends(get_sensor_query_service),
):
    start, end = date_range(start_date, end_date)
    return MeasurementsOut.from_domain(service.outliers(network_code, gateway_mac, sensor_mac, start, end))


@router.get(NETWORK_PATH + "/measurements", response_model=List[MeasurementsOut])
def get_network_measurements(
    network_code: str,
    sensor_macs: Optional[List[str]] = Query(default=None, alias="sensorMacs"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    service: NetworkQueryService = Depends(get_network_query_service),
):
    start, end = date_range(start_date, end_date)
    results = service.query_network(network_code, split_sensor_macs(sensor_macs), start, end)
    return [MeasurementsOut.from_domain(r) for r in results]


@router.get(NETWORK_PATH + "/stats", response_model=List[SensorStatsOut])
def get_network_stats(
    network_code: str,
    sensor_macs: Optional[List[str]] = Query(default=None, alias="sensorMacs"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    service: NetworkQueryService = Depends(get_network_query_service),
):
    start, end = date_range(start_date, end_date)
    results = service.network_stats(network_code, split_sensor_macs(sensor_macs), start, end)
    return [SensorStatsOut.from_domain(r) for r in results]


@router.get(NETWORK_PATH + "/outliers", response_model=List[MeasurementsOut])
def get_network_outliers(
    network_code: str,
    sensor_macs: Optional[List[str]] = Query(default=None, alias="sensorMacs"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    service: NetworkQueryService = Depends(get_network_query_service),
):
    """Outliers por sensor; los sensores sin outliers no se incluyen en la respuesta."""
    start, end = date_range(start_date, end_date)
    results = service.network_outliers(network_code, split_sensor_macs(sensor_macs), start, end)
    return [MeasurementsOut.from_domain(r) for r in results if r.measurements]


@router.delete(SENSOR_PATH + "/measurements", status_code=204)
def delete_measurement(
    network_code: str,
    gateway_mac: str,
    sensor_mac: str,
    created_at: str = Query(..., alias="createdAt"),
    db: Session = Depends(get_db),
    hierarchy: SqlHierarchyStore = Depends(get_hierarchy_store),
    store: SqlMeasurementStore = Depends(get_measurement_store),
):
    """Borra una medición por su clave (sensor, createdAt)."""
    when = parse_date_param(created_at)
    if when is None:
        raise InvalidInputError(f"Invalid createdAt '{created_at}'")
    with transaction(db, "DELETE measurement"):
        HierarchyValidator(hierarchy).validate(network_code, gateway_mac, sensor_mac)
        store.delete_measurement(sensor_mac, when)
    return Response(status_code=204)
