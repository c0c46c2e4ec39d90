"""CRUD de sensores dentro de un gateway."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from common.db import get_db
from ..analytics import HierarchyValidator
from ..auth import require_api_key
from ..infrastructure.persistence import SqlHierarchyStore
from ..schemas import SensorIn, SensorOut, SensorUpdate
from .deps import get_hierarchy_store, transaction

router = APIRouter(tags=["sensors"], dependencies=[Depends(require_api_key)])

SENSORS_PATH = "/api/v1/networks/{network_code}/gateways/{gateway_mac}/sensors"


@router.get(SENSORS_PATH, response_model=List[SensorOut])
def list_sensors(
    network_code: str,
    gateway_mac: str,
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    HierarchyValidator(store).validate(network_code, gateway_mac)
    return [SensorOut.from_domain(s) for s in store.list_sensors_of_gateway(gateway_mac)]


@router.post(SENSORS_PATH, status_code=201)
def create_sensor(
    network_code: str,
    gateway_mac: str,
    payload: SensorIn,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "POST sensor"):
        HierarchyValidator(store).validate(network_code, gateway_mac)
        store.create_sensor(
            payload.mac_address,
            gateway_mac,
            payload.name,
            payload.description,
            payload.variable,
            payload.unit,
        )
    return Response(status_code=201)


@router.get(SENSORS_PATH + "/{sensor_mac}", response_model=SensorOut)
def get_sensor(
    network_code: str,
    gateway_mac: str,
    sensor_mac: str,
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    _, _, sensor = HierarchyValidator(store).validate(network_code, gateway_mac, sensor_mac)
    return SensorOut.from_domain(sensor)


@router.patch(SENSORS_PATH + "/{sensor_mac}", status_code=204)
def update_sensor(
    network_code: str,
    gateway_mac: str,
    sensor_mac: str,
    payload: SensorUpdate,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "PATCH sensor"):
        HierarchyValidator(store).validate(network_code, gateway_mac, sensor_mac)
        store.update_sensor(
            sensor_mac,
            payload.mac_address,
            payload.name,
            payload.description,
            payload.variable,
            payload.unit,
        )
    return Response(status_code=204)


@router.delete(SENSORS_PATH + "/{sensor_mac}", status_code=204)
def delete_sensor(
    network_code: str,
    gateway_mac: str,
    sensor_mac: str,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "DELETE sensor"):
        HierarchyValidator(store).validate(network_code, gateway_mac, sensor_mac)
        store.delete_sensor(sensor_mac)
    return Response(status_code=204)
