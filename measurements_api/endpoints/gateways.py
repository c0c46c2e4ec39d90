"""CRUD de gateways dentro de una red."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from common.db import get_db
from ..analytics import HierarchyValidator
from ..auth import require_api_key
from ..infrastructure.persistence import SqlHierarchyStore
from ..schemas import GatewayIn, GatewayOut, GatewayUpdate, SensorOut
from .deps import get_hierarchy_store, transaction

router = APIRouter(tags=["gateways"], dependencies=[Depends(require_api_key)])

GATEWAYS_PATH = "/api/v1/networks/{network_code}/gateways"


def _gateway_out(store: SqlHierarchyStore, mac_address: str) -> GatewayOut:
    gateway = store.get_gateway(mac_address)
    sensors = [SensorOut.from_domain(s) for s in store.list_sensors_of_gateway(mac_address)]
    return GatewayOut.from_domain(gateway, sensors)


@router.get(GATEWAYS_PATH, response_model=List[GatewayOut])
def list_gateways(network_code: str, store: SqlHierarchyStore = Depends(get_hierarchy_store)):
    HierarchyValidator(store).validate(network_code)
    return [_gateway_out(store, g.mac_address) for g in store.list_gateways_of_network(network_code)]


@router.post(GATEWAYS_PATH, status_code=201)
def create_gateway(
    network_code: str,
    payload: GatewayIn,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "POST gateway"):
        store.create_gateway(payload.mac_address, network_code, payload.name, payload.description)
    return Response(status_code=201)


@router.get(GATEWAYS_PATH + "/{gateway_mac}", response_model=GatewayOut)
def get_gateway(
    network_code: str,
    gateway_mac: str,
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    HierarchyValidator(store).validate(network_code, gateway_mac)
    return _gateway_out(store, gateway_mac)


@router.patch(GATEWAYS_PATH + "/{gateway_mac}", status_code=204)
def update_gateway(
    network_code: str,
    gateway_mac: str,
    payload: GatewayUpdate,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "PATCH gateway"):
        HierarchyValidator(store).validate(network_code, gateway_mac)
        store.update_gateway(gateway_mac, payload.mac_address, payload.name, payload.description)
    return Response(status_code=204)


@router.delete(GATEWAYS_PATH + "/{gateway_mac}", status_code=204)
def delete_gateway(
    network_code: str,
    gateway_mac: str,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "DELETE gateway"):
        HierarchyValidator(store).validate(network_code, gateway_mac)
        store.delete_gateway(gateway_mac)
    return Response(status_code=204)
