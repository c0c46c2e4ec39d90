"""CRUD de redes."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from common.db import get_db
from ..auth import require_api_key
from ..infrastructure.persistence import SqlHierarchyStore
from ..schemas import GatewayOut, NetworkIn, NetworkOut, NetworkUpdate, SensorOut
from .deps import get_hierarchy_store, transaction

router = APIRouter(tags=["networks"], dependencies=[Depends(require_api_key)])


def _network_tree(store: SqlHierarchyStore, code: str) -> NetworkOut:
    network = store.get_network(code)
    gateways = [
        GatewayOut.from_domain(
            g, [SensorOut.from_domain(s) for s in store.list_sensors_of_gateway(g.mac_address)]
        )
        for g in store.list_gateways_of_network(code)
    ]
    return NetworkOut.from_domain(network, gateways)


@router.get("/api/v1/networks", response_model=List[NetworkOut])
def list_networks(store: SqlHierarchyStore = Depends(get_hierarchy_store)):
    return [_network_tree(store, n.code) for n in store.list_networks()]


@router.post("/api/v1/networks", status_code=201)
def create_network(
    payload: NetworkIn,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "POST network"):
        store.create_network(payload.code, payload.name, payload.description)
    return Response(status_code=201)


@router.get("/api/v1/networks/{network_code}", response_model=NetworkOut)
def get_network(network_code: str, store: SqlHierarchyStore = Depends(get_hierarchy_store)):
    return _network_tree(store, network_code)


@router.patch("/api/v1/networks/{network_code}", status_code=204)
def update_network(
    network_code: str,
    payload: NetworkUpdate,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "PATCH network"):
        store.update_network(network_code, payload.code, payload.name, payload.description)
    return Response(status_code=204)


@router.delete("/api/v1/networks/{network_code}", status_code=204)
def delete_network(
    network_code: str,
    db: Session = Depends(get_db),
    store: SqlHierarchyStore = Depends(get_hierarchy_store),
):
    with transaction(db, "DELETE network"):
        store.delete_network(network_code)
    return Response(status_code=204)
