from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ...domain.contracts import IHierarchyStore, IMeasurementStore
from ...domain.models import Gateway, Measurement, Network, Sensor
from ...errors import (
    ConflictError,
    NotFoundError,
    NotFoundReason,
    gateway_not_found,
    network_not_found,
    sensor_not_found,
)
from ...timestamps import to_utc


class InMemoryStore(IHierarchyStore, IMeasurementStore):
    """Implementación en memoria de ambos stores.

    - Misma semántica de NotFound/Conflict que los stores SQL.
    - Un lock global por operación: segura para el fan-out en hilos de
      NetworkQueryService, sin aislamiento entre operaciones.
    - Pensada para tests y ejecución local; no persiste nada.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._networks: Dict[str, Network] = {}
        self._gateways: Dict[str, Gateway] = {}
        self._sensors: Dict[str, Sensor] = {}
        self._measurements: Dict[Tuple[str, datetime], Measurement] = {}

    # Networks

    def get_network(self, code: str) -> Network:
        with self._lock:
            network = self._networks.get(code)
        if network is None:
            raise network_not_found(code)
        return network

    def list_networks(self) -> List[Network]:
        with self._lock:
            return sorted(self._networks.values(), key=lambda n: n.code)

    def create_network(self, code: str, name: str = "", description: str = "") -> Network:
        with self._lock:
            if code in self._networks:
                raise ConflictError(f"Network with code '{code}' already exists")
            network = Network(code=code, name=name, description=description)
            self._networks[code] = network
            return network

    def update_network(
        self,
        code: str,
        new_code: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Network:
        with self._lock:
            current = self.get_network(code)
            target = Network(
                code=new_code or current.code,
                name=current.name if name is None else name,
                description=current.description if description is None else description,
            )
            if target.code != code:
                if target.code in self._networks:
                    raise ConflictError(f"Network with code '{target.code}' already exists")
                del self._networks[code]
                for gateway in self.list_gateways_of_network(code):
                    self._gateways[gateway.mac_address] = replace(gateway, network_code=target.code)
            self._networks[target.code] = target
            return target

    def delete_network(self, code: str) -> None:
        with self._lock:
            self.get_network(code)
            for gateway in self.list_gateways_of_network(code):
                self.delete_gateway(gateway.mac_address)
            del self._networks[code]

    # Gateways

    def get_gateway(self, mac_address: str) -> Gateway:
        with self._lock:
            gateway = self._gateways.get(mac_address)
        if gateway is None:
            raise gateway_not_found(mac_address)
        return gateway

    def list_gateways_of_network(self, code: str) -> List[Gateway]:
        with self._lock:
            return sorted(
                (g for g in self._gateways.values() if g.network_code == code),
                key=lambda g: g.mac_address,
            )

    def create_gateway(self, mac_address: str, network_code: str, name: str = "", description: str = "") -> Gateway:
        with self._lock:
            if mac_address in self._gateways:
                raise ConflictError(f"Gateway with macAddress '{mac_address}' already exists")
            self.get_network(network_code)
            gateway = Gateway(mac_address=mac_address, network_code=network_code, name=name, description=description)
            self._gateways[mac_address] = gateway
            return gateway

    def update_gateway(
        self,
        mac_address: str,
        new_mac_address: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Gateway:
        with self._lock:
            current = self.get_gateway(mac_address)
            target = replace(
                current,
                mac_address=new_mac_address or current.mac_address,
                name=current.name if name is None else name,
                description=current.description if description is None else description,
            )
            if target.mac_address != mac_address:
                if target.mac_address in self._gateways:
                    raise ConflictError(f"Gateway with macAddress '{target.mac_address}' already exists")
                del self._gateways[mac_address]
                for sensor in self.list_sensors_of_gateway(mac_address):
                    self._sensors[sensor.mac_address] = replace(sensor, gateway_mac=target.mac_address)
            self._gateways[target.mac_address] = target
            return target

    def delete_gateway(self, mac_address: str) -> None:
        with self._lock:
            self.get_gateway(mac_address)
            for sensor in self.list_sensors_of_gateway(mac_address):
                self.delete_sensor(sensor.mac_address)
            del self._gateways[mac_address]

    # Sensors

    def get_sensor(self, mac_address: str) -> Sensor:
        with self._lock:
            sensor = self._sensors.get(mac_address)
        if sensor is None:
            raise sensor_not_found(mac_address)
        return sensor

    def list_sensors_of_gateway(self, mac_address: str) -> List[Sensor]:
        with self._lock:
            return sorted(
                (s for s in self._sensors.values() if s.gateway_mac == mac_address),
                key=lambda s: s.mac_address,
            )

    def create_sensor(
        self,
        mac_address: str,
        gateway_mac: str,
        name: str = "",
        description: str = "",
        variable: str = "",
        unit: str = "",
    ) -> Sensor:
        with self._lock:
            if mac_address in self._sensors:
                raise ConflictError(f"Sensor with macAddress '{mac_address}' already exists")
            self.get_gateway(gateway_mac)
            sensor = Sensor(
                mac_address=mac_address,
                gateway_mac=gateway_mac,
                name=name,
                description=description,
                variable=variable,
                unit=unit,
            )
            self._sensors[mac_address] = sensor
            return sensor

    def update_sensor(
        self,
        mac_address: str,
        new_mac_address: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        variable: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> Sensor:
        with self._lock:
            current = self.get_sensor(mac_address)
            target = replace(
                current,
                mac_address=new_mac_address or current.mac_address,
                name=current.name if name is None else name,
                description=current.description if description is None else description,
                variable=current.variable if variable is None else variable,
                unit=current.unit if unit is None else unit,
            )
            if target.mac_address != mac_address:
                if target.mac_address in self._sensors:
                    raise ConflictError(f"Sensor with macAddress '{target.mac_address}' already exists")
                del self._sensors[mac_address]
                # Las mediciones se mueven con el sensor
                for key in [k for k in self._measurements if k[0] == mac_address]:
                    self._measurements[(target.mac_address, key[1])] = self._measurements.pop(key)
            self._sensors[target.mac_address] = target
            return target

    def delete_sensor(self, mac_address: str) -> None:
        with self._lock:
            self.get_sensor(mac_address)
            for key in [k for k in self._measurements if k[0] == mac_address]:
                del self._measurements[key]
            del self._sensors[mac_address]

    # Measurements

    def list_measurements(
        self,
        sensor_mac: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Measurement]:
        start = to_utc(start_date) if start_date is not None else None
        end = to_utc(end_date) if end_date is not None else None
        with self._lock:
            self.get_sensor(sensor_mac)
            rows = [
                m
                for (mac, _), m in self._measurements.items()
                if mac == sensor_mac
                and (start is None or m.created_at >= start)
                and (end is None or m.created_at <= end)
            ]
        return sorted(rows, key=lambda m: m.created_at)

    def insert_measurement(
        self,
        sensor_mac: str,
        created_at: datetime,
        value: float,
        is_outlier: bool,
    ) -> Measurement:
        key = (sensor_mac, to_utc(created_at))
        with self._lock:
            if key in self._measurements:
                raise ConflictError(
                    f"Measurement with macAddress '{sensor_mac}' and '{key[1].isoformat()}' already exists"
                )
            self.get_sensor(sensor_mac)
            measurement = Measurement(created_at=key[1], value=float(value), is_outlier=bool(is_outlier))
            self._measurements[key] = measurement
            return measurement

    def delete_measurement(self, sensor_mac: str, created_at: datetime) -> None:
        key = (sensor_mac, to_utc(created_at))
        with self._lock:
            self.get_sensor(sensor_mac)
            if key not in self._measurements:
                raise NotFoundError(
                    f"Measurement with macAddress '{sensor_mac}' and '{key[1].isoformat()}' not found",
                    reason=NotFoundReason.MEASUREMENT_MISSING,
                )
            del self._measurements[key]
