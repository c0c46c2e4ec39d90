"""Validación de la cadena de pertenencia red → gateway → sensor.

Se ejecuta antes de cualquier lectura o escritura de mediciones.
Un gateway que existe pero pertenece a otra red se reporta igual que
un gateway inexistente (mismo tipo y mismo mensaje); el motivo real
solo queda en ``NotFoundError.reason`` y en el log de debug.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..domain.contracts import IHierarchyStore
from ..domain.models import Gateway, Network, Sensor
from ..errors import NotFoundReason, gateway_not_found, sensor_not_found

logger = logging.getLogger(__name__)


class HierarchyValidator:
    """Resuelve y valida un triple (network, gateway, sensor).

    Sin efectos secundarios: puede llamarse tantas veces como haga falta.
    """

    def __init__(self, store: IHierarchyStore) -> None:
        self._store = store

    def validate(
        self,
        network_code: Optional[str] = None,
        gateway_mac: Optional[str] = None,
        sensor_mac: Optional[str] = None,
    ) -> Tuple[Optional[Network], Optional[Gateway], Optional[Sensor]]:
        """Resuelve cada identificador presente, de padre a hijo.

        Returns:
            (network, gateway, sensor); ``None`` en los niveles no pedidos.

        Raises:
            NotFoundError: primer eslabón roto (inexistente o fuera de su padre)
        """
        network = None
        gateway = None
        sensor = None

        if network_code is not None:
            network = self._store.get_network(network_code)

        if gateway_mac is not None:
            gateway = self._store.get_gateway(gateway_mac)
            if network_code is not None and gateway.network_code != network_code:
                logger.debug(
                    "[HIERARCHY] gateway=%s belongs to network=%s, requested=%s",
                    gateway_mac,
                    gateway.network_code,
                    network_code,
                )
                raise gateway_not_found(gateway_mac, NotFoundReason.GATEWAY_NOT_IN_NETWORK)

        if sensor_mac is not None:
            sensor = self._store.get_sensor(sensor_mac)
            if gateway_mac is not None and sensor.gateway_mac != gateway_mac:
                logger.debug(
                    "[HIERARCHY] sensor=%s belongs to gateway=%s, requested=%s",
                    sensor_mac,
                    sensor.gateway_mac,
                    gateway_mac,
                )
                raise sensor_not_found(sensor_mac, NotFoundReason.SENSOR_NOT_IN_GATEWAY)

        return network, gateway, sensor

    def sensor_in_network(self, sensor: Sensor, network_code: str) -> bool:
        """True si el gateway del sensor pertenece a ``network_code``."""
        gateway = self._store.get_gateway(sensor.gateway_mac)
        return gateway.network_code == network_code
