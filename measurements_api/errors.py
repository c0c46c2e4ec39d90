"""Errores del servicio de mediciones.

Tres tipos visibles: NotFound, Conflict e InvalidInput. Los fallos de
jerarquía (gateway fuera de la red, sensor fuera del gateway) se
exponen como NotFound para no revelar la existencia de entidades de
otras redes; el motivo real queda en ``reason`` solo para logs.
"""

from __future__ import annotations

from enum import Enum


class NotFoundReason(str, Enum):
    NETWORK_MISSING = "network_missing"
    GATEWAY_MISSING = "gateway_missing"
    SENSOR_MISSING = "sensor_missing"
    MEASUREMENT_MISSING = "measurement_missing"
    GATEWAY_NOT_IN_NETWORK = "gateway_not_in_network"
    SENSOR_NOT_IN_GATEWAY = "sensor_not_in_gateway"


class MeasurementsError(Exception):
    """Base de los errores del dominio."""

    name = "Error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(MeasurementsError):
    name = "NotFoundError"
    status_code = 404

    def __init__(self, message: str, reason: NotFoundReason | None = None) -> None:
        super().__init__(message)
        self.reason = reason

    @property
    def is_hierarchy_mismatch(self) -> bool:
        return self.reason in (
            NotFoundReason.GATEWAY_NOT_IN_NETWORK,
            NotFoundReason.SENSOR_NOT_IN_GATEWAY,
        )


class ConflictError(MeasurementsError):
    name = "ConflictError"
    status_code = 409


class InvalidInputError(MeasurementsError):
    name = "BadRequest"
    status_code = 400


def network_not_found(code: str) -> NotFoundError:
    return NotFoundError(f"Network with code '{code}' not found", reason=NotFoundReason.NETWORK_MISSING)


def gateway_not_found(mac_address: str, reason: NotFoundReason = NotFoundReason.GATEWAY_MISSING) -> NotFoundError:
    # Mismo mensaje para "no existe" y "no pertenece a la red".
    return NotFoundError(f"Gateway with macAddress '{mac_address}' not found", reason=reason)


def sensor_not_found(mac_address: str, reason: NotFoundReason = NotFoundReason.SENSOR_MISSING) -> NotFoundError:
    return NotFoundError(f"Sensor with macAddress '{mac_address}' not found", reason=reason)
