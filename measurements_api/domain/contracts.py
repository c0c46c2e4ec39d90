"""Abstract store interfaces consumed by the analytics engine.

This decouples the engine from persistence details.
Any store implementation (SQL, in-memory) can implement these interfaces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .models import Gateway, Measurement, Network, Sensor


class IHierarchyStore(ABC):
    """Lookup and enumeration of networks, gateways and sensors.

    Implementations:
    - SqlHierarchyStore: SQLAlchemy session
    - InMemoryStore: dict-backed, for tests and local runs

    Every ``get_*`` raises NotFoundError when the entity does not exist.
    """

    @abstractmethod
    def get_network(self, code: str) -> Network:
        pass

    @abstractmethod
    def get_gateway(self, mac_address: str) -> Gateway:
        pass

    @abstractmethod
    def get_sensor(self, mac_address: str) -> Sensor:
        pass

    @abstractmethod
    def list_gateways_of_network(self, code: str) -> List[Gateway]:
        pass

    @abstractmethod
    def list_sensors_of_gateway(self, mac_address: str) -> List[Sensor]:
        pass


class IMeasurementStore(ABC):
    """Read/write access to the measurements of a sensor."""

    @abstractmethod
    def list_measurements(
        self,
        sensor_mac: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Measurement]:
        """Return the sensor's measurements within ``[start_date, end_date]``.

        A missing bound means unbounded on that side.

        Raises:
            NotFoundError: the sensor does not exist
        """
        pass

    @abstractmethod
    def insert_measurement(
        self,
        sensor_mac: str,
        created_at: datetime,
        value: float,
        is_outlier: bool,
    ) -> Measurement:
        """Persist a measurement.

        Raises:
            ConflictError: ``(sensor_mac, created_at)`` already exists
            NotFoundError: the sensor does not exist
        """
        pass
