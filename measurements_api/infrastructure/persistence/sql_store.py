"""Stores SQL (SQLAlchemy ``text()`` sobre una ``Session``).

No hacen commit: la transacción la controla el endpoint (commit al
final del request, rollback ante cualquier error).

Los borrados y renombrados en cascada se hacen explícitamente en vez de
confiar en las FK, porque SQLite las trae desactivadas por defecto.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Float, bindparam, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

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
from ...timestamps import from_db, to_db

logger = logging.getLogger(__name__)


def _row_to_network(row) -> Network:
    return Network(code=str(row.code), name=str(row.name or ""), description=str(row.description or ""))


def _row_to_gateway(row) -> Gateway:
    return Gateway(
        mac_address=str(row.mac_address),
        network_code=str(row.network_code),
        name=str(row.name or ""),
        description=str(row.description or ""),
    )


def _row_to_sensor(row) -> Sensor:
    return Sensor(
        mac_address=str(row.mac_address),
        gateway_mac=str(row.gateway_mac),
        name=str(row.name or ""),
        description=str(row.description or ""),
        variable=str(row.variable or ""),
        unit=str(row.unit or ""),
    )


class SqlHierarchyStore(IHierarchyStore):
    """CRUD de redes, gateways y sensores."""

    def __init__(self, db: Session) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Networks
    # ------------------------------------------------------------------

    def _find_network(self, code: str) -> Optional[Network]:
        row = self._db.execute(
            text("SELECT code, name, description FROM networks WHERE code = :code"),
            {"code": code},
        ).fetchone()
        return _row_to_network(row) if row else None

    def get_network(self, code: str) -> Network:
        network = self._find_network(code)
        if network is None:
            raise network_not_found(code)
        return network

    def list_networks(self) -> List[Network]:
        rows = self._db.execute(
            text("SELECT code, name, description FROM networks ORDER BY code ASC")
        ).fetchall()
        return [_row_to_network(r) for r in rows]

    def create_network(self, code: str, name: str = "", description: str = "") -> Network:
        if self._find_network(code) is not None:
            raise ConflictError(f"Network with code '{code}' already exists")
        self._db.execute(
            text("INSERT INTO networks (code, name, description) VALUES (:code, :name, :description)"),
            {"code": code, "name": name, "description": description},
        )
        logger.info("[DB] network created code=%s", code)
        return Network(code=code, name=name, description=description)

    def update_network(
        self,
        code: str,
        new_code: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Network:
        current = self.get_network(code)
        target = Network(
            code=new_code or current.code,
            name=current.name if name is None else name,
            description=current.description if description is None else description,
        )

        if target.code == current.code:
            self._db.execute(
                text("UPDATE networks SET name = :name, description = :description WHERE code = :code"),
                {"code": code, "name": target.name, "description": target.description},
            )
            return target

        if self._find_network(target.code) is not None:
            raise ConflictError(f"Network with code '{target.code}' already exists")

        # Renombrado: nueva fila, re-parent de gateways, borrar la vieja.
        self._db.execute(
            text("INSERT INTO networks (code, name, description) VALUES (:code, :name, :description)"),
            {"code": target.code, "name": target.name, "description": target.description},
        )
        self._db.execute(
            text("UPDATE gateways SET network_code = :new_code WHERE network_code = :code"),
            {"code": code, "new_code": target.code},
        )
        self._db.execute(text("DELETE FROM networks WHERE code = :code"), {"code": code})
        logger.info("[DB] network renamed code=%s new_code=%s", code, target.code)
        return target

    def delete_network(self, code: str) -> None:
        self.get_network(code)
        params = {"code": code}
        self._db.execute(
            text(
                """
                DELETE FROM measurements
                WHERE sensor_mac IN (
                    SELECT s.mac_address
                    FROM sensors s
                    JOIN gateways g ON g.mac_address = s.gateway_mac
                    WHERE g.network_code = :code
                )
                """
            ),
            params,
        )
        self._db.execute(
            text(
                """
                DELETE FROM sensors
                WHERE gateway_mac IN (SELECT mac_address FROM gateways WHERE network_code = :code)
                """
            ),
            params,
        )
        self._db.execute(text("DELETE FROM gateways WHERE network_code = :code"), params)
        self._db.execute(text("DELETE FROM networks WHERE code = :code"), params)
        logger.info("[DB] network deleted code=%s", code)

    # ------------------------------------------------------------------
    # Gateways
    # ------------------------------------------------------------------

    def _find_gateway(self, mac_address: str) -> Optional[Gateway]:
        row = self._db.execute(
            text(
                "SELECT mac_address, network_code, name, description "
                "FROM gateways WHERE mac_address = :mac"
            ),
            {"mac": mac_address},
        ).fetchone()
        return _row_to_gateway(row) if row else None

    def get_gateway(self, mac_address: str) -> Gateway:
        gateway = self._find_gateway(mac_address)
        if gateway is None:
            raise gateway_not_found(mac_address)
        return gateway

    def list_gateways_of_network(self, code: str) -> List[Gateway]:
        rows = self._db.execute(
            text(
                "SELECT mac_address, network_code, name, description "
                "FROM gateways WHERE network_code = :code ORDER BY mac_address ASC"
            ),
            {"code": code},
        ).fetchall()
        return [_row_to_gateway(r) for r in rows]

    def create_gateway(
        self,
        mac_address: str,
        network_code: str,
        name: str = "",
        description: str = "",
    ) -> Gateway:
        if self._find_gateway(mac_address) is not None:
            raise ConflictError(f"Gateway with macAddress '{mac_address}' already exists")
        self.get_network(network_code)
        self._db.execute(
            text(
                "INSERT INTO gateways (mac_address, network_code, name, description) "
                "VALUES (:mac, :code, :name, :description)"
            ),
            {"mac": mac_address, "code": network_code, "name": name, "description": description},
        )
        logger.info("[DB] gateway created mac=%s network=%s", mac_address, network_code)
        return Gateway(mac_address=mac_address, network_code=network_code, name=name, description=description)

    def update_gateway(
        self,
        mac_address: str,
        new_mac_address: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Gateway:
        current = self.get_gateway(mac_address)
        target = Gateway(
            mac_address=new_mac_address or current.mac_address,
            network_code=current.network_code,
            name=current.name if name is None else name,
            description=current.description if description is None else description,
        )

        if target.mac_address == current.mac_address:
            self._db.execute(
                text("UPDATE gateways SET name = :name, description = :description WHERE mac_address = :mac"),
                {"mac": mac_address, "name": target.name, "description": target.description},
            )
            return target

        if self._find_gateway(target.mac_address) is not None:
            raise ConflictError(f"Gateway with macAddress '{target.mac_address}' already exists")

        self._db.execute(
            text(
                "INSERT INTO gateways (mac_address, network_code, name, description) "
                "VALUES (:mac, :code, :name, :description)"
            ),
            {
                "mac": target.mac_address,
                "code": target.network_code,
                "name": target.name,
                "description": target.description,
            },
        )
        self._db.execute(
            text("UPDATE sensors SET gateway_mac = :new_mac WHERE gateway_mac = :mac"),
            {"mac": mac_address, "new_mac": target.mac_address},
        )
        self._db.execute(text("DELETE FROM gateways WHERE mac_address = :mac"), {"mac": mac_address})
        logger.info("[DB] gateway renamed mac=%s new_mac=%s", mac_address, target.mac_address)
        return target

    def delete_gateway(self, mac_address: str) -> None:
        self.get_gateway(mac_address)
        params = {"mac": mac_address}
        self._db.execute(
            text(
                "DELETE FROM measurements "
                "WHERE sensor_mac IN (SELECT mac_address FROM sensors WHERE gateway_mac = :mac)"
            ),
            params,
        )
        self._db.execute(text("DELETE FROM sensors WHERE gateway_mac = :mac"), params)
        self._db.execute(text("DELETE FROM gateways WHERE mac_address = :mac"), params)
        logger.info("[DB] gateway deleted mac=%s", mac_address)

    # ------------------------------------------------------------------
    # Sensors
    # ------------------------------------------------------------------

    _SENSOR_COLUMNS = "mac_address, gateway_mac, name, description, variable, unit"

    def _find_sensor(self, mac_address: str) -> Optional[Sensor]:
        row = self._db.execute(
            text(f"SELECT {self._SENSOR_COLUMNS} FROM sensors WHERE mac_address = :mac"),
            {"mac": mac_address},
        ).fetchone()
        return _row_to_sensor(row) if row else None

    def get_sensor(self, mac_address: str) -> Sensor:
        sensor = self._find_sensor(mac_address)
        if sensor is None:
            raise sensor_not_found(mac_address)
        return sensor

    def list_sensors_of_gateway(self, mac_address: str) -> List[Sensor]:
        rows = self._db.execute(
            text(
                f"SELECT {self._SENSOR_COLUMNS} FROM sensors "
                "WHERE gateway_mac = :mac ORDER BY mac_address ASC"
            ),
            {"mac": mac_address},
        ).fetchall()
        return [_row_to_sensor(r) for r in rows]

    def create_sensor(
        self,
        mac_address: str,
        gateway_mac: str,
        name: str = "",
        description: str = "",
        variable: str = "",
        unit: str = "",
    ) -> Sensor:
        if self._find_sensor(mac_address) is not None:
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
        self._insert_sensor(sensor)
        logger.info("[DB] sensor created mac=%s gateway=%s", mac_address, gateway_mac)
        return sensor

    def _insert_sensor(self, sensor: Sensor) -> None:
        self._db.execute(
            text(
                f"INSERT INTO sensors ({self._SENSOR_COLUMNS}) "
                "VALUES (:mac, :gateway_mac, :name, :description, :variable, :unit)"
            ),
            {
                "mac": sensor.mac_address,
                "gateway_mac": sensor.gateway_mac,
                "name": sensor.name,
                "description": sensor.description,
                "variable": sensor.variable,
                "unit": sensor.unit,
            },
        )

    def update_sensor(
        self,
        mac_address: str,
        new_mac_address: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        variable: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> Sensor:
        current = self.get_sensor(mac_address)
        target = Sensor(
            mac_address=new_mac_address or current.mac_address,
            gateway_mac=current.gateway_mac,
            name=current.name if name is None else name,
            description=current.description if description is None else description,
            variable=current.variable if variable is None else variable,
            unit=current.unit if unit is None else unit,
        )

        if target.mac_address == current.mac_address:
            self._db.execute(
                text(
                    "UPDATE sensors SET name = :name, description = :description, "
                    "variable = :variable, unit = :unit WHERE mac_address = :mac"
                ),
                {
                    "mac": mac_address,
                    "name": target.name,
                    "description": target.description,
                    "variable": target.variable,
                    "unit": target.unit,
                },
            )
            return target

        if self._find_sensor(target.mac_address) is not None:
            raise ConflictError(f"Sensor with macAddress '{target.mac_address}' already exists")

        self._insert_sensor(target)
        self._db.execute(
            text("UPDATE measurements SET sensor_mac = :new_mac WHERE sensor_mac = :mac"),
            {"mac": mac_address, "new_mac": target.mac_address},
        )
        self._db.execute(text("DELETE FROM sensors WHERE mac_address = :mac"), {"mac": mac_address})
        logger.info("[DB] sensor renamed mac=%s new_mac=%s", mac_address, target.mac_address)
        return target

    def delete_sensor(self, mac_address: str) -> None:
        self.get_sensor(mac_address)
        params = {"mac": mac_address}
        self._db.execute(text("DELETE FROM measurements WHERE sensor_mac = :mac"), params)
        self._db.execute(text("DELETE FROM sensors WHERE mac_address = :mac"), params)
        logger.info("[DB] sensor deleted mac=%s", mac_address)


class SqlMeasurementStore(IMeasurementStore):
    """Lectura/escritura de mediciones.

    Los timestamps se guardan en UTC naive y se devuelven aware en UTC.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def _require_sensor(self, sensor_mac: str) -> None:
        row = self._db.execute(
            text("SELECT mac_address FROM sensors WHERE mac_address = :mac"),
            {"mac": sensor_mac},
        ).fetchone()
        if not row:
            raise sensor_not_found(sensor_mac)

    def list_measurements(
        self,
        sensor_mac: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Measurement]:
        self._require_sensor(sensor_mac)

        sql = "SELECT created_at, value, is_outlier FROM measurements WHERE sensor_mac = :sensor_mac"
        params: dict = {"sensor_mac": sensor_mac}
        typed = []
        if start_date is not None:
            sql += " AND created_at >= :start_date"
            params["start_date"] = to_db(start_date)
            typed.append(bindparam("start_date", type_=DateTime()))
        if end_date is not None:
            sql += " AND created_at <= :end_date"
            params["end_date"] = to_db(end_date)
            typed.append(bindparam("end_date", type_=DateTime()))
        sql += " ORDER BY created_at ASC"

        stmt = text(sql)
        if typed:
            stmt = stmt.bindparams(*typed)
        rows = self._db.execute(
            stmt.columns(created_at=DateTime(), value=Float()),
            params,
        ).fetchall()

        return [
            Measurement(
                created_at=from_db(r.created_at),
                # Python Decimal → float
                value=float(r.value),
                is_outlier=bool(r.is_outlier),
            )
            for r in rows
        ]

    def _exists(self, sensor_mac: str, created_at: datetime) -> bool:
        row = self._db.execute(
            text(
                "SELECT sensor_mac FROM measurements "
                "WHERE sensor_mac = :sensor_mac AND created_at = :created_at"
            ).bindparams(bindparam("created_at", type_=DateTime())),
            {"sensor_mac": sensor_mac, "created_at": to_db(created_at)},
        ).fetchone()
        return row is not None

    def insert_measurement(
        self,
        sensor_mac: str,
        created_at: datetime,
        value: float,
        is_outlier: bool,
    ) -> Measurement:
        if self._exists(sensor_mac, created_at):
            raise ConflictError(
                f"Measurement with macAddress '{sensor_mac}' and '{created_at.isoformat()}' already exists"
            )
        self._require_sensor(sensor_mac)

        try:
            self._db.execute(
                text(
                    "INSERT INTO measurements (sensor_mac, created_at, value, is_outlier) "
                    "VALUES (:sensor_mac, :created_at, :value, :is_outlier)"
                ).bindparams(bindparam("created_at", type_=DateTime())),
                {
                    "sensor_mac": sensor_mac,
                    "created_at": to_db(created_at),
                    "value": float(value),
                    "is_outlier": 1 if is_outlier else 0,
                },
            )
        except IntegrityError as e:
            # Carrera con otra ingesta concurrente del mismo (sensor, created_at).
            raise ConflictError(
                f"Measurement with macAddress '{sensor_mac}' and '{created_at.isoformat()}' already exists"
            ) from e

        return Measurement(created_at=from_db(to_db(created_at)), value=float(value), is_outlier=bool(is_outlier))

    def delete_measurement(self, sensor_mac: str, created_at: datetime) -> None:
        self._require_sensor(sensor_mac)
        if not self._exists(sensor_mac, created_at):
            raise NotFoundError(
                f"Measurement with macAddress '{sensor_mac}' and '{created_at.isoformat()}' not found",
                reason=NotFoundReason.MEASUREMENT_MISSING,
            )
        self._db.execute(
            text(
                "DELETE FROM measurements WHERE sensor_mac = :sensor_mac AND created_at = :created_at"
            ).bindparams(bindparam("created_at", type_=DateTime())),
            {"sensor_mac": sensor_mac, "created_at": to_db(created_at)},
        )
