from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from .domain.models import (
    Gateway,
    Measurement,
    Network,
    Sensor,
    SensorMeasurements,
    SensorStatistics,
    Statistics,
)


class MeasurementIn(BaseModel):
    created_at: datetime = Field(..., alias="createdAt")
    value: float

    @validator("value")
    def validate_value(cls, v):
        if v != v:  # NaN check
            raise ValueError("Value is NaN")
        if v == float("inf") or v == float("-inf"):
            raise ValueError("Value is infinite")
        return v

    class Config:
        populate_by_name = True


class MeasurementOut(BaseModel):
    created_at: datetime = Field(..., alias="createdAt")
    value: float
    is_outlier: bool = Field(..., alias="isOutlier")

    class Config:
        populate_by_name = True

    @classmethod
    def from_domain(cls, m: Measurement) -> "MeasurementOut":
        return cls(created_at=m.created_at, value=m.value, is_outlier=m.is_outlier)


class StatsOut(BaseModel):
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    mean: float
    variance: float
    upper_threshold: float = Field(..., alias="upperThreshold")
    lower_threshold: float = Field(..., alias="lowerThreshold")

    class Config:
        populate_by_name = True

    @classmethod
    def from_domain(cls, s: Statistics) -> "StatsOut":
        return cls(
            start_date=s.start_date,
            end_date=s.end_date,
            mean=s.mean,
            variance=s.variance,
            upper_threshold=s.upper_threshold,
            lower_threshold=s.lower_threshold,
        )


class MeasurementsOut(BaseModel):
    sensor_mac_address: str = Field(..., alias="sensorMacAddress")
    stats: Optional[StatsOut] = None
    measurements: List[MeasurementOut] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @classmethod
    def from_domain(cls, r: SensorMeasurements) -> "MeasurementsOut":
        return cls(
            sensor_mac_address=r.sensor_mac_address,
            stats=StatsOut.from_domain(r.statistics),
            measurements=[MeasurementOut.from_domain(m) for m in r.measurements],
        )


class SensorStatsOut(BaseModel):
    sensor_mac_address: str = Field(..., alias="sensorMacAddress")
    stats: StatsOut

    class Config:
        populate_by_name = True

    @classmethod
    def from_domain(cls, r: SensorStatistics) -> "SensorStatsOut":
        return cls(sensor_mac_address=r.sensor_mac_address, stats=StatsOut.from_domain(r.statistics))


class IngestResult(BaseModel):
    inserted: int


class ErrorOut(BaseModel):
    code: int
    name: str
    message: str


# ---------------------------------------------------------------------------
# Jerarquía
# ---------------------------------------------------------------------------


class NetworkIn(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = ""
    description: str = ""


class NetworkUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None


class NetworkOut(BaseModel):
    code: str
    name: str
    description: str
    gateways: List["GatewayOut"] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, n: Network, gateways: Optional[List["GatewayOut"]] = None) -> "NetworkOut":
        return cls(code=n.code, name=n.name, description=n.description, gateways=gateways or [])


class GatewayIn(BaseModel):
    mac_address: str = Field(..., alias="macAddress", min_length=1)
    name: str = ""
    description: str = ""

    class Config:
        populate_by_name = True


class GatewayUpdate(BaseModel):
    mac_address: Optional[str] = Field(default=None, alias="macAddress", min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None

    class Config:
        populate_by_name = True


class GatewayOut(BaseModel):
    mac_address: str = Field(..., alias="macAddress")
    name: str
    description: str
    sensors: List["SensorOut"] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @classmethod
    def from_domain(cls, g: Gateway, sensors: Optional[List["SensorOut"]] = None) -> "GatewayOut":
        return cls(mac_address=g.mac_address, name=g.name, description=g.description, sensors=sensors or [])


class SensorIn(BaseModel):
    mac_address: str = Field(..., alias="macAddress", min_length=1)
    name: str = ""
    description: str = ""
    variable: str = ""
    unit: str = ""

    class Config:
        populate_by_name = True


class SensorUpdate(BaseModel):
    mac_address: Optional[str] = Field(default=None, alias="macAddress", min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None
    variable: Optional[str] = None
    unit: Optional[str] = None

    class Config:
        populate_by_name = True


class SensorOut(BaseModel):
    mac_address: str = Field(..., alias="macAddress")
    name: str
    description: str
    variable: str
    unit: str

    class Config:
        populate_by_name = True

    @classmethod
    def from_domain(cls, s: Sensor) -> "SensorOut":
        return cls(
            mac_address=s.mac_address,
            name=s.name,
            description=s.description,
            variable=s.variable,
            unit=s.unit,
        )


NetworkOut.model_rebuild()
GatewayOut.model_rebuild()
