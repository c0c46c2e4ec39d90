"""Tests HTTP (FastAPI TestClient sobre SQLite en memoria).

Ejecutar:
    pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from common.db import get_db
from measurements_api.main import app
from measurements_api.timestamps import parse_date_param

from conftest import ts

SENSORS = "/api/v1/networks/{net}/gateways/{gw}/sensors"
SENSOR = SENSORS + "/{sensor}"
SPIKE = [20.0, 21.0, 22.0, 23.0, 20.0, 21.0, 22.0, 23.0, 20.0, 1000.0]


def iso(minutes: int) -> str:
    return ts(minutes).isoformat().replace("+00:00", "Z")


def body(values, start=0):
    return [{"createdAt": iso(start + i), "value": v} for i, v in enumerate(values)]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def client(engine, monkeypatch):
    """Cliente con get_db apuntando al SQLite de test (sin lifespan)."""
    monkeypatch.delenv("MEASUREMENTS_API_KEY", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

    def _get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tree(client):
    """NET01/GW01/{S01,S02}, NET02/GW02/S03 creados vía API."""
    assert client.post("/api/v1/networks", json={"code": "NET01", "name": "Red 1"}).status_code == 201
    assert client.post("/api/v1/networks", json={"code": "NET02"}).status_code == 201
    assert client.post("/api/v1/networks/NET01/gateways", json={"macAddress": "GW01"}).status_code == 201
    assert client.post("/api/v1/networks/NET02/gateways", json={"macAddress": "GW02"}).status_code == 201
    for net, gw, mac in (("NET01", "GW01", "S01"), ("NET01", "GW01", "S02"), ("NET02", "GW02", "S03")):
        r = client.post(
            SENSORS.format(net=net, gw=gw),
            json={"macAddress": mac, "name": mac, "variable": "temperature", "unit": "C"},
        )
        assert r.status_code == 201
    return client


# =============================================================================
# HEALTH / AUTH
# =============================================================================

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestApiKey:
    def test_missing_key_rejected_when_configured(self, client, monkeypatch):
        monkeypatch.setenv("MEASUREMENTS_API_KEY", "secret")

        assert client.get("/api/v1/networks").status_code == 401
        assert client.get("/api/v1/networks", headers={"X-API-Key": "wrong"}).status_code == 401
        assert client.get("/api/v1/networks", headers={"X-API-Key": "secret"}).status_code == 200

    def test_production_without_key_is_misconfiguration(self, client, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        assert client.get("/api/v1/networks").status_code == 500


# =============================================================================
# JERARQUÍA
# =============================================================================

class TestHierarchyRoutes:
    def test_network_tree(self, tree):
        data = tree.get("/api/v1/networks/NET01").json()

        assert data["code"] == "NET01"
        assert [g["macAddress"] for g in data["gateways"]] == ["GW01"]
        assert [s["macAddress"] for s in data["gateways"][0]["sensors"]] == ["S01", "S02"]

    def test_duplicate_is_409_with_error_body(self, tree):
        r = tree.post("/api/v1/networks", json={"code": "NET01"})

        assert r.status_code == 409
        assert r.json()["code"] == 409
        assert r.json()["name"] == "ConflictError"

    def test_gateway_of_other_network_looks_missing(self, tree):
        foreign = tree.get("/api/v1/networks/NET01/gateways/GW02")
        missing = tree.get("/api/v1/networks/NET01/gateways/GHOST")

        assert foreign.status_code == missing.status_code == 404
        assert foreign.json()["message"] == "Gateway with macAddress 'GW02' not found"

    def test_rename_sensor(self, tree):
        r = tree.patch(SENSOR.format(net="NET01", gw="GW01", sensor="S02"), json={"macAddress": "S02B"})

        assert r.status_code == 204
        assert tree.get(SENSOR.format(net="NET01", gw="GW01", sensor="S02B")).status_code == 200

    def test_delete_network(self, tree):
        assert tree.delete("/api/v1/networks/NET02").status_code == 204
        assert tree.get("/api/v1/networks/NET02").status_code == 404


# =============================================================================
# MEDICIONES DE SENSOR
# =============================================================================

class TestSensorMeasurementRoutes:
    def _path(self, kind, sensor="S01", net="NET01", gw="GW01"):
        return SENSOR.format(net=net, gw=gw, sensor=sensor) + "/" + kind

    def test_ingest_and_query(self, tree):
        r = tree.post(self._path("measurements"), json=body([20.0, 25.0, 30.0]))
        assert r.status_code == 201
        assert r.json() == {"inserted": 3}

        data = tree.get(self._path("measurements")).json()

        assert data["sensorMacAddress"] == "S01"
        assert data["stats"]["mean"] == pytest.approx(25.0)
        assert data["stats"]["upperThreshold"] == pytest.approx(33.165, abs=1e-3)
        assert [m["isOutlier"] for m in data["measurements"]] == [False, False, False]
        assert parse_date_param(data["stats"]["startDate"]) == ts(0)

    def test_stats_route(self, tree):
        tree.post(self._path("measurements"), json=body([1.0, 3.0]))

        data = tree.get(self._path("stats")).json()

        assert data["variance"] == pytest.approx(1.0)
        assert set(data) == {"startDate", "endDate", "mean", "variance", "upperThreshold", "lowerThreshold"}

    def test_outliers_route(self, tree):
        tree.post(self._path("measurements"), json=body(SPIKE))

        data = tree.get(self._path("outliers")).json()

        assert [m["value"] for m in data["measurements"]] == [1000.0]
        assert data["stats"]["mean"] == pytest.approx(119.2)

    def test_empty_window_echoes_dates(self, tree):
        params = {"startDate": iso(100), "endDate": iso(200)}

        data = tree.get(self._path("measurements"), params=params).json()

        assert data["measurements"] == []
        assert parse_date_param(data["stats"]["startDate"]) == ts(100)
        assert parse_date_param(data["stats"]["endDate"]) == ts(200)
        assert data["stats"]["mean"] == 0.0

    def test_invalid_date_param_ignored(self, tree):
        tree.post(self._path("measurements"), json=body([1.0, 2.0]))

        data = tree.get(self._path("measurements"), params={"startDate": "not-a-date"}).json()

        assert len(data["measurements"]) == 2

    def test_invalid_body_is_422(self, tree):
        r = tree.post(self._path("measurements"), json=[{"createdAt": "yesterday", "value": 1.0}])

        assert r.status_code == 422

    def test_hierarchy_mismatch_is_404(self, tree):
        r = tree.post(self._path("measurements", sensor="S03"), json=body([1.0]))

        assert r.status_code == 404

    def test_duplicate_in_batch_rolls_back_everything(self, tree):
        payload = body([1.0, 2.0]) + body([3.0])  # el tercero repite ts(0)

        r = tree.post(self._path("measurements"), json=payload)

        assert r.status_code == 409
        assert tree.get(self._path("measurements")).json()["measurements"] == []

    def test_delete_measurement(self, tree):
        tree.post(self._path("measurements"), json=body([1.0, 2.0]))

        r = tree.delete(self._path("measurements"), params={"createdAt": iso(0)})

        assert r.status_code == 204
        assert [m["value"] for m in tree.get(self._path("measurements")).json()["measurements"]] == [2.0]
        again = tree.delete(self._path("measurements"), params={"createdAt": iso(0)})
        assert again.status_code == 404

    def test_delete_measurement_invalid_date_is_400(self, tree):
        r = tree.delete(self._path("measurements"), params={"createdAt": "nope"})

        assert r.status_code == 400
        assert r.json()["name"] == "BadRequest"


# =============================================================================
# MEDICIONES DE RED
# =============================================================================

class TestNetworkMeasurementRoutes:
    @pytest.fixture
    def loaded(self, tree):
        tree.post(SENSOR.format(net="NET01", gw="GW01", sensor="S01") + "/measurements", json=body(SPIKE))
        tree.post(SENSOR.format(net="NET01", gw="GW01", sensor="S02") + "/measurements", json=body([1.0, 2.0]))
        return tree

    def test_all_sensors(self, loaded):
        data = loaded.get("/api/v1/networks/NET01/measurements").json()

        assert [d["sensorMacAddress"] for d in data] == ["S01", "S02"]

    def test_sensor_filter_comma_list_drops_foreign(self, loaded):
        data = loaded.get("/api/v1/networks/NET01/measurements", params={"sensorMacs": "S02,S03"}).json()

        assert [d["sensorMacAddress"] for d in data] == ["S02"]

    def test_sensor_filter_repeated_params(self, loaded):
        r = loaded.get("/api/v1/networks/NET01/stats", params=[("sensorMacs", "S01"), ("sensorMacs", "S02")])

        assert [d["sensorMacAddress"] for d in r.json()] == ["S01", "S02"]
        assert set(r.json()[0]) == {"sensorMacAddress", "stats"}

    def test_outliers_trims_sensors_without_outliers(self, loaded):
        data = loaded.get("/api/v1/networks/NET01/outliers").json()

        assert [d["sensorMacAddress"] for d in data] == ["S01"]
        assert [m["value"] for m in data[0]["measurements"]] == [1000.0]

    def test_unknown_network(self, loaded):
        assert loaded.get("/api/v1/networks/NOPE/measurements").status_code == 404

    def test_empty_sensor_filter_means_all_sensors(self, loaded):
        data = loaded.get("/api/v1/networks/NET01/measurements", params={"sensorMacs": ""}).json()

        assert [d["sensorMacAddress"] for d in data] == ["S01", "S02"]

    def test_unknown_sensor_in_filter_is_404(self, loaded):
        r = loaded.get("/api/v1/networks/NET01/measurements", params={"sensorMacs": "S01,GHOST"})

        assert r.status_code == 404
        assert r.json()["message"] == "Sensor with macAddress 'GHOST' not found"
