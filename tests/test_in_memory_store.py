"""Tests del InMemoryStore (misma semántica que los stores SQL)."""

from datetime import datetime, timedelta, timezone

import pytest

from measurements_api.errors import ConflictError, NotFoundError, NotFoundReason

from conftest import ts


def test_list_networks_sorted(store):
    store.create_network("NET00")

    assert [n.code for n in store.list_networks()] == ["NET00", "NET01", "NET02"]


def test_duplicates_are_conflicts(store):
    with pytest.raises(ConflictError):
        store.create_network("NET01")
    with pytest.raises(ConflictError):
        store.create_gateway("GW01", "NET02")
    with pytest.raises(ConflictError):
        store.create_sensor("S01", "GW03")


def test_naive_timestamp_is_utc(store):
    store.insert_measurement("S01", datetime(2025, 1, 1, 0, 0), 1.0, False)

    with pytest.raises(ConflictError):
        store.insert_measurement("S01", ts(0), 2.0, False)


def test_bounds_in_other_timezone(store):
    store.insert_measurement("S01", ts(60), 1.0, False)
    start = datetime(2025, 1, 1, 3, 0, tzinfo=timezone(timedelta(hours=2)))

    assert len(store.list_measurements("S01", start_date=start)) == 1


def test_delete_network_cascades(store):
    store.insert_measurement("S01", ts(0), 1.0, False)

    store.delete_network("NET01")

    with pytest.raises(NotFoundError):
        store.get_gateway("GW02")
    with pytest.raises(NotFoundError):
        store.list_measurements("S01")
    assert store.get_sensor("S04").gateway_mac == "GW03"


def test_delete_sensor_drops_measurements(store):
    store.insert_measurement("S01", ts(0), 1.0, False)
    store.delete_sensor("S01")
    store.create_sensor("S01", "GW01")

    assert store.list_measurements("S01") == []


def test_delete_measurement(store):
    store.insert_measurement("S01", ts(0), 1.0, False)

    store.delete_measurement("S01", ts(0))

    with pytest.raises(NotFoundError) as exc:
        store.delete_measurement("S01", ts(0))
    assert exc.value.reason == NotFoundReason.MEASUREMENT_MISSING


def test_update_fields_keeps_identity(store):
    sensor = store.update_sensor("S01", name="Temperatura", unit="K")

    assert (sensor.mac_address, sensor.name, sensor.unit, sensor.variable) == ("S01", "Temperatura", "K", "temperature")
    assert store.get_sensor("S01") == sensor


def test_rename_network_moves_gateways(store):
    store.update_network("NET01", new_code="NET10", name="Red 10")

    with pytest.raises(NotFoundError):
        store.get_network("NET01")
    assert store.get_network("NET10").name == "Red 10"
    assert [g.mac_address for g in store.list_gateways_of_network("NET10")] == ["GW01", "GW02"]


def test_rename_gateway_moves_sensors(store):
    store.update_gateway("GW01", new_mac_address="GW10")

    assert store.get_gateway("GW10").network_code == "NET01"
    assert [s.mac_address for s in store.list_sensors_of_gateway("GW10")] == ["S01", "S02"]
    assert store.list_sensors_of_gateway("GW01") == []


def test_rename_sensor_moves_measurements(store):
    store.insert_measurement("S01", ts(0), 1.0, False)

    store.update_sensor("S01", new_mac_address="S01B")

    assert [m.value for m in store.list_measurements("S01B")] == [1.0]
    with pytest.raises(NotFoundError):
        store.list_measurements("S01")


def test_rename_collision_is_conflict(store):
    with pytest.raises(ConflictError):
        store.update_network("NET01", new_code="NET02")
    with pytest.raises(ConflictError):
        store.update_gateway("GW01", new_mac_address="GW02")
    with pytest.raises(ConflictError):
        store.update_sensor("S01", new_mac_address="S02")

    # Nada cambió
    assert store.get_sensor("S01").gateway_mac == "GW01"
    assert len(store.list_gateways_of_network("NET01")) == 2


def test_update_missing_is_not_found(store):
    with pytest.raises(NotFoundError):
        store.update_gateway("GHOST", name="x")
