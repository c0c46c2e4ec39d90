"""Tests de IngestionService (clasificación contra el histórico previo)."""

from unittest.mock import MagicMock

import pytest

from measurements_api.domain.models import Reading
from measurements_api.errors import ConflictError, InvalidInputError, NotFoundError, NotFoundReason
from measurements_api.services import IngestionService

from conftest import ts


@pytest.fixture
def service(store) -> IngestionService:
    return IngestionService(store, store)


def _history(store, values):
    for i, v in enumerate(values):
        store.insert_measurement("S01", ts(i), v, False)


class TestSingleReading:
    def test_first_reading_is_never_outlier(self, store, service):
        m = service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(0), value=1e9))

        assert m.is_outlier is False
        assert store.list_measurements("S01") == [m]

    def test_inside_band_of_history(self, store, service):
        _history(store, [20.0, 25.0, 30.0])

        m = service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(10), value=25.0))

        assert m.is_outlier is False

    def test_outside_band_of_history(self, store, service):
        _history(store, [20.0, 25.0, 30.0])

        m = service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(10), value=40.0))

        assert m.is_outlier is True
        assert store.list_measurements("S01")[-1].is_outlier is True

    def test_baseline_excludes_incoming_reading(self, store, service):
        """Contra [20,25,30] (umbral ≈33.16) 34 es outlier; incluyéndose no lo sería."""
        _history(store, [20.0, 25.0, 30.0])

        m = service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(10), value=34.0))

        assert m.is_outlier is True

    def test_single_value_history_flags_any_different_value(self, store, service):
        _history(store, [10.0])

        same = service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(1), value=10.0))
        other = service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(2), value=10.5))

        assert same.is_outlier is False
        assert other.is_outlier is True

    def test_history_of_other_sensor_ignored(self, store, service):
        for i, v in enumerate([1.0, 1.0, 1.0]):
            store.insert_measurement("S02", ts(i), v, False)

        m = service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(0), value=500.0))

        assert m.is_outlier is False


class TestFailures:
    def test_duplicate_key_is_conflict(self, store, service):
        service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(0), value=1.0))

        with pytest.raises(ConflictError):
            service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(0), value=2.0))

        # Sin upsert: el valor original se mantiene
        assert [m.value for m in store.list_measurements("S01")] == [1.0]

    def test_hierarchy_mismatch(self, store, service):
        with pytest.raises(NotFoundError) as exc:
            service.ingest("NET01", "GW03", "S04", Reading(created_at=ts(0), value=1.0))

        assert exc.value.reason == NotFoundReason.GATEWAY_NOT_IN_NETWORK
        assert store.list_measurements("S04") == []

    def test_sensor_vanished_before_write(self, store):
        measurement_store = MagicMock()
        measurement_store.list_measurements.return_value = []
        measurement_store.insert_measurement.side_effect = NotFoundError(
            "Sensor with macAddress 'S01' not found", reason=NotFoundReason.SENSOR_MISSING
        )
        service = IngestionService(store, measurement_store)

        with pytest.raises(NotFoundError):
            service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(0), value=1.0))


class TestBatch:
    def test_evolving_baseline(self, store, service):
        """Cada lectura del lote entra en el baseline de las siguientes."""
        readings = [Reading(created_at=ts(i), value=v) for i, v in enumerate([10.0, 10.0, 10.0, 11.0])]

        result = service.ingest_many("NET01", "GW01", "S01", readings)

        # 1ª: sin baseline. 2ª y 3ª: iguales a la media con σ=0. 4ª: fuera de banda σ=0.
        assert [m.is_outlier for m in result] == [False, False, False, True]
        assert len(store.list_measurements("S01")) == 4

    def test_frozen_baseline(self, store, service):
        """Con baseline congelado y sin histórico, nada del lote es outlier."""
        readings = [Reading(created_at=ts(i), value=v) for i, v in enumerate([10.0, 10.0, 10.0, 11.0])]

        result = service.ingest_many("NET01", "GW01", "S01", readings, frozen_baseline=True)

        assert [m.is_outlier for m in result] == [False, False, False, False]

    def test_frozen_baseline_uses_prior_history(self, store, service):
        _history(store, [20.0, 25.0, 30.0])
        readings = [Reading(created_at=ts(10 + i), value=v) for i, v in enumerate([40.0, 40.0, 40.0])]

        result = service.ingest_many("NET01", "GW01", "S01", readings, frozen_baseline=True)

        assert all(m.is_outlier for m in result)

    def test_caller_order_preserved(self, store, service):
        readings = [Reading(created_at=ts(5), value=1.0), Reading(created_at=ts(1), value=2.0)]

        result = service.ingest_many("NET01", "GW01", "S01", readings)

        assert [m.created_at for m in result] == [ts(5), ts(1)]

    def test_conflict_stops_batch(self, store, service):
        readings = [
            Reading(created_at=ts(0), value=1.0),
            Reading(created_at=ts(0), value=2.0),
            Reading(created_at=ts(1), value=3.0),
        ]

        with pytest.raises(ConflictError):
            service.ingest_many("NET01", "GW01", "S01", readings)

        assert [m.value for m in store.list_measurements("S01")] == [1.0]

    def test_non_finite_value_rejected(self, store, service):
        with pytest.raises(InvalidInputError):
            service.ingest("NET01", "GW01", "S01", Reading(created_at=ts(0), value=float("nan")))

        assert store.list_measurements("S01") == []
