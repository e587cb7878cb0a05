"""Tests for the canonical Incident model."""

from datetime import datetime, timezone

import pytest

from radioactivity.domain.incident import Incident


def _valid_incident(**overrides) -> dict:
    """Return a valid incident dict, with optional overrides."""
    base = {
        "entity_id": "node:1",
        "energy": 10.0,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    base.update(overrides)
    return base


class TestIncidentValidation:
    def test_valid_incident_parses(self) -> None:
        incident = Incident.model_validate(_valid_incident())
        assert incident.entity_id == "node:1"
        assert incident.energy == 10.0

    def test_zero_energy_accepted(self) -> None:
        incident = Incident.model_validate(_valid_incident(energy=0))
        assert incident.energy == 0.0

    def test_negative_energy_rejected(self) -> None:
        with pytest.raises(Exception):
            Incident.model_validate(_valid_incident(energy=-5))

    def test_non_numeric_energy_rejected(self) -> None:
        with pytest.raises(Exception):
            Incident.model_validate(_valid_incident(energy="lots"))

    def test_boolean_energy_rejected(self) -> None:
        with pytest.raises(Exception):
            Incident.model_validate(_valid_incident(energy=True))

    def test_infinite_energy_rejected(self) -> None:
        with pytest.raises(Exception):
            Incident.model_validate(_valid_incident(energy=float("inf")))

    def test_missing_entity_id_rejected(self) -> None:
        payload = _valid_incident()
        del payload["entity_id"]
        with pytest.raises(Exception):
            Incident.model_validate(payload)

    def test_blank_entity_id_rejected(self) -> None:
        with pytest.raises(Exception):
            Incident.model_validate(_valid_incident(entity_id="   "))

    def test_entity_id_with_whitespace_rejected(self) -> None:
        with pytest.raises(Exception):
            Incident.model_validate(_valid_incident(entity_id="node 1"))

    def test_epoch_timestamp_accepted(self) -> None:
        incident = Incident.model_validate(_valid_incident(timestamp=1_700_000_000))
        assert incident.timestamp == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    def test_naive_timestamp_gets_utc(self) -> None:
        naive = datetime(2026, 1, 1, 12, 0, 0).isoformat()
        incident = Incident.model_validate(_valid_incident(timestamp=naive))
        assert incident.timestamp.tzinfo is not None
        assert incident.timestamp.utcoffset().total_seconds() == 0

    def test_display_hint_ignored(self) -> None:
        incident = Incident.model_validate(_valid_incident(decimals=2))
        assert not hasattr(incident, "decimals")

    def test_incident_is_immutable(self) -> None:
        incident = Incident.model_validate(_valid_incident())
        with pytest.raises(Exception):
            incident.energy = 99.0

    def test_to_dict_round_trips_fields(self) -> None:
        incident = Incident.model_validate(_valid_incident())
        d = incident.to_dict()
        assert d["entity_id"] == "node:1"
        assert d["energy"] == 10.0
