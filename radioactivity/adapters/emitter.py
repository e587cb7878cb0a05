"""EmitterPayloadAdapter — translates the page emitter's compact payload.

Expected raw format (what EmitterFormatter attaches to a rendered page):
{
    "fn": "field_radioactivity",
    "et": "node",
    "id": "42",
    "e": 10.0,
    "h": "q0v2...",            # signature, required when a salt is set
    "ts": "2026-02-13T14:00:00Z"   # optional (ISO or epoch), else receipt time
}

The canonical entity_id is "<et>:<id>".
"""

from __future__ import annotations

from typing import Any, Callable

from radioactivity.adapters.base import IncidentAdapter
from radioactivity.domain.incident import Incident
from radioactivity.foundation.clock import utc_now
from radioactivity.foundation.signing import verify_incident_hash


class EmitterPayloadAdapter(IncidentAdapter):
    """Maps compact emitter payloads to canonical Incidents.

    Args:
        hash_salt: Shared secret used to verify ``h``.  Empty disables
            verification.
        clock: Source of the receipt timestamp when ``ts`` is absent.
    """

    def __init__(
        self,
        hash_salt: str = "",
        clock: Callable[[], Any] = utc_now,
    ) -> None:
        self._hash_salt = hash_salt
        self._clock = clock

    @property
    def source_name(self) -> str:
        return "emitter"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        return "et" in raw and "id" in raw and "e" in raw

    def adapt(self, raw: dict[str, Any]) -> Incident:
        entity_type = raw.get("et")
        entity_key = raw.get("id")
        if entity_type is None or not str(entity_type).strip():
            raise ValueError("emitter payload missing 'et'")
        if entity_key is None or not str(entity_key).strip():
            raise ValueError("emitter payload missing 'id'")

        timestamp = raw.get("ts")
        if timestamp is None:
            timestamp = self._clock()

        incident = Incident.model_validate({
            "entity_id": f"{entity_type}:{entity_key}",
            "energy": raw.get("e"),
            "timestamp": timestamp,
        })

        if self._hash_salt:
            signature = raw.get("h")
            if not isinstance(signature, str) or not signature:
                raise ValueError("emitter payload missing signature 'h'")
            if not verify_incident_hash(
                signature,
                raw.get("fn", ""),
                entity_type,
                entity_key,
                incident.energy,
                self._hash_salt,
            ):
                raise ValueError("emitter payload signature mismatch")

        return incident
