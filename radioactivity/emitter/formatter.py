"""Emitter — the producer side that attaches incidents to rendered content.

When a piece of content is displayed, the emitter produces one compact
incident payload per field item.  Client code posts those payloads back
to /api/incidents, where EmitterPayloadAdapter turns them into Incidents.

Settings are a typed struct validated once.  Publication gating is a
capability check: anything exposing is_published() is asked, everything
else always emits.
"""

from __future__ import annotations

import itertools
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, Field

from radioactivity.foundation.signing import incident_hash

_emit_ids = itertools.count(1)


def unique_emit_key() -> str:
    """Return a process-unique key for one attached payload."""
    return f"ra_emit_{next(_emit_ids)}"


class EmitterSettings(BaseModel):
    """How much energy to emit and whether to show the current level."""

    energy: float = Field(10.0, ge=0.0, allow_inf_nan=False, description="Energy emitted per view")
    display: bool = Field(False, description="Show the current energy value")
    decimals: int = Field(0, ge=0, description="Decimals shown when display is on")

    model_config = {"frozen": True}


@runtime_checkable
class Publishable(Protocol):
    """Any entity with publication semantics."""

    def is_published(self) -> bool:
        ...


def should_emit(entity: Any) -> bool:
    """Unpublished content never emits; content without the concept always does."""
    if isinstance(entity, Publishable):
        return bool(entity.is_published())
    return True


def format_energy(energy: float, decimals: int) -> str:
    """Fixed decimals with a thousands separator, e.g. ``1,234.50``.

    Halves round away from zero, so 0.125 shows as 0.13.
    """
    step = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(energy)).quantize(step, rounding=ROUND_HALF_UP)
    return f"{rounded:,.{decimals}f}"


class EmittedElement(BaseModel):
    """Output for one field item: an attached payload and/or a display value."""

    delta: int
    key: Optional[str] = None
    payload: Optional[dict] = None
    display: Optional[str] = None

    model_config = {"frozen": True}


class EmitterFormatter:
    """Builds emitted incident payloads for a field's items.

    Args:
        settings: Validated emitter settings.
        hash_salt: Secret used to sign payloads.  Empty leaves them unsigned.
    """

    def __init__(self, settings: EmitterSettings, hash_salt: str = "") -> None:
        self.settings = settings
        self._hash_salt = hash_salt

    def summary(self) -> list[str]:
        lines = [f"Emit: {self.settings.energy:g}"]
        if self.settings.display:
            lines.append("Display energy value")
            lines.append(f"Decimals: {self.settings.decimals}")
        else:
            lines.append("Only emit")
        return lines

    def build_payload(self, entity_type: str, entity_id: str, field_name: str) -> dict:
        """Compact incident payload, signed when a salt is configured."""
        payload = {
            "fn": field_name,
            "et": entity_type,
            "id": entity_id,
            "e": self.settings.energy,
        }
        if self._hash_salt:
            payload["h"] = incident_hash(
                field_name, entity_type, entity_id, self.settings.energy, self._hash_salt
            )
        return payload

    def view_elements(
        self,
        entity: Any,
        entity_type: str,
        entity_id: str,
        field_name: str,
        items: Sequence[float],
    ) -> list[EmittedElement]:
        """One element per item holding its emitted payload and display value.

        *items* are the stored energy levels of the field, used only for
        display.  The emitted energy always comes from the settings.
        """
        emit = should_emit(entity)
        elements: list[EmittedElement] = []

        for delta, current_energy in enumerate(items):
            key = payload = display = None
            if emit:
                key = unique_emit_key()
                payload = self.build_payload(entity_type, entity_id, field_name)
            if self.settings.display:
                display = format_energy(current_energy, self.settings.decimals)
            if key is None and display is None:
                continue
            elements.append(EmittedElement(delta=delta, key=key, payload=payload, display=display))

        return elements
