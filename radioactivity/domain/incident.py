"""Canonical Incident model — the contract between emitters and the engine.

An Incident is one discrete energy emission: "entity X was seen, add E
energy at time T".  It is validated at the boundary so the aggregator
never has to re-check field constraints, and it is discarded once merged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from radioactivity.foundation.clock import ensure_utc


class Incident(BaseModel):
    """An immutable energy emission for a single entity.

    Unknown keys (for instance the display-decimals hint some emitters
    attach) are ignored.
    """

    entity_id: str = Field(
        ...,
        min_length=1,
        max_length=256,
        pattern=r"^\S+$",
        description="Opaque identifier of the target entity",
    )
    energy: float = Field(
        ...,
        ge=0.0,
        allow_inf_nan=False,
        description="Amount of energy emitted (non-negative)",
    )
    timestamp: datetime = Field(
        ...,
        description="When the incident occurred (ISO-8601 or epoch seconds)",
    )

    model_config = {"frozen": True}

    # ── Validators ───────────────────────────────────────────────────────

    @field_validator("energy", mode="before")
    @classmethod
    def energy_must_be_numeric(cls, v: Any) -> Any:
        # bool is an int subclass; True must not count as 1.0 energy
        if isinstance(v, bool):
            raise ValueError("energy must be a number, not a boolean")
        return v

    @field_validator("timestamp")
    @classmethod
    def timestamp_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def to_dict(self) -> dict:
        return {
            "entity_id": self.entity_id,
            "energy": self.energy,
            "timestamp": self.timestamp.isoformat(),
        }
