"""Score — the decayed, accumulated energy level of one entity.

Lifecycle:  absent → active → decayed → absent (reclaimed)
    - active:  value > 0
    - decayed: value == 0, retained until the retention window passes
    - absent:  never seen, or reclaimed; the store returns None

Scores are immutable values.  Every change produces a new Score that the
store writes back under the entity's lock.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from radioactivity.foundation.clock import ensure_utc


class ScoreLifecycle(str, Enum):
    """Explicit lifecycle states of a stored score."""

    ACTIVE = "active"
    DECAYED = "decayed"


class Score(BaseModel):
    """Radioactivity level of one entity at ``last_update``."""

    entity_id: str = Field(..., min_length=1, max_length=256)
    value: float = Field(..., ge=0.0, allow_inf_nan=False)
    last_update: datetime

    model_config = {"frozen": True}

    @field_validator("last_update")
    @classmethod
    def last_update_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def lifecycle(self) -> ScoreLifecycle:
        if self.value > 0.0:
            return ScoreLifecycle.ACTIVE
        return ScoreLifecycle.DECAYED

    def is_reclaimable(self, retention: timedelta, at: datetime) -> bool:
        """True if decayed and untouched for longer than *retention*."""
        return (
            self.lifecycle == ScoreLifecycle.DECAYED
            and (at - self.last_update) > retention
        )

    def to_dict(self) -> dict:
        return {
            "entity_id": self.entity_id,
            "value": self.value,
            "last_update": self.last_update.isoformat(),
            "lifecycle": self.lifecycle.value,
        }
