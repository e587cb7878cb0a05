"""Abstract base for incident adapters.

Incident adapters normalise payloads that do not follow the canonical
Incident schema (for example the compact shape the page emitter attaches)
into validated Incidents.

Architectural rules:
    1. Adapters must NOT mutate the incoming payload dict.
    2. adapt() must return a fully valid Incident or raise ValueError.
    3. No adapter may touch the ScoreStore or the Aggregator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from radioactivity.domain.incident import Incident


class IncidentAdapter(ABC):
    """Base class for converting raw payloads into canonical Incidents."""

    @abstractmethod
    def can_handle(self, raw: dict[str, Any]) -> bool:
        """Return True if this adapter knows how to translate *raw*.

        Must be a fast, non-destructive check (e.g. key presence).
        """
        ...

    @abstractmethod
    def adapt(self, raw: dict[str, Any]) -> Incident:
        """Translate a raw payload dict into a validated Incident.

        Raises:
            ValueError: If the payload cannot be normalised.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable name of the payload format this adapter handles."""
        ...
