"""Error taxonomy for the radioactivity engine.

    InvalidIncident     a single payload is malformed; the batch continues
    StoreUnavailable    persistence unreachable or lock wait timed out;
                        the incident is not applied, the caller may retry
    ConfigurationError  bad decay/store parameters; fatal at startup
"""

from __future__ import annotations


class RadioactivityError(Exception):
    """Base class for every engine error."""


class InvalidIncident(RadioactivityError):
    """Raised when a payload cannot become a valid Incident."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid incident: {reason}")


class StoreUnavailable(RadioactivityError):
    """Raised when the Score Store cannot serve a read or write."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Score store unavailable: {reason}")


class ConfigurationError(RadioactivityError):
    """Raised at initialization when engine parameters are unusable."""
