"""Decay profiles — how a score fades while no incidents arrive.

A DecayProfile maps (value, elapsed seconds) to the decayed value.  Every
profile is monotonically non-increasing in elapsed time and is the
identity at zero elapsed, so re-applying decay with no time passed never
changes a score.
"""

from __future__ import annotations

from typing import Protocol

from radioactivity.domain.errors import ConfigurationError


class DecayProfile(Protocol):
    """Protocol for time-based energy decay."""

    name: str

    def apply(self, value: float, elapsed_seconds: float) -> float:
        """Return *value* after *elapsed_seconds* of decay."""
        ...


class HalfLifeDecay:
    """Exponential decay: the value halves every ``half_life`` seconds."""

    name = "decay"

    def __init__(self, half_life: float) -> None:
        if half_life <= 0:
            raise ConfigurationError(f"half_life must be positive, got {half_life}")
        self.half_life = half_life

    def factor(self, elapsed_seconds: float) -> float:
        if elapsed_seconds <= 0:
            return 1.0
        return 0.5 ** (elapsed_seconds / self.half_life)

    def apply(self, value: float, elapsed_seconds: float) -> float:
        return value * self.factor(elapsed_seconds)

    def __repr__(self) -> str:
        return f"HalfLifeDecay(half_life={self.half_life})"


class LinearDecay:
    """Constant loss of ``rate`` energy per second, floored at zero."""

    name = "linear"

    def __init__(self, rate: float) -> None:
        if rate <= 0:
            raise ConfigurationError(f"linear decay rate must be positive, got {rate}")
        self.rate = rate

    def apply(self, value: float, elapsed_seconds: float) -> float:
        if elapsed_seconds <= 0:
            return value
        return max(0.0, value - self.rate * elapsed_seconds)

    def __repr__(self) -> str:
        return f"LinearDecay(rate={self.rate})"


class CountProfile:
    """No decay.  Scores only ever grow, like a hit counter."""

    name = "count"

    def apply(self, value: float, elapsed_seconds: float) -> float:
        return value

    def __repr__(self) -> str:
        return "CountProfile()"


def build_decay_profile(
    name: str,
    half_life: float = 86400.0,
    rate: float = 0.001,
) -> DecayProfile:
    """Build a profile from its configuration name.

    Raises:
        ConfigurationError: unknown profile name or unusable parameters.
    """
    if name == HalfLifeDecay.name:
        return HalfLifeDecay(half_life)
    if name == LinearDecay.name:
        return LinearDecay(rate)
    if name == CountProfile.name:
        return CountProfile()
    raise ConfigurationError(
        f"Unknown decay profile '{name}' (expected one of: decay, linear, count)"
    )
