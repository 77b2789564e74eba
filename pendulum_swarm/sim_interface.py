"""Shared types for the double pendulum swarm."""

import math
from dataclasses import dataclass

from .errors import ConfigurationError


@dataclass(frozen=True)
class PendulumParams:
    """Physical parameters of one arm: a massless rod with a point mass at its end."""
    length: float            # Rod length (pixel-scale in the default scenario)
    mass: float              # Bob mass

    def __post_init__(self):
        for name in ("length", "mass"):
            value = getattr(self, name)
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"pendulum {name} must be a number, got {value!r}") from None
            if not math.isfinite(value) or value <= 0.0:
                raise ConfigurationError(f"pendulum {name} must be finite and > 0, got {value!r}")
            object.__setattr__(self, name, value)


@dataclass
class ArmState:
    """Instantaneous state of one arm."""
    angle: float = 0.0             # Radians, 0 hangs straight down
    angular_velocity: float = 0.0  # Radians per unit time


@dataclass(frozen=True)
class Point:
    """Cartesian position, pivot at the origin and +y up."""
    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)
