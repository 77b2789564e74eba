"""Parallel simulation of a swarm of chaotic double pendulums."""

from .errors import ConfigurationError, InvariantViolation, PendulumSwarmError
from .physics import DoublePendulumConfiguration, normalize_angle
from .population import PendulumPopulation
from .sim_interface import ArmState, PendulumParams, Point

__all__ = [
    "ArmState",
    "ConfigurationError",
    "DoublePendulumConfiguration",
    "InvariantViolation",
    "PendulumParams",
    "PendulumPopulation",
    "PendulumSwarmError",
    "Point",
    "normalize_angle",
]
