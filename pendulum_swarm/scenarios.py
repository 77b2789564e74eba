"""Initial-condition generators for pendulum populations.

Kept apart from the deterministic core: everything random lives here, and a
run is only reproducible when a seed is passed in.
"""

from typing import Optional

import numpy as np

from .constants import (
    DEFAULT_ANGLE_A,
    DEFAULT_ANGLE_B,
    DEFAULT_ANGULAR_VELOCITY_A,
    DEFAULT_ANGULAR_VELOCITY_B,
    DEFAULT_LENGTH_A,
    DEFAULT_LENGTH_B,
    DEFAULT_MASS_A,
    DEFAULT_MASS_B,
    DEFAULT_PERTURBATION,
    DEFAULT_POPULATION,
    PI,
)
from .physics import DoublePendulumConfiguration
from .population import PendulumPopulation
from .sim_interface import ArmState, PendulumParams


def default_pendulums() -> tuple[PendulumParams, PendulumParams]:
    """Long heavy upper arm, slightly shorter light lower arm."""
    return (
        PendulumParams(length=DEFAULT_LENGTH_A, mass=DEFAULT_MASS_A),
        PendulumParams(length=DEFAULT_LENGTH_B, mass=DEFAULT_MASS_B),
    )


def default_configuration() -> DoublePendulumConfiguration:
    """Upper arm pointing straight up and already swinging."""
    return DoublePendulumConfiguration(
        ArmState(DEFAULT_ANGLE_A, DEFAULT_ANGULAR_VELOCITY_A),
        ArmState(DEFAULT_ANGLE_B, DEFAULT_ANGULAR_VELOCITY_B),
    )


def perturbed_configurations(
    baseline: DoublePendulumConfiguration,
    count: int,
    perturbation: float = DEFAULT_PERTURBATION,
    arm: str = "b",
) -> list[DoublePendulumConfiguration]:
    """`count` copies of baseline, copy i with `perturbation * i` added to one arm's angle.

    Copy 0 is the baseline itself. The offset is applied without normalization,
    exactly as given.
    """
    if arm not in ("a", "b"):
        raise ValueError(f"arm must be 'a' or 'b', got {arm!r}")
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count!r}")

    configurations = []
    for i in range(count):
        config = baseline.copy()
        target = config.a if arm == "a" else config.b
        target.angle = target.angle + perturbation * i
        configurations.append(config)
    return configurations


def random_configuration(rng: np.random.RandomState) -> DoublePendulumConfiguration:
    """Angles and angular velocities drawn uniformly from [-pi, pi)."""
    angle_a, angle_b, velocity_a, velocity_b = rng.uniform(-PI, PI, size=4)
    return DoublePendulumConfiguration(
        ArmState(float(angle_a), float(velocity_a)),
        ArmState(float(angle_b), float(velocity_b)),
    )


def random_configurations(count: int, seed: Optional[int] = None) -> list[DoublePendulumConfiguration]:
    """`count` independent random configurations. Not reproducible unless seeded."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count!r}")
    rng = np.random.RandomState(seed)
    return [random_configuration(rng) for _ in range(count)]


def build_population(
    count: int = DEFAULT_POPULATION,
    perturbation: float = DEFAULT_PERTURBATION,
    randomize: bool = False,
    seed: Optional[int] = None,
    workers: Optional[int] = None,
) -> PendulumPopulation:
    """Population with the default arms: a perturbed fan of the default start, or random starts."""
    pendulum_a, pendulum_b = default_pendulums()
    if randomize:
        configurations = random_configurations(count, seed=seed)
    else:
        configurations = perturbed_configurations(default_configuration(), count, perturbation)
    return PendulumPopulation(pendulum_a, pendulum_b, configurations, workers=workers)
