"""Batched, parallel stepping of many independent double pendulums.

Architecture: structure-of-arrays. The state of trajectory ``i`` lives at index
``i`` of four contiguous float64 arrays (angle and angular velocity of each
arm). A batch call splits the index space into disjoint contiguous ranges and
hands each range to one worker thread; numpy releases the GIL inside its
loops, so the ranges are advanced in parallel. Workers only ever read the two
frozen PendulumParams records, so nothing is locked.
"""

import math
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

import numpy as np

from .errors import ConfigurationError
from .physics import (
    DoublePendulumConfiguration,
    bob_positions,
    check_step,
    divergence,
    semi_implicit_euler,
    total_energy,
)
from .sim_interface import ArmState, PendulumParams

# Range boundaries are multiples of this many elements, so each element sits at
# the same vector-lane position whatever the worker count.
_BLOCK = 64


def _require_params(pendulum, name: str) -> PendulumParams:
    if not isinstance(pendulum, PendulumParams):
        raise ConfigurationError(f"{name} must be PendulumParams, got {type(pendulum).__name__}")
    for field_name in ("length", "mass"):
        value = getattr(pendulum, field_name)
        if not math.isfinite(value) or value <= 0.0:
            raise ConfigurationError(f"{name}.{field_name} must be finite and > 0, got {value!r}")
    return pendulum


def _partition(n_items: int, workers: int) -> list[tuple[int, int]]:
    """Split range(n_items) into at most `workers` block-aligned (lo, hi) ranges."""
    if n_items == 0:
        return []
    n_blocks = -(-n_items // _BLOCK)
    per_worker = -(-n_blocks // workers)
    return [
        (start * _BLOCK, min(n_items, (start + per_worker) * _BLOCK))
        for start in range(0, n_blocks, per_worker)
    ]


class PendulumPopulation:
    """Two shared arm parameter records plus an ordered set of trajectories.

    Order is stable for the lifetime of the population (renderers use the
    index for colouring) and has no effect on any trajectory's numbers.

    Parameters
    ----------
    pendulum_a, pendulum_b : PendulumParams
        Upper and lower arm, shared read-only by every trajectory.
    configurations : iterable of DoublePendulumConfiguration
        Initial state of each trajectory. Copied; the inputs are not mutated.
    workers : int, optional
        Size of the stepping thread pool. Defaults to the CPU count. With 1
        everything runs on the calling thread.
    """

    def __init__(
        self,
        pendulum_a: PendulumParams,
        pendulum_b: PendulumParams,
        configurations: Iterable[DoublePendulumConfiguration],
        workers: Optional[int] = None,
    ):
        self._pendulum_a = _require_params(pendulum_a, "pendulum_a")
        self._pendulum_b = _require_params(pendulum_b, "pendulum_b")

        if workers is None:
            workers = os.cpu_count() or 1
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise ConfigurationError(f"workers must be a positive int, got {workers!r}")
        self._workers = workers

        configurations = list(configurations)
        self._angle_a = np.array([c.a.angle for c in configurations], dtype=np.float64)
        self._velocity_a = np.array([c.a.angular_velocity for c in configurations], dtype=np.float64)
        self._angle_b = np.array([c.b.angle for c in configurations], dtype=np.float64)
        self._velocity_b = np.array([c.b.angular_velocity for c in configurations], dtype=np.float64)

        self._ranges = _partition(len(configurations), workers)
        self._executor: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Shut down the worker pool. Stepping again starts a new one."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "PendulumPopulation":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix="pendulum-step"
            )
        return self._executor

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._angle_a)

    @property
    def pendulum_a(self) -> PendulumParams:
        return self._pendulum_a

    @property
    def pendulum_b(self) -> PendulumParams:
        return self._pendulum_b

    @property
    def workers(self) -> int:
        return self._workers

    def configuration(self, index: int) -> DoublePendulumConfiguration:
        """Copy of trajectory `index` as a standalone configuration."""
        return DoublePendulumConfiguration(
            ArmState(float(self._angle_a[index]), float(self._velocity_a[index])),
            ArmState(float(self._angle_b[index]), float(self._velocity_b[index])),
        )

    def configurations(self) -> list[DoublePendulumConfiguration]:
        return [self.configuration(i) for i in range(len(self))]

    def angles(self) -> tuple[np.ndarray, np.ndarray]:
        """Copies of (angle_a, angle_b) for every trajectory."""
        return self._angle_a.copy(), self._angle_b.copy()

    def angular_velocities(self) -> tuple[np.ndarray, np.ndarray]:
        return self._velocity_a.copy(), self._velocity_b.copy()

    def positions(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """(x_a, y_a, x_b, y_b) bob positions for every trajectory."""
        return bob_positions(self._angle_a, self._angle_b, self._pendulum_a, self._pendulum_b)

    def divergence(self, i: int, j: int, strict: bool = True) -> float:
        """Divergence of trajectory i relative to trajectory j."""
        return float(divergence(
            self._angle_a[i], self._angle_b[i],
            self._angle_a[j], self._angle_b[j],
            strict=strict,
        ))

    def divergence_from(self, index: int, strict: bool = True) -> np.ndarray:
        """Divergence of every trajectory relative to trajectory `index`."""
        return divergence(
            self._angle_a, self._angle_b,
            self._angle_a[index], self._angle_b[index],
            strict=strict,
        )

    def neighbour_divergence(self, strict: bool = False) -> np.ndarray:
        """Divergence between trajectory i and i + 1, shape (N - 1,)."""
        return divergence(
            self._angle_a[:-1], self._angle_b[:-1],
            self._angle_a[1:], self._angle_b[1:],
            strict=strict,
        )

    def energies(self) -> np.ndarray:
        return total_energy(
            self._angle_a, self._velocity_a,
            self._angle_b, self._velocity_b,
            self._pendulum_a, self._pendulum_b,
        )

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step_all(self, dt: float) -> None:
        """Advance every trajectory by dt."""
        check_step(dt)
        self._run(dt, 1)

    def step_all_n(self, dt: float, n: int) -> None:
        """Advance every trajectory by dt, n times, in one parallel fan-out.

        Per trajectory this is bit-identical to n calls of step_all(dt).
        """
        check_step(dt, n)
        self._run(dt, n)

    def _run(self, dt: float, n: int) -> None:
        if n == 0 or not self._ranges:
            return
        if len(self._ranges) == 1:
            lo, hi = self._ranges[0]
            self._advance_range(lo, hi, dt, n)
            return
        futures = [
            self._pool().submit(self._advance_range, lo, hi, dt, n)
            for lo, hi in self._ranges
        ]
        for future in futures:
            future.result()

    def _advance_range(self, lo: int, hi: int, dt: float, n: int) -> None:
        """Advance trajectories [lo, hi) n times. Touches only that slice."""
        angle_a = self._angle_a[lo:hi]
        velocity_a = self._velocity_a[lo:hi]
        angle_b = self._angle_b[lo:hi]
        velocity_b = self._velocity_b[lo:hi]
        for _ in range(n):
            angle_a, velocity_a, angle_b, velocity_b = semi_implicit_euler(
                angle_a, velocity_a, angle_b, velocity_b,
                self._pendulum_a, self._pendulum_b, dt,
            )
        self._angle_a[lo:hi] = angle_a
        self._velocity_a[lo:hi] = velocity_a
        self._angle_b[lo:hi] = angle_b
        self._velocity_b[lo:hi] = velocity_b
