"""Double pendulum dynamics: equations of motion, integrator, geometry, divergence.

Every array-level function here works element-wise, so the same code serves a
single trajectory (Python floats) and a whole population (numpy arrays of
shape (N,)). Angles are measured from the downward vertical, counter-clockwise.
"""

import math
import numbers

import numpy as np

from .constants import GRAVITY, PI, TWO_PI
from .errors import InvariantViolation
from .sim_interface import ArmState, PendulumParams, Point


# ---------------------------------------------------------------------------
# Angle normalization
# ---------------------------------------------------------------------------

def normalize_angle(angle: float) -> float:
    """Map any angle into [-pi, pi].

    fmod keeps the sign of the dividend, so -pi stays -pi while -pi + 2pi
    comes out as pi. The two boundary representations are left distinct.
    """
    result = math.fmod(angle, TWO_PI)
    if result > PI:
        result -= TWO_PI
    if result < -PI:
        result += TWO_PI
    return result


def wrap_angles(angles):
    """Array form of normalize_angle, element-wise and bit-identical to it."""
    result = np.fmod(angles, TWO_PI)
    result = np.where(result > PI, result - TWO_PI, result)
    result = np.where(result < -PI, result + TWO_PI, result)
    return result


# ---------------------------------------------------------------------------
# Equations of motion + integrator
# ---------------------------------------------------------------------------

def angular_accelerations(
    angle_a,
    velocity_a,
    angle_b,
    velocity_b,
    pendulum_a: PendulumParams,
    pendulum_b: PendulumParams,
):
    """Angular accelerations (alpha_a, alpha_b) of a frictionless double pendulum.

    Point masses at the rod ends, uniform gravity GRAVITY. Pure function of
    the current state and the two parameter records.
    """
    mass_a, mass_b = pendulum_a.mass, pendulum_b.mass
    len_a, len_b = pendulum_a.length, pendulum_b.length

    double_mass_a = 2.0 * mass_a
    angle_diff = angle_a - angle_b
    angle_diff_cos = np.cos(angle_diff)
    double_angle_diff_sin = 2.0 * np.sin(angle_diff)
    doubled_angles_diff_cos = np.cos(2.0 * angle_diff)
    vel_a_sq = velocity_a * velocity_a
    vel_b_sq = velocity_b * velocity_b
    mass_sum = mass_a + mass_b

    alpha_a = (
        -GRAVITY * (double_mass_a + mass_b) * np.sin(angle_a)
        - mass_b * GRAVITY * np.sin(angle_a - 2.0 * angle_b)
        - double_angle_diff_sin
        * mass_b
        * (vel_b_sq * len_b + vel_a_sq * len_a * angle_diff_cos)
    ) / (len_a * (double_mass_a + mass_b - mass_b * doubled_angles_diff_cos))

    alpha_b = double_angle_diff_sin * (
        vel_a_sq * len_a * mass_sum
        + GRAVITY * mass_sum * np.cos(angle_a)
        + vel_b_sq * len_b * mass_b * angle_diff_cos
    ) / (len_b * (double_mass_a + mass_b - mass_b * doubled_angles_diff_cos))

    return alpha_a, alpha_b


def semi_implicit_euler(
    angle_a,
    velocity_a,
    angle_b,
    velocity_b,
    pendulum_a: PendulumParams,
    pendulum_b: PendulumParams,
    dt: float,
):
    """One semi-implicit Euler step. Returns (angle_a, velocity_a, angle_b, velocity_b).

    Velocities are advanced with the accelerations of the old state, then
    angles with the new velocities, then angles are wrapped. No stability
    check: keeping dt small is the caller's job.
    """
    alpha_a, alpha_b = angular_accelerations(
        angle_a, velocity_a, angle_b, velocity_b, pendulum_a, pendulum_b
    )
    velocity_a = velocity_a + alpha_a * dt
    velocity_b = velocity_b + alpha_b * dt
    angle_a = wrap_angles(angle_a + velocity_a * dt)
    angle_b = wrap_angles(angle_b + velocity_b * dt)
    return angle_a, velocity_a, angle_b, velocity_b


def check_step(dt: float, n: int = 1) -> None:
    """Reject step arguments that cannot describe forward time."""
    if not math.isfinite(dt) or dt < 0.0:
        raise ValueError(f"step time must be finite and >= 0, got {dt!r}")
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 0:
        raise ValueError(f"step count must be an int >= 0, got {n!r}")


# ---------------------------------------------------------------------------
# Geometry, divergence, energy
# ---------------------------------------------------------------------------

def bob_positions(angle_a, angle_b, pendulum_a: PendulumParams, pendulum_b: PendulumParams):
    """(x_a, y_a, x_b, y_b) of both bobs, pivot at the origin and +y up."""
    x_a = pendulum_a.length * np.sin(angle_a)
    y_a = -pendulum_a.length * np.cos(angle_a)
    x_b = x_a + pendulum_b.length * np.sin(angle_b)
    y_b = y_a - pendulum_b.length * np.cos(angle_b)
    return x_a, y_a, x_b, y_b


def divergence(angle_a, angle_b, other_angle_a, other_angle_b, strict: bool = True):
    """Perceptual divergence in [0, 1] between two pendulum configurations.

    Each arm's wrapped angle difference is scaled to [0, 1] by pi and the two
    are multiplied, so the result stays near zero while either arm still
    coincides. Not a metric.

    With strict=True a per-arm value outside [0, 1] raises InvariantViolation;
    otherwise values are clamped and NaN counts as fully diverged.
    """
    dist_a = np.abs(wrap_angles(angle_a - other_angle_a)) / PI
    dist_b = np.abs(wrap_angles(angle_b - other_angle_b)) / PI

    if strict:
        for name, dist in (("a", dist_a), ("b", dist_b)):
            in_range = (dist >= 0.0) & (dist <= 1.0)
            if not np.all(in_range):
                bad = np.asarray(dist)[~np.asarray(in_range)]
                raise InvariantViolation(
                    f"arm {name} angle distance outside [0, 1]: {bad[:5].tolist()}"
                )
    else:
        dist_a = np.clip(np.nan_to_num(dist_a, nan=1.0), 0.0, 1.0)
        dist_b = np.clip(np.nan_to_num(dist_b, nan=1.0), 0.0, 1.0)

    return dist_a * dist_b


def total_energy(
    angle_a,
    velocity_a,
    angle_b,
    velocity_b,
    pendulum_a: PendulumParams,
    pendulum_b: PendulumParams,
):
    """Total mechanical energy (kinetic + potential), pivot as the zero level."""
    len_a, len_b = pendulum_a.length, pendulum_b.length
    mass_a, mass_b = pendulum_a.mass, pendulum_b.mass

    vx_a = len_a * velocity_a * np.cos(angle_a)
    vy_a = len_a * velocity_a * np.sin(angle_a)
    vx_b = vx_a + len_b * velocity_b * np.cos(angle_b)
    vy_b = vy_a + len_b * velocity_b * np.sin(angle_b)
    kinetic = 0.5 * mass_a * (vx_a**2 + vy_a**2) + 0.5 * mass_b * (vx_b**2 + vy_b**2)

    _, y_a, _, y_b = bob_positions(angle_a, angle_b, pendulum_a, pendulum_b)
    potential = mass_a * GRAVITY * y_a + mass_b * GRAVITY * y_b
    return kinetic + potential


# ---------------------------------------------------------------------------
# Single trajectory
# ---------------------------------------------------------------------------

class DoublePendulumConfiguration:
    """Complete state of one simulated double pendulum.

    Arm A pivots at the origin, arm B at arm A's bob. The physical parameters
    are not stored here; they are shared by every trajectory of a population
    and passed into each call.
    """

    __slots__ = ("a", "b")

    def __init__(self, a: ArmState, b: ArmState):
        self.a = a
        self.b = b

    def __repr__(self) -> str:
        return f"DoublePendulumConfiguration(a={self.a!r}, b={self.b!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, DoublePendulumConfiguration):
            return NotImplemented
        return self.a == other.a and self.b == other.b

    def copy(self) -> "DoublePendulumConfiguration":
        return DoublePendulumConfiguration(
            ArmState(self.a.angle, self.a.angular_velocity),
            ArmState(self.b.angle, self.b.angular_velocity),
        )

    def angular_accelerations(
        self, pendulum_a: PendulumParams, pendulum_b: PendulumParams
    ) -> tuple[float, float]:
        alpha_a, alpha_b = angular_accelerations(
            self.a.angle, self.a.angular_velocity,
            self.b.angle, self.b.angular_velocity,
            pendulum_a, pendulum_b,
        )
        return float(alpha_a), float(alpha_b)

    def step(self, pendulum_a: PendulumParams, pendulum_b: PendulumParams, dt: float) -> None:
        """Advance this trajectory in place by dt."""
        check_step(dt)
        self._advance(pendulum_a, pendulum_b, dt)

    def step_n(
        self, pendulum_a: PendulumParams, pendulum_b: PendulumParams, dt: float, n: int
    ) -> None:
        """Advance by dt, n times. Identical to calling step n times."""
        check_step(dt, n)
        for _ in range(n):
            self._advance(pendulum_a, pendulum_b, dt)

    def _advance(self, pendulum_a: PendulumParams, pendulum_b: PendulumParams, dt: float) -> None:
        angle_a, velocity_a, angle_b, velocity_b = semi_implicit_euler(
            self.a.angle, self.a.angular_velocity,
            self.b.angle, self.b.angular_velocity,
            pendulum_a, pendulum_b, dt,
        )
        self.a.angle = float(angle_a)
        self.a.angular_velocity = float(velocity_a)
        self.b.angle = float(angle_b)
        self.b.angular_velocity = float(velocity_b)

    def a_position(self, pendulum_a: PendulumParams) -> Point:
        return Point(
            pendulum_a.length * math.sin(self.a.angle),
            -pendulum_a.length * math.cos(self.a.angle),
        )

    def positions(
        self, pendulum_a: PendulumParams, pendulum_b: PendulumParams
    ) -> tuple[Point, Point]:
        """Positions of bob A and bob B."""
        a_position = self.a_position(pendulum_a)
        b_offset = Point(
            pendulum_b.length * math.sin(self.b.angle),
            -pendulum_b.length * math.cos(self.b.angle),
        )
        return a_position, a_position + b_offset

    def distance(self, other: "DoublePendulumConfiguration", strict: bool = True) -> float:
        """0 is exactly identical, 1 is the theoretical maximum."""
        return float(divergence(
            self.a.angle, self.b.angle, other.a.angle, other.b.angle, strict=strict
        ))

    def energy(self, pendulum_a: PendulumParams, pendulum_b: PendulumParams) -> float:
        return float(total_energy(
            self.a.angle, self.a.angular_velocity,
            self.b.angle, self.b.angular_velocity,
            pendulum_a, pendulum_b,
        ))
