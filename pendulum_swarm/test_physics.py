"""Single-trajectory physics tests: normalization, dynamics, geometry, divergence.

Usage:
    pytest pendulum_swarm/test_physics.py
    pytest pendulum_swarm/test_physics.py -k normalize
"""

import math

import numpy as np
import pytest

from pendulum_swarm.constants import PI, TWO_PI
from pendulum_swarm.errors import ConfigurationError, InvariantViolation
from pendulum_swarm.physics import (
    DoublePendulumConfiguration,
    angular_accelerations,
    divergence,
    normalize_angle,
    wrap_angles,
)
from pendulum_swarm.scenarios import default_configuration, default_pendulums
from pendulum_swarm.sim_interface import ArmState, PendulumParams, Point

ANGLE_TOLERANCE = 1e-12     # Normalization of multiples of pi
REFERENCE_TOLERANCE = 1e-3  # Semi-implicit Euler vs adaptive RK over a short horizon
ENERGY_TOLERANCE = 1e-2     # Relative energy drift allowed over the smoke run


def _config(angle_a=0.0, velocity_a=0.0, angle_b=0.0, velocity_b=0.0):
    return DoublePendulumConfiguration(ArmState(angle_a, velocity_a), ArmState(angle_b, velocity_b))


# ---------------------------------------------------------------------------
# Angle normalization
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("angle, expected", [
    (TWO_PI, 0.0),
    (2.0 * TWO_PI, 0.0),
    (0.0, 0.0),
    (PI, PI),
    (PI + TWO_PI, PI),
    (1.5 * PI, -0.5 * PI),
    (1.5 * PI + TWO_PI, -0.5 * PI),
    (1.5 * PI - TWO_PI, -0.5 * PI),
    (-TWO_PI, 0.0),
    (2.0 * -TWO_PI, 0.0),
    (-PI, -PI),
    (-PI + TWO_PI, PI),
    (-PI - TWO_PI, -PI),
    (-1.5 * PI, 0.5 * PI),
    (-1.5 * PI + TWO_PI, 0.5 * PI),
    (-1.5 * PI - TWO_PI, 0.5 * PI),
])
def test_normalize_known_values(angle, expected):
    assert abs(normalize_angle(angle) - expected) < ANGLE_TOLERANCE


def test_normalize_boundaries_stay_distinct():
    """pi and -pi are both fixed points; they are not folded onto one value."""
    assert normalize_angle(PI) == PI
    assert normalize_angle(-PI) == -PI
    assert normalize_angle(-PI + TWO_PI) == PI


def test_normalize_idempotent_and_periodic():
    rng = np.random.RandomState(0)
    for x in rng.uniform(-50.0, 50.0, size=200):
        once = normalize_angle(x)
        assert -PI <= once <= PI
        assert normalize_angle(once) == once
        for k in (-3, -1, 1, 4):
            shifted = normalize_angle(x + k * TWO_PI)
            assert abs(wrap_angles(shifted - once)) < 1e-9


def test_wrap_angles_matches_scalar():
    values = np.linspace(-20.0, 20.0, 401)
    wrapped = wrap_angles(values)
    expected = np.array([normalize_angle(v) for v in values])
    np.testing.assert_array_equal(wrapped, expected)


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("length, mass", [
    (0.0, 1.0),
    (1.0, 0.0),
    (-5.0, 1.0),
    (1.0, -2.0),
    (float("nan"), 1.0),
    (1.0, float("inf")),
    ("long", 1.0),
])
def test_params_reject_invalid(length, mass):
    with pytest.raises(ConfigurationError):
        PendulumParams(length, mass)


def test_params_are_immutable_floats():
    params = PendulumParams(3, 2)
    assert params.length == 3.0 and isinstance(params.length, float)
    with pytest.raises(AttributeError):
        params.length = 4.0


# ---------------------------------------------------------------------------
# Dynamics
# ---------------------------------------------------------------------------

def test_hanging_rest_is_fixed_point():
    pa, pb = default_pendulums()
    config = _config()
    assert config.angular_accelerations(pa, pb) == (0.0, 0.0)
    config.step_n(pa, pb, 1e-3, 100)
    assert config == _config()


def test_zero_step_leaves_state_unchanged():
    pa, pb = default_pendulums()
    config = default_configuration()
    before = config.copy()
    config.step(pa, pb, 0.0)
    config.step_n(pa, pb, 1e-4, 0)
    assert config.a.angular_velocity == before.a.angular_velocity
    assert config.b.angular_velocity == before.b.angular_velocity
    assert abs(wrap_angles(config.a.angle - before.a.angle)) == 0.0


@pytest.mark.parametrize("dt, n", [
    (-1e-4, 1),
    (float("nan"), 1),
    (float("inf"), 1),
    (1e-4, -1),
    (1e-4, 2.5),
    (1e-4, True),
    (1e-4, "3"),
])
def test_step_rejects_invalid_arguments(dt, n):
    pa, pb = default_pendulums()
    config = default_configuration()
    with pytest.raises(ValueError):
        config.step_n(pa, pb, dt, n)


def test_step_n_matches_repeated_step():
    pa, pb = default_pendulums()
    batched = default_configuration()
    looped = default_configuration()
    batched.step_n(pa, pb, 1e-4, 500)
    for _ in range(500):
        looped.step(pa, pb, 1e-4)
    assert batched == looped


def test_step_updates_velocity_before_angle():
    """Angle advances with the freshly updated velocity."""
    pa, pb = default_pendulums()
    config = _config(0.3, 0.0, -0.2, 0.0)
    alpha_a, alpha_b = config.angular_accelerations(pa, pb)
    dt = 1e-3
    config.step(pa, pb, dt)
    assert config.a.angular_velocity == pytest.approx(alpha_a * dt)
    assert config.a.angle == pytest.approx(0.3 + alpha_a * dt * dt)
    assert config.b.angle == pytest.approx(-0.2 + alpha_b * dt * dt)


def test_default_run_stays_finite_and_normalized():
    pa, pb = default_pendulums()
    config = default_configuration()
    energy_before = config.energy(pa, pb)
    config.step_n(pa, pb, 1e-4, 5000)
    for value in (config.a.angle, config.a.angular_velocity, config.b.angle, config.b.angular_velocity):
        assert math.isfinite(value)
    assert -PI <= config.a.angle <= PI
    assert -PI <= config.b.angle <= PI
    drift = abs(config.energy(pa, pb) - energy_before) / abs(energy_before)
    assert drift < ENERGY_TOLERANCE


def test_matches_reference_integrator():
    """Short horizon agreement with scipy's adaptive RK45 on the same equations."""
    solve_ivp = pytest.importorskip("scipy.integrate").solve_ivp
    pa, pb = default_pendulums()
    start = default_configuration()

    def rhs(t, y):
        alpha_a, alpha_b = angular_accelerations(y[0], y[1], y[2], y[3], pa, pb)
        return [y[1], alpha_a, y[3], alpha_b]

    horizon, dt = 0.5, 1e-4
    y0 = [start.a.angle, start.a.angular_velocity, start.b.angle, start.b.angular_velocity]
    reference = solve_ivp(rhs, (0.0, horizon), y0, rtol=1e-10, atol=1e-10).y[:, -1]

    config = start.copy()
    config.step_n(pa, pb, dt, int(round(horizon / dt)))
    assert abs(wrap_angles(config.a.angle - reference[0])) < REFERENCE_TOLERANCE
    assert abs(wrap_angles(config.b.angle - reference[2])) < REFERENCE_TOLERANCE
    assert config.a.angular_velocity == pytest.approx(reference[1], abs=10 * REFERENCE_TOLERANCE)
    assert config.b.angular_velocity == pytest.approx(reference[3], abs=10 * REFERENCE_TOLERANCE)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def test_positions_hanging_straight_down():
    pa, pb = default_pendulums()
    a_pos, b_pos = _config().positions(pa, pb)
    assert a_pos == Point(0.0, -pa.length)
    assert b_pos == Point(0.0, -pa.length - pb.length)


def test_positions_horizontal_arms():
    pa = PendulumParams(2.0, 1.0)
    pb = PendulumParams(3.0, 1.0)
    a_pos, b_pos = _config(PI / 2, 0.0, -PI / 2, 0.0).positions(pa, pb)
    assert a_pos.x == pytest.approx(2.0)
    assert a_pos.y == pytest.approx(0.0, abs=1e-12)
    assert b_pos.x == pytest.approx(-1.0)
    assert b_pos.y == pytest.approx(0.0, abs=1e-12)


def test_position_query_does_not_mutate():
    pa, pb = default_pendulums()
    config = default_configuration()
    before = config.copy()
    config.positions(pa, pb)
    assert config == before


# ---------------------------------------------------------------------------
# Divergence
# ---------------------------------------------------------------------------

def test_divergence_of_self_is_zero():
    config = default_configuration()
    assert config.distance(config.copy()) == 0.0


def test_divergence_needs_both_arms_apart():
    base = _config(0.0, 0.0, 0.0, 0.0)
    assert base.distance(_config(PI, 0.0, 0.0, 0.0)) == 0.0
    assert base.distance(_config(0.0, 0.0, PI, 0.0)) == 0.0
    assert base.distance(_config(PI, 0.0, PI, 0.0)) == 1.0
    assert base.distance(_config(PI / 2, 0.0, PI / 2, 0.0)) == pytest.approx(0.25)


def test_divergence_bounds_and_symmetry():
    rng = np.random.RandomState(1)
    a = rng.uniform(-10.0, 10.0, size=(2, 500))
    b = rng.uniform(-10.0, 10.0, size=(2, 500))
    forward = divergence(a[0], a[1], b[0], b[1])
    backward = divergence(b[0], b[1], a[0], a[1])
    assert np.all((forward >= 0.0) & (forward <= 1.0))
    np.testing.assert_allclose(forward, backward, atol=1e-12)


def test_divergence_strict_raises_on_nan():
    base = default_configuration()
    broken = _config(float("nan"), 0.0, 0.0, 0.0)
    with pytest.raises(InvariantViolation):
        base.distance(broken)
    with pytest.raises(AssertionError):
        base.distance(broken, strict=True)


def test_divergence_lenient_clamps_nan():
    base = _config(0.0, 0.0, 0.0, 0.0)
    broken = _config(float("nan"), 0.0, PI / 2, 0.0)
    assert base.distance(broken, strict=False) == pytest.approx(0.5)
