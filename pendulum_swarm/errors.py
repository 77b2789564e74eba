"""Exception types raised by the pendulum swarm engine."""


class PendulumSwarmError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(PendulumSwarmError, ValueError):
    """Invalid physical parameters or malformed population/snapshot input."""


class InvariantViolation(PendulumSwarmError, AssertionError):
    """An internal numeric invariant did not hold.

    Raised by the divergence metric when a per-arm distance falls outside
    [0, 1], which only happens for non-finite state or a normalization bug.
    """
