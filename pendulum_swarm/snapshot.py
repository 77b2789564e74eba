"""JSON snapshots of a pendulum population.

A snapshot mirrors the population's data model: both arm parameter records and
the ordered list of arm-state pairs. It is written once when a run ends; it
can rebuild a population but is not used to resume a running simulation.

Layout:

    {
      "pendulum_a": {"length": 180.0, "mass": 10.0},
      "pendulum_b": {"length": 162.0, "mass": 1.0},
      "pendulum_configurations": [
        {"a": {"angle": ..., "angular_velocity": ...},
         "b": {"angle": ..., "angular_velocity": ...}},
        ...
      ]
    }
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .errors import ConfigurationError
from .physics import DoublePendulumConfiguration
from .population import PendulumPopulation
from .sim_interface import ArmState, PendulumParams


def _pendulum_to_dict(pendulum: PendulumParams) -> dict:
    return {"length": pendulum.length, "mass": pendulum.mass}


def _arm_to_dict(arm: ArmState) -> dict:
    return {"angle": arm.angle, "angular_velocity": arm.angular_velocity}


def population_to_dict(population: PendulumPopulation) -> dict:
    """Serialize a population to a JSON-compatible dict."""
    return {
        "pendulum_a": _pendulum_to_dict(population.pendulum_a),
        "pendulum_b": _pendulum_to_dict(population.pendulum_b),
        "pendulum_configurations": [
            {"a": _arm_to_dict(c.a), "b": _arm_to_dict(c.b)}
            for c in population.configurations()
        ],
    }


def _arm_from_dict(data: dict) -> ArmState:
    return ArmState(angle=float(data["angle"]), angular_velocity=float(data["angular_velocity"]))


def population_from_dict(data: dict, workers: Optional[int] = None) -> PendulumPopulation:
    """Rebuild a population from population_to_dict output.

    Raises ConfigurationError if a record is missing or has the wrong shape.
    """
    try:
        pendulum_a = PendulumParams(**data["pendulum_a"])
        pendulum_b = PendulumParams(**data["pendulum_b"])
        configurations = [
            DoublePendulumConfiguration(_arm_from_dict(entry["a"]), _arm_from_dict(entry["b"]))
            for entry in data["pendulum_configurations"]
        ]
    except ConfigurationError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"malformed population snapshot: {e}") from e
    return PendulumPopulation(pendulum_a, pendulum_b, configurations, workers=workers)


def save_snapshot(population: PendulumPopulation, path: Union[str, Path]) -> Path:
    """Atomically write a pretty-printed snapshot via temp file + rename.

    Either the complete new file is visible or the old one remains.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp", prefix="snapshot_")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(population_to_dict(population), f, indent=2)
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return path


def load_snapshot(path: Union[str, Path], workers: Optional[int] = None) -> PendulumPopulation:
    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"snapshot {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"snapshot {path} must hold a JSON object")
    return population_from_dict(data, workers=workers)
