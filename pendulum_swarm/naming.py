"""Run names for swarm log directories, derived from the run's settings.

Two runs with the same mode, size, perturbation and seed share a settings
digest, so their TensorBoard directories sort next to each other; the UTC
timestamp keeps repeated runs apart.

    make_run_name("fan", 5000, 1e-8)               # fan-n5000-p1e-08-3c9d51a2-20261016-153000
    make_run_name("random", 2000, 0.0, seed=7)     # random-n2000-s7-8e0f4b17-20261016-153000
"""

import hashlib
import time
from typing import Optional

MODES = ("fan", "random")


def settings_digest(mode: str, count: int, perturbation: float, seed: Optional[int] = None) -> str:
    """8 hex chars identifying the initial-condition settings of a run.

    The perturbation only shapes a fan and the seed only shapes random starts,
    so each is left out of the digest for the other mode.
    """
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
    if mode == "fan":
        key = f"fan|{int(count)}|{float(perturbation)!r}"
    else:
        key = f"random|{int(count)}|{seed!r}"
    return hashlib.sha1(key.encode()).hexdigest()[:8]


def make_run_name(
    mode: str,
    count: int,
    perturbation: float,
    seed: Optional[int] = None,
    ts: Optional[float] = None,
) -> str:
    """Readable settings prefix, settings digest, then a UTC timestamp."""
    digest = settings_digest(mode, count, perturbation, seed)
    if mode == "fan":
        detail = f"p{float(perturbation):.0e}"
    else:
        detail = f"s{seed}" if seed is not None else "unseeded"
    stamp = time.strftime("%Y%m%d-%H%M%S", time.gmtime(time.time() if ts is None else ts))
    return f"{mode}-n{count}-{detail}-{digest}-{stamp}"
