"""End-of-run diagnostics for a pendulum population.

Produces a markdown report: whether every state is still finite, how far the
semi-implicit integrator let energy drift, and how far the swarm has spread
away from its baseline trajectory.
"""

import numpy as np

from .population import PendulumPopulation

SPREAD_THRESHOLD = 0.5   # divergence above which a trajectory counts as decorrelated


def _finite_analysis(population: PendulumPopulation) -> str:
    lines = ["## State Health\n"]
    angle_a, angle_b = population.angles()
    velocity_a, velocity_b = population.angular_velocities()
    finite = (
        np.isfinite(angle_a) & np.isfinite(angle_b)
        & np.isfinite(velocity_a) & np.isfinite(velocity_b)
    )
    n_bad = int(np.count_nonzero(~finite))
    lines.append(f"- Trajectories: {len(population)}")
    lines.append(f"- Non-finite trajectories: {n_bad}")
    if n_bad:
        lines.append(
            f"- **Signal**: {n_bad} trajectories blew up -> the step time is too large "
            f"for these parameters"
        )
    lines.append("")
    return "\n".join(lines)


def _energy_analysis(population: PendulumPopulation, initial_energies: np.ndarray) -> str:
    lines = ["## Energy Drift\n"]
    energies = population.energies()
    if len(energies) == 0:
        lines.append("- Empty population, nothing to compare.\n")
        return "\n".join(lines)

    drift = (energies - initial_energies) / (np.abs(initial_energies) + 1e-12)
    finite = np.isfinite(drift)
    if not np.any(finite):
        lines.append("- No finite energies left.\n")
        return "\n".join(lines)
    drift = drift[finite]
    lines.append(f"- Mean relative drift: {np.mean(drift):+.4%}")
    lines.append(f"- Max |relative drift|: {np.max(np.abs(drift)):.4%}")
    if np.max(np.abs(drift)) > 0.05:
        lines.append(
            "- **Signal**: energy drifted more than 5% -> consider a smaller step time"
        )
    lines.append("")
    return "\n".join(lines)


def _spread_analysis(population: PendulumPopulation, baseline: int) -> str:
    lines = [f"## Divergence From Trajectory {baseline}\n"]
    if len(population) < 2:
        lines.append("- Fewer than two trajectories, nothing to compare.\n")
        return "\n".join(lines)

    spread = population.divergence_from(baseline, strict=False)
    lines.append(f"- Mean divergence: {np.mean(spread):.4f}")
    lines.append(f"- Median divergence: {np.median(spread):.4f}")
    lines.append(
        f"- Fraction above {SPREAD_THRESHOLD}: "
        f"{np.mean(spread > SPREAD_THRESHOLD):.2%}"
    )
    lines.append("")
    return "\n".join(lines)


def generate_report(
    population: PendulumPopulation,
    initial_energies: np.ndarray,
    baseline: int = 0,
) -> str:
    """Full markdown report for the current state of `population`.

    Args:
        population: The population after the run.
        initial_energies: population.energies() captured before the first step.
        baseline: Index of the reference trajectory for the spread section.
    """
    sections = [
        "# Pendulum Swarm Diagnostic Report\n",
        _finite_analysis(population),
        _energy_analysis(population, initial_energies),
        _spread_analysis(population, baseline),
    ]
    return "\n".join(sections)
