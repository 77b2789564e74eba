"""TensorBoard logger for swarm runs."""

import numpy as np
from torch.utils.tensorboard import SummaryWriter

from .population import PendulumPopulation


class RunLogger:
    """Wraps TensorBoard SummaryWriter for per-frame swarm metrics.

    `initial_energies` is population.energies() captured before the first
    step; energy drift is reported relative to it.
    """

    def __init__(self, initial_energies, log_dir="runs", log_interval=1, baseline=0):
        self.writer = SummaryWriter(log_dir=str(log_dir))
        self.initial_energies = np.asarray(initial_energies)
        self.log_interval = log_interval
        self.baseline = baseline

    def log_frame(self, frame, population: PendulumPopulation, calc_time, step_time):
        """Log timing, spread and energy drift for one rendered frame."""
        if frame % self.log_interval != 0:
            return

        self.writer.add_scalar("timing/calc_seconds", calc_time, frame)
        self.writer.add_scalar("timing/step_seconds", step_time, frame)

        if len(population) >= 2:
            neighbour = population.neighbour_divergence(strict=False)
            spread = population.divergence_from(self.baseline, strict=False)
            self.writer.add_scalar("divergence/neighbour_mean", float(np.mean(neighbour)), frame)
            self.writer.add_scalar("divergence/baseline_mean", float(np.mean(spread)), frame)
            self.writer.add_histogram("divergence/baseline", spread, frame)

        energies = population.energies()
        drift = np.abs(energies - self.initial_energies) / (np.abs(self.initial_energies) + 1e-12)
        drift = drift[np.isfinite(drift)]
        if len(drift):
            self.writer.add_scalar("energy/max_abs_drift", float(np.max(drift)), frame)

    def close(self):
        self.writer.close()
