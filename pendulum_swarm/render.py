"""Frame rendering for a pendulum population.

Reads positions and neighbour divergence from the population and writes one
PNG per frame. Nothing here feeds back into the simulation.
"""

import os
from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import PolyCollection
from matplotlib.colors import hsv_to_rgb

from .constants import DEFAULT_HEIGHT, DEFAULT_OUTPUT_DIR, DEFAULT_WIDTH
from .population import PendulumPopulation

POLYGON_ALPHA = 0.05   # alpha of a fully coincident neighbour pair
FILL_SCALE = 0.95      # fraction of the half-extent the fully stretched pendulum may reach


def hue_colors(n: int, alpha: float = 1.0) -> np.ndarray:
    """RGBA colour per trajectory index: hue 360 * i / n, full saturation and value."""
    hsv = np.ones((n, 3))
    hsv[:, 0] = np.arange(n) / max(n, 1)
    rgba = np.empty((n, 4))
    rgba[:, :3] = hsv_to_rgb(hsv)
    rgba[:, 3] = alpha
    return rgba


class NullRenderer:
    """Counts frames without drawing anything (headless runs, benchmarks)."""

    def __init__(self):
        self.count = 0

    def render_frame(self, population: PendulumPopulation) -> None:
        self.count += 1

    def close(self) -> None:
        pass


class FrameRenderer:
    """Draws each frame to ``out_dir/render_NNNNN.png``.

    Pivot at the image centre, +y up in simulation space. Every pair of
    neighbouring trajectories (i, i + 1) becomes a filled polygon
    pivot -> bob_a[i] -> bob_b[i] -> bob_b[i+1] -> bob_a[i+1], coloured by
    index and faded as the pair diverges.
    """

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        out_dir: str = DEFAULT_OUTPUT_DIR,
        dpi: int = 100,
    ):
        self.width = width
        self.height = height
        self.out_dir = Path(out_dir)
        self.dpi = dpi
        self.count = 0
        self._fig = None
        self._polygons: Optional[PolyCollection] = None

    def frame_path(self, index: int) -> Path:
        return self.out_dir / f"render_{index:05d}.png"

    def _setup(self):
        """Create the figure once; later frames only swap the polygon data."""
        fig = plt.figure(
            figsize=(self.width / self.dpi, self.height / self.dpi),
            dpi=self.dpi,
            facecolor="black",
        )
        ax = fig.add_axes([0.0, 0.0, 1.0, 1.0])
        ax.set_xlim(0, self.width)
        ax.set_ylim(self.height, 0)  # image coordinates, y down
        ax.set_facecolor("black")
        ax.axis("off")

        self._polygons = PolyCollection([], edgecolors="none")
        ax.add_collection(self._polygons)
        ax.plot(self.width / 2, self.height / 2, "o", color="blue", markersize=1, zorder=5)
        self._fig = fig

    def _to_pixels(self, x: np.ndarray, y: np.ndarray, scale: float) -> np.ndarray:
        return np.stack([scale * x + self.width / 2, scale * -y + self.height / 2], axis=-1)

    def render_frame(self, population: PendulumPopulation) -> Path:
        if self._fig is None:
            self._setup()

        pendulum_a, pendulum_b = population.pendulum_a, population.pendulum_b
        max_extension = pendulum_a.length + pendulum_b.length
        scale = min(self.width / 2, self.height / 2) / max_extension * FILL_SCALE

        x_a, y_a, x_b, y_b = population.positions()
        a_px = self._to_pixels(x_a, y_a, scale)
        b_px = self._to_pixels(x_b, y_b, scale)

        n = len(population)
        if n >= 2:
            pivot = np.broadcast_to([self.width / 2, self.height / 2], (n - 1, 2))
            polygons = np.stack([pivot, a_px[:-1], b_px[:-1], b_px[1:], a_px[1:]], axis=1)
            colors = hue_colors(n)[:-1]
            colors[:, 3] = POLYGON_ALPHA * (1.0 - population.neighbour_divergence(strict=False))
        else:
            polygons = np.empty((0, 5, 2))
            colors = np.empty((0, 4))

        self._polygons.set_verts(polygons)
        self._polygons.set_facecolor(colors)

        path = self.frame_path(self.count)
        os.makedirs(self.out_dir, exist_ok=True)
        self._fig.savefig(path, dpi=self.dpi, facecolor="black")
        self.count += 1
        return path

    def close(self) -> None:
        if self._fig is not None:
            plt.close(self._fig)
            self._fig = None
            self._polygons = None
