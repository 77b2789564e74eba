"""Renderer tests (Agg backend, small frames)."""

import numpy as np
import pytest

from pendulum_swarm.render import FrameRenderer, NullRenderer, hue_colors
from pendulum_swarm.scenarios import build_population


def test_hue_colors():
    colors = hue_colors(4, alpha=0.5)
    assert colors.shape == (4, 4)
    np.testing.assert_allclose(colors[0], [1.0, 0.0, 0.0, 0.5])
    np.testing.assert_allclose(colors[2], [0.0, 1.0, 1.0, 0.5])
    assert hue_colors(0).shape == (0, 4)


def test_frame_renderer_writes_numbered_pngs(tmp_path):
    population = build_population(count=20, perturbation=1e-2, workers=1)
    renderer = FrameRenderer(64, 48, tmp_path / "frames")
    try:
        first = renderer.render_frame(population)
        population.step_all_n(1e-4, 10)
        second = renderer.render_frame(population)
    finally:
        renderer.close()

    assert first.name == "render_00000.png"
    assert second.name == "render_00001.png"
    assert renderer.count == 2
    with open(second, "rb") as f:
        assert f.read(8) == b"\x89PNG\r\n\x1a\n"


@pytest.mark.parametrize("count", [0, 1])
def test_frame_renderer_handles_tiny_populations(tmp_path, count):
    population = build_population(count=count, workers=1)
    renderer = FrameRenderer(32, 32, tmp_path)
    path = renderer.render_frame(population)
    renderer.close()
    assert path.exists()


def test_null_renderer_counts():
    renderer = NullRenderer()
    population = build_population(count=2, workers=1)
    renderer.render_frame(population)
    renderer.render_frame(population)
    renderer.close()
    assert renderer.count == 2
