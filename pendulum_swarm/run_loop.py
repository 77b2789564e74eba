"""Real-time run loop: step the swarm, render, repeat until stopped.

Usage:
    pendulum-swarm [--count 5000] [--frames 600] [--output out] [--no-render]
    pendulum-swarm --random --seed 7 --count 2000
    pendulum-swarm --tb-logdir runs          # needs the `tensorboard` extra
"""

import argparse
import signal
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .constants import (
    DEFAULT_FPS,
    DEFAULT_HEIGHT,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PERTURBATION,
    DEFAULT_POPULATION,
    DEFAULT_TARGET_STEP,
    DEFAULT_WIDTH,
    REPORT_NAME,
    SNAPSHOT_NAME,
)
from .diagnostics import generate_report
from .population import PendulumPopulation
from .render import FrameRenderer, NullRenderer
from .scenarios import build_population
from .snapshot import save_snapshot


@dataclass
class RunSummary:
    """What one run did."""
    frames: int
    total_steps: int
    simulated_time: float           # Sum of step_time * steps over all frames
    total_calc_time: float          # Wall-clock seconds spent stepping + rendering
    snapshot_path: Optional[Path] = None
    report_path: Optional[Path] = None

    @property
    def mean_calc_time(self) -> float:
        return self.total_calc_time / self.frames if self.frames else 0.0


def steps_per_render(fps: float, target_step: float) -> int:
    """Integration steps per frame so that real-time physics hits `fps`."""
    if not (fps > 0 and target_step > 0):
        raise ValueError(f"fps and target_step must be > 0, got {fps!r}, {target_step!r}")
    return max(1, int(1.0 / fps / target_step))


def main_loop(
    population: PendulumPopulation,
    renderer,
    target_step: float,
    steps_per_frame: int,
    should_stop: Callable[[], bool],
    max_frames: Optional[int] = None,
    logger=None,
    realtime: bool = True,
) -> RunSummary:
    """Step and render until `should_stop()` is true or `max_frames` is reached.

    The stop check only happens between batches; a batch always completes.
    Each frame steps by min(wall time since the last frame, target_step), so
    slow frames slow the simulation down instead of enlarging the step.
    """
    frames = 0
    total_steps = 0
    simulated_time = 0.0
    total_calc_time = 0.0
    last_step = time.perf_counter()

    while True:
        start_calc = time.perf_counter()
        if should_stop() or (max_frames is not None and frames >= max_frames):
            break

        now = time.perf_counter()
        step_time = min(now - last_step, target_step)
        last_step = now

        population.step_all_n(step_time, steps_per_frame)
        renderer.render_frame(population)

        calc_time = time.perf_counter() - start_calc
        total_calc_time += calc_time
        total_steps += steps_per_frame
        simulated_time += step_time * steps_per_frame

        to_sleep = max(0.0, target_step * steps_per_frame - calc_time) if realtime else 0.0
        print(
            f"step: {step_time:.6f}s, sleep: {to_sleep:.6f}s, calc: {calc_time:.6f}s, "
            f"render iteration: {frames}, total iterations: {total_steps}, "
            f"total simulated time: {simulated_time:.6f}s"
        )
        if logger is not None:
            logger.log_frame(frames, population, calc_time, step_time)
        if to_sleep > 0:
            time.sleep(to_sleep)

        frames += 1

    summary = RunSummary(
        frames=frames,
        total_steps=total_steps,
        simulated_time=simulated_time,
        total_calc_time=total_calc_time,
    )
    print(f"Total/Avg calc time: {summary.total_calc_time:.6f}s, {summary.mean_calc_time:.6f}s")
    return summary


def _make_logger(args, initial_energies):
    """Build the TensorBoard logger; torch is only imported when asked for."""
    try:
        from .tb_logger import RunLogger
    except ImportError as e:
        raise ImportError(
            "TensorBoard logging needs torch + tensorboard: pip install 'pendulum-swarm[tensorboard]'"
        ) from e
    from .naming import make_run_name

    run_name = args.run_name or make_run_name(
        "random" if args.random else "fan", args.count, args.perturbation, seed=args.seed
    )
    log_dir = Path(args.tb_logdir) / run_name
    print(f"[swarm] TensorBoard logging to {log_dir}/")
    return RunLogger(initial_energies, log_dir=log_dir)


def run(args) -> RunSummary:
    """Build the population from parsed CLI args, run it, then write snapshot + report."""
    population = build_population(
        count=args.count,
        perturbation=args.perturbation,
        randomize=args.random,
        seed=args.seed,
        workers=args.workers,
    )
    print(
        f"[swarm] {len(population)} pendulums, {population.workers} workers, "
        f"A={population.pendulum_a}, B={population.pendulum_b}"
    )

    output_dir = Path(args.output)
    if args.no_render:
        renderer = NullRenderer()
    else:
        renderer = FrameRenderer(args.width, args.height, output_dir)

    initial_energies = population.energies()
    logger = _make_logger(args, initial_energies) if args.tb_logdir else None

    stop = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: stop.set())
    try:
        summary = main_loop(
            population,
            renderer,
            target_step=args.step,
            steps_per_frame=steps_per_render(args.fps, args.step),
            should_stop=stop.is_set,
            max_frames=args.frames,
            logger=logger,
            realtime=not args.no_sleep,
        )
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        renderer.close()
        if logger is not None:
            logger.close()
        population.close()

    summary.snapshot_path = save_snapshot(population, output_dir / SNAPSHOT_NAME)
    report = generate_report(population, initial_energies)
    summary.report_path = output_dir / REPORT_NAME
    summary.report_path.write_text(report)
    print(f"[swarm] Snapshot: {summary.snapshot_path}")
    print(f"[swarm] Report:   {summary.report_path}")
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simulate a swarm of double pendulums")
    parser.add_argument("--count", type=int, default=DEFAULT_POPULATION,
                        help=f"Number of pendulums (default: {DEFAULT_POPULATION})")
    parser.add_argument("--perturbation", type=float, default=DEFAULT_PERTURBATION,
                        help="Angle offset of arm B between neighbouring pendulums")
    parser.add_argument("--random", action="store_true",
                        help="Random initial states instead of a perturbed fan")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for --random (default: unseeded)")
    parser.add_argument("--step", type=float, default=DEFAULT_TARGET_STEP,
                        help=f"Maximum integration step in seconds (default: {DEFAULT_TARGET_STEP})")
    parser.add_argument("--fps", type=float, default=DEFAULT_FPS,
                        help=f"Target frames per second (default: {DEFAULT_FPS})")
    parser.add_argument("--frames", type=int, default=None,
                        help="Stop after this many frames (default: run until Ctrl-C)")
    parser.add_argument("--workers", type=int, default=None,
                        help="Stepping threads (default: CPU count)")
    parser.add_argument("--output", default=DEFAULT_OUTPUT_DIR,
                        help="Directory for frames, snapshot and report")
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH)
    parser.add_argument("--height", type=int, default=DEFAULT_HEIGHT)
    parser.add_argument("--no-render", action="store_true",
                        help="Step only, write no frames")
    parser.add_argument("--no-sleep", action="store_true",
                        help="Do not pace frames to real time")
    parser.add_argument("--tb-logdir", default=None,
                        help="Enable TensorBoard logging under this directory")
    parser.add_argument("--run-name", default=None,
                        help="TensorBoard run name (default: generated)")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.fps > 0:
        parser.error(f"--fps must be > 0, got {args.fps}")
    if not args.step > 0:
        parser.error(f"--step must be > 0, got {args.step}")
    if args.count < 0:
        parser.error(f"--count must be >= 0, got {args.count}")
    run(args)
    print("Done.")


if __name__ == "__main__":
    main()
