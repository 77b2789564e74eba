"""Physical constants and default scenario values for the pendulum swarm."""

import math

# ---------------------------------------------------------------------------
# Physics
# ---------------------------------------------------------------------------
GRAVITY = 100.0
PI = math.pi
TWO_PI = 2.0 * math.pi

# ---------------------------------------------------------------------------
# Default scenario (pixel-scale arms, heavy upper bob)
# ---------------------------------------------------------------------------
DEFAULT_LENGTH_A = 180.0
DEFAULT_MASS_A = 10.0
DEFAULT_LENGTH_B = 162.0
DEFAULT_MASS_B = 1.0

DEFAULT_ANGLE_A = math.pi
DEFAULT_ANGULAR_VELOCITY_A = math.pi / 2.0
DEFAULT_ANGLE_B = math.pi - 3.0
DEFAULT_ANGULAR_VELOCITY_B = math.pi / 4.0

DEFAULT_POPULATION = 5_000
DEFAULT_PERTURBATION = 1e-8   # added to arm B's angle, times the index

# ---------------------------------------------------------------------------
# Run loop / rendering
# ---------------------------------------------------------------------------
DEFAULT_TARGET_STEP = 1e-4    # seconds of simulated time per integration step
DEFAULT_FPS = 60.0
DEFAULT_WIDTH = 1080
DEFAULT_HEIGHT = 1080
DEFAULT_OUTPUT_DIR = "out"
SNAPSHOT_NAME = "last_abort.json"
REPORT_NAME = "diagnostic_report.md"
