"""
#WHERE
    Imported by physics_engine, rl_controller and tests; single source of
    truth for physics, layout and reward constants.

#WHAT
    Centralised constants used across 2+ modules.  Edit here, not in
    individual module files.

#INPUT / #OUTPUT
    Pure constants, no I/O.
"""

# ── Physics ──────────────────────────────────────────────────────────────

GRAVITY: float = -9.81          # m/s², PyBullet Z-up convention
DEFAULT_PHYSICS_HZ: int = 240   # simulation steps per second
WORLD_UP = (0.0, 0.0, 1.0)
BODY_FORWARD = (1.0, 0.0, 0.0)  # crawler torso local +X
BODY_UP = (0.0, 0.0, 1.0)

# ── Rendering ────────────────────────────────────────────────────────────

DEFAULT_FPS: int = 24
DEFAULT_VIDEO_WIDTH:  int = 640
DEFAULT_VIDEO_HEIGHT: int = 480

GROUNDED_RGBA   = (0.1, 0.8, 0.1, 1.0)
UNGROUNDED_RGBA = (0.8, 0.1, 0.1, 1.0)

# ── Crawler layout ───────────────────────────────────────────────────────

BODY_NAME = "body"
LEG_COUNT: int = 4
UPPER_LEGS = tuple(f"leg{i}_upper" for i in range(LEG_COUNT))
LOWER_LEGS = tuple(f"leg{i}_lower" for i in range(LEG_COUNT))
BODY_PART_NAMES = (BODY_NAME,) + tuple(
    name for i in range(LEG_COUNT) for name in (UPPER_LEGS[i], LOWER_LEGS[i])
)

# 2 (x, y) per upper leg + 1 (x) per lower leg + 1 strength per leg part
ACTION_SIZE: int = 2 * LEG_COUNT + LEG_COUNT + 2 * LEG_COUNT
# raycast + forward + up + root part + 14 per leg part
OBSERVATION_SIZE: int = 1 + 3 + 3 + 7 + 14 * 2 * LEG_COUNT

# ── Observation / reward ─────────────────────────────────────────────────

RAYCAST_MAX_DISTANCE: float = 10.0

TARGET_TOUCH_REWARD: float     = 1.0
OBSTACLE_TOUCH_PENALTY: float  = -0.1
MOVING_TOWARDS_SCALE: float    = 0.03
FACING_SCALE: float            = 0.01
TIME_PENALTY: float            = -0.001
GROUND_CONTACT_PENALTY: float  = -1.0

DEFAULT_TARGET_SPAWN_HEIGHT: float = 5.0
