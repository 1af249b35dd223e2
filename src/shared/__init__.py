"""
#WHERE
    Imported by physics_engine, rl_controller and by tests.

#WHAT
    Shared constants and frame / quaternion helpers.

#INPUT
    None (constant registries, pure functions).

#OUTPUT
    Crawler layout constants, reward constants, geometry helpers.
"""

from .constants import (
    ACTION_SIZE,
    BODY_NAME,
    BODY_PART_NAMES,
    LOWER_LEGS,
    OBSERVATION_SIZE,
    UPPER_LEGS,
)
from .geometry import (
    inverse_lerp,
    inverse_transform_direction,
    inverse_transform_point,
    lerp,
    look_rotation,
    normalize,
    quat_to_mat,
    yaw_quat,
)

__all__ = [
    "ACTION_SIZE",
    "BODY_NAME",
    "BODY_PART_NAMES",
    "LOWER_LEGS",
    "OBSERVATION_SIZE",
    "UPPER_LEGS",
    "inverse_lerp",
    "inverse_transform_direction",
    "inverse_transform_point",
    "lerp",
    "look_rotation",
    "normalize",
    "quat_to_mat",
    "yaw_quat",
]
