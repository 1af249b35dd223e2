"""
#WHERE
    Used by simulator.py (Simulator.render), rl_controller/env.py
    (CrawlerEnv.render) and tests.

#WHAT
    Camera setup for crawler episodes.  CameraConfig holds the static
    projection parameters; FollowCamera keeps the crawler in frame by
    easing the look-at target towards the torso every rendered frame.

#INPUT
    Camera parameters (yaw, pitch, distance, target) and the tracked
    body position.

#OUTPUT
    CameraConfig with an updated target, FrameData per rendered frame.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from src.shared.constants import DEFAULT_VIDEO_HEIGHT, DEFAULT_VIDEO_WIDTH


@dataclass
class CameraConfig:
    width: int = DEFAULT_VIDEO_WIDTH
    height: int = DEFAULT_VIDEO_HEIGHT
    fov: float = 60.0
    near: float = 0.1
    far: float = 100.0
    target: List[float] = field(default_factory=lambda: [0, 0, 0.3])
    distance: float = 4.0
    yaw: float = 45.0
    pitch: float = -30.0


@dataclass
class FrameData:
    timestamp: float
    rgb: np.ndarray


class FollowCamera:
    """Exponential-smoothing chase camera around a tracked position."""

    def __init__(self, config: CameraConfig = None, smoothing: float = 0.2):
        if not 0.0 < smoothing <= 1.0:
            raise ValueError(f"smoothing must be in (0, 1], got {smoothing}")
        self.config = config or CameraConfig()
        self.smoothing = smoothing
        self._snapped = False

    def reset(self) -> None:
        self._snapped = False

    def track(self, position: Sequence[float]) -> CameraConfig:
        """Move the look-at target towards *position*; first call snaps."""
        position = [float(c) for c in position]
        if not self._snapped:
            self.config.target = position
            self._snapped = True
        else:
            t = self.smoothing
            self.config.target = [
                cur + (new - cur) * t for cur, new in zip(self.config.target, position)
            ]
        return self.config
