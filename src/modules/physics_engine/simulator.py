"""
#WHERE
    Used by rl_controller/env.py (CrawlerEnv), rollout.py and main.py.

#WHAT
    PyBullet fixed-step runner: advances physics at physics_hz, renders
    RGB frames from a follow camera, and writes episode videos.

#INPUT
    Scene (connected client), CameraConfig, frames to encode.

#OUTPUT
    FrameData per rendered frame; optionally an MP4 video file.
"""

import os
import logging
from typing import List, Sequence

import numpy as np
import pybullet as p

from src.shared.constants import DEFAULT_FPS, DEFAULT_PHYSICS_HZ
from .camera import CameraConfig, FollowCamera, FrameData
from .scene import Scene

log = logging.getLogger(__name__)


class Simulator:
    def __init__(self, scene: Scene, camera: CameraConfig = None, physics_hz: int = DEFAULT_PHYSICS_HZ):
        if physics_hz <= 0:
            raise ValueError(f"physics_hz must be positive, got {physics_hz}")
        self.scene = scene
        self.camera = FollowCamera(camera or CameraConfig())
        self.current_time = 0.0
        self.physics_hz = physics_hz

    @property
    def dt(self) -> float:
        return 1.0 / self.physics_hz

    def configure(self) -> None:
        """Push the fixed time step to the engine; call once the scene is connected."""
        p.setTimeStep(self.dt, physicsClientId=self.scene.client)

    def step(self):
        p.stepSimulation(physicsClientId=self.scene.client)
        self.current_time += self.dt

    def render(self, follow: Sequence[float] = None) -> FrameData:
        config = self.camera.track(follow) if follow is not None else self.camera.config
        client = self.scene.client

        view_matrix = p.computeViewMatrixFromYawPitchRoll(
            cameraTargetPosition=config.target,
            distance=config.distance,
            yaw=config.yaw, pitch=config.pitch,
            roll=0, upAxisIndex=2,
        )

        aspect = config.width / config.height
        proj_matrix = p.computeProjectionMatrixFOV(
            fov=config.fov, aspect=aspect,
            nearVal=config.near, farVal=config.far,
        )

        _, _, rgb, _, _ = p.getCameraImage(
            width=config.width, height=config.height,
            viewMatrix=view_matrix, projectionMatrix=proj_matrix,
            renderer=p.ER_TINY_RENDERER,
            physicsClientId=client,
        )

        rgb_array = np.array(rgb, dtype=np.uint8).reshape((config.height, config.width, 4))[:, :, :3]
        return FrameData(timestamp=self.current_time, rgb=rgb_array)

    def reset(self):
        self.current_time = 0.0
        self.camera.reset()

    def create_video(self, frames: List[FrameData], output_path: str, fps: int = DEFAULT_FPS) -> str:
        import imageio
        if not frames:
            raise ValueError("No frames to encode")
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        writer = imageio.get_writer(output_path, fps=fps, codec='libx264')
        try:
            for frame in frames:
                writer.append_data(frame.rgb)
        finally:
            writer.close()
        log.info("Video created: %s (%d frames)", output_path, len(frames))
        return output_path
