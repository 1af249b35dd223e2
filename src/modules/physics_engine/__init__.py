"""
#WHERE
    Imported by rl_controller (agent, env), main.py and tests.

#WHAT
    Physics Engine Module: PyBullet scene, quadruped crawler multibody,
    joint-drive controller, fixed-step simulator and follow camera.

#INPUT
    CrawlerConfig, JointDriveConfig, camera config.

#OUTPUT
    Connected Scene, built CrawlerBody, BodyPart records, rendered frames.
"""

from .scene import Scene, PhysicsObject, RayHit, ShapeFactory
from .camera import CameraConfig, FollowCamera, FrameData
from .simulator import Simulator
from .crawler import CrawlerBody, CrawlerConfig, LinkState, PartSpec
from .joint_drive import (
    BodyPart, ContactBodies, GroundContact, JointDriveConfig, JointDriveController,
    ObstacleContact, TargetContact,
)

__all__ = [
    'Scene', 'PhysicsObject', 'RayHit', 'ShapeFactory',
    'CameraConfig', 'FollowCamera', 'FrameData', 'Simulator',
    'CrawlerBody', 'CrawlerConfig', 'LinkState', 'PartSpec',
    'BodyPart', 'ContactBodies', 'GroundContact', 'JointDriveConfig',
    'JointDriveController', 'ObstacleContact', 'TargetContact',
]
