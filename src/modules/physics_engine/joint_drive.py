"""
#WHERE
    Owned by rl_controller/agent.py (CrawlerAgent) and exercised by
    test_joint_drive.py.

#WHAT
    Joint-drive controller: one BodyPart record per named crawler segment,
    per-axis target rotations and strengths mapped from normalised policy
    outputs onto PyBullet position motors, contact bookkeeping against the
    ground / target / obstacle, and reset to the starting pose.

#INPUT
    CrawlerBody (built multibody + part table), normalised targets in [-1, 1].

#OUTPUT
    Motor commands to PyBullet; per-part state read back for observations.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import pybullet as p

from src.shared.constants import GROUND_CONTACT_PENALTY
from src.shared.geometry import inverse_lerp, lerp, quat_multiply, yaw_quat
from .crawler import CrawlerBody, LinkState, PartSpec

log = logging.getLogger(__name__)

AXES = ("x", "y", "z")


@dataclass(slots=True)
class JointDriveConfig:
    max_joint_spring: float      = 0.3    # PyBullet positionGain
    joint_dampen: float          = 0.5    # PyBullet velocityGain
    max_joint_force_limit: float = 40.0   # N·m at strength = +1


@dataclass(slots=True)
class GroundContact:
    touching_ground: bool = False
    agent_done_on_ground_contact: bool = False
    penalize_ground_contact: bool = False
    ground_contact_penalty: float = GROUND_CONTACT_PENALTY


@dataclass(slots=True)
class TargetContact:
    touching_target: bool = False


@dataclass(slots=True)
class ObstacleContact:
    touching_obstacle: bool = False


@dataclass(slots=True)
class ContactBodies:
    """PyBullet ids the controller checks contacts against."""
    ground: Optional[int] = None
    target: Optional[int] = None
    obstacle: Optional[int] = None


class BodyPart:
    """One articulated crawler segment and its joint drive."""

    def __init__(self, spec: PartSpec, crawler: CrawlerBody, controller: "JointDriveController"):
        self.spec = spec
        self.crawler = crawler
        self.controller = controller
        self.ground_contact = GroundContact()
        self.target_contact = TargetContact()
        self.obstacle_contact: Optional[ObstacleContact] = None

        self.start_joint_angles: Dict[str, float] = {
            axis: crawler.joint_angle(joint) for axis, joint in spec.joints.items()
        }
        self.current_eular_joint_rotation = np.zeros(3, dtype=np.float64)  # degrees
        self.current_x_normalized_rot = 0.0
        self.current_y_normalized_rot = 0.0
        self.current_z_normalized_rot = 0.0
        self.current_strength = 0.0
        self.current_joint_torque: Dict[str, float] = {}
        self.current_joint_torque_sqr_mag = 0.0

    def __repr__(self) -> str:
        return f"BodyPart({self.name!r}, link={self.link_index})"

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def link_index(self) -> int:
        return self.spec.link_index

    @property
    def has_joint(self) -> bool:
        return bool(self.spec.joints)

    def state(self) -> LinkState:
        return self.crawler.link_state(self.link_index)

    # ── actuation ────────────────────────────────────────────────

    def set_joint_target_rotation(self, x: float, y: float, z: float) -> None:
        """Map normalised [-1, 1] targets onto each axis' angular limits."""
        rotation = np.zeros(3, dtype=np.float64)
        normalized = [0.0, 0.0, 0.0]
        for i, (axis, value) in enumerate(zip(AXES, (x, y, z))):
            limits = self.spec.limits.get(axis)
            if limits is None:
                continue
            lo, hi = limits
            rotation[i] = lerp(lo, hi, (value + 1.0) * 0.5)
            normalized[i] = inverse_lerp(lo, hi, rotation[i])
        self.current_x_normalized_rot, self.current_y_normalized_rot, self.current_z_normalized_rot = normalized
        self.current_eular_joint_rotation = rotation
        self._apply_drive()

    def set_joint_strength(self, strength: float) -> None:
        """Map a normalised [-1, 1] strength onto [0, max_joint_force_limit]."""
        self.current_strength = (strength + 1.0) * 0.5 * self.controller.config.max_joint_force_limit
        self._apply_drive()

    def _apply_drive(self) -> None:
        cfg = self.controller.config
        for i, axis in enumerate(AXES):
            joint = self.spec.joints.get(axis)
            if joint is None:
                continue
            p.setJointMotorControl2(
                self.crawler.body_id, joint,
                controlMode=p.POSITION_CONTROL,
                targetPosition=math.radians(self.current_eular_joint_rotation[i]),
                force=self.current_strength,
                positionGain=cfg.max_joint_spring,
                velocityGain=cfg.joint_dampen,
                physicsClientId=self.crawler.client,
            )

    # ── reset ────────────────────────────────────────────────────

    def reset(self, spawn_yaw: float = 0.0) -> None:
        """Restore starting pose (root turned by *spawn_yaw* radians), zero velocity, clear contacts."""
        crawler, client = self.crawler, self.crawler.client
        if self.link_index < 0:
            orientation = quat_multiply(yaw_quat(spawn_yaw), crawler.start_orientation)
            p.resetBasePositionAndOrientation(crawler.body_id, crawler.start_position, orientation,
                                              physicsClientId=client)
            p.resetBaseVelocity(crawler.body_id, [0, 0, 0], [0, 0, 0], physicsClientId=client)
        for axis, joint in self.spec.joints.items():
            p.resetJointState(crawler.body_id, joint, targetValue=self.start_joint_angles[axis],
                              targetVelocity=0.0, physicsClientId=client)
        self.ground_contact.touching_ground = False
        self.target_contact.touching_target = False
        if self.obstacle_contact is not None:
            self.obstacle_contact.touching_obstacle = False


class JointDriveController:
    """Owns every BodyPart, keyed by name in registration order."""

    def __init__(self, crawler: CrawlerBody, config: JointDriveConfig = None):
        self.crawler = crawler
        self.config = config or JointDriveConfig()
        self.body_parts_dict: Dict[str, BodyPart] = {}
        self.contact_bodies = ContactBodies()

    def setup_body_part(self, name: str) -> BodyPart:
        if name in self.body_parts_dict:
            raise ValueError(f"Body part already registered: {name}")
        spec = self.crawler.parts.get(name)
        if spec is None:
            raise ValueError(f"Unknown body part: {name}")
        bp = BodyPart(spec, self.crawler, self)
        if self.contact_bodies.obstacle is not None:
            bp.obstacle_contact = ObstacleContact()
        self.body_parts_dict[name] = bp
        return bp

    def set_contact_bodies(self, ground: int = None, target: int = None, obstacle: int = None) -> None:
        self.contact_bodies = ContactBodies(ground=ground, target=target, obstacle=obstacle)
        for bp in self.body_parts_dict.values():
            bp.obstacle_contact = ObstacleContact() if obstacle is not None else None

    def get_current_joint_forces(self) -> None:
        for bp in self.body_parts_dict.values():
            if not bp.has_joint:
                continue
            bp.current_joint_torque = {
                axis: self.crawler.joint_torque(joint) for axis, joint in bp.spec.joints.items()
            }
            bp.current_joint_torque_sqr_mag = float(sum(t * t for t in bp.current_joint_torque.values()))

    def update_contacts(self) -> List[BodyPart]:
        """Refresh every contact flag; return parts that just started touching the ground."""
        bodies = self.contact_bodies
        entered = []
        for bp in self.body_parts_dict.values():
            was_grounded = bp.ground_contact.touching_ground
            bp.ground_contact.touching_ground = self.crawler.is_touching(bp.link_index, bodies.ground)
            bp.target_contact.touching_target = self.crawler.is_touching(bp.link_index, bodies.target)
            if bp.obstacle_contact is not None:
                bp.obstacle_contact.touching_obstacle = self.crawler.is_touching(bp.link_index,
                                                                                 bodies.obstacle)
            if bp.ground_contact.touching_ground and not was_grounded:
                entered.append(bp)
        return entered

    def reset_all(self, spawn_yaw: float = 0.0) -> None:
        for bp in self.body_parts_dict.values():
            bp.reset(spawn_yaw)
        log.debug("Reset %d body parts, spawn yaw %.1f deg",
                  len(self.body_parts_dict), math.degrees(spawn_yaw))
