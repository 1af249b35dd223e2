"""Quadruped crawler multibody builder and state reader for PyBullet."""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pybullet as p

from src.shared.constants import BODY_NAME, LEG_COUNT, LOWER_LEGS, UPPER_LEGS
from src.shared.geometry import axis_angle_to_quat, yaw_quat

log = logging.getLogger(__name__)

AxisLimits = Optional[Tuple[float, float]]  # degrees, None when the axis has no joint


@dataclass(slots=True)
class CrawlerConfig:
    torso_half_extents: Tuple[float, float, float] = (0.25, 0.25, 0.08)
    torso_mass: float       = 4.0
    hip_mass: float         = 0.05
    upper_length: float     = 0.35
    upper_radius: float     = 0.05
    upper_mass: float       = 0.6
    lower_length: float     = 0.40
    lower_radius: float     = 0.04
    lower_mass: float       = 0.4
    lower_rest_pitch: float = 60.0          # degrees below the upper leg
    hip_limits: Tuple[float, float]   = (-35.0, 35.0)   # swing about world up  ("y")
    upper_limits: Tuple[float, float] = (-45.0, 45.0)   # lift                  ("x")
    lower_limits: Tuple[float, float] = (-45.0, 45.0)   # knee                  ("x")
    foot_friction: float    = 1.0
    torso_rgba: Tuple[float, float, float, float] = (0.9, 0.55, 0.1, 1.0)
    leg_rgba: Tuple[float, float, float, float]   = (0.6, 0.6, 0.65, 1.0)


@dataclass(slots=True)
class PartSpec:
    """Where a named body part lives inside the multibody."""
    name: str
    link_index: int                                   # -1 for the torso
    joints: Dict[str, int] = field(default_factory=dict)  # axis ("x"/"y"/"z") → joint index
    limits: Dict[str, AxisLimits] = field(default_factory=lambda: {"x": None, "y": None, "z": None})


@dataclass(slots=True)
class LinkState:
    position: np.ndarray
    orientation: Tuple[float, float, float, float]
    linear_velocity: np.ndarray
    angular_velocity: np.ndarray


def _box(client: int, half_extents, offset, rgba) -> Tuple[int, int]:
    collision = p.createCollisionShape(p.GEOM_BOX, halfExtents=list(half_extents),
                                       collisionFramePosition=list(offset), physicsClientId=client)
    visual = p.createVisualShape(p.GEOM_BOX, halfExtents=list(half_extents),
                                 visualFramePosition=list(offset), rgbaColor=list(rgba),
                                 physicsClientId=client)
    return collision, visual


class CrawlerBody:
    """
    Builds the crawler: a box torso with a leg at each corner.

    Each leg is a chain ``hip → upper → lower``.  The hip is a collision-free
    link whose revolute joint swings the leg about world up; the upper and
    lower segments pitch about the leg's lateral axis.  Link ``3*i`` is
    leg *i*'s hip, ``3*i + 1`` its upper segment, ``3*i + 2`` its lower one.
    """

    def __init__(self, config: CrawlerConfig = None):
        self.config = config or CrawlerConfig()
        self.body_id: Optional[int] = None
        self.client: Optional[int] = None
        self.parts: Dict[str, PartSpec] = {}
        self.start_position: List[float] = [0.0, 0.0, 0.0]
        self.start_orientation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)

    # ── construction ─────────────────────────────────────────────

    def build(self, client: int, position: List[float] = None,
              orientation: Tuple[float, float, float, float] = None) -> int:
        cfg = self.config
        self.client = client
        self.start_position = list(position or [0.0, 0.0, 0.45])
        self.start_orientation = tuple(orientation or (0.0, 0.0, 0.0, 1.0))

        torso_col, torso_vis = _box(client, cfg.torso_half_extents, (0, 0, 0), cfg.torso_rgba)
        upper_half = (cfg.upper_length / 2, cfg.upper_radius, cfg.upper_radius)
        lower_half = (cfg.lower_length / 2, cfg.lower_radius, cfg.lower_radius)
        upper_col, upper_vis = _box(client, upper_half, (cfg.upper_length / 2, 0, 0), cfg.leg_rgba)
        lower_col, lower_vis = _box(client, lower_half, (cfg.lower_length / 2, 0, 0), cfg.leg_rgba)

        hx, hy, _ = cfg.torso_half_extents
        knee_orn = axis_angle_to_quat((0, 1, 0), math.radians(cfg.lower_rest_pitch))

        masses, cols, viss, positions, orientations = [], [], [], [], []
        inertial_pos, parents, joint_types, axes = [], [], [], []
        for i in range(LEG_COUNT):
            angle = math.radians(45.0 + 90.0 * i)
            corner = [hx * math.copysign(1.0, round(math.cos(angle), 6)),
                      hy * math.copysign(1.0, round(math.sin(angle), 6)), 0.0]
            base = 3 * i
            # hip
            masses.append(cfg.hip_mass)
            cols.append(-1)
            viss.append(-1)
            positions.append(corner)
            orientations.append(yaw_quat(angle))
            inertial_pos.append([0, 0, 0])
            parents.append(0)
            joint_types.append(p.JOINT_REVOLUTE)
            axes.append([0, 0, 1])
            # upper
            masses.append(cfg.upper_mass)
            cols.append(upper_col)
            viss.append(upper_vis)
            positions.append([0, 0, 0])
            orientations.append((0, 0, 0, 1))
            inertial_pos.append([cfg.upper_length / 2, 0, 0])
            parents.append(base + 1)
            joint_types.append(p.JOINT_REVOLUTE)
            axes.append([0, 1, 0])
            # lower
            masses.append(cfg.lower_mass)
            cols.append(lower_col)
            viss.append(lower_vis)
            positions.append([cfg.upper_length, 0, 0])
            orientations.append(knee_orn)
            inertial_pos.append([cfg.lower_length / 2, 0, 0])
            parents.append(base + 2)
            joint_types.append(p.JOINT_REVOLUTE)
            axes.append([0, 1, 0])

        self.body_id = p.createMultiBody(
            baseMass=cfg.torso_mass,
            baseCollisionShapeIndex=torso_col,
            baseVisualShapeIndex=torso_vis,
            basePosition=self.start_position,
            baseOrientation=self.start_orientation,
            linkMasses=masses,
            linkCollisionShapeIndices=cols,
            linkVisualShapeIndices=viss,
            linkPositions=positions,
            linkOrientations=orientations,
            linkInertialFramePositions=inertial_pos,
            linkInertialFrameOrientations=[(0, 0, 0, 1)] * len(masses),
            linkParentIndices=parents,
            linkJointTypes=joint_types,
            linkJointAxis=axes,
            physicsClientId=client,
        )

        self._register_parts()
        self._configure_joints()
        log.info("CrawlerBody: id=%d, %d links, %d parts",
                 self.body_id, p.getNumJoints(self.body_id, physicsClientId=client), len(self.parts))
        return self.body_id

    def _register_parts(self) -> None:
        cfg = self.config
        self.parts = {BODY_NAME: PartSpec(name=BODY_NAME, link_index=-1)}
        for i in range(LEG_COUNT):
            hip, upper, lower = 3 * i, 3 * i + 1, 3 * i + 2
            self.parts[UPPER_LEGS[i]] = PartSpec(
                name=UPPER_LEGS[i], link_index=upper,
                joints={"x": upper, "y": hip},
                limits={"x": cfg.upper_limits, "y": cfg.hip_limits, "z": None},
            )
            self.parts[LOWER_LEGS[i]] = PartSpec(
                name=LOWER_LEGS[i], link_index=lower,
                joints={"x": lower},
                limits={"x": cfg.lower_limits, "y": None, "z": None},
            )

    def _configure_joints(self) -> None:
        limits = {}
        for spec in self.parts.values():
            for axis, joint in spec.joints.items():
                limits[joint] = spec.limits[axis]
        for joint, (lo, hi) in limits.items():
            # default velocity motors would hold the joints rigid
            p.setJointMotorControl2(self.body_id, joint, p.VELOCITY_CONTROL, force=0,
                                    physicsClientId=self.client)
            p.changeDynamics(self.body_id, joint,
                             jointLowerLimit=math.radians(lo), jointUpperLimit=math.radians(hi),
                             physicsClientId=self.client)
        for i in range(LEG_COUNT):
            p.changeDynamics(self.body_id, 3 * i + 2, lateralFriction=self.config.foot_friction,
                             physicsClientId=self.client)

    # ── state ────────────────────────────────────────────────────

    def link_state(self, link_index: int) -> LinkState:
        if link_index < 0:
            pos, orn = p.getBasePositionAndOrientation(self.body_id, physicsClientId=self.client)
            lin, ang = p.getBaseVelocity(self.body_id, physicsClientId=self.client)
        else:
            s = p.getLinkState(self.body_id, link_index, computeLinkVelocity=1,
                               physicsClientId=self.client)
            # 4/5 = link frame pose, 6/7 = world velocities
            pos, orn, lin, ang = s[4], s[5], s[6], s[7]
        return LinkState(position=np.array(pos, dtype=np.float64), orientation=tuple(orn),
                         linear_velocity=np.array(lin, dtype=np.float64),
                         angular_velocity=np.array(ang, dtype=np.float64))

    def joint_angle(self, joint: int) -> float:
        return p.getJointState(self.body_id, joint, physicsClientId=self.client)[0]

    def joint_torque(self, joint: int) -> float:
        return p.getJointState(self.body_id, joint, physicsClientId=self.client)[3]

    def is_touching(self, link_index: int, other_body: Optional[int]) -> bool:
        if other_body is None:
            return False
        contacts = p.getContactPoints(bodyA=self.body_id, bodyB=other_body, linkIndexA=link_index,
                                      physicsClientId=self.client)
        return len(contacts) > 0
