"""Physics scene management with Factory pattern for shape creation."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pybullet as p
import pybullet_data

from src.shared.constants import GRAVITY

log = logging.getLogger(__name__)


@dataclass(slots=True)
class PhysicsObject:
    name: str
    body_id: int = -1
    mass: float = 1.0
    position: List[float] = field(default_factory=lambda: [0, 0, 0])
    orientation: List[float] = field(default_factory=lambda: [0, 0, 0, 1])
    color: List[float] = field(default_factory=lambda: [0.5, 0.5, 0.5, 1.0])
    is_static: bool = False


@dataclass(slots=True)
class RayHit:
    body_id: int
    link_index: int
    distance: float
    position: Tuple[float, float, float]


class ShapeFactory:
    """Collision + visual shape pairs for the scene's props (target, obstacle)."""

    @staticmethod
    def create(shape: str, size: List[float], color: List[float], client: int = 0) -> Tuple[int, int]:
        creators = {"box": ShapeFactory._box}
        creator = creators.get(shape)
        if not creator:
            raise ValueError(f"Unknown shape: {shape}")
        return creator(size, color, client)

    @staticmethod
    def _box(half_extents: List[float], color: List[float], client: int) -> Tuple[int, int]:
        collision = p.createCollisionShape(p.GEOM_BOX, halfExtents=half_extents, physicsClientId=client)
        visual = p.createVisualShape(p.GEOM_BOX, halfExtents=half_extents, rgbaColor=color,
                                     physicsClientId=client)
        return collision, visual


class Scene:
    """One PyBullet client holding the ground, the crawler's target and an optional obstacle."""

    MAX_RAY_HITS = 16

    def __init__(self, gravity: float = GRAVITY):
        self.gravity = gravity
        self.client: Optional[int] = None
        self.objects: Dict[str, PhysicsObject] = {}
        self.ground_id: Optional[int] = None
        self._is_setup = False

    @property
    def is_setup(self) -> bool:
        return self._is_setup

    def setup(self, use_gui: bool = False) -> bool:
        try:
            mode = p.GUI if use_gui else p.DIRECT
            self.client = p.connect(mode)

            if self.client < 0:
                log.error("PyBullet connection failed")
                self.client = None
                return False

            p.setAdditionalSearchPath(pybullet_data.getDataPath(), physicsClientId=self.client)
            p.setGravity(0, 0, self.gravity, physicsClientId=self.client)
            p.setRealTimeSimulation(0, physicsClientId=self.client)

            self._is_setup = True
            log.info("Physics scene ready (client=%d, gravity=%s)", self.client, self.gravity)
            return True
        except p.error as e:
            log.error("Scene setup failed: %s", e)
            return False

    def add_ground(self) -> int:
        self.ground_id = p.loadURDF("plane.urdf", physicsClientId=self.client)
        self.objects["ground"] = PhysicsObject(name="ground", body_id=self.ground_id,
                                               mass=0.0, is_static=True)
        return self.ground_id

    def add_primitive(self, name: str, shape: str = "box", size: List[float] = None,
                      mass: float = 1.0, position: List[float] = None,
                      color: List[float] = None, is_static: bool = False) -> PhysicsObject:
        size = size or [0.1, 0.1, 0.1]
        position = position or [0, 0, 0.5]
        color = color or [0.5, 0.5, 0.5, 1.0]

        collision, visual = ShapeFactory.create(shape, size, color, self.client)

        actual_mass = 0 if is_static else mass
        body_id = p.createMultiBody(
            baseMass=actual_mass,
            baseCollisionShapeIndex=collision,
            baseVisualShapeIndex=visual,
            basePosition=position,
            physicsClientId=self.client,
        )

        obj = PhysicsObject(name=name, body_id=body_id, mass=mass,
                            position=list(position), color=list(color), is_static=is_static)
        self.objects[name] = obj
        log.info("Added %s '%s'", shape, name)
        return obj

    def get_object(self, name: str) -> Optional[PhysicsObject]:
        return self.objects.get(name)

    def get_object_state(self, name: str) -> Tuple[List[float], List[float]]:
        obj = self.objects.get(name)
        if obj is None:
            return [0, 0, 0], [0, 0, 0, 1]
        pos, orn = p.getBasePositionAndOrientation(obj.body_id, physicsClientId=self.client)
        return list(pos), list(orn)

    def set_position(self, name: str, position: List[float]) -> bool:
        """Teleport a body, keeping its orientation and clearing its velocity."""
        obj = self.objects.get(name)
        if obj is None:
            return False
        _, orn = p.getBasePositionAndOrientation(obj.body_id, physicsClientId=self.client)
        p.resetBasePositionAndOrientation(obj.body_id, list(position), orn, physicsClientId=self.client)
        p.resetBaseVelocity(obj.body_id, [0, 0, 0], [0, 0, 0], physicsClientId=self.client)
        obj.position = list(position)
        return True

    def set_color(self, body_id: int, link_index: int, rgba) -> None:
        p.changeVisualShape(body_id, link_index, rgbaColor=list(rgba), physicsClientId=self.client)

    def raycast(self, start: List[float], direction: List[float], max_distance: float,
                ignore: Tuple[int, int] = None) -> Optional[RayHit]:
        """
        First hit along a ray, or None.

        ``ignore`` is a (body_id, link_index) pair whose collider the ray
        passes through, whether it starts inside it or enters it on the way.
        *direction* is expected to be unit length.
        """
        origin = [float(c) for c in start]
        end = [origin[i] + float(direction[i]) * max_distance for i in range(3)]
        ignored = tuple(ignore) if ignore is not None else None

        # every hit along the segment, k-th one per query; order is not guaranteed
        best = None
        for hit_number in range(self.MAX_RAY_HITS):
            body_id, link, fraction, hit_pos, _ = p.rayTestBatch(
                [origin], [end], reportHitNumber=hit_number, physicsClientId=self.client)[0]
            if body_id < 0:
                break
            if (body_id, link) == ignored:
                continue
            if best is None or fraction < best[2]:
                best = (body_id, link, fraction, hit_pos)

        if best is None:
            return None
        body_id, link, fraction, hit_pos = best
        return RayHit(body_id=body_id, link_index=link, distance=fraction * max_distance,
                      position=tuple(hit_pos))

    def cleanup(self):
        if self.client is not None:
            p.disconnect(physicsClientId=self.client)
            self.client = None
            self._is_setup = False
            self.objects.clear()
            log.info("Scene cleaned up")
