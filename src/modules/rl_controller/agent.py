"""
#WHERE
    Driven by rl_controller/env.py (CrawlerEnv) once per simulation tick.

#WHAT
    Crawler agent: the policy-facing adapter around the PyBullet crawler.
    Assembles the 126-float observation in the target-relative frame,
    slices the 20-float action into joint targets and strengths on
    decision ticks, and accumulates the shaped walking reward.

#INPUT
    JointDriveController (body parts), Scene (ground / target / obstacle),
    action vector in [-1, 1].

#OUTPUT
    Observation vector, accumulated reward, done flag.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List

import numpy as np

from src.modules.physics_engine.joint_drive import BodyPart, JointDriveController
from src.modules.physics_engine.scene import Scene
from src.shared.constants import (
    ACTION_SIZE,
    BODY_FORWARD,
    BODY_NAME,
    BODY_PART_NAMES,
    BODY_UP,
    DEFAULT_TARGET_SPAWN_HEIGHT,
    FACING_SCALE,
    GROUNDED_RGBA,
    LOWER_LEGS,
    MOVING_TOWARDS_SCALE,
    OBSERVATION_SIZE,
    OBSTACLE_TOUCH_PENALTY,
    RAYCAST_MAX_DISTANCE,
    TARGET_TOUCH_REWARD,
    TIME_PENALTY,
    UNGROUNDED_RGBA,
    UPPER_LEGS,
)
from src.shared.geometry import (
    inverse_transform_direction,
    inverse_transform_point,
    look_rotation,
    normalize,
    random_inside_unit_sphere,
    rotate,
)

log = logging.getLogger(__name__)

TARGET = "target"
OBSTACLE = "obstacle"
GROUND = "ground"


@dataclass(slots=True)
class AgentConfig:
    detect_targets: bool                  = True
    avoid_obstacles: bool                 = False
    respawn_target_when_touched: bool     = True
    target_spawn_radius: float            = 10.0
    target_spawn_height: float            = DEFAULT_TARGET_SPAWN_HEIGHT
    reward_moving_towards_target: bool    = True
    reward_facing_target: bool            = True
    reward_use_time_penalty: bool         = True
    use_foot_grounded_visualization: bool = False
    decision_interval: int                = 5     # ticks per policy decision

    def __post_init__(self):
        if self.decision_interval < 1:
            raise ValueError(f"decision_interval must be >= 1, got {self.decision_interval}")
        if self.target_spawn_radius < 0:
            raise ValueError(f"target_spawn_radius must be >= 0, got {self.target_spawn_radius}")


class CrawlerAgent:
    """Observation / action / reward adapter for one crawler."""

    def __init__(self, jd_controller: JointDriveController, scene: Scene,
                 config: AgentConfig = None, rng: np.random.Generator = None):
        self.config = config or AgentConfig()
        self.jd_controller = jd_controller
        self.scene = scene
        self.rng = rng if rng is not None else np.random.default_rng()

        self.reward = 0.0
        self.cumulative_reward = 0.0
        self.step_count = 0
        self.targets_reached = 0
        self._done = False

        self.is_new_decision_step = False
        self.current_decision_step = 1
        self.dir_to_target = np.zeros(3, dtype=np.float64)
        self.target_dir_matrix = np.eye(3)
        self.moving_towards_dot = 0.0
        self.facing_dot = 0.0

    # ── lifecycle ────────────────────────────────────────────────

    def initialize_agent(self) -> None:
        self.current_decision_step = 1
        self.dir_to_target = self._target_position() - self._body_state().position
        for name in BODY_PART_NAMES:
            self.jd_controller.setup_body_part(name)
        body = self.jd_controller.body_parts_dict[BODY_NAME]
        body.ground_contact.agent_done_on_ground_contact = True
        body.ground_contact.penalize_ground_contact = True
        log.info("CrawlerAgent ready: %d body parts, decision interval %d",
                 len(self.jd_controller.body_parts_dict), self.config.decision_interval)

    def agent_reset(self) -> None:
        """Aim the spawn yaw at the target, randomise it, reset every body part."""
        yaw = 0.0
        if self.dir_to_target.any():
            yaw = math.atan2(self.dir_to_target[1], self.dir_to_target[0])
        yaw += math.radians(self.rng.uniform(0.0, 360.0))
        self.jd_controller.reset_all(spawn_yaw=yaw)

        self.is_new_decision_step = True
        self.current_decision_step = 1
        self.reward = 0.0
        self.cumulative_reward = 0.0
        self.step_count = 0
        self.targets_reached = 0
        self._done = False

    def is_done(self) -> bool:
        return self._done

    def done(self) -> None:
        self._done = True

    # ── reward bookkeeping ───────────────────────────────────────

    def add_reward(self, increment: float) -> None:
        self.reward += increment
        self.cumulative_reward += increment

    def set_reward(self, value: float) -> None:
        self.cumulative_reward += value - self.reward
        self.reward = value

    def consume_reward(self) -> float:
        """Reward accumulated since the last call."""
        reward, self.reward = self.reward, 0.0
        return reward

    # ── decision timer ───────────────────────────────────────────

    def increment_decision_timer(self) -> None:
        interval = self.config.decision_interval
        if self.current_decision_step == interval or interval == 1:
            self.current_decision_step = 1
            self.is_new_decision_step = True
        else:
            self.current_decision_step += 1
            self.is_new_decision_step = False

    # ── observations ─────────────────────────────────────────────

    def collect_observation_body_part(self, bp: BodyPart, body_state, obs: List[float]) -> None:
        state = bp.state()
        obs.append(1.0 if bp.ground_contact.touching_ground else 0.0)
        obs.extend(inverse_transform_direction(self.target_dir_matrix, state.linear_velocity))
        obs.extend(inverse_transform_direction(self.target_dir_matrix, state.angular_velocity))

        if bp.name != BODY_NAME:
            obs.extend(inverse_transform_point(body_state.position, body_state.orientation, state.position))
            obs.append(bp.current_x_normalized_rot)
            obs.append(bp.current_y_normalized_rot)
            obs.append(bp.current_z_normalized_rot)
            obs.append(bp.current_strength / self.jd_controller.config.max_joint_force_limit)

    def collect_observations(self) -> np.ndarray:
        self.jd_controller.get_current_joint_forces()

        body_state = self._body_state()
        self.dir_to_target = self._target_position() - body_state.position
        self.target_dir_matrix = look_rotation(self.dir_to_target)

        obs: List[float] = []
        crawler = self.jd_controller.crawler
        hit = self.scene.raycast(body_state.position, (0.0, 0.0, -1.0), RAYCAST_MAX_DISTANCE,
                                 ignore=(crawler.body_id, -1))
        obs.append(hit.distance if hit is not None else RAYCAST_MAX_DISTANCE)

        forward = rotate(body_state.orientation, BODY_FORWARD)
        up = rotate(body_state.orientation, BODY_UP)
        obs.extend(inverse_transform_direction(self.target_dir_matrix, forward))
        obs.extend(inverse_transform_direction(self.target_dir_matrix, up))

        for bp in self.jd_controller.body_parts_dict.values():
            self.collect_observation_body_part(bp, body_state, obs)

        vector = np.asarray(obs, dtype=np.float32)
        if vector.shape[0] != OBSERVATION_SIZE:
            raise RuntimeError(f"Observation size {vector.shape[0]} != {OBSERVATION_SIZE}")
        return vector

    # ── events ───────────────────────────────────────────────────

    def touched_target(self) -> None:
        self.add_reward(TARGET_TOUCH_REWARD)
        self.targets_reached += 1
        if self.config.respawn_target_when_touched:
            self.get_random_target_pos()

    def touched_obstacle(self) -> None:
        self.add_reward(OBSTACLE_TOUCH_PENALTY)

    def get_random_target_pos(self) -> np.ndarray:
        """Teleport the target to a random point above the ground within the spawn radius."""
        new_pos = random_inside_unit_sphere(self.rng) * self.config.target_spawn_radius
        new_pos[2] = self.config.target_spawn_height
        ground_pos, _ = self.scene.get_object_state(GROUND)
        new_pos = new_pos + np.asarray(ground_pos, dtype=np.float64)
        self.scene.set_position(TARGET, new_pos.tolist())
        log.debug("Target respawned at (%.2f, %.2f, %.2f)", *new_pos)
        return new_pos

    def on_physics_step(self) -> None:
        """Refresh contacts after an engine step; ground contact may end the episode."""
        for bp in self.jd_controller.update_contacts():
            contact = bp.ground_contact
            if contact.agent_done_on_ground_contact:
                log.debug("%s touched the ground, episode done", bp.name)
                self.done()
            if contact.penalize_ground_contact:
                self.set_reward(contact.ground_contact_penalty)

    # ── actions ──────────────────────────────────────────────────

    def agent_action(self, vector_action) -> None:
        if len(vector_action) != ACTION_SIZE:
            raise ValueError(f"Expected {ACTION_SIZE} actions, got {len(vector_action)}")
        bp_dict = self.jd_controller.body_parts_dict

        if self.config.detect_targets:
            for bp in bp_dict.values():
                if bp.target_contact and not self.is_done() and bp.target_contact.touching_target:
                    self.touched_target()

        if self.config.avoid_obstacles:
            for bp in bp_dict.values():
                if bp.obstacle_contact and not self.is_done() and bp.obstacle_contact.touching_obstacle:
                    self.touched_obstacle()

        if self.config.use_foot_grounded_visualization:
            self._update_foot_colors()

        # joints only change on decision ticks
        if self.is_new_decision_step:
            a = [float(v) for v in vector_action]
            i = 0
            for name in UPPER_LEGS:
                bp_dict[name].set_joint_target_rotation(a[i], a[i + 1], 0.0)
                i += 2
            for name in LOWER_LEGS:
                bp_dict[name].set_joint_target_rotation(a[i], 0.0, 0.0)
                i += 1
            for name in UPPER_LEGS + LOWER_LEGS:
                bp_dict[name].set_joint_strength(a[i])
                i += 1

        if self.config.reward_moving_towards_target:
            self.reward_function_moving_towards()
        if self.config.reward_facing_target:
            self.reward_function_facing_target()
        if self.config.reward_use_time_penalty:
            self.reward_function_time_penalty()

        self.step_count += 1
        self.increment_decision_timer()

    def reward_function_moving_towards(self) -> None:
        velocity = self.jd_controller.body_parts_dict[BODY_NAME].state().linear_velocity
        self.moving_towards_dot = float(np.dot(velocity, normalize(self.dir_to_target)))
        self.add_reward(MOVING_TOWARDS_SCALE * self.moving_towards_dot)

    def reward_function_facing_target(self) -> None:
        forward = rotate(self._body_state().orientation, BODY_FORWARD)
        self.facing_dot = float(np.dot(normalize(self.dir_to_target), forward))
        self.add_reward(FACING_SCALE * self.facing_dot)

    def reward_function_time_penalty(self) -> None:
        self.add_reward(TIME_PENALTY)

    # ── helpers ──────────────────────────────────────────────────

    def _body_state(self):
        return self.jd_controller.crawler.link_state(-1)

    def _target_position(self) -> np.ndarray:
        pos, _ = self.scene.get_object_state(TARGET)
        return np.asarray(pos, dtype=np.float64)

    def _update_foot_colors(self) -> None:
        crawler = self.jd_controller.crawler
        for name in LOWER_LEGS:
            bp = self.jd_controller.body_parts_dict[name]
            rgba = GROUNDED_RGBA if bp.ground_contact.touching_ground else UNGROUNDED_RGBA
            self.scene.set_color(crawler.body_id, bp.link_index, rgba)

