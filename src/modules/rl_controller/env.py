"""
#WHERE
    Used by rollout.py, main.py and tests; any gymnasium-compatible
    trainer can consume it directly.

#WHAT
    gymnasium.Env wrapping the PyBullet crawler scene.  One env.step() is
    one policy decision: the action is held for decision_interval agent
    ticks, each followed by physics_substeps engine steps.

#INPUT
    EnvConfig (scene layout, timing), AgentConfig, CrawlerConfig,
    JointDriveConfig; action array of shape (20,) in [-1, 1].

#OUTPUT
    (observation (126,), reward, terminated, truncated, info).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from src.modules.physics_engine.camera import CameraConfig, FrameData
from src.modules.physics_engine.crawler import CrawlerBody, CrawlerConfig
from src.modules.physics_engine.joint_drive import JointDriveConfig, JointDriveController
from src.modules.physics_engine.scene import Scene
from src.modules.physics_engine.simulator import Simulator
from src.shared.constants import ACTION_SIZE, DEFAULT_PHYSICS_HZ, GRAVITY, OBSERVATION_SIZE
from .agent import OBSTACLE, TARGET, AgentConfig, CrawlerAgent

log = logging.getLogger(__name__)


@dataclass
class EnvConfig:
    physics_hz: int          = DEFAULT_PHYSICS_HZ
    physics_substeps: int    = 4       # engine steps per agent tick
    max_steps: int           = 5000    # agent ticks per episode, 0 = unlimited
    gravity: float           = GRAVITY
    crawler_position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.45])
    target_position: List[float]  = field(default_factory=lambda: [5.0, 0.0, 0.5])
    target_size: float       = 0.5
    target_mass: float       = 1.0
    use_obstacle: bool       = False
    obstacle_position: List[float] = field(default_factory=lambda: [2.5, 0.0, 0.5])
    obstacle_size: List[float]     = field(default_factory=lambda: [0.3, 1.0, 0.5])
    camera: CameraConfig     = field(default_factory=CameraConfig)

    def __post_init__(self):
        if self.physics_substeps < 1:
            raise ValueError(f"physics_substeps must be >= 1, got {self.physics_substeps}")
        if self.max_steps < 0:
            raise ValueError(f"max_steps must be >= 0, got {self.max_steps}")


class CrawlerEnv(gym.Env):
    metadata = {"render_modes": ["human", "rgb_array"], "render_fps": 24}

    def __init__(self, config: EnvConfig = None, agent_config: AgentConfig = None,
                 crawler_config: CrawlerConfig = None, drive_config: JointDriveConfig = None,
                 render_mode: Optional[str] = None):
        if render_mode is not None and render_mode not in self.metadata["render_modes"]:
            raise ValueError(f"Unknown render_mode: {render_mode}")
        self.config = config or EnvConfig()
        self.agent_config = agent_config or AgentConfig()
        self.crawler_config = crawler_config or CrawlerConfig()
        self.drive_config = drive_config or JointDriveConfig()
        self.render_mode = render_mode

        self.observation_space = spaces.Box(-np.inf, np.inf, shape=(OBSERVATION_SIZE,), dtype=np.float32)
        self.action_space = spaces.Box(-1.0, 1.0, shape=(ACTION_SIZE,), dtype=np.float32)

        self.scene: Optional[Scene] = None
        self.simulator: Optional[Simulator] = None
        self.crawler: Optional[CrawlerBody] = None
        self.agent: Optional[CrawlerAgent] = None

    # ── scene construction ───────────────────────────────────────

    def _build(self) -> None:
        cfg = self.config
        scene = Scene(gravity=cfg.gravity)
        if not scene.setup(use_gui=self.render_mode == "human"):
            raise RuntimeError("Could not connect to the PyBullet physics server")
        self.scene = scene
        self.simulator = Simulator(scene, camera=cfg.camera, physics_hz=cfg.physics_hz)
        self.simulator.configure()

        ground = scene.add_ground()
        target = scene.add_primitive(TARGET, shape="box", size=[cfg.target_size] * 3,
                                     mass=cfg.target_mass, position=cfg.target_position,
                                     color=[0.1, 0.4, 0.9, 1.0])
        obstacle_id = None
        if cfg.use_obstacle:
            obstacle_id = scene.add_primitive(OBSTACLE, shape="box", size=cfg.obstacle_size,
                                              position=cfg.obstacle_position, color=[0.8, 0.2, 0.2, 1.0],
                                              is_static=True).body_id

        self.crawler = CrawlerBody(self.crawler_config)
        self.crawler.build(scene.client, position=cfg.crawler_position)
        jd = JointDriveController(self.crawler, self.drive_config)
        jd.set_contact_bodies(ground=ground, target=target.body_id, obstacle=obstacle_id)

        self.agent = CrawlerAgent(jd, scene, self.agent_config, rng=self.np_random)
        self.agent.initialize_agent()
        log.info("CrawlerEnv built: %d Hz x %d substeps, obstacle=%s",
                 cfg.physics_hz, cfg.physics_substeps, cfg.use_obstacle)

    def _require_scene(self) -> CrawlerAgent:
        if self.agent is None:
            raise RuntimeError("Environment not initialised; call reset() first")
        return self.agent

    # ── gym interface ────────────────────────────────────────────

    def reset(self, *, seed: Optional[int] = None,
              options: Optional[Dict[str, Any]] = None) -> Tuple[np.ndarray, Dict[str, Any]]:
        super().reset(seed=seed)
        if self.scene is None:
            self._build()
        agent = self.agent
        agent.rng = self.np_random
        if options and options.get("respawn_target"):
            agent.get_random_target_pos()

        agent.agent_reset()
        self.simulator.reset()
        self._tick_physics()
        obs = agent.collect_observations()
        agent.consume_reward()
        return obs, self._info()

    def step(self, action) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        agent = self._require_scene()
        action = np.asarray(action, dtype=np.float32).reshape(-1)

        total = 0.0
        truncated = False
        for _ in range(self.agent_config.decision_interval):
            agent.agent_action(action)
            self._tick_physics()
            total += agent.consume_reward()
            if agent.is_done():
                break
            if self.config.max_steps and agent.step_count >= self.config.max_steps:
                truncated = True
                break

        obs = agent.collect_observations()
        terminated = agent.is_done()
        return obs, float(total), terminated, truncated and not terminated, self._info()

    def _tick_physics(self) -> None:
        for _ in range(self.config.physics_substeps):
            self.simulator.step()
            self.agent.on_physics_step()

    def _info(self) -> Dict[str, Any]:
        agent = self.agent
        return {
            "step_count": agent.step_count,
            "cumulative_reward": agent.cumulative_reward,
            "targets_reached": agent.targets_reached,
            "distance_to_target": float(np.linalg.norm(agent.dir_to_target)),
        }

    def render(self) -> Optional[np.ndarray]:
        if self.render_mode != "rgb_array":
            return None
        return self.render_frame().rgb

    def render_frame(self) -> FrameData:
        self._require_scene()
        body = self.crawler.link_state(-1)
        return self.simulator.render(follow=body.position)

    def close(self) -> None:
        if self.scene is not None:
            self.scene.cleanup()
        self.scene = self.simulator = self.crawler = self.agent = None
