"""Episode rollouts of a controller inside CrawlerEnv, with optional frame capture."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from tqdm import tqdm

from src.modules.physics_engine.camera import FrameData
from .controller import RLController
from .env import CrawlerEnv

log = logging.getLogger(__name__)


@dataclass
class EpisodeStats:
    episode: int
    total_reward: float = 0.0
    decisions: int = 0
    ticks: int = 0
    terminated: bool = False
    truncated: bool = False
    targets_reached: int = 0
    final_distance: float = 0.0
    frames: List[FrameData] = field(default_factory=list, repr=False)


def run_episode(env: CrawlerEnv, controller: RLController, episode: int = 0,
                max_decisions: int = 1000, record: bool = False,
                seed: Optional[int] = None) -> EpisodeStats:
    obs, info = env.reset(seed=seed)
    stats = EpisodeStats(episode=episode)
    if record:
        stats.frames.append(env.render_frame())

    for _ in range(max_decisions):
        action = controller.act(obs)
        obs, reward, terminated, truncated, info = env.step(action)
        stats.total_reward += reward
        stats.decisions += 1
        if record:
            stats.frames.append(env.render_frame())
        if terminated or truncated:
            stats.terminated, stats.truncated = terminated, truncated
            break

    stats.ticks = info["step_count"]
    stats.targets_reached = info["targets_reached"]
    stats.final_distance = info["distance_to_target"]
    log.info("Episode %d: reward=%.3f decisions=%d ticks=%d targets=%d%s",
             episode, stats.total_reward, stats.decisions, stats.ticks, stats.targets_reached,
             " (fell)" if stats.terminated else "")
    return stats


def run_episodes(env: CrawlerEnv, controller: RLController, episodes: int = 1,
                 max_decisions: int = 1000, record_first: bool = False,
                 seed: Optional[int] = None) -> List[EpisodeStats]:
    if episodes < 1:
        raise ValueError(f"episodes must be >= 1, got {episodes}")
    results = []
    for ep in tqdm(range(episodes), desc="episodes", disable=episodes == 1):
        ep_seed = seed + ep if seed is not None else None
        results.append(run_episode(env, controller, episode=ep, max_decisions=max_decisions,
                                   record=record_first and ep == 0, seed=ep_seed))
    mean = sum(r.total_reward for r in results) / len(results)
    log.info("%d episodes, mean reward %.3f", len(results), mean)
    return results
