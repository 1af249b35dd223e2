"""
#WHERE
    Imported by main.py and tests.

#WHAT
    RL Controller Module: crawler agent adapter (observations, actions,
    rewards, reset), gymnasium environment, policy runner and rollouts.

#INPUT
    Observation from the PyBullet crawler scene.

#OUTPUT
    Action vector of joint targets / strengths, shaped rewards, episode stats.
"""

from .agent import AgentConfig, CrawlerAgent
from .controller import RLController
from .env import CrawlerEnv, EnvConfig
from .rollout import EpisodeStats, run_episode, run_episodes

__all__ = [
    "AgentConfig", "CrawlerAgent", "RLController", "CrawlerEnv", "EnvConfig",
    "EpisodeStats", "run_episode", "run_episodes",
]
