"""Tests for RLController and episode rollouts."""

import numpy as np
import pytest
import torch

from src.modules.rl_controller.agent import AgentConfig
from src.modules.rl_controller.controller import RLController
from src.modules.rl_controller.env import CrawlerEnv, EnvConfig
from src.modules.rl_controller.rollout import EpisodeStats, run_episode, run_episodes
from src.shared.constants import ACTION_SIZE, OBSERVATION_SIZE


class _ConstantPolicy(torch.nn.Module):
    def __init__(self, value: float, size: int = ACTION_SIZE):
        super().__init__()
        self.value = value
        self.size = size

    def forward(self, obs: torch.Tensor) -> torch.Tensor:
        return torch.ones([obs.shape[0], self.size]) * self.value


def _save_policy(path, value: float, size: int = ACTION_SIZE) -> str:
    torch.jit.script(_ConstantPolicy(value, size)).save(str(path))
    return str(path)


class TestRLController:

    def test_random_without_checkpoint(self):
        ctrl = RLController(seed=0)
        action = ctrl.act(np.zeros(OBSERVATION_SIZE))
        assert ctrl.is_random
        assert action.shape == (ACTION_SIZE,)
        assert action.dtype == np.float32
        assert np.all(np.abs(action) <= 1.0)

    def test_random_is_seeded(self):
        a = RLController(seed=7).act(np.zeros(OBSERVATION_SIZE))
        b = RLController(seed=7).act(np.zeros(OBSERVATION_SIZE))
        np.testing.assert_array_equal(a, b)

    def test_missing_checkpoint(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RLController(checkpoint=str(tmp_path / "missing.pt")).setup()

    def test_wrong_observation_size(self):
        with pytest.raises(ValueError, match="observation"):
            RLController().act(np.zeros(10))

    def test_policy_output_clipped(self, tmp_path):
        ctrl = RLController(checkpoint=_save_policy(tmp_path / "policy.pt", 5.0))
        action = ctrl.act(np.zeros(OBSERVATION_SIZE))
        assert not ctrl.is_random
        np.testing.assert_array_equal(action, np.ones(ACTION_SIZE, dtype=np.float32))

    def test_policy_wrong_output_shape(self, tmp_path):
        ctrl = RLController(checkpoint=_save_policy(tmp_path / "policy.pt", 0.0, size=3))
        with pytest.raises(ValueError, match="Policy returned shape"):
            ctrl.act(np.zeros(OBSERVATION_SIZE))


class TestRollout:

    def setup_method(self):
        self.env = CrawlerEnv(EnvConfig(max_steps=20), AgentConfig(decision_interval=5))

    def teardown_method(self):
        self.env.close()

    def test_episode_stops_at_time_limit(self):
        stats = run_episode(self.env, RLController(seed=0), max_decisions=50, seed=0)
        assert isinstance(stats, EpisodeStats)
        assert stats.terminated or stats.truncated
        assert stats.decisions <= 4
        assert stats.ticks <= 20

    def test_max_decisions_bounds_episode(self):
        self.env.config.max_steps = 0
        stats = run_episode(self.env, RLController(seed=0), max_decisions=2, seed=0)
        assert stats.decisions <= 2
        assert stats.frames == []

    def test_invalid_episode_count(self):
        with pytest.raises(ValueError, match="episodes"):
            run_episodes(self.env, RLController(), episodes=0)

    def test_multiple_episodes(self):
        results = run_episodes(self.env, RLController(seed=1), episodes=2, max_decisions=2, seed=5)
        assert [r.episode for r in results] == [0, 1]
