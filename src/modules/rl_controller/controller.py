"""
#WHERE
    Imported by rl_controller/__init__.py, rollout.py and main.py.

#WHAT
    Policy runner for the crawler.  Loads an exported TorchScript policy
    and maps observations to actions; without a checkpoint it samples
    uniformly from the action space.  Training happens elsewhere.

#INPUT
    Observation array (126,) from CrawlerEnv.

#OUTPUT
    Action vector (20,) of normalised joint targets and strengths.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import numpy as np
import torch

from src.shared.constants import ACTION_SIZE, OBSERVATION_SIZE

log = logging.getLogger(__name__)


class RLController:
    def __init__(self, checkpoint: Optional[str] = None, device: str = "cpu", seed: Optional[int] = None):
        self.checkpoint = checkpoint
        self.device = torch.device(device)
        self._policy: Optional[torch.jit.ScriptModule] = None
        self._rng = np.random.default_rng(seed)
        self._is_setup = False

    @property
    def is_random(self) -> bool:
        return self.checkpoint is None

    def setup(self) -> None:
        if self.checkpoint is not None:
            if not os.path.exists(self.checkpoint):
                raise FileNotFoundError(f"Policy checkpoint not found: {self.checkpoint}")
            self._policy = torch.jit.load(self.checkpoint, map_location=self.device)
            self._policy.eval()
            log.info("Policy loaded: %s (%s)", self.checkpoint, self.device)
        else:
            log.info("No checkpoint given, acting uniformly at random")
        self._is_setup = True

    def act(self, observation) -> np.ndarray:
        if not self._is_setup:
            self.setup()
        obs = np.asarray(observation, dtype=np.float32).reshape(-1)
        if obs.shape[0] != OBSERVATION_SIZE:
            raise ValueError(f"Expected observation of size {OBSERVATION_SIZE}, got {obs.shape[0]}")

        if self._policy is None:
            action = self._rng.uniform(-1.0, 1.0, size=ACTION_SIZE)
        else:
            with torch.no_grad():
                out = self._policy(torch.from_numpy(obs).unsqueeze(0).to(self.device))
            action = out.squeeze(0).cpu().numpy()
            if action.shape != (ACTION_SIZE,):
                raise ValueError(f"Policy returned shape {action.shape}, expected ({ACTION_SIZE},)")
        return np.clip(action, -1.0, 1.0).astype(np.float32)
