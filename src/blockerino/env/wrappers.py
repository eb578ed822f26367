from __future__ import annotations

from typing import Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .placement_env import compute_action_mask


class FlattenPlacementActions(gym.ActionWrapper):
    """Expose the (slot, row, col) placement space as a single Discrete(N).

    Indices follow C order over (slot, row, col); ``action_masks()`` returns
    the matching 1D boolean mask for masked policies.
    """

    def __init__(self, env: gym.Env):
        super().__init__(env)
        assert isinstance(env.action_space, spaces.MultiDiscrete)
        self.nvec: Tuple[int, ...] = tuple(int(n) for n in env.action_space.nvec)
        assert len(self.nvec) == 3 and self.nvec[1] == self.nvec[2], "expected (slot, row, col) on a square board"
        self.action_space = spaces.Discrete(int(np.prod(self.nvec)))

    def encode(self, slot: int, row: int, col: int) -> int:
        return int(np.ravel_multi_index((slot, row, col), self.nvec))

    def action(self, action: int):  # type: ignore[override]
        return np.array(np.unravel_index(int(action), self.nvec), dtype=np.int64)

    def action_masks(self) -> np.ndarray:
        return compute_action_mask(self.env.unwrapped.game).reshape(-1)


class ResampleInvalidActionWrapper(gym.Wrapper):
    """Replace an invalid flat action with a uniformly drawn valid one.

    The draw uses the environment's seeded ``np_random``; ``info["resampled"]``
    reports whether the submitted action was swapped.
    """

    def __init__(self, env: gym.Env):
        super().__init__(env)
        if not isinstance(env.action_space, spaces.Discrete) or not hasattr(env, "action_masks"):
            raise TypeError("ResampleInvalidActionWrapper needs a FlattenPlacementActions env")

    def action_masks(self) -> np.ndarray:
        return self.env.action_masks()

    def step(self, action):  # type: ignore[override]
        resampled = False
        mask = self.action_masks()
        index = int(action)
        if not (0 <= index < mask.shape[0] and mask[index]):
            valid = np.flatnonzero(mask)
            if valid.size:
                index = int(self.env.unwrapped.np_random.choice(valid))
                resampled = True
        obs, reward, terminated, truncated, info = self.env.step(index)
        info["resampled"] = resampled
        return obs, reward, terminated, truncated, info
