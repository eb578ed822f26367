from __future__ import annotations

import dataclasses
from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from blockerino.game import CellType, GameConfig, GameMode, GameStateMachine, PieceCatalog
from blockerino.game.board import NO_COLOR


def compute_action_mask(game: GameStateMachine) -> np.ndarray:
    """Boolean mask over (slot, row, col) marking every placement that fits."""
    assert game.board is not None and game.hand is not None
    size = game.board.size
    mask = np.zeros((game.hand.capacity, size, size), dtype=np.bool_)
    for slot, piece in enumerate(game.hand.pieces[: game.hand.capacity]):
        for x, y in game.valid_placements(piece):
            mask[slot, y, x] = True
    return mask


def _rgb(color: int) -> Tuple[int, int, int]:
    return (color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF


class PlacementEnv(gym.Env):
    """Place hand pieces directly: action = (hand slot, row, col)."""

    metadata = {"render_modes": ["ansi", "rgb_array"], "render_fps": 30}

    def __init__(self, mode: str | GameMode = GameMode.CLASSIC, config: Optional[GameConfig] = None,
                 catalog: Optional[PieceCatalog] = None, render_mode: Optional[str] = None,
                 reward_weights: Optional[Dict[str, float]] = None,
                 invalid_action_penalty: float = -0.1,
                 terminal_penalty: float = 0.0,
                 max_episode_steps: int = 10000) -> None:
        super().__init__()
        self.config = config or GameConfig(mode=GameMode(mode))
        self.game = GameStateMachine(catalog)
        self.render_mode = render_mode

        self.invalid_action_penalty = float(invalid_action_penalty)
        self.terminal_penalty = float(terminal_penalty)
        self.max_episode_steps = int(max_episode_steps)
        self.reward_weights: Dict[str, float] = {
            "score": 1.0,   # per point of engine score gained
            "lines": 0.0,   # per line cleared
        }
        if reward_weights:
            self.reward_weights.update({k: float(v) for k, v in reward_weights.items()})

        size = self.config.effective_board_size
        k = self.config.effective_hand_size
        n_shapes = len(self.game.catalog)

        self.observation_space = spaces.Dict(
            {
                "board": spaces.Box(low=0, high=int(max(CellType)), shape=(size, size), dtype=np.int8),
                "markers": spaces.Box(low=0, high=1, shape=(size, size), dtype=np.int8),
                # catalog index per slot, -1 for an empty slot or an ad-hoc piece
                "hand": spaces.Box(low=-1, high=n_shapes - 1, shape=(k,), dtype=np.int16),
                "pieces_remaining": spaces.Discrete(k + 1),
            }
        )
        self.action_space = spaces.MultiDiscrete((k, size, size))

        self._steps = 0

    def _get_obs(self) -> Dict[str, Any]:
        view = self.game.board.view()
        k = self.config.effective_hand_size
        markers = np.zeros((view.size, view.size), dtype=np.int8)
        for row, col in view.markers:
            markers[row, col] = 1
        hand = np.full((k,), -1, dtype=np.int16)
        for i, piece in enumerate(self.game.hand.pieces[:k]):
            hand[i] = piece.shape_index
        return {
            "board": view.types.astype(np.int8),
            "markers": markers,
            "hand": hand,
            "pieces_remaining": len(self.game.hand),
        }

    def _get_info(self) -> Dict[str, Any]:
        return {
            "action_mask": compute_action_mask(self.game),
            "score": self.game.score,
            "combo": self.game.combo,
            "steps": self._steps,
        }

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        game_seed = int(self.np_random.integers(2**31 - 1))
        self.game.start_game(dataclasses.replace(self.config, random_seed=game_seed))
        self._steps = 0
        return self._get_obs(), self._get_info()

    def get_action_mask(self) -> np.ndarray:
        return compute_action_mask(self.game)

    def step(self, action):
        slot, row, col = map(int, action)

        reward_components: Dict[str, float] = {}
        score_before = self.game.score
        lines_before = self.game.state.lines_cleared

        hand = self.game.hand.pieces
        success = 0 <= slot < len(hand) and self.game.place_piece(hand[slot], col, row)
        if success:
            reward_components["score"] = self.reward_weights["score"] * float(self.game.score - score_before)
            reward_components["lines"] = self.reward_weights["lines"] * float(
                self.game.state.lines_cleared - lines_before)
        else:
            reward_components["invalid"] = self.invalid_action_penalty

        self._steps += 1
        terminated = bool(self.game.game_over)
        truncated = self._steps >= self.max_episode_steps
        if terminated:
            reward_components["terminal"] = self.terminal_penalty

        reward = float(sum(reward_components.values()))
        info = self._get_info()
        info["reward_components"] = reward_components
        info["engine_score_delta"] = float(self.game.score - score_before)
        return self._get_obs(), reward, terminated, truncated, info

    def render(self):
        board = self.game.board
        if board is None:
            return None
        if self.render_mode == "ansi":
            return f"{board.to_text()}\nscore {self.game.score}  combo {self.game.combo}\n"
        if self.render_mode == "rgb_array":
            view = board.view()
            cell = 12
            img = np.zeros((view.size * cell, view.size * cell, 3), dtype=np.uint8)
            for y in range(view.size):
                for x in range(view.size):
                    color = int(view.colors[y, x])
                    rgb = (30, 30, 36) if color == NO_COLOR else _rgb(color)
                    img[y * cell : (y + 1) * cell, x * cell : (x + 1) * cell, :] = rgb
            return img
        return None

    def close(self) -> None:
        pass
