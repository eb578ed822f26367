from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from .board import Board, Coordinate
from .pieces import DEFAULT_PALETTE, Color
from .rules import ScoringRules


class GameMode(Enum):
    CLASSIC = "classic"
    CHAOS = "chaos"
    STORY = "story"  # classic board and hand, separate level objectives


@dataclass(frozen=True)
class GameModeConfig:
    board_size: int
    hand_size: int
    name: str

    @classmethod
    def for_mode(cls, mode: GameMode) -> "GameModeConfig":
        if mode == GameMode.CHAOS:
            return CHAOS
        return CLASSIC


CLASSIC = GameModeConfig(board_size=8, hand_size=3, name="Classic")
CHAOS = GameModeConfig(board_size=10, hand_size=5, name="Chaos")


@dataclass(frozen=True)
class LevelLayout:
    """Cells seeded onto a fresh board before the first move."""

    obstacles: Tuple[Coordinate, ...] = ()
    prefilled: Tuple[Tuple[int, int, Color], ...] = ()
    ice: Tuple[Tuple[int, int, int], ...] = ()  # (row, col, hits)
    markers: Tuple[Coordinate, ...] = ()
    random_obstacle_ratio: float = 0.0

    def apply(self, board: Board, rng: np.random.Generator) -> None:
        for row, col in self.obstacles:
            board.place_obstacle(row, col)
        if self.prefilled:
            board.initialize_prefilled(self.prefilled)
        if self.ice:
            board.initialize_ice(self.ice)
        if self.random_obstacle_ratio > 0:
            board.add_random_obstacles(rng, self.random_obstacle_ratio)
        if self.markers:
            board.initialize_markers(self.markers)


@dataclass(frozen=True)
class LevelObjective:
    target_score: int
    star_thresholds: Tuple[int, int, int] = (0, 0, 0)

    def stars_for(self, score: int) -> int:
        if score < self.target_score:
            return 0
        return sum(1 for threshold in self.star_thresholds if score >= threshold)


@dataclass(frozen=True)
class GameConfig:
    mode: GameMode = GameMode.CLASSIC
    random_seed: Optional[int] = None
    palette: Sequence[Color] = DEFAULT_PALETTE
    layout: Optional[LevelLayout] = None
    objective: Optional[LevelObjective] = None
    rules: ScoringRules = field(default_factory=ScoringRules)
    board_size: Optional[int] = None  # overrides the mode default
    hand_size: Optional[int] = None

    @property
    def mode_config(self) -> GameModeConfig:
        return GameModeConfig.for_mode(self.mode)

    @property
    def effective_board_size(self) -> int:
        return self.board_size if self.board_size is not None else self.mode_config.board_size

    @property
    def effective_hand_size(self) -> int:
        return self.hand_size if self.hand_size is not None else self.mode_config.hand_size
