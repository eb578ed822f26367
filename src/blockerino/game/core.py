from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from .board import Board, BoardView, ClearResult
from .config import GameConfig
from .errors import InvalidTransitionError
from .hand import HandManager, PieceRef
from .pieces import Piece, PieceCatalog


logger = logging.getLogger(__name__)


class GamePhase(Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    GAME_OVER = "game_over"


@dataclass
class GameState:
    score: int = 0
    combo: int = 0
    moves_since_last_clear: int = 0
    game_over: bool = False
    lines_cleared: int = 0
    pieces_placed: int = 0
    stars_earned: int = 0
    level_completed: bool = False


@dataclass(frozen=True, eq=False)
class GameSnapshot:
    phase: GamePhase
    board: Optional[BoardView]
    hand: Tuple[Piece, ...]
    score: int
    combo: int
    moves_since_last_clear: int
    game_over: bool
    high_score: int
    lines_cleared: int
    pieces_placed: int
    stars_earned: int
    level_completed: bool
    last_clear: Optional[ClearResult]


class GameStateMachine:
    """Owns the board, hand and score of one session.

    Phases run IDLE -> IN_PROGRESS -> GAME_OVER. Only place_piece mutates an
    in-progress game; callers read the outcome through snapshot().
    """

    def __init__(self, catalog: Optional[PieceCatalog] = None) -> None:
        self.catalog = catalog or PieceCatalog()
        self.phase = GamePhase.IDLE
        self.config: Optional[GameConfig] = None
        self.rng = np.random.default_rng()
        self.board: Optional[Board] = None
        self.hand: Optional[HandManager] = None
        self.state = GameState()
        self.high_score = 0
        self.last_clear: Optional[ClearResult] = None
        self.on_placement: Optional[Callable[[ClearResult], None]] = None

    # ---------- Transitions ----------
    def start_game(self, config: Optional[GameConfig] = None) -> None:
        if self.phase == GamePhase.IN_PROGRESS:
            logger.info("Abandoning game in progress at score %d", self.state.score)
        self.config = config or GameConfig()
        self.rng = np.random.default_rng(self.config.random_seed)
        self._begin()

    def reset_game(self) -> None:
        """Start over with the same configuration; the random stream carries on."""
        if self.config is None:
            raise InvalidTransitionError("reset_game called before start_game")
        self._begin()

    def resume(self, config: GameConfig, board: Board, hand: Iterable[Piece], score: int = 0,
               combo: int = 0, moves_since_last_clear: int = 0) -> None:
        """Continue a saved game from a restored board and hand."""
        if board.size != config.effective_board_size:
            raise ValueError(f"board size {board.size} does not match mode size {config.effective_board_size}")
        self.config = config
        self.rng = np.random.default_rng(config.random_seed)
        self.board = board
        self.hand = HandManager(config.effective_hand_size)
        self.hand.deal(hand)
        self.hand.refill_if_empty(self.catalog, self.rng, palette=config.palette)
        self.state = GameState(score=score, combo=combo, moves_since_last_clear=moves_since_last_clear)
        self.last_clear = None
        self.phase = GamePhase.IN_PROGRESS
        logger.info("Resumed %s game at score %d", config.mode.value, score)
        self._check_game_over()

    def _begin(self) -> None:
        config = self.config
        assert config is not None
        board = Board(config.effective_board_size)
        if config.layout is not None:
            config.layout.apply(board, self.rng)
        hand = HandManager(config.effective_hand_size)
        hand.refill_if_empty(self.catalog, self.rng, palette=config.palette)

        self.board = board
        self.hand = hand
        self.state = GameState()
        self.last_clear = None
        self.phase = GamePhase.IN_PROGRESS
        logger.info("Started %s game on %dx%d board with %d pieces per hand",
                    config.mode.value, board.size, board.size, hand.capacity)
        self._check_game_over()

    def place_piece(self, piece: PieceRef, x: int, y: int) -> bool:
        """Try to place a hand piece with its top-left corner at column x, row y.

        Returns False, leaving everything untouched, when the piece does not fit.
        """
        if self.phase != GamePhase.IN_PROGRESS:
            raise InvalidTransitionError(f"place_piece is not allowed in phase {self.phase.name}")
        assert self.board is not None and self.hand is not None and self.config is not None

        chosen = self.hand.find(piece)
        if not self.board.can_place(chosen, x, y):
            logger.debug("Rejected %s at (%d, %d)", chosen.id, x, y)
            return False

        self.board.place(chosen, x, y)
        rules = self.config.rules
        state = self.state
        block_score = rules.block_score(chosen.cell_count)
        state.score += block_score

        clear = self.board.resolve_lines()
        state.combo, state.moves_since_last_clear = rules.advance_combo(
            state.combo, state.moves_since_last_clear, clear.line_count, self.hand.capacity)
        if clear.line_count > 0:
            bonus = rules.clear_bonus(clear.line_count, self.board.size, state.combo, block_score)
            state.score += bonus
            state.lines_cleared += clear.line_count
            logger.debug("Cleared %d lines, combo %d, bonus %d", clear.line_count, state.combo, bonus)
        state.pieces_placed += 1

        self.hand.remove_piece(chosen)
        if self.hand.refill_if_empty(self.catalog, self.rng, palette=self.config.palette):
            logger.debug("Hand refilled with %d pieces", len(self.hand))

        self.last_clear = clear
        self._check_game_over()
        if self.on_placement is not None:
            self.on_placement(clear)
        return True

    def force_game_over(self) -> None:
        """End the game from outside, e.g. when a timed level runs out."""
        if self.phase != GamePhase.IN_PROGRESS:
            raise InvalidTransitionError(f"force_game_over is not allowed in phase {self.phase.name}")
        self._finish(timed_out=True)

    def _check_game_over(self) -> None:
        assert self.board is not None and self.hand is not None
        has_move = self.board.has_any_valid_move(self.hand)
        logger.debug("Game over check: has_valid_move=%s, hand size=%d", has_move, len(self.hand))
        if not has_move:
            self._finish()

    def _finish(self, timed_out: bool = False) -> None:
        state = self.state
        state.game_over = True
        self.phase = GamePhase.GAME_OVER
        self.high_score = max(self.high_score, state.score)
        objective = self.config.objective if self.config is not None else None
        if objective is not None:
            state.level_completed = not timed_out and state.score >= objective.target_score
            state.stars_earned = objective.stars_for(state.score) if state.level_completed else 0
        logger.info("Game over: score=%d lines=%d pieces=%d", state.score, state.lines_cleared,
                    state.pieces_placed)

    # ---------- Queries ----------
    @property
    def score(self) -> int:
        return self.state.score

    @property
    def combo(self) -> int:
        return self.state.combo

    @property
    def game_over(self) -> bool:
        return self.state.game_over

    def can_place(self, piece: PieceRef, x: int, y: int) -> bool:
        if self.board is None or self.hand is None:
            return False
        return self.board.can_place(self.hand.find(piece), x, y)

    def valid_placements(self, piece: PieceRef) -> List[Tuple[int, int]]:
        """All (x, y) origins inside the board where a hand piece fits."""
        if self.board is None or self.hand is None:
            return []
        chosen = self.hand.find(piece)
        size = self.board.size
        return [
            (x, y)
            for y in range(size - chosen.height + 1)
            for x in range(size - chosen.width + 1)
            if self.board.can_place(chosen, x, y)
        ]

    def snapshot(self) -> GameSnapshot:
        state = self.state
        return GameSnapshot(
            phase=self.phase,
            board=self.board.view() if self.board is not None else None,
            hand=self.hand.pieces if self.hand is not None else (),
            score=state.score,
            combo=state.combo,
            moves_since_last_clear=state.moves_since_last_clear,
            game_over=state.game_over,
            high_score=self.high_score,
            lines_cleared=state.lines_cleared,
            pieces_placed=state.pieces_placed,
            stars_earned=state.stars_earned,
            level_completed=state.level_completed,
            last_clear=self.last_clear,
        )

    def get_game_stats(self) -> dict:
        state = self.state
        return {
            "final_score": state.score,
            "pieces_placed": state.pieces_placed,
            "lines_cleared": state.lines_cleared,
            "final_fill_ratio": self.board.density() if self.board is not None else 0.0,
            "avg_score_per_piece": state.score / max(1, state.pieces_placed),
            "avg_lines_per_piece": state.lines_cleared / max(1, state.pieces_placed),
        }
