from __future__ import annotations

from typing import Iterable, Optional, Sequence

from blockerino.game import Board, GameConfig, GameMode, GameStateMachine, Piece


def piece(*rows: str, color: int = 0xFF112233) -> Piece:
    """Ad-hoc piece from text rows, '#' marking filled cells."""
    return Piece.from_rows(list(rows), color=color)


def fill_row(board: Board, row: int, skip: Iterable[int] = (), color: int = 0xFF445566) -> None:
    skipped = set(skip)
    board.initialize_prefilled((row, col, color) for col in range(board.size) if col not in skipped)


def started_game(board: Board, hand: Sequence[Piece], mode: GameMode = GameMode.CLASSIC,
                 seed: Optional[int] = 0, **kwargs) -> GameStateMachine:
    """Engine resumed on a prepared board with a fixed hand."""
    game = GameStateMachine()
    game.resume(GameConfig(mode=mode, random_seed=seed), board, hand, **kwargs)
    return game
