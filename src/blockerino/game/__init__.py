"""Game module for Blockerino.

Exports the rules engine and supporting classes:
- PieceCatalog / Piece: weighted shape library and spawned pieces
- Board: bit-packed grid with obstacles, ice, markers and line clearing
- HandManager: the pieces currently available to the player
- ScoringRules: block score, combo bonus and combo reset
- GameStateMachine: placement transition, game over and snapshots
"""

from .board import Board, BoardView, Cell, CellType, ClearedCellInfo, ClearResult
from .config import GameConfig, GameMode, GameModeConfig, LevelLayout, LevelObjective
from .core import GamePhase, GameSnapshot, GameState, GameStateMachine
from .errors import (
    BlockerinoError,
    InvalidShapeError,
    InvalidTransitionError,
    PlacementError,
    PortableFormatError,
    UnknownPieceError,
)
from .hand import HandManager
from .pieces import DEFAULT_PALETTE, DEFAULT_SHAPES, Piece, PieceCatalog, PieceShape
from .rules import ScoringRules

__all__ = [
    "Board",
    "BoardView",
    "Cell",
    "CellType",
    "ClearedCellInfo",
    "ClearResult",
    "GameConfig",
    "GameMode",
    "GameModeConfig",
    "LevelLayout",
    "LevelObjective",
    "GamePhase",
    "GameSnapshot",
    "GameState",
    "GameStateMachine",
    "BlockerinoError",
    "InvalidShapeError",
    "InvalidTransitionError",
    "PlacementError",
    "PortableFormatError",
    "UnknownPieceError",
    "HandManager",
    "DEFAULT_PALETTE",
    "DEFAULT_SHAPES",
    "Piece",
    "PieceCatalog",
    "PieceShape",
    "ScoringRules",
]
