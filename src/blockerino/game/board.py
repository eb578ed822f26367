from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

import numpy as np

from .errors import PlacementError, PortableFormatError
from .pieces import Color, Piece
from .rules import round_half_up


logger = logging.getLogger(__name__)

Coordinate = Tuple[int, int]  # (row, col)

NO_COLOR = -1
ICE_COLOR: Color = 0xFF89CFF0
OBSTACLE_COLOR: Color = 0xFF2D3748
RIPPLE_DELAY_MS = 30


class CellType(IntEnum):
    EMPTY = 0
    FILLED = 1
    OBSTACLE = 2
    ICE = 3  # one hit remaining
    ICE2 = 4  # two hits remaining


_CLEARABLE = [int(CellType.FILLED), int(CellType.ICE), int(CellType.ICE2)]
_TEXT = {
    CellType.EMPTY: ".",
    CellType.FILLED: "#",
    CellType.OBSTACLE: "X",
    CellType.ICE: "i",
    CellType.ICE2: "I",
}


@dataclass(frozen=True)
class Cell:
    type: CellType
    color: Optional[Color] = None


@dataclass(frozen=True)
class ClearedCellInfo:
    """A cell emptied by a line clear; delay_ms orders the ripple outward from the center."""

    row: int
    col: int
    color: Optional[Color]
    delay_ms: int = 0


@dataclass(frozen=True)
class ClearResult:
    line_count: int
    cleared_cells: Tuple[ClearedCellInfo, ...] = ()
    collected_markers: Tuple[Coordinate, ...] = ()
    rows: Tuple[int, ...] = ()
    cols: Tuple[int, ...] = ()


@dataclass(frozen=True, eq=False)
class BoardView:
    """Read-only copy of a board handed to presentation code."""

    size: int
    types: np.ndarray
    colors: np.ndarray
    markers: FrozenSet[Coordinate]

    def cell(self, row: int, col: int) -> Cell:
        color = int(self.colors[row, col])
        return Cell(CellType(int(self.types[row, col])), None if color == NO_COLOR else color)


def _bits(flags: np.ndarray) -> int:
    mask = 0
    for index in np.flatnonzero(flags):
        mask |= 1 << int(index)
    return mask


class Board:
    """Square grid with bit-packed collision and line-completion masks.

    Bit ``row * size + col`` of each mask describes cell (row, col). The masks
    are Python ints, so any board size works without a fixed word width.

    - collision mask: every cell that blocks placement (filled, obstacle, ice)
    - clear mask: every cell that counts toward completing a line (no obstacles)
    - row/col masks: the cells a line needs filled; obstacle cells are left out
    """

    def __init__(self, size: int) -> None:
        if int(size) < 1:
            raise ValueError(f"board size must be positive, got {size}")
        self.size = int(size)
        self._types = np.zeros((self.size, self.size), dtype=np.int8)
        self._colors = np.full((self.size, self.size), NO_COLOR, dtype=np.int64)
        self.markers: Set[Coordinate] = set()
        self._collision_mask = 0
        self._clear_mask = 0
        self._row_masks: List[int] = []
        self._col_masks: List[int] = []
        self._sync()

    # ---------- Mask bookkeeping ----------
    def _initialize_masks(self) -> None:
        self._row_masks = [0] * self.size
        self._col_masks = [0] * self.size
        for row, col in zip(*np.nonzero(self._types != CellType.OBSTACLE)):
            bit = 1 << (int(row) * self.size + int(col))
            self._row_masks[row] |= bit
            self._col_masks[col] |= bit

    def _update_bitboard(self) -> None:
        self._collision_mask = _bits(self._types != CellType.EMPTY)
        self._clear_mask = _bits(np.isin(self._types, _CLEARABLE))

    def _sync(self) -> None:
        self._initialize_masks()
        self._update_bitboard()

    @property
    def collision_mask(self) -> int:
        return self._collision_mask

    @property
    def clear_mask(self) -> int:
        return self._clear_mask

    @property
    def row_masks(self) -> Tuple[int, ...]:
        return tuple(self._row_masks)

    @property
    def col_masks(self) -> Tuple[int, ...]:
        return tuple(self._col_masks)

    # ---------- Cell access ----------
    def is_inside(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def _check_inside(self, row: int, col: int) -> None:
        if not self.is_inside(row, col):
            raise ValueError(f"cell ({row}, {col}) is outside a {self.size}x{self.size} board")

    def cell_type(self, row: int, col: int) -> CellType:
        return CellType(int(self._types[row, col]))

    def cell(self, row: int, col: int) -> Cell:
        color = int(self._colors[row, col])
        return Cell(self.cell_type(row, col), None if color == NO_COLOR else color)

    def has_marker(self, row: int, col: int) -> bool:
        return (row, col) in self.markers

    # ---------- Level setup ----------
    def place_obstacle(self, row: int, col: int) -> None:
        self._check_inside(row, col)
        self._types[row, col] = CellType.OBSTACLE
        self._colors[row, col] = OBSTACLE_COLOR
        self._sync()

    def add_random_obstacles(self, rng: np.random.Generator, ratio: float = 0.10) -> List[Coordinate]:
        """Turn a random share of the empty cells into obstacles."""
        empty = np.flatnonzero(self._types == CellType.EMPTY)
        count = min(round_half_up(self.size * self.size * ratio), int(empty.size))
        if count <= 0:
            return []
        chosen = rng.choice(empty, size=count, replace=False)
        placed: List[Coordinate] = []
        for index in sorted(int(i) for i in chosen):
            row, col = divmod(index, self.size)
            self._types[row, col] = CellType.OBSTACLE
            self._colors[row, col] = OBSTACLE_COLOR
            placed.append((row, col))
        self._sync()
        logger.debug("Placed %d random obstacles on %dx%d board", len(placed), self.size, self.size)
        return placed

    def initialize_prefilled(self, blocks: Iterable[Tuple[int, int, Color]]) -> None:
        for row, col, color in blocks:
            self._check_inside(row, col)
            self._types[row, col] = CellType.FILLED
            self._colors[row, col] = int(color)
        self._sync()

    def initialize_ice(self, blocks: Iterable[Tuple[int, int, int]]) -> None:
        for row, col, hits in blocks:
            self._check_inside(row, col)
            self._types[row, col] = CellType.ICE2 if hits >= 2 else CellType.ICE
            self._colors[row, col] = ICE_COLOR
        self._sync()

    def initialize_markers(self, positions: Iterable[Coordinate]) -> None:
        markers = set()
        for row, col in positions:
            self._check_inside(row, col)
            markers.add((int(row), int(col)))
        self.markers = markers

    # ---------- Placement ----------
    def _clamp_origin(self, piece: Piece, x: int, y: int) -> Optional[Tuple[int, int]]:
        """Absorb an off-by-one origin at the edges; None when the piece cannot fit."""
        size = self.size
        if piece.width > size or piece.height > size:
            return None
        if x < -1 or y < -1:
            return None
        if x + piece.width > size + 1 or y + piece.height > size + 1:
            return None
        clamped_x = min(max(x, 0), size - piece.width)
        clamped_y = min(max(y, 0), size - piece.height)
        if abs(clamped_x - x) > 1 or abs(clamped_y - y) > 1:
            return None
        return clamped_x, clamped_y

    def can_place(self, piece: Piece, x: int, y: int) -> bool:
        """Check if piece fits with its top-left corner at column x, row y."""
        origin = self._clamp_origin(piece, x, y)
        if origin is None:
            return False
        return (self._collision_mask & piece.mask_at(self.size, *origin)) == 0

    def place(self, piece: Piece, x: int, y: int) -> List[Coordinate]:
        """Fill the cells covered by piece and return them as (row, col) pairs.

        Callers validate with can_place first; an invalid placement raises
        PlacementError instead of corrupting the grid.
        """
        origin = self._clamp_origin(piece, x, y)
        if origin is None:
            raise PlacementError(f"piece {piece.id} does not fit at ({x}, {y})")
        piece_mask = piece.mask_at(self.size, *origin)
        if self._collision_mask & piece_mask:
            raise PlacementError(f"piece {piece.id} collides at ({x}, {y})")
        cells = piece.cells_at(*origin)
        for row, col in cells:
            self._types[row, col] = CellType.FILLED
            self._colors[row, col] = piece.color
        self._collision_mask |= piece_mask
        self._clear_mask |= piece_mask
        return cells

    # ---------- Line clearing ----------
    def _complete_lines(self, clear_mask: int) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        # all-obstacle lines have an empty mask and never complete
        rows = tuple(r for r, m in enumerate(self._row_masks) if m and (clear_mask & m) == m)
        cols = tuple(c for c, m in enumerate(self._col_masks) if m and (clear_mask & m) == m)
        return rows, cols

    def complete_lines(self) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        return self._complete_lines(self._clear_mask)

    def preview_clears(self, piece: Piece, x: int, y: int) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        """Rows and columns a placement would complete, without touching the board."""
        origin = self._clamp_origin(piece, x, y)
        if origin is None:
            return (), ()
        piece_mask = piece.mask_at(self.size, *origin)
        if self._collision_mask & piece_mask:
            return (), ()
        return self._complete_lines(self._clear_mask | piece_mask)

    def resolve_lines(self) -> ClearResult:
        """Clear every complete row and column at once.

        Each affected cell is handled a single time even where a cleared row
        crosses a cleared column: solid ice cracks, cracked ice and filled
        cells empty (collecting any marker), obstacles stay.
        """
        rows, cols = self.complete_lines()
        if not rows and not cols:
            return ClearResult(line_count=0)

        center = self.size / 2.0
        targets = [(r, c, abs(c - center)) for r in rows for c in range(self.size)]
        targets += [(r, c, abs(r - center)) for c in cols for r in range(self.size)]

        processed: Set[Coordinate] = set()
        cleared: List[ClearedCellInfo] = []
        collected: List[Coordinate] = []
        for row, col, distance in targets:
            if (row, col) in processed:
                continue
            processed.add((row, col))
            kind = self.cell_type(row, col)
            if kind == CellType.ICE2:
                self._types[row, col] = CellType.ICE
                self._colors[row, col] = ICE_COLOR
            elif kind in (CellType.ICE, CellType.FILLED):
                color = int(self._colors[row, col])
                cleared.append(ClearedCellInfo(
                    row=row,
                    col=col,
                    color=None if color == NO_COLOR else color,
                    delay_ms=int(distance * RIPPLE_DELAY_MS),
                ))
                self._types[row, col] = CellType.EMPTY
                self._colors[row, col] = NO_COLOR
                if (row, col) in self.markers:
                    self.markers.discard((row, col))
                    collected.append((row, col))

        self._update_bitboard()
        return ClearResult(
            line_count=len(rows) + len(cols),
            cleared_cells=tuple(cleared),
            collected_markers=tuple(collected),
            rows=rows,
            cols=cols,
        )

    # ---------- Deadlock detection ----------
    def largest_empty_region(self) -> int:
        """Size of the largest 4-connected group of empty cells."""
        empty = self._types == CellType.EMPTY
        visited = np.zeros_like(empty)
        largest = 0
        for start_row, start_col in zip(*np.nonzero(empty)):
            if visited[start_row, start_col]:
                continue
            visited[start_row, start_col] = True
            queue = deque([(int(start_row), int(start_col))])
            count = 0
            while queue:
                r, c = queue.popleft()
                count += 1
                for nr, nc in ((r - 1, c), (r + 1, c), (r, c - 1), (r, c + 1)):
                    if 0 <= nr < self.size and 0 <= nc < self.size and empty[nr, nc] and not visited[nr, nc]:
                        visited[nr, nc] = True
                        queue.append((nr, nc))
            largest = max(largest, count)
        return largest

    def has_any_valid_move(self, hand: Iterable[Piece]) -> bool:
        pieces = list(hand)
        if not pieces:
            return False

        # Fail fast: a piece only fits inside one connected empty region
        smallest = min(piece.cell_count for piece in pieces)
        largest = self.largest_empty_region()
        if largest < smallest:
            logger.debug("No region fits: largest empty region %d < smallest piece %d", largest, smallest)
            return False

        for piece in pieces:
            for row in range(self.size):
                for col in range(self.size):
                    if self.can_place(piece, col, row):
                        return True
        return False

    # ---------- Queries ----------
    def filled_count(self) -> int:
        return int(np.count_nonzero(self._types == CellType.FILLED))

    def density(self) -> float:
        return self.filled_count() / float(self.size * self.size)

    def is_empty(self) -> bool:
        return self.filled_count() == 0

    def filled_positions(self) -> List[Coordinate]:
        return [(int(r), int(c)) for r, c in zip(*np.nonzero(self._types == CellType.FILLED))]

    def color_distribution(self) -> Counter:
        filled = self._types == CellType.FILLED
        return Counter(int(color) for color in self._colors[filled])

    def most_common_color(self) -> Optional[Color]:
        ranked = self.color_distribution().most_common(1)
        return ranked[0][0] if ranked else None

    def clone(self) -> "Board":
        other = Board.__new__(Board)
        other.size = self.size
        other._types = self._types.copy()
        other._colors = self._colors.copy()
        other.markers = set(self.markers)
        other._collision_mask = self._collision_mask
        other._clear_mask = self._clear_mask
        other._row_masks = list(self._row_masks)
        other._col_masks = list(self._col_masks)
        return other

    def view(self) -> BoardView:
        types = self._types.copy()
        colors = self._colors.copy()
        types.setflags(write=False)
        colors.setflags(write=False)
        return BoardView(size=self.size, types=types, colors=colors, markers=frozenset(self.markers))

    def to_text(self) -> str:
        lines = []
        for row in range(self.size):
            chars = []
            for col in range(self.size):
                kind = self.cell_type(row, col)
                if kind == CellType.EMPTY and (row, col) in self.markers:
                    chars.append("*")
                else:
                    chars.append(_TEXT[kind])
            lines.append("".join(chars))
        return "\n".join(lines)

    # ---------- Portable snapshot ----------
    def to_portable(self) -> Dict[str, Any]:
        cells = []
        for row in range(self.size):
            cells.append([
                {"type": cell.type.name.lower(), "color": cell.color}
                for cell in (self.cell(row, col) for col in range(self.size))
            ])
        return {
            "size": self.size,
            "cells": cells,
            "markers": [[row, col] for row, col in sorted(self.markers)],
        }

    @classmethod
    def from_portable(cls, data: Mapping[str, Any]) -> "Board":
        try:
            board = cls(int(data["size"]))
            rows = data["cells"]
            if len(rows) != board.size or any(len(row) != board.size for row in rows):
                raise PortableFormatError(f"cells must be a {board.size}x{board.size} grid")
            for r, row in enumerate(rows):
                for c, entry in enumerate(row):
                    board._types[r, c] = CellType[str(entry["type"]).upper()]
                    color = entry.get("color")
                    board._colors[r, c] = NO_COLOR if color is None else int(color)
            board.initialize_markers((int(r), int(c)) for r, c in data.get("markers", ()))
        except PortableFormatError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise PortableFormatError(f"malformed portable board: {exc}") from exc
        board._sync()
        return board
