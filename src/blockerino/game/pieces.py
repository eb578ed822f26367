from __future__ import annotations

import itertools
from collections import deque
from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, Tuple

import numpy as np

from .errors import InvalidShapeError


Shape = np.ndarray
Color = int  # packed 0xAARRGGBB

DEFAULT_PALETTE: Tuple[Color, ...] = (
    0xFFFF6B6B,  # red
    0xFF4ECDC4,  # teal
    0xFFFFE66D,  # yellow
    0xFF95E1D3,  # mint
    0xFFF38181,  # pink
    0xFFAA96DA,  # purple
    0xFFFCBF49,  # orange
    0xFF06FFA5,  # green
)

_piece_ids = itertools.count(1)


def _is_connected(shape: Shape) -> bool:
    cells = {(int(r), int(c)) for r, c in zip(*np.nonzero(shape))}
    start = next(iter(cells))
    seen = {start}
    queue = deque([start])
    while queue:
        r, c = queue.popleft()
        for neighbor in ((r - 1, c), (r + 1, c), (r, c - 1), (r, c + 1)):
            if neighbor in cells and neighbor not in seen:
                seen.add(neighbor)
                queue.append(neighbor)
    return len(seen) == len(cells)


def as_shape(matrix) -> Shape:
    """Validate a boolean matrix and return it as a read-only numpy array.

    A valid shape is rectangular, has no empty bordering rows or columns and
    its filled cells form a single 4-connected polyomino.
    """
    rows = [list(row) for row in matrix]
    if not rows or not rows[0]:
        raise InvalidShapeError("shape matrix is empty")
    width = len(rows[0])
    if any(len(row) != width for row in rows):
        raise InvalidShapeError("shape rows must all have the same length")
    shape = np.array(rows, dtype=bool)
    if not shape.any():
        raise InvalidShapeError("shape has no filled cells")
    if not (shape[0].any() and shape[-1].any() and shape[:, 0].any() and shape[:, -1].any()):
        raise InvalidShapeError("shape has empty bordering rows or columns")
    if not _is_connected(shape):
        raise InvalidShapeError("shape cells must be 4-connected")
    shape.setflags(write=False)
    return shape


def _parse_rows(rows: Sequence[str]) -> List[List[bool]]:
    return [[ch == "#" for ch in row] for row in rows]


@dataclass(frozen=True, eq=False)
class PieceShape:
    """Catalog entry: a shape plus its relative spawn weight."""

    name: str
    matrix: Shape
    spawn_weight: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "matrix", as_shape(self.matrix))
        if not self.spawn_weight > 0:
            raise InvalidShapeError(f"spawn weight of {self.name!r} must be positive")

    @classmethod
    def from_rows(cls, name: str, rows: Sequence[str], spawn_weight: float) -> "PieceShape":
        return cls(name, _parse_rows(rows), float(spawn_weight))

    @property
    def cell_count(self) -> int:
        return int(self.matrix.sum())


@dataclass(frozen=True, eq=False)
class Piece:
    """A spawned piece. Every spawn is a new object; equality is identity."""

    shape: Shape
    color: Color
    spawn_weight: float = 1.0
    shape_index: int = -1  # position in the catalog, -1 for ad-hoc pieces
    id: str = field(default_factory=lambda: f"piece-{next(_piece_ids)}")

    def __post_init__(self) -> None:
        shape = as_shape(self.shape)
        object.__setattr__(self, "shape", shape)
        offsets = tuple((int(r), int(c)) for r, c in zip(*np.nonzero(shape)))
        object.__setattr__(self, "_offsets", offsets)

    @classmethod
    def from_rows(cls, rows: Sequence[str], color: Color = DEFAULT_PALETTE[0], **kwargs) -> "Piece":
        """Build a piece from text rows where '#' marks a filled cell."""
        return cls(shape=_parse_rows(rows), color=color, **kwargs)

    @property
    def width(self) -> int:
        return int(self.shape.shape[1])

    @property
    def height(self) -> int:
        return int(self.shape.shape[0])

    @property
    def cell_count(self) -> int:
        return len(self._offsets)

    @property
    def offsets(self) -> Tuple[Tuple[int, int], ...]:
        """(row, col) offsets of the filled cells, row-major."""
        return self._offsets

    def cells_at(self, x: int, y: int) -> List[Tuple[int, int]]:
        """Board (row, col) cells covered when the top-left corner sits at column x, row y."""
        return [(y + dr, x + dc) for dr, dc in self._offsets]

    def mask_at(self, size: int, x: int, y: int) -> int:
        mask = 0
        for dr, dc in self._offsets:
            mask |= 1 << ((y + dr) * size + (x + dc))
        return mask

    def __repr__(self) -> str:
        rows = "/".join("".join("#" if v else "." for v in row) for row in self.shape)
        return f"Piece(id={self.id!r}, shape={rows!r}, color={self.color:#010x})"


DEFAULT_SHAPES: Tuple[PieceShape, ...] = (
    # L shapes, all eight orientations
    PieceShape.from_rows("L0", ["#..", "###"], 2),
    PieceShape.from_rows("L1", ["##", "#.", "#."], 2),
    PieceShape.from_rows("L2", ["###", "..#"], 2),
    PieceShape.from_rows("L3", [".#", ".#", "##"], 2),
    PieceShape.from_rows("J0", ["..#", "###"], 2),
    PieceShape.from_rows("J1", ["#.", "#.", "##"], 2),
    PieceShape.from_rows("J2", ["###", "#.."], 2),
    PieceShape.from_rows("J3", ["##", ".#", ".#"], 2),
    # T shapes
    PieceShape.from_rows("T0", ["###", ".#."], 1.5),
    PieceShape.from_rows("T1", ["#.", "##", "#."], 1.5),
    PieceShape.from_rows("T2", [".#.", "###"], 1.5),
    PieceShape.from_rows("T3", [".#", "##", ".#"], 1.5),
    # S / Z shapes
    PieceShape.from_rows("S0", [".##", "##."], 1),
    PieceShape.from_rows("S1", ["#.", "##", ".#"], 1),
    PieceShape.from_rows("Z0", ["##.", ".##"], 1),
    PieceShape.from_rows("Z1", [".#", "##", "#."], 1),
    # squares
    PieceShape.from_rows("O3", ["###", "###", "###"], 3),
    PieceShape.from_rows("O2", ["##", "##"], 6),
    # straight lines
    PieceShape.from_rows("I4v", ["#", "#", "#", "#"], 2),
    PieceShape.from_rows("I4h", ["####"], 2),
    PieceShape.from_rows("I3v", ["#", "#", "#"], 4),
    PieceShape.from_rows("I3h", ["###"], 4),
    PieceShape.from_rows("I2v", ["#", "#"], 8),
    PieceShape.from_rows("I2h", ["##"], 8),
    PieceShape.from_rows("I1", ["#"], 12),
    PieceShape.from_rows("I5v", ["#", "#", "#", "#", "#"], 1),
    PieceShape.from_rows("I5h", ["#####"], 1),
)


class PieceCatalog:
    """Immutable weighted library of piece shapes.

    Draws go through an explicitly passed ``numpy.random.Generator`` so that
    seeded games are reproducible.
    """

    def __init__(self, shapes: Sequence[PieceShape] | None = None) -> None:
        self._shapes: Tuple[PieceShape, ...] = tuple(DEFAULT_SHAPES if shapes is None else shapes)
        if not self._shapes:
            raise InvalidShapeError("catalog needs at least one shape")
        self._cumulative = np.cumsum([s.spawn_weight for s in self._shapes], dtype=np.float64)
        self.total_weight = float(self._cumulative[-1])

    def __len__(self) -> int:
        return len(self._shapes)

    def __iter__(self) -> Iterator[PieceShape]:
        return iter(self._shapes)

    def shape(self, index: int) -> PieceShape:
        return self._shapes[index]

    def probabilities(self) -> np.ndarray:
        weights = np.array([s.spawn_weight for s in self._shapes], dtype=np.float64)
        return weights / self.total_weight

    def draw_index(self, rng: np.random.Generator) -> int:
        draw = rng.random() * self.total_weight
        # first entry whose cumulative weight meets the draw
        index = int(np.searchsorted(self._cumulative, draw, side="left"))
        if index >= len(self._shapes):
            index = int(rng.integers(len(self._shapes)))
        return index

    def spawn_piece(self, rng: np.random.Generator, palette: Sequence[Color] = DEFAULT_PALETTE) -> Piece:
        if not palette:
            raise ValueError("color palette is empty")
        index = self.draw_index(rng)
        entry = self._shapes[index]
        color = palette[int(rng.integers(len(palette)))]
        return Piece(shape=entry.matrix, color=color, spawn_weight=entry.spawn_weight, shape_index=index)

    def spawn_hand(self, rng: np.random.Generator, count: int,
                   palette: Sequence[Color] = DEFAULT_PALETTE) -> List[Piece]:
        return [self.spawn_piece(rng, palette) for _ in range(count)]
