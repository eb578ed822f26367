from __future__ import annotations

from typing import Iterable, Iterator, List, Sequence, Tuple, Union

import numpy as np

from .errors import UnknownPieceError
from .pieces import DEFAULT_PALETTE, Color, Piece, PieceCatalog


PieceRef = Union[Piece, str]


class HandManager:
    """Ordered set of pieces the player can currently place."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"hand capacity must be positive, got {capacity}")
        self.capacity = int(capacity)
        self._pieces: List[Piece] = []

    def __len__(self) -> int:
        return len(self._pieces)

    def __iter__(self) -> Iterator[Piece]:
        return iter(tuple(self._pieces))

    def __contains__(self, item: object) -> bool:
        return any(p is item or p.id == item for p in self._pieces)

    @property
    def pieces(self) -> Tuple[Piece, ...]:
        return tuple(self._pieces)

    def is_empty(self) -> bool:
        return not self._pieces

    def find(self, ref: PieceRef) -> Piece:
        for piece in self._pieces:
            if piece is ref or piece.id == ref:
                return piece
        raise UnknownPieceError(ref if isinstance(ref, str) else ref.id)

    def deal(self, pieces: Iterable[Piece]) -> None:
        """Replace the hand contents."""
        self._pieces = list(pieces)

    def remove_piece(self, ref: PieceRef) -> Piece:
        piece = self.find(ref)
        # identity, not equality: two spawns of one shape are distinct pieces
        self._pieces = [p for p in self._pieces if p is not piece]
        return piece

    def refill_if_empty(self, catalog: PieceCatalog, rng: np.random.Generator,
                        count: int | None = None, palette: Sequence[Color] = DEFAULT_PALETTE) -> bool:
        if self._pieces:
            return False
        self._pieces = catalog.spawn_hand(rng, self.capacity if count is None else count, palette)
        return True
