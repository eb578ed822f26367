from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class ScoringRules:
    points_per_cell: int = 1

    def block_score(self, cell_count: int) -> int:
        return cell_count * self.points_per_cell

    def clear_bonus(self, lines: int, board_size: int, combo: int, block_score: int) -> int:
        """Bonus for a clearing move; combo is the value after adding this move's lines."""
        if lines <= 0:
            return 0
        return round_half_up(lines * board_size * (combo / 2) * block_score)

    def advance_combo(self, combo: int, moves_since_last_clear: int, lines: int,
                      hand_capacity: int) -> Tuple[int, int]:
        """Return (combo, moves_since_last_clear) after a placement.

        Combo accumulates every cleared line and only drops to zero after a
        full hand worth of placements without a clear.
        """
        if lines > 0:
            return combo + lines, 0
        moves = moves_since_last_clear + 1
        if moves >= hand_capacity:
            return 0, moves
        return combo, moves
