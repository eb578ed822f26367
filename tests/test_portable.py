import json

import numpy as np
import pytest

from blockerino.game import Board, CellType, GameConfig, GameStateMachine, PortableFormatError

from tests.helpers import piece


def _sample_board():
    board = Board(5)
    board.place_obstacle(0, 0)
    board.initialize_ice([(1, 1, 2), (1, 2, 1)])
    board.initialize_prefilled([(4, 0, 0xFFFF0000), (4, 1, 0xFF00FF00)])
    board.initialize_markers([(2, 2), (3, 4)])
    return board


def test_portable_format_shape():
    data = _sample_board().to_portable()
    assert data["size"] == 5
    assert data["cells"][0][0] == {"type": "obstacle", "color": 0xFF2D3748}
    assert data["cells"][1][1]["type"] == "ice2"
    assert data["cells"][4][1] == {"type": "filled", "color": 0xFF00FF00}
    assert data["cells"][3][3] == {"type": "empty", "color": None}
    assert data["markers"] == [[2, 2], [3, 4]]


def test_restored_board_survives_json_and_matches():
    original = _sample_board()
    restored = Board.from_portable(json.loads(json.dumps(original.to_portable())))
    assert restored.to_text() == original.to_text()
    assert np.array_equal(restored.view().colors, original.view().colors)
    assert restored.markers == original.markers
    assert restored.collision_mask == original.collision_mask
    assert restored.clear_mask == original.clear_mask
    assert restored.row_masks == original.row_masks
    assert restored.cell_type(1, 1) == CellType.ICE2


def test_restored_board_resumes_a_game():
    board = Board(8)
    board.initialize_prefilled((0, c, 0xFF010101) for c in range(7))
    restored = Board.from_portable(board.to_portable())
    single = piece("#")
    game = GameStateMachine()
    game.resume(GameConfig(random_seed=4), restored, [single], score=40, combo=1)
    assert game.place_piece(single, 7, 0)
    # combo goes to 2: 1 + round(1 * 8 * 1 * 1)
    assert game.score == 40 + 1 + 8


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"size": 2},
        {"size": 2, "cells": [[{"type": "empty"}]]},
        {"size": 1, "cells": [[{"type": "lava"}]]},
        {"size": 1, "cells": [[{"color": 3}]]},
        {"size": 1, "cells": [[{"type": "filled", "color": "red"}]]},
        {"size": 1, "cells": [[{"type": "empty"}]], "markers": [[3, 3]]},
        {"size": "big", "cells": []},
    ],
)
def test_malformed_portable_rejected(data):
    with pytest.raises(PortableFormatError):
        Board.from_portable(data)
