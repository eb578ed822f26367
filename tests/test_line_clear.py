from blockerino.game import Board, CellType

from tests.helpers import fill_row, piece


def fill_col(board, col, skip=(), color=0xFF445566):
    board.initialize_prefilled((row, col, color) for row in range(board.size) if row not in set(skip))


def test_nothing_to_clear():
    board = Board(8)
    fill_row(board, 0, skip=[7])
    result = board.resolve_lines()
    assert result.line_count == 0
    assert result.cleared_cells == ()
    assert board.filled_count() == 7


def test_single_row_clears():
    board = Board(8)
    fill_row(board, 0, color=0xFF00FF00)
    result = board.resolve_lines()
    assert result.line_count == 1
    assert result.rows == (0,) and result.cols == ()
    assert len(result.cleared_cells) == 8
    assert {cell.color for cell in result.cleared_cells} == {0xFF00FF00}
    assert board.is_empty()
    assert board.collision_mask == 0


def test_obstacle_does_not_block_line_completion():
    board = Board(8)
    board.place_obstacle(0, 3)
    fill_row(board, 0, skip=[3])
    assert board.complete_lines() == ((0,), ())
    result = board.resolve_lines()
    assert result.line_count == 1
    assert len(result.cleared_cells) == 7
    assert board.cell_type(0, 3) == CellType.OBSTACLE
    assert board.collision_mask == 1 << 3


def test_obstacle_still_blocks_placement():
    board = Board(8)
    board.place_obstacle(0, 3)
    assert not board.can_place(piece("#"), 3, 0)


def test_all_obstacle_line_never_completes():
    board = Board(4)
    for col in range(4):
        board.place_obstacle(0, col)
    assert board.complete_lines() == ((), ())
    assert board.resolve_lines().line_count == 0


def test_ice_needs_two_clears():
    board = Board(8)
    board.initialize_ice([(0, 0, 2)])
    fill_row(board, 0, skip=[0])

    first = board.resolve_lines()
    assert first.line_count == 1
    assert len(first.cleared_cells) == 7
    assert (0, 0) not in {(c.row, c.col) for c in first.cleared_cells}
    assert board.cell_type(0, 0) == CellType.ICE

    fill_row(board, 0, skip=[0])
    second = board.resolve_lines()
    assert second.line_count == 1
    assert len(second.cleared_cells) == 8
    assert board.cell_type(0, 0) == CellType.EMPTY
    assert board.is_empty()


def test_intersection_is_processed_once():
    board = Board(8)
    board.initialize_ice([(0, 0, 2)])
    fill_row(board, 0, skip=[0])
    fill_col(board, 0, skip=[0])

    result = board.resolve_lines()
    assert result.line_count == 2
    assert result.rows == (0,) and result.cols == (0,)
    positions = [(c.row, c.col) for c in result.cleared_cells]
    assert len(positions) == len(set(positions)) == 14
    # cracked once, not twice
    assert board.cell_type(0, 0) == CellType.ICE


def test_filled_intersection_reported_once():
    board = Board(8)
    fill_row(board, 2)
    fill_col(board, 5)
    result = board.resolve_lines()
    assert result.line_count == 2
    positions = [(c.row, c.col) for c in result.cleared_cells]
    assert len(positions) == len(set(positions)) == 15


def test_placement_can_clear_row_and_column_together():
    board = Board(8)
    fill_row(board, 7, skip=[7])
    fill_col(board, 7, skip=[7])
    board.place(piece("#"), 7, 7)
    result = board.resolve_lines()
    assert result.line_count == 2
    assert board.is_empty()


def test_markers_collected_only_when_cell_clears():
    board = Board(8)
    board.initialize_ice([(0, 0, 2)])
    board.initialize_markers([(0, 0), (0, 4), (5, 5)])
    fill_row(board, 0, skip=[0])

    result = board.resolve_lines()
    assert result.collected_markers == ((0, 4),)
    assert board.markers == {(0, 0), (5, 5)}


def test_covering_a_marker_does_not_collect_it():
    board = Board(8)
    board.initialize_markers([(3, 3)])
    board.place(piece("#"), 3, 3)
    assert board.has_marker(3, 3)
    assert board.resolve_lines().collected_markers == ()
    assert board.markers == {(3, 3)}


def test_ripple_delay_grows_from_center():
    board = Board(8)
    fill_row(board, 0)
    fill_col(board, 1, skip=[0])
    result = board.resolve_lines()
    delays = {(c.row, c.col): c.delay_ms for c in result.cleared_cells}
    assert delays[(0, 4)] == 0
    assert delays[(0, 0)] == 120
    assert delays[(0, 7)] == 90
    assert delays[(7, 1)] == 90
    assert delays[(4, 1)] == 0
