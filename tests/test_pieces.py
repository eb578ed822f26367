import numpy as np
import pytest

from blockerino.game import DEFAULT_PALETTE, InvalidShapeError, Piece, PieceCatalog, PieceShape


def test_default_catalog_favours_small_pieces():
    catalog = PieceCatalog()
    weights = {shape.name: shape.spawn_weight for shape in catalog}
    assert weights["I1"] > weights["O3"]
    assert weights["I2h"] > weights["I5h"]
    assert catalog.total_weight == pytest.approx(77.0)
    assert catalog.probabilities().sum() == pytest.approx(1.0)


def test_every_default_shape_is_valid_polyomino():
    for shape in PieceCatalog():
        assert shape.matrix.dtype == bool
        assert shape.cell_count >= 1
        assert not shape.matrix.flags.writeable


@pytest.mark.parametrize(
    "rows",
    [
        [],
        ["..", ".."],
        ["#.", ".."],  # empty bordering row and column
        ["#.#"],  # disconnected
        ["#.", ".#"],  # diagonal only
    ],
)
def test_invalid_shapes_rejected(rows):
    with pytest.raises(InvalidShapeError):
        Piece.from_rows(rows)


def test_ragged_matrix_rejected():
    with pytest.raises(InvalidShapeError):
        Piece(shape=[[True, True], [True]], color=DEFAULT_PALETTE[0])


def test_non_positive_weight_rejected():
    with pytest.raises(InvalidShapeError):
        PieceShape.from_rows("bad", ["#"], 0)


def test_empty_catalog_rejected():
    with pytest.raises(InvalidShapeError):
        PieceCatalog([])


def test_piece_geometry():
    p = Piece.from_rows(["#..", "###"])
    assert (p.width, p.height, p.cell_count) == (3, 2, 4)
    assert p.offsets == ((0, 0), (1, 0), (1, 1), (1, 2))
    assert p.cells_at(2, 5) == [(5, 2), (6, 2), (6, 3), (6, 4)]
    assert p.mask_at(8, 0, 0) == (1 << 0) | (1 << 8) | (1 << 9) | (1 << 10)


def test_spawned_pieces_are_distinct_objects():
    catalog = PieceCatalog([PieceShape.from_rows("dot", ["#"], 1)])
    rng = np.random.default_rng(3)
    a, b = catalog.spawn_hand(rng, 2)
    assert a is not b
    assert a != b
    assert a.id != b.id
    assert a.shape_index == b.shape_index == 0


def test_spawn_uses_palette():
    catalog = PieceCatalog()
    rng = np.random.default_rng(11)
    palette = (0xFF000001, 0xFF000002)
    colors = {catalog.spawn_piece(rng, palette).color for _ in range(50)}
    assert colors == set(palette)


def test_empty_palette_rejected():
    with pytest.raises(ValueError):
        PieceCatalog().spawn_piece(np.random.default_rng(0), ())


def test_seeded_spawns_are_reproducible():
    catalog = PieceCatalog()
    first = [p.shape_index for p in catalog.spawn_hand(np.random.default_rng(42), 20)]
    second = [p.shape_index for p in catalog.spawn_hand(np.random.default_rng(42), 20)]
    assert first == second


def test_weighted_spawn_distribution_chi_square():
    catalog = PieceCatalog()
    rng = np.random.default_rng(2024)
    draws = 100_000
    counts = np.zeros(len(catalog), dtype=np.int64)
    for _ in range(draws):
        counts[catalog.draw_index(rng)] += 1

    expected = catalog.probabilities() * draws
    chi_square = float(((counts - expected) ** 2 / expected).sum())
    # 26 degrees of freedom; 60 is far beyond the 0.1% critical value
    assert chi_square < 60.0
    assert np.allclose(counts / draws, catalog.probabilities(), atol=0.01)
