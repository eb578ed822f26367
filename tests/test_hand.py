import numpy as np
import pytest

from blockerino.game import HandManager, PieceCatalog, UnknownPieceError

from tests.helpers import piece


def test_refill_only_when_empty():
    catalog = PieceCatalog()
    rng = np.random.default_rng(0)
    hand = HandManager(3)
    assert hand.refill_if_empty(catalog, rng)
    assert len(hand) == 3
    assert not hand.refill_if_empty(catalog, rng)
    assert len(hand) == 3


def test_refill_with_explicit_count():
    hand = HandManager(3)
    hand.refill_if_empty(PieceCatalog(), np.random.default_rng(0), count=5)
    assert len(hand) == 5


def test_remove_by_identity_keeps_twin_shapes():
    a, b = piece("##"), piece("##")
    hand = HandManager(3)
    hand.deal([a, b])
    assert hand.remove_piece(a) is a
    assert hand.pieces == (b,)
    assert a not in hand
    assert b in hand


def test_find_by_id():
    a = piece("#")
    hand = HandManager(3)
    hand.deal([a])
    assert hand.find(a.id) is a
    assert a.id in hand


def test_unknown_piece_raises():
    hand = HandManager(3)
    hand.deal([piece("#")])
    with pytest.raises(UnknownPieceError):
        hand.remove_piece("piece-does-not-exist")
    with pytest.raises(KeyError):
        hand.find(piece("#"))


def test_iteration_is_a_snapshot():
    hand = HandManager(2)
    hand.deal([piece("#"), piece("#")])
    for p in hand:
        hand.remove_piece(p)
    assert hand.is_empty()


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        HandManager(0)
