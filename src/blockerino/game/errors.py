from __future__ import annotations


class BlockerinoError(Exception):
    """Base class for engine errors."""


class InvalidShapeError(BlockerinoError, ValueError):
    """A piece shape matrix is malformed (empty, ragged, padded or disconnected)."""


class PlacementError(BlockerinoError, ValueError):
    """Board.place was called with a placement that does not fit."""


class InvalidTransitionError(BlockerinoError, RuntimeError):
    """A state machine transition was requested from a phase that forbids it."""


class UnknownPieceError(BlockerinoError, KeyError):
    """The referenced piece is not part of the current hand."""


class PortableFormatError(BlockerinoError, ValueError):
    """A portable board snapshot could not be decoded."""
