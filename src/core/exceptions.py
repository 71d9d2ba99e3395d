"""
Custom exceptions.

The board engine itself corrects or ignores invalid input, so these are only raised at the persistence and serialization seams.
"""


class TacticsError(Exception):
    """Top-level exception of the tactics board."""


class RepositoryError(TacticsError):
    """The store could not load or save a record."""


class InvalidStateError(TacticsError):
    """A snapshot or stored record violates one of the board invariants."""
