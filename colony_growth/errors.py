"""Errors raised by the colony kernel.

All of them are local and synchronous: a failed call leaves the grid exactly
as it was before the call.
"""

from __future__ import annotations


class ColonyError(Exception):
    """Base class for kernel errors."""


class InvalidParameter(ColonyError, ValueError):
    """Out-of-range configuration or edit value."""


class InvalidLocation(ColonyError, IndexError):
    """Coordinates outside the grid."""

    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(f"({x}, {y}) is outside the {width}x{height} grid")
        self.x = x
        self.y = y


class OccupiedSite(ColonyError):
    """A cell already lives at the requested site."""

    def __init__(self, x: int, y: int):
        super().__init__(f"site ({x}, {y}) is already occupied")
        self.x = x
        self.y = y
