from __future__ import annotations


class ProjectionError(Exception):
    """Base class for projection failures."""


class InvalidProjectionInput(ProjectionError, ValueError):
    """A what-if request was missing or malformed; raised before any data is read."""


class ReaderError(ProjectionError):
    """A history reader could not fetch rows (as opposed to finding none)."""
