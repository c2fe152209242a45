"""Error taxonomy shared by the engines, services and HTTP layer."""

from __future__ import annotations


class MiseError(Exception):
    """Base class for domain errors surfaced to callers."""


class InvalidArgument(MiseError, ValueError):
    """Malformed input: bad date range, empty pantry, missing required fields."""


class NotFound(MiseError, LookupError):
    """A referenced recipe, meal plan, grocery list or item does not exist."""


class RevisionConflict(MiseError):
    """A grocery list changed between read and write."""


__all__ = ["MiseError", "InvalidArgument", "NotFound", "RevisionConflict"]
