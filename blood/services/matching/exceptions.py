from __future__ import annotations

from typing import Optional


class MatchingError(ValueError):
    """Base class for malformed input handed to the matcher."""


class InvalidBloodGroup(MatchingError):
    """Raised when a blood-group token is not one of the eight known groups."""

    def __init__(self, token: object):
        self.token = token
        super().__init__(f"Invalid blood group: {token!r}")


class InvalidLocation(MatchingError):
    """Raised when locality matching is requested without the needed city/area."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        self.field = field
        super().__init__(message)
