"""
Karma Ledger Error Kinds

Every failure that aborts a transition is a KarmaError subclass with a
stable `code`. Gating skips (no energy, cooldown lapsed, sunrise too early)
are outcomes, not errors, and never appear here.
"""

from typing import Optional


class KarmaError(Exception):
    """Base class for all ledger failures."""

    code = "KARMA_ERROR"

    def __init__(self, message: str = "", identity: Optional[str] = None):
        self.identity = identity
        super().__init__(message or self.code)


class Unauthorized(KarmaError):
    """Caller did not prove control of the identity it acts as."""
    code = "UNAUTHORIZED"


class AlreadyExists(KarmaError):
    """A soul already exists for the identity."""
    code = "ALREADY_EXISTS"


class NotFound(KarmaError):
    """No soul exists for the identity."""
    code = "NOT_FOUND"


class VersionConflict(KarmaError):
    """
    A concurrent transition changed a record first.

    The whole transition may be retried by the caller; the ledger never
    retries on its own.
    """
    code = "VERSION_CONFLICT"

    def __init__(
        self,
        message: str = "",
        identity: Optional[str] = None,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None
    ):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(message, identity)


class InvalidInteraction(KarmaError):
    """Interaction request is malformed (unknown direction, actor == target)."""
    code = "INVALID_INTERACTION"
