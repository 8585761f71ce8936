"""
Domain error taxonomy.

* ``DomainValidationError`` -- user-correctable input problems (HTTP 400).
* ``UpstreamError``         -- persistence / storage failures (HTTP 5xx).
* ``InvariantViolation``    -- programming errors inside the pure core.
"""

from __future__ import annotations


class CarbonPassportError(Exception):
    """Base class for every error raised by this package."""


# ── Validation ────────────────────────────────────────────────────────


class DomainValidationError(CarbonPassportError):
    """Input that the caller can fix and resubmit."""


class InvalidCoordinate(DomainValidationError):
    """Latitude / longitude missing, non-finite or out of range."""


class InvalidDistance(DomainValidationError):
    """Negative or non-finite distance handed to the emissions model."""


class StationNotFound(DomainValidationError):
    def __init__(self, identifier: str, reason: str = "unknown station"):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"{reason}: {identifier!r}")


class PhotoRejected(DomainValidationError):
    """Upload is too large, empty or of a disallowed MIME type."""


class SubmissionRejected(DomainValidationError):
    """A passport submission could not produce a single valid route."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(message)


# ── Upstream ──────────────────────────────────────────────────────────


class UpstreamError(CarbonPassportError):
    """Failure of an external collaborator (database, object storage)."""


class StorageUnavailable(UpstreamError):
    pass


class DatabaseUnavailable(UpstreamError):
    """The database rejected or dropped a write."""


class LockUnavailable(UpstreamError):
    """Redis could not be reached to guard a submission."""


class OrphanedPassportError(UpstreamError):
    """The passport row exists but its routes could not be stored."""

    def __init__(self, passport_id: str):
        self.passport_id = passport_id
        super().__init__(f"Routes for passport {passport_id} were not saved")


# ── Programming errors ────────────────────────────────────────────────


class InvariantViolation(AssertionError):
    """Raised when derived values disagree with their source of truth."""
