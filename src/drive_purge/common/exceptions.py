"""Custom exception hierarchy."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..audit.models import TrashFailureReason


class DrivePurgeError(Exception):
    """Base exception for all drive-purge errors."""


class AuthenticationError(DrivePurgeError):
    """Authentication or authorization failed."""


class SourceUnavailableError(DrivePurgeError):
    """The file source could not be listed or initialized."""


class ClassificationError(DrivePurgeError):
    """The classifier failed or returned unusable data."""


class PreconditionError(DrivePurgeError):
    """Operation is not valid for the current audit phase."""


class RemediationItemError(DrivePurgeError):
    """Trashing a single file failed."""

    def __init__(self, file_id: str, reason: "TrashFailureReason", message: str) -> None:
        super().__init__(message)
        self.file_id = file_id
        self.reason = reason


class RateLimitError(DrivePurgeError):
    """Rate limit exceeded."""


class ConfigError(DrivePurgeError):
    """Configuration error."""
