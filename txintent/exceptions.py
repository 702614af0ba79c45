"""
Exceptions for the txintent package.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class FieldIssue:
    """A single field-level validation failure"""
    path: str
    message: str

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{self.path}: {self.message}"


class IntentError(Exception):
    """Base exception for all txintent errors"""
    pass


class ValidationError(IntentError):
    """
    Raised when caller input is missing, malformed or inconsistent.

    Carries every field-level issue found, not only the first one, so the
    caller can fix the whole payload in a single round trip.
    """

    def __init__(self, message: Optional[str] = None, issues: Optional[Iterable[FieldIssue]] = None):
        self.issues: List[FieldIssue] = list(issues or [])
        if message is None:
            message = ", ".join(str(issue) for issue in self.issues) or "Invalid payload"
        super().__init__(message)

    @classmethod
    def for_field(cls, path: str, message: str) -> "ValidationError":
        """Build an error for a single field"""
        return cls(issues=[FieldIssue(path, message)])


class UnsupportedTypeError(ValidationError):
    """Raised when an intent type has no registered handler."""
    pass


class NotFoundError(IntentError):
    """Raised when an intent id is unknown."""
    pass


class ExpiredError(IntentError):
    """Raised when an intent is past its expiry time."""
    pass


class AlreadyCompletedError(IntentError):
    """Raised when an intent already carries a completion hash."""
    pass


class BuildError(IntentError):
    """Raised when transactions cannot be assembled from an intent."""
    pass


class PreconditionError(BuildError):
    """Raised when chain state does not allow the action (balance, market, allowance)."""
    pass


class UpstreamError(IntentError):
    """Raised when an external collaborator (RPC node, quote API) fails."""

    def __init__(self, message: str, collaborator: Optional[str] = None):
        self.collaborator = collaborator
        super().__init__(message)


class TransientUpstreamError(UpstreamError):
    """Upstream failure worth retrying: timeouts, connection resets, rate limits, 5xx."""
    pass


class PermanentUpstreamError(UpstreamError):
    """Upstream failure that will not succeed on retry."""
    pass
