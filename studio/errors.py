"""Error taxonomy for the studio.

Every failure the queue can meet ends up as one of four ``FailureKind``
values.  Collaborators are encouraged to raise the typed ``GenerationError``
subclasses, but ``classify_failure`` also recognises raw SDK / network
exceptions by status code and message so nothing escapes classification.
"""

from __future__ import annotations

import re
from enum import Enum


class FailureKind(str, Enum):
    CREDENTIAL_EXPIRED = "credential_expired"
    RATE_LIMITED = "rate_limited"
    MISSING_INPUT = "missing_input"
    GENERIC = "generic"


# Banner text shown to the user, keyed by failure kind.
USER_MESSAGES: dict[FailureKind, str] = {
    FailureKind.CREDENTIAL_EXPIRED: "API Key session expired. Please select your key again.",
    FailureKind.RATE_LIMITED: "Rate limit reached. Cooling down before the next image.",
}


# ── Exceptions ──────────────────────────────────────────────────────────────


class StudioError(Exception):
    """Base class for all studio errors."""


class QueueCapacityError(StudioError):
    """A submission would push the active job count over the ceiling."""

    def __init__(self, capacity: int, active: int, requested: int) -> None:
        self.capacity = capacity
        self.active = active
        self.requested = requested
        remaining = max(0, capacity - active)
        super().__init__(
            f"Queue limit reached ({capacity}). You can only add {remaining} more images."
        )


class SingleFlightViolation(StudioError):
    """Raised when a second job would enter the ``generating`` state."""


class InvalidRatingError(StudioError):
    pass


class UploadRejected(StudioError):
    pass


class StorageError(StudioError):
    """A durable write to the data directory failed."""


class GenerationError(StudioError):
    """Failure reported by the image generation collaborator."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CredentialExpiredError(GenerationError):
    pass


class RateLimitError(GenerationError):
    pass


class MissingInputError(GenerationError):
    pass


# ── Classification ──────────────────────────────────────────────────────────

_CREDENTIAL_PATTERNS = (
    "requested entity was not found",
    "api key not valid",
    "api_key_invalid",
    "api key expired",
)
_RATE_LIMIT_CODE_RE = re.compile(r"\b429\b")
_RATE_LIMIT_PATTERNS = (
    "resource_exhausted",
    "resource exhausted",
    "quota",
    "rate limit",
    "too many requests",
)


def classify_failure(exc: BaseException) -> FailureKind:
    """Map any exception raised while generating to a ``FailureKind``.

    Typed errors win; otherwise a 429 status code, then message patterns
    decide.  Anything unrecognised is ``GENERIC``.
    """
    if isinstance(exc, CredentialExpiredError):
        return FailureKind.CREDENTIAL_EXPIRED
    if isinstance(exc, RateLimitError):
        return FailureKind.RATE_LIMITED
    if isinstance(exc, MissingInputError):
        return FailureKind.MISSING_INPUT

    code = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    if code == 429:
        return FailureKind.RATE_LIMITED

    message = str(exc).lower()
    if any(p in message for p in _CREDENTIAL_PATTERNS):
        return FailureKind.CREDENTIAL_EXPIRED
    if _RATE_LIMIT_CODE_RE.search(message) or any(p in message for p in _RATE_LIMIT_PATTERNS):
        return FailureKind.RATE_LIMITED
    return FailureKind.GENERIC
