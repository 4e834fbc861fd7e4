"""Onboarding error taxonomy and structured outcomes.

Every public OnboardingService operation returns an OnboardingOutcome
instead of raising: callers branch on ``kind``, never on message text.
Each kind has a stable HTTP status and machine-readable code used by the
API layer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")

# =============================================================================
# Enums
# =============================================================================


class OnboardingErrorKind(str, Enum):
    """Why an onboarding operation failed.

    Values:
        INVALID_INPUT: Blank user id, step < 1, or a forbidden flag.
        NOT_FOUND: No draft (or profile) for the user.
        ALREADY_COMPLETED: Draft is terminal; do not retry.
        DUPLICATE_PROFILE: User already has a profile; do not retry.
        VALIDATION_FAILED: Draft content cannot become a profile.
        PERSISTENCE_FAILURE: Store error; nothing was committed, retry.
    """

    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    DUPLICATE_PROFILE = "DUPLICATE_PROFILE"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def retryable(self) -> bool:
        """Whether the same request may succeed if sent again unchanged."""
        return self is OnboardingErrorKind.PERSISTENCE_FAILURE


_STATUS_CODES: dict[OnboardingErrorKind, int] = {
    OnboardingErrorKind.INVALID_INPUT: 400,
    OnboardingErrorKind.NOT_FOUND: 404,
    OnboardingErrorKind.ALREADY_COMPLETED: 409,
    OnboardingErrorKind.DUPLICATE_PROFILE: 409,
    OnboardingErrorKind.VALIDATION_FAILED: 422,
    OnboardingErrorKind.PERSISTENCE_FAILURE: 503,
}

# =============================================================================
# Exceptions
# =============================================================================


class OnboardingError(Exception):
    """Internal failure raised inside OnboardingService.

    Never leaves the service: the public methods convert it into a failed
    OnboardingOutcome.
    """

    def __init__(self, kind: OnboardingErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)


# =============================================================================
# Outcome
# =============================================================================


@dataclass(frozen=True)
class OnboardingOutcome(Generic[T]):
    """Result of an OnboardingService operation.

    Attributes:
        success: True when the operation did what was asked.
        message: Human-readable summary, safe to show to the user.
        status_code: HTTP status the API layer should answer with.
        payload: Snapshot of the affected entity on success.
        error_kind: Failure reason on failure.
    """

    success: bool
    message: str
    status_code: int
    payload: T | None = None
    error_kind: OnboardingErrorKind | None = None

    @classmethod
    def ok(
        cls, payload: T, message: str, status_code: int = 200
    ) -> "OnboardingOutcome[T]":
        return cls(
            success=True,
            message=message,
            status_code=status_code,
            payload=payload,
        )

    @classmethod
    def fail(cls, error: OnboardingError) -> "OnboardingOutcome[T]":
        return cls(
            success=False,
            message=error.message,
            status_code=error.kind.status_code,
            error_kind=error.kind,
        )
