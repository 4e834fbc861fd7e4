"""Onboarding API router.

Endpoints:
- POST /save: Create or overwrite the user's draft.
- GET /resume: Return the stored draft to continue where the user left off.
- POST /complete: Materialize the draft into a professional profile.
- GET /profile: Return the materialized profile.

The user id always comes from the authenticated principal, never the body.
"""

from typing import TypeVar

import structlog
from fastapi import APIRouter, Request, status

from app.api.deps import CurrentUserId, Onboarding
from app.core.config import settings
from app.core.errors import (
    APIError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse
from app.schemas.onboarding import OnboardingDraftResponse, SaveProgressRequest
from app.schemas.profile import ProfessionalProfileResponse
from app.services.onboarding_errors import OnboardingErrorKind, OnboardingOutcome

logger = structlog.get_logger()

router = APIRouter()

T = TypeVar("T")


def _to_api_error(outcome: OnboardingOutcome) -> APIError:
    """Map a failed outcome onto the shared APIError hierarchy."""
    kind = outcome.error_kind
    message = outcome.message
    if kind is OnboardingErrorKind.INVALID_INPUT:
        return ValidationError(message=message, code=kind.value)
    if kind is OnboardingErrorKind.NOT_FOUND:
        return NotFoundError("Onboarding", message=message)
    if kind in (
        OnboardingErrorKind.ALREADY_COMPLETED,
        OnboardingErrorKind.DUPLICATE_PROFILE,
    ):
        return ConflictError(code=kind.value, message=message)
    if kind is OnboardingErrorKind.VALIDATION_FAILED:
        return InvalidStateError(message=message, code=kind.value)
    return ServiceUnavailableError(
        message=message, code=OnboardingErrorKind.PERSISTENCE_FAILURE.value
    )


def _unwrap(outcome: OnboardingOutcome[T]) -> DataResponse[T]:
    if not outcome.success or outcome.payload is None:
        raise _to_api_error(outcome)
    return DataResponse(data=outcome.payload, message=outcome.message)


@router.post("/save")
@limiter.limit(settings.rate_limit_onboarding)
async def save_progress(
    request: Request,  # noqa: ARG001
    body: SaveProgressRequest,
    user_id: CurrentUserId,
    service: Onboarding,
) -> DataResponse[OnboardingDraftResponse]:
    """Save onboarding progress.

    Overwrites the step and draft document; the step may go backwards.
    ``isCompleted`` may only be omitted or false: sending true is rejected
    with INVALID_INPUT, because a draft is completed only by
    POST /complete. ``data.schemaVersion``, if sent, must be the current
    document version.

    Args:
        request: HTTP request (required by rate limiter).
        body: Step, draft document and completion flag.
        user_id: Current authenticated user.
        service: Onboarding orchestrator.

    Returns:
        DataResponse with the persisted draft.

    Raises:
        ValidationError: INVALID_INPUT for a bad step or completion flag.
        ConflictError: ALREADY_COMPLETED if onboarding is finished.
        ServiceUnavailableError: PERSISTENCE_FAILURE, safe to retry.
    """
    outcome = await service.save_progress(
        user_id, body.current_step, body.data, body.is_completed
    )
    return _unwrap(outcome)


@router.get("/resume")
async def resume_progress(
    user_id: CurrentUserId,
    service: Onboarding,
) -> DataResponse[OnboardingDraftResponse]:
    """Return the stored draft.

    Raises:
        NotFoundError: If the user has never saved progress.
    """
    return _unwrap(await service.get_progress(user_id))


@router.post("/complete", status_code=status.HTTP_201_CREATED)
async def complete_onboarding(
    user_id: CurrentUserId,
    service: Onboarding,
) -> DataResponse[ProfessionalProfileResponse]:
    """Complete onboarding and create the professional profile.

    Returns:
        DataResponse with the created profile and its children.

    Raises:
        NotFoundError: No draft.
        ConflictError: ALREADY_COMPLETED or DUPLICATE_PROFILE.
        InvalidStateError: VALIDATION_FAILED (e.g. blank full name).
        ServiceUnavailableError: PERSISTENCE_FAILURE, safe to retry.
    """
    outcome = await service.complete_onboarding(user_id)
    if outcome.success and outcome.payload is not None:
        logger.info(
            "Onboarding completed",
            user_id=user_id,
            profile_id=str(outcome.payload.id),
        )
    return _unwrap(outcome)


@router.get("/profile")
async def get_profile(
    user_id: CurrentUserId,
    service: Onboarding,
) -> DataResponse[ProfessionalProfileResponse]:
    """Return the professional profile created by onboarding."""
    return _unwrap(await service.get_profile(user_id))
