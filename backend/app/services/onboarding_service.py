"""Onboarding orchestrator: draft lifecycle and profile materialization.

State machine per user:

    (no draft) --save--> IN_PROGRESS --save--> IN_PROGRESS
    IN_PROGRESS --complete--> COMPLETED (terminal, immutable)

complete_onboarding() converts the draft into a ProfessionalProfile. The
profile insert (with all children) and the draft flag flip run in one
UnitOfWork: either both are committed or neither is, so a failed
completion can simply be retried.

Notifications are emitted after the business transaction has committed and
never affect the outcome: a storage or delivery failure on the notification
side is logged and the operation still succeeds.

All public methods return an OnboardingOutcome. No exception leaves this
module; callers branch on ``outcome.error_kind``.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.unit_of_work import UnitOfWork
from app.models.onboarding import OnboardingDraft
from app.repositories.onboarding_repository import OnboardingDraftRepository
from app.repositories.profile_repository import ProfessionalProfileRepository
from app.schemas.onboarding import OnboardingData, OnboardingDraftResponse
from app.schemas.profile import ProfessionalProfileResponse
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.onboarding_errors import (
    OnboardingError,
    OnboardingErrorKind,
    OnboardingOutcome,
)
from app.services.profile_materialization import build_profile, validate_for_completion

logger = logging.getLogger(__name__)

_PERSISTENCE_MESSAGE = "Your changes could not be saved. Please try again."


def _require_user(user_id: str | None) -> str:
    if user_id is None or not user_id.strip():
        raise OnboardingError(
            OnboardingErrorKind.INVALID_INPUT, "A user id is required"
        )
    return user_id


def _load_data(draft: OnboardingDraft) -> OnboardingData:
    """Parse the stored document, upgrading legacy shapes.

    Raises:
        OnboardingError: VALIDATION_FAILED if the stored document is unreadable.
    """
    try:
        return OnboardingData.from_stored(draft.data)
    except ValueError as exc:
        logger.error("Unreadable onboarding draft for user %s: %s", draft.user_id, exc)
        raise OnboardingError(
            OnboardingErrorKind.VALIDATION_FAILED,
            "The saved onboarding draft could not be read",
        ) from exc


def _draft_snapshot(draft: OnboardingDraft) -> OnboardingDraftResponse:
    return OnboardingDraftResponse(
        id=draft.id,
        user_id=draft.user_id,
        current_step=draft.current_step,
        data=_load_data(draft),
        is_completed=draft.is_completed,
        updated_at=draft.updated_at,
    )


class OnboardingService:
    """Drives onboarding drafts through save, resume and completion.

    Args:
        session_factory: Factory for the per-operation sessions.
        dispatcher: Notification dispatcher for progress/completion events.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: NotificationDispatcher,
    ) -> None:
        self._session_factory = session_factory
        self._dispatcher = dispatcher

    async def save_progress(
        self,
        user_id: str,
        current_step: int,
        data: OnboardingData,
        is_completed: bool = False,
    ) -> OnboardingOutcome[OnboardingDraftResponse]:
        """Create or overwrite the user's draft.

        Args:
            user_id: Authenticated user.
            current_step: Wizard step, >= 1. May move backwards.
            data: Full draft document; replaces the stored one.
            is_completed: Must be False. Only complete_onboarding() may
                flip the flag, so a caller-supplied True is rejected.

        Returns:
            Outcome carrying the persisted draft on success, or one of
            INVALID_INPUT, ALREADY_COMPLETED, PERSISTENCE_FAILURE.
        """
        try:
            user_id = _require_user(user_id)
            if current_step < 1:
                raise OnboardingError(
                    OnboardingErrorKind.INVALID_INPUT,
                    "Current step must be 1 or greater",
                )
            if is_completed:
                raise OnboardingError(
                    OnboardingErrorKind.INVALID_INPUT,
                    "Onboarding can only be completed through the completion step",
                )

            async with UnitOfWork(self._session_factory) as uow:
                existing = await OnboardingDraftRepository.get_by_user(
                    uow.session, user_id, for_update=True
                )
                if existing is not None and existing.is_completed:
                    raise OnboardingError(
                        OnboardingErrorKind.ALREADY_COMPLETED,
                        "Onboarding has already been completed",
                    )
                draft = await OnboardingDraftRepository.upsert(
                    uow.session,
                    user_id=user_id,
                    current_step=current_step,
                    data=data.to_document(),
                    is_completed=False,
                )
                snapshot = _draft_snapshot(draft)
        except OnboardingError as exc:
            return OnboardingOutcome.fail(exc)
        except SQLAlchemyError:
            logger.exception("Failed to save onboarding progress for user %s", user_id)
            return OnboardingOutcome.fail(
                OnboardingError(
                    OnboardingErrorKind.PERSISTENCE_FAILURE, _PERSISTENCE_MESSAGE
                )
            )

        try:
            await self._dispatcher.notify_onboarding_progress(user_id, current_step)
        except SQLAlchemyError:
            logger.warning(
                "Progress notification not stored for user %s", user_id, exc_info=True
            )

        return OnboardingOutcome.ok(snapshot, "Progress saved")

    async def get_progress(
        self, user_id: str
    ) -> OnboardingOutcome[OnboardingDraftResponse]:
        """Return the user's stored draft (for resume).

        Returns:
            Outcome carrying the draft, or INVALID_INPUT / NOT_FOUND.
        """
        try:
            user_id = _require_user(user_id)
            async with self._session_factory() as db:
                draft = await OnboardingDraftRepository.get_by_user(db, user_id)
                if draft is None:
                    raise OnboardingError(
                        OnboardingErrorKind.NOT_FOUND,
                        "No onboarding progress found",
                    )
                snapshot = _draft_snapshot(draft)
        except OnboardingError as exc:
            return OnboardingOutcome.fail(exc)
        except SQLAlchemyError:
            logger.exception("Failed to load onboarding progress for user %s", user_id)
            return OnboardingOutcome.fail(
                OnboardingError(
                    OnboardingErrorKind.PERSISTENCE_FAILURE, _PERSISTENCE_MESSAGE
                )
            )

        return OnboardingOutcome.ok(snapshot, "Onboarding progress found")

    async def complete_onboarding(
        self, user_id: str
    ) -> OnboardingOutcome[ProfessionalProfileResponse]:
        """Materialize the user's draft into a professional profile.

        Steps (first failure wins):
        1. user id present                    → else INVALID_INPUT
        2. draft exists                       → else NOT_FOUND
        3. draft not completed                → else ALREADY_COMPLETED
        4. full_name not blank                → else VALIDATION_FAILED
        5. no profile for the user yet        → else DUPLICATE_PROFILE
        6-7. insert profile + flip draft in one UnitOfWork
                                              → any store error: PERSISTENCE_FAILURE
        8. emit the completed notification (best-effort)

        The draft row is locked (SELECT ... FOR UPDATE) for the duration of
        the transaction so concurrent completions serialize. The UNIQUE
        index on professional_profiles.user_id backs this up.

        Returns:
            Outcome carrying the profile with its children (status 201).
        """
        try:
            user_id = _require_user(user_id)
            async with UnitOfWork(self._session_factory) as uow:
                db = uow.session
                draft = await OnboardingDraftRepository.get_by_user(
                    db, user_id, for_update=True
                )
                if draft is None:
                    raise OnboardingError(
                        OnboardingErrorKind.NOT_FOUND,
                        "No onboarding progress found",
                    )
                if draft.is_completed:
                    raise OnboardingError(
                        OnboardingErrorKind.ALREADY_COMPLETED,
                        "Onboarding has already been completed",
                    )

                data = _load_data(draft)
                validate_for_completion(data)

                if await ProfessionalProfileRepository.exists_for_user(db, user_id):
                    raise OnboardingError(
                        OnboardingErrorKind.DUPLICATE_PROFILE,
                        "A professional profile already exists for this user",
                    )

                profile = await ProfessionalProfileRepository.create(
                    db, build_profile(user_id, data)
                )
                await OnboardingDraftRepository.mark_completed(db, draft)
                snapshot = ProfessionalProfileResponse.model_validate(profile)
        except OnboardingError as exc:
            return OnboardingOutcome.fail(exc)
        except SQLAlchemyError:
            # Includes a unique-index violation from a concurrent completion.
            # The unit of work rolled back: no profile, draft not flipped.
            logger.exception("Failed to complete onboarding for user %s", user_id)
            return OnboardingOutcome.fail(
                OnboardingError(
                    OnboardingErrorKind.PERSISTENCE_FAILURE, _PERSISTENCE_MESSAGE
                )
            )

        logger.info(
            "Onboarding completed for user %s (profile %s)", user_id, snapshot.id
        )

        try:
            await self._dispatcher.notify_onboarding_completed(user_id, snapshot.id)
        except SQLAlchemyError:
            logger.warning(
                "Completion notification not stored for user %s",
                user_id,
                exc_info=True,
            )

        return OnboardingOutcome.ok(
            snapshot, "Onboarding completed successfully", status_code=201
        )

    async def get_profile(
        self, user_id: str
    ) -> OnboardingOutcome[ProfessionalProfileResponse]:
        """Return the user's materialized profile with its children.

        Returns:
            Outcome carrying the profile, or INVALID_INPUT / NOT_FOUND.
        """
        try:
            user_id = _require_user(user_id)
            async with self._session_factory() as db:
                profile = await ProfessionalProfileRepository.get_by_user(db, user_id)
                if profile is None:
                    raise OnboardingError(
                        OnboardingErrorKind.NOT_FOUND,
                        "No professional profile found",
                    )
                snapshot = ProfessionalProfileResponse.model_validate(profile)
        except OnboardingError as exc:
            return OnboardingOutcome.fail(exc)
        except SQLAlchemyError:
            logger.exception("Failed to load profile for user %s", user_id)
            return OnboardingOutcome.fail(
                OnboardingError(
                    OnboardingErrorKind.PERSISTENCE_FAILURE, _PERSISTENCE_MESSAGE
                )
            )

        return OnboardingOutcome.ok(snapshot, "Professional profile found")
