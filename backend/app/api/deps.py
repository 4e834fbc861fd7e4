"""Shared dependencies for API endpoints.

Local-first mode uses DEFAULT_USER_ID; hosted mode validates the JWT from the
auth cookie or an ``Authorization: Bearer`` header.

WHY DEPENDENCY INJECTION:
- Consistent auth across all endpoints
- Easy to swap implementations (local → hosted)
- Testable with mocked dependencies (tests override get_session_factory
  and get_channel)
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.auth import InvalidTokenError, decode_access_token, extract_token
from app.core.config import settings
from app.core.database import get_session_factory
from app.core.errors import UnauthorizedError
from app.providers.delivery.base import DeliveryChannel
from app.providers.factory import get_delivery_channel
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.onboarding_service import OnboardingService


async def get_current_user_id(request: Request) -> str:
    """Get current user ID from auth context.

    Validation steps (hosted mode):
    1. Read JWT from cookie or bearer header
    2. Decode + verify signature (HS256)
    3. Verify exp, aud, iss, iat claims
    4. Extract sub as the user id

    Args:
        request: HTTP request (injected by FastAPI).

    Returns:
        Identifier of the current authenticated user.

    Raises:
        UnauthorizedError: 401 for any auth failure. The message never
            says why (expired, bad signature, missing).
    """
    if not settings.auth_enabled:
        # Local-first mode: use DEFAULT_USER_ID from environment
        if not settings.default_user_id:
            raise UnauthorizedError()
        return settings.default_user_id

    token = extract_token(request)
    if not token:
        raise UnauthorizedError()

    try:
        return decode_access_token(token)
    except InvalidTokenError as exc:
        raise UnauthorizedError() from exc


# Reusable type aliases for dependency injection (SonarCloud S8410)
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
SessionFactory = Annotated[
    async_sessionmaker[AsyncSession], Depends(get_session_factory)
]


def get_channel() -> DeliveryChannel:
    """Dependency wrapper around the delivery channel singleton."""
    return get_delivery_channel()


Channel = Annotated[DeliveryChannel, Depends(get_channel)]


def get_notification_dispatcher(
    session_factory: SessionFactory,
    channel: Channel,
) -> NotificationDispatcher:
    """Build a dispatcher bound to the request's session factory and channel."""
    return NotificationDispatcher(session_factory, channel)


Dispatcher = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]


def get_onboarding_service(
    session_factory: SessionFactory,
    dispatcher: Dispatcher,
) -> OnboardingService:
    """Build the onboarding orchestrator for one request.

    The service is cheap to construct: it holds only the session factory
    and the dispatcher, and opens its own sessions per operation.
    """
    return OnboardingService(session_factory, dispatcher)


Onboarding = Annotated[OnboardingService, Depends(get_onboarding_service)]
