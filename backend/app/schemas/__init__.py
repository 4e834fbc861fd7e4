"""Pydantic request/response schemas for API endpoints."""

from app.schemas.notification import (
    MarkedReadResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from app.schemas.onboarding import (
    EducationEntry,
    OnboardingData,
    OnboardingDraftResponse,
    SaveProgressRequest,
    WorkEntry,
)
from app.schemas.profile import (
    EducationResponse,
    ProfessionalProfileResponse,
    ProfileSkillResponse,
    WorkExperienceResponse,
)

__all__ = [
    # Onboarding
    "EducationEntry",
    "OnboardingData",
    "OnboardingDraftResponse",
    "SaveProgressRequest",
    "WorkEntry",
    # Profile
    "EducationResponse",
    "ProfessionalProfileResponse",
    "ProfileSkillResponse",
    "WorkExperienceResponse",
    # Notifications
    "MarkedReadResponse",
    "NotificationResponse",
    "UnreadCountResponse",
]
