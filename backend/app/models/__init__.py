"""SQLAlchemy ORM models for Vertex onboarding.

All models are exported from this module for convenient imports:
    from app.models import OnboardingDraft, ProfessionalProfile, ...

Models are organized by domain:
- onboarding.py: OnboardingDraft (one per user)
- profile.py: ProfessionalProfile, WorkExperience, Education, ProfileSkill
- notification.py: Notification (+ NotificationType, NotificationCategory)
"""

from app.models.base import AwareDateTime, Base, TimestampMixin
from app.models.notification import (
    Notification,
    NotificationCategory,
    NotificationType,
)
from app.models.onboarding import OnboardingDraft
from app.models.profile import (
    Education,
    ProfessionalProfile,
    ProfileSkill,
    WorkExperience,
)

__all__ = [
    # Base classes
    "Base",
    "AwareDateTime",
    "TimestampMixin",
    # Onboarding
    "OnboardingDraft",
    # Profile
    "ProfessionalProfile",
    "WorkExperience",
    "Education",
    "ProfileSkill",
    # Notifications
    "Notification",
    "NotificationCategory",
    "NotificationType",
]
