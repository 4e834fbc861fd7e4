"""Draft → professional profile mapping.

Pure transformation from an OnboardingData document into a transient
ProfessionalProfile graph. No I/O: the orchestrator persists the result
inside its unit of work.

Mapping (verbatim, order-preserving; list position becomes display_order):

- full_name, summary → profile
- experiences[i] → WorkExperience(company_name=company, role, description,
  start_date, end_date)
- educations[i] → Education(institution, degree, start_date, graduation_date)
- skills[i] → ProfileSkill(skill_name, level=None)
"""

import uuid
from datetime import datetime

from app.models.base import utc_now
from app.models.profile import (
    Education,
    ProfessionalProfile,
    ProfileSkill,
    WorkExperience,
)
from app.schemas.onboarding import OnboardingData
from app.services.onboarding_errors import OnboardingError, OnboardingErrorKind


def validate_for_completion(data: OnboardingData) -> None:
    """Check that a draft document can become a profile.

    Raises:
        OnboardingError: VALIDATION_FAILED if full_name is blank.
    """
    if not data.full_name.strip():
        raise OnboardingError(
            OnboardingErrorKind.VALIDATION_FAILED,
            "Full name is required to complete onboarding",
        )


def build_profile(
    user_id: str,
    data: OnboardingData,
    *,
    now: datetime | None = None,
) -> ProfessionalProfile:
    """Build a transient profile with all children attached.

    Args:
        user_id: Owner of the profile.
        data: Validated draft document.
        now: Creation time; defaults to the current UTC time.

    Returns:
        Unsaved ProfessionalProfile with a fresh id.
    """
    now = now or utc_now()
    profile = ProfessionalProfile(
        id=uuid.uuid4(),
        user_id=user_id,
        full_name=data.full_name,
        summary=data.summary,
        created_at=now,
        updated_at=now,
    )
    profile.work_experiences = [
        WorkExperience(
            company_name=entry.company,
            role=entry.role,
            description=entry.description,
            start_date=entry.start_date,
            end_date=entry.end_date,
            display_order=order,
        )
        for order, entry in enumerate(data.experiences)
    ]
    profile.educations = [
        Education(
            institution=entry.institution,
            degree=entry.degree,
            start_date=entry.start_date,
            graduation_date=entry.graduation_date,
            display_order=order,
        )
        for order, entry in enumerate(data.educations)
    ]
    profile.skills = [
        ProfileSkill(skill_name=name, level=None, display_order=order)
        for order, name in enumerate(data.skills)
    ]
    return profile
