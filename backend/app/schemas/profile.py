"""Professional profile response schemas."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class WorkExperienceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    company_name: str
    role: str
    description: str
    start_date: date
    end_date: date | None = None
    display_order: int


class EducationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    institution: str
    degree: str
    start_date: date
    graduation_date: date | None = None
    display_order: int


class ProfileSkillResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    skill_name: str
    level: str | None = None
    display_order: int


class ProfessionalProfileResponse(BaseModel):
    """Materialized profile with its ordered children.

    Built from an ORM ProfessionalProfile whose collections were eagerly
    loaded (ProfessionalProfileRepository.get_by_user / get_by_id).
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    full_name: str
    summary: str
    created_at: datetime
    updated_at: datetime
    work_experiences: list[WorkExperienceResponse]
    educations: list[EducationResponse]
    skills: list[ProfileSkillResponse]
