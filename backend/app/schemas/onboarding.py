"""Onboarding draft schemas.

OnboardingData is the structured document stored in onboarding_drafts.data.
It is versioned by ``schema_version``; documents written before structured
storage existed are upgraded on read (see services/draft_migration.py).

Input accepts snake_case and camelCase keys (``full_name`` / ``fullName``)
so existing front-ends keep working. Output is always snake_case.
"""

import uuid
from datetime import date, datetime
from typing import Any, Literal

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CURRENT_SCHEMA_VERSION = 2

# Bounds mirror the column sizes in models/profile.py.
_MAX_NAME_LENGTH = 255
_MAX_TEXT_LENGTH = 10_000
_MAX_ENTRIES = 100
_MAX_SKILLS = 200

_INPUT_CONFIG = ConfigDict(
    extra="forbid",
    populate_by_name=True,
    alias_generator=AliasGenerator(validation_alias=to_camel),
)


class WorkEntry(BaseModel):
    """One employment entry in a draft."""

    model_config = _INPUT_CONFIG

    company: str = Field(max_length=_MAX_NAME_LENGTH)
    role: str = Field(max_length=_MAX_NAME_LENGTH)
    description: str = Field(default="", max_length=_MAX_TEXT_LENGTH)
    start_date: date
    end_date: date | None = None


class EducationEntry(BaseModel):
    """One education entry in a draft."""

    model_config = _INPUT_CONFIG

    institution: str = Field(max_length=_MAX_NAME_LENGTH)
    degree: str = Field(max_length=_MAX_NAME_LENGTH)
    start_date: date
    graduation_date: date | None = None


class OnboardingData(BaseModel):
    """Structured onboarding draft document.

    Every field is optional while the user is filling out the form.
    ``full_name`` must be non-blank only at completion time.

    Attributes:
        schema_version: Document version. Only the current version is
            accepted; older shapes are upgraded by from_stored.
        full_name: Display name for the profile.
        summary: Professional summary.
        email: Contact email as typed by the user (not verified).
        skills: Ordered skill names.
        experiences: Ordered employment entries.
        educations: Ordered education entries.
    """

    model_config = _INPUT_CONFIG

    schema_version: Literal[2] = CURRENT_SCHEMA_VERSION
    full_name: str = Field(default="", max_length=_MAX_NAME_LENGTH)
    summary: str = Field(default="", max_length=_MAX_TEXT_LENGTH)
    email: str = Field(default="", max_length=_MAX_NAME_LENGTH)
    skills: list[str] = Field(default_factory=list, max_length=_MAX_SKILLS)
    experiences: list[WorkEntry] = Field(
        default_factory=list, max_length=_MAX_ENTRIES
    )
    educations: list[EducationEntry] = Field(
        default_factory=list, max_length=_MAX_ENTRIES
    )

    def to_document(self) -> dict[str, Any]:
        """JSON-safe dict for the ``data`` column (dates as ISO strings)."""
        return self.model_dump(mode="json")

    @classmethod
    def from_stored(cls, raw: dict[str, Any] | str | None) -> "OnboardingData":
        """Load a stored draft document, upgrading legacy shapes.

        Args:
            raw: Column value. A dict carrying ``schema_version`` is a
                structured document; anything else (a legacy JSON string or
                an unversioned dict) goes through the legacy upgrade.

        Returns:
            The parsed document.

        Raises:
            LegacyDraftError: If a legacy payload cannot be interpreted.
        """
        if isinstance(raw, dict) and "schema_version" in raw:
            return cls.model_validate(raw)

        # Local import: draft_migration imports this module.
        from app.services.draft_migration import upgrade_legacy_payload

        return upgrade_legacy_payload(raw)


class SaveProgressRequest(BaseModel):
    """Request body for POST /onboarding/save.

    ``current_step`` is range-checked by the service so a bad step is
    reported as INVALID_INPUT rather than a schema error.
    """

    model_config = _INPUT_CONFIG

    current_step: int
    data: OnboardingData = Field(default_factory=OnboardingData)
    is_completed: bool = False


class OnboardingDraftResponse(BaseModel):
    """Snapshot of a persisted onboarding draft."""

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    user_id: str
    current_step: int
    data: OnboardingData
    is_completed: bool
    updated_at: datetime
