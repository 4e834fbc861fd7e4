"""Legacy onboarding draft upgrade.

Before structured storage, drafts were kept as an opaque JSON string in
onboarding_drafts.serialized_data, written by a front-end that used
PascalCase or camelCase keys and several shapes for dates and skills:

    {"FullName": "...", "Email": "...", "Summary": "...",
     "Skills": ["Python", ...] | [{"SkillName": "Python", "Level": "..."}],
     "Experiences": [{"Company" | "CompanyName": "...", "Role": "...",
                      "Description": "...",
                      "DateRange": {"Start": "...", "End": null}
                      | "StartDate": "...", "EndDate": "..."}],
     "Educations": [{"Institution": "...", "Degree": "...",
                     "DateRange": {...} | "StartDate"/"GraduationDate"}]}

upgrade_legacy_payload() turns any of those into an OnboardingData at the
current schema version. It is used by migration 002 for stored rows and by
OnboardingData.from_stored for documents that were never upgraded.
"""

import json
import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from app.schemas.onboarding import OnboardingData

logger = logging.getLogger(__name__)

# Legacy writers stored a missing start date as 0001-01-01.
_LEGACY_MIN_DATE = date.min


class LegacyDraftError(ValueError):
    """A legacy draft payload cannot be interpreted."""


# =============================================================================
# Key / value helpers
# =============================================================================


def _norm(key: str) -> str:
    return key.replace("_", "").lower()


def _pick(obj: Mapping[str, Any], *names: str) -> Any:
    """Return the first present value among ``names``, ignoring key style.

    "FullName", "fullName" and "full_name" all match the name "fullname".
    """
    normalized = {_norm(k): v for k, v in obj.items() if isinstance(k, str)}
    for name in names:
        value = normalized.get(_norm(name))
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _parse_date(value: Any, *, field: str) -> date | None:
    """Parse a legacy date value.

    Accepts ISO dates and ISO datetimes (with or without offset / "Z").
    A 0001-01-01 end date on an optional field means unset.

    Raises:
        LegacyDraftError: If the value is not a recognizable date.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise LegacyDraftError(f"{field}: expected a date string, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError as exc:
        raise LegacyDraftError(f"{field}: unrecognized date {value!r}") from exc


def _date_range(
    entry: Mapping[str, Any], end_names: tuple[str, ...], *, field: str
) -> tuple[date, date | None]:
    """Extract (start, end) from a nested DateRange or flat fields."""
    nested = _pick(entry, "DateRange")
    if isinstance(nested, Mapping):
        raw_start = _pick(nested, "Start", "StartDate")
        raw_end = _pick(nested, "End", "EndDate")
    else:
        raw_start = _pick(entry, "StartDate", "Start")
        raw_end = _pick(entry, *end_names)

    start = _parse_date(raw_start, field=f"{field}.start") or _LEGACY_MIN_DATE
    end = _parse_date(raw_end, field=f"{field}.end")
    if end == _LEGACY_MIN_DATE:
        end = None
    return start, end


def _entries(payload: Mapping[str, Any], *names: str) -> list[Mapping[str, Any]]:
    value = _pick(payload, *names)
    if value is None:
        return []
    if not isinstance(value, list):
        raise LegacyDraftError(f"{names[0]}: expected a list")
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise LegacyDraftError(f"{names[0]}[{index}]: expected an object")
    return value


# =============================================================================
# Section converters
# =============================================================================


def _convert_skills(payload: Mapping[str, Any]) -> list[str]:
    value = _pick(payload, "Skills")
    if value is None:
        return []
    if not isinstance(value, list):
        raise LegacyDraftError("Skills: expected a list")

    skills: list[str] = []
    for index, item in enumerate(value):
        if isinstance(item, str):
            skills.append(item)
        elif isinstance(item, Mapping):
            name = _pick(item, "SkillName", "Name")
            if name is None:
                raise LegacyDraftError(f"Skills[{index}]: missing skill name")
            skills.append(_text(name))
        else:
            raise LegacyDraftError(f"Skills[{index}]: unsupported value {item!r}")
    return skills


def _convert_experiences(payload: Mapping[str, Any]) -> list[dict[str, Any]]:
    converted = []
    entries = _entries(payload, "Experiences", "WorkExperiences")
    for index, entry in enumerate(entries):
        start, end = _date_range(
            entry, ("EndDate", "End"), field=f"Experiences[{index}]"
        )
        converted.append(
            {
                "company": _text(_pick(entry, "Company", "CompanyName")),
                "role": _text(_pick(entry, "Role", "Title")),
                "description": _text(_pick(entry, "Description")),
                "start_date": start,
                "end_date": end,
            }
        )
    return converted


def _convert_educations(payload: Mapping[str, Any]) -> list[dict[str, Any]]:
    converted = []
    for index, entry in enumerate(_entries(payload, "Educations", "Education")):
        start, end = _date_range(
            entry, ("GraduationDate", "EndDate", "End"), field=f"Educations[{index}]"
        )
        converted.append(
            {
                "institution": _text(_pick(entry, "Institution")),
                "degree": _text(_pick(entry, "Degree")),
                "start_date": start,
                "graduation_date": end,
            }
        )
    return converted


# =============================================================================
# Public API
# =============================================================================


def upgrade_legacy_payload(raw: str | Mapping[str, Any] | None) -> OnboardingData:
    """Convert a legacy draft payload into a structured document.

    Args:
        raw: The legacy JSON string, an already-decoded legacy object, or
            None. None, empty and whitespace-only strings yield an empty
            document.

    Returns:
        OnboardingData at the current schema version.

    Raises:
        LegacyDraftError: If the payload is not valid JSON, is not an
            object, or holds values that cannot be mapped.
    """
    if raw is None:
        return OnboardingData()

    if isinstance(raw, str):
        if not raw.strip():
            return OnboardingData()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise LegacyDraftError(f"Legacy draft is not valid JSON: {exc}") from exc
    else:
        payload = raw

    if not isinstance(payload, Mapping):
        raise LegacyDraftError("Legacy draft must be a JSON object")

    known = {
        "fullname",
        "email",
        "summary",
        "skills",
        "experiences",
        "workexperiences",
        "educations",
        "education",
    }
    ignored = sorted(k for k in payload if _norm(str(k)) not in known)
    if ignored:
        logger.warning("Ignoring unknown legacy draft keys: %s", ", ".join(ignored))

    try:
        return OnboardingData(
            full_name=_text(_pick(payload, "FullName")),
            email=_text(_pick(payload, "Email")),
            summary=_text(_pick(payload, "Summary")),
            skills=_convert_skills(payload),
            experiences=_convert_experiences(payload),
            educations=_convert_educations(payload),
        )
    except ValidationError as exc:
        raise LegacyDraftError(f"Legacy draft has invalid values: {exc}") from exc
