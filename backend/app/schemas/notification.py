"""Notification schemas.

NotificationResponse is the stored record as returned by the read paths.
The realtime event payloads (OnboardingProgress, OnboardingCompleted,
Notification, GroupNotification) are plain dicts built by the dispatcher;
their keys are documented there.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    """Persisted notification."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    title: str
    message: str
    type: str
    category: str
    read: bool
    timestamp: datetime
    data: dict[str, Any] | None = None


class UnreadCountResponse(BaseModel):
    count: int


class MarkedReadResponse(BaseModel):
    """Result of PUT /notifications/read-all."""

    updated: int
