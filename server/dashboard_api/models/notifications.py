"""Notification center request and response models."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Optional, Literal

Severity = Literal["low", "medium", "high", "info"]


class NotificationListResponse(BaseModel):
    """Reconciled notification list with diagnostics from the pass."""

    model_config = ConfigDict(populate_by_name=True)

    notifications: list[dict[str, Any]]
    unread_count: int = Field(serialization_alias="unreadCount")
    alerts_derived: int = Field(serialization_alias="alertsDerived")
    vitals_error: Optional[str] = Field(default=None, serialization_alias="vitalsError")
    identity_missing: bool = Field(default=False, serialization_alias="identityMissing")
    persisted: bool = True


class UnreadCountResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unread_count: int = Field(serialization_alias="unreadCount")


class RouteResponse(BaseModel):
    """Screen a tapped notification opens; screen is None when there is nowhere to go."""

    screen: Optional[str] = None
    params: dict[str, Any] = Field(default_factory=dict)


class SystemNotificationRequest(BaseModel):
    """Request model for queueing a system notification."""

    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    severity: Optional[Severity] = None
