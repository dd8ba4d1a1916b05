"""Pydantic models for notification and assessment API requests and responses."""
from .notifications import (
    NotificationListResponse,
    UnreadCountResponse,
    RouteResponse,
    SystemNotificationRequest,
)
from .assessments import (
    StartAssessmentRequest,
    OptionRequest,
    SessionResponse,
    IdentityRequest,
)

__all__ = [
    "NotificationListResponse",
    "UnreadCountResponse",
    "RouteResponse",
    "SystemNotificationRequest",
    "StartAssessmentRequest",
    "OptionRequest",
    "SessionResponse",
    "IdentityRequest",
]
