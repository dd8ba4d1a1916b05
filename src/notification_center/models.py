"""
Notification data models.

Notifications are a tagged union on ``type``:

- ``Alert``: derived from a vitals threshold breach
- ``Store``: a completed assessment with its summary
- ``System``: app-level messages

JSON keys keep the mobile client's camelCase spelling (``alertType``,
``aiAnalysis``) so persisted lists stay compatible; Python attributes are
snake_case.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

logger = logging.getLogger(__name__)

AlertType = Literal["bloodPressure", "bloodGlucose", "weight"]
Severity = Literal["low", "medium", "high", "info"]
NotificationType = Literal["Alert", "Store", "System"]

ALERT_TYPES = ("bloodPressure", "bloodGlucose", "weight")

AnswerValue = Union[str, List[str]]
AnswerSet = Dict[str, AnswerValue]


class _BaseNotification(BaseModel):
    """Fields shared by every notification type."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    message: str
    date: datetime
    read: bool = False
    severity: Optional[Severity] = None

    @field_validator("date")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        # Naive timestamps are treated as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_dict(self) -> dict:
        """Convert to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AlertNotification(_BaseNotification):
    """Notification derived from a vitals threshold breach."""

    type: Literal["Alert"] = "Alert"
    alert_type: Optional[AlertType] = Field(default=None, alias="alertType")


class AssessmentSummary(BaseModel):
    """Structured answers plus generated narrative for a completed assessment."""

    model_config = ConfigDict(populate_by_name=True)

    alert_type: Optional[AlertType] = Field(default=None, alias="alertType")
    answers: AnswerSet = Field(default_factory=dict)
    physical_activity: Optional[str] = Field(default=None, alias="physicalActivity")
    substance_intake: Optional[str] = Field(default=None, alias="substanceIntake")
    medication_taken: Optional[str] = Field(default=None, alias="medicationTaken")
    recent_food: Optional[str] = Field(default=None, alias="recentFood")
    selected_symptoms: List[str] = Field(default_factory=list, alias="selectedSymptoms")
    total_symptoms: int = Field(default=0, alias="totalSymptoms")
    assessment_date: Optional[datetime] = Field(default=None, alias="assessmentDate")
    ai_analysis: str = Field(default="", alias="aiAnalysis")


class StoreNotification(_BaseNotification):
    """Notification produced by completing an assessment flow."""

    type: Literal["Store"] = "Store"
    summary: Optional[AssessmentSummary] = None


class SystemNotification(_BaseNotification):
    """App-level notification."""

    type: Literal["System"] = "System"


Notification = Annotated[
    Union[AlertNotification, StoreNotification, SystemNotification],
    Field(discriminator="type"),
]

_notification_adapter: TypeAdapter = TypeAdapter(Notification)


def parse_notification(raw: Any) -> Notification:
    """Validate a single notification dict into its typed model."""
    return _notification_adapter.validate_python(raw)


def parse_notifications(raw: Any) -> List[Notification]:
    """
    Validate a JSON list of notifications.

    Entries that fail validation are skipped with a warning so one bad
    record does not discard the whole list.
    """
    if not isinstance(raw, list):
        logger.warning(f"[MODELS] Expected a list of notifications, got {type(raw).__name__}")
        return []

    notifications: List[Notification] = []
    for entry in raw:
        try:
            notifications.append(parse_notification(entry))
        except ValidationError as e:
            entry_id = entry.get("id") if isinstance(entry, dict) else None
            logger.warning(f"[MODELS] Skipping invalid notification {entry_id!r}: {e.error_count()} error(s)")
    return notifications


def dump_notifications(notifications: List[Notification]) -> List[dict]:
    """Convert notifications to their persisted JSON shape."""
    return [n.to_dict() for n in notifications]
