"""Assessment session request and response models."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Optional, Literal

AlertType = Literal["bloodPressure", "bloodGlucose", "weight"]


class StartAssessmentRequest(BaseModel):
    """Request model for starting an assessment session."""

    model_config = ConfigDict(populate_by_name=True)

    alert_type: AlertType = Field(alias="alertType")
    require_multiple_selection: bool = Field(default=False, alias="requireMultipleSelection")


class OptionRequest(BaseModel):
    """Select or toggle an option on a question node."""

    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(alias="nodeId")
    option: str


class SessionResponse(BaseModel):
    """Current state of an assessment session."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(serialization_alias="sessionId")
    alert_type: str = Field(serialization_alias="alertType")
    current_step: int = Field(serialization_alias="currentStep")
    current_node: dict[str, Any] = Field(serialization_alias="currentNode")
    answers: dict[str, Any]
    can_advance: bool = Field(serialization_alias="canAdvance")
    progress: float
    generated: bool
    completed: bool
    flow: list[dict[str, Any]]
    changed: Optional[bool] = None
    summary: Optional[dict[str, Any]] = None


class IdentityRequest(BaseModel):
    """Cached user record and bearer token for vitals requests."""

    user: dict[str, Any]
    token: str = Field(min_length=1)
