"""
Submission entity models shared by every flow.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator


def _freeze(value: Any) -> Any:
    """Read-only copy: mappings become mapping proxies, sequences and sets tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


class FlowState(str, Enum):
    """Lifecycle of a single submission flow."""
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    FEEDBACK = "feedback"
    SCHEDULED_DISMISS = "scheduled_dismiss"
    DISMISSED = "dismissed"


class SubmissionStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class SubmissionError(str, Enum):
    """Why a submission did not succeed."""
    INVALID_REQUEST = "invalid_request"
    ALREADY_IN_FLIGHT = "already_in_flight"
    REMOTE_FAILURE = "remote_failure"
    FLOW_CLOSED = "flow_closed"


class SubmissionRequest(BaseModel):
    """
    One user action to be written remotely.

    Identifiers are not validated on construction; the flow rejects empty
    ones before any remote call so the rejection shows up as a result.
    The payload is copied into a read-only form, so neither the request nor
    the caller's original dict can change it afterwards.
    """

    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    subject_id: str = Field("", description="Who or what the action is about")
    actor_id: str = Field("", description="Who performs the action")
    payload: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True

    @field_validator("payload")
    @classmethod
    def freeze_payload(cls, v):
        return _freeze(v)

    @field_serializer("payload")
    def serialize_payload(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return _thaw(payload)

    def missing_identifiers(self) -> list:
        missing = []
        if not self.subject_id or not self.subject_id.strip():
            missing.append("subject_id")
        if not self.actor_id or not self.actor_id.strip():
            missing.append("actor_id")
        return missing


class SubmissionResult(BaseModel):
    """Tagged outcome: SUCCESS, or FAILURE with a reason."""

    status: SubmissionStatus
    error: Optional[SubmissionError] = None
    detail: Optional[str] = None
    request_id: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def success(cls, request_id: Optional[str] = None) -> "SubmissionResult":
        return cls(status=SubmissionStatus.SUCCESS, request_id=request_id)

    @classmethod
    def failure(
        cls,
        error: SubmissionError,
        detail: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> "SubmissionResult":
        return cls(status=SubmissionStatus.FAILURE, error=error, detail=detail, request_id=request_id)

    @property
    def ok(self) -> bool:
        return self.status == SubmissionStatus.SUCCESS


class FeedbackBanner(BaseModel):
    """Transient user-visible message, visible in [shown_at, visible_until)."""

    message: str
    shown_at: float
    visible_until: float
    is_error: bool = False

    class Config:
        frozen = True

    @property
    def duration(self) -> float:
        return self.visible_until - self.shown_at

    def is_visible(self, at: float) -> bool:
        return self.shown_at <= at < self.visible_until
