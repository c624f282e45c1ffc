from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from entities.report import ReportReasonFlags
from entities.submission import FeedbackBanner, SubmissionResult


def _known_reasons(names: List[str]) -> List[str]:
    known = ReportReasonFlags.flag_names()
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ValueError(f"Unknown report reason(s): {', '.join(unknown)}")
    return names


class PhotoReportRequest(BaseModel):
    image_url: str = Field(..., description="URL of the reported photo")
    image_user_id: str = Field(..., description="Owner of the reported photo")
    reasons: List[str] = Field(default_factory=list, description="Reason flag names, e.g. 'spam'")

    @field_validator("reasons")
    @classmethod
    def validate_reasons(cls, v):
        return _known_reasons(v)


class BatchPhotoReportRequest(BaseModel):
    image_urls: List[str] = Field(..., min_length=1, max_length=50)
    image_user_id: str
    reasons: List[str] = Field(default_factory=list)

    @field_validator("reasons")
    @classmethod
    def validate_reasons(cls, v):
        return _known_reasons(v)


class InterestsUpdateRequest(BaseModel):
    interest_tags: List[str] = Field(..., description="Full selection to save, in order")


class ReportReasonItem(BaseModel):
    flag: str
    reason: str


class ReportReasonsResponse(BaseModel):
    reasons: List[ReportReasonItem]
    default_reason: str
    delimiter: str


class BannerResponse(BaseModel):
    message: str
    is_error: bool
    duration_seconds: float

    @classmethod
    def from_banner(cls, banner: Optional[FeedbackBanner]) -> Optional["BannerResponse"]:
        if banner is None:
            return None
        return cls(message=banner.message, is_error=banner.is_error, duration_seconds=banner.duration)


class FlowOutcomeResponse(BaseModel):
    """What a client needs to render the end of a flow."""
    status: str
    request_id: Optional[str] = None
    banner: Optional[BannerResponse] = None
    dismiss_after_seconds: Optional[float] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_result(
        cls,
        result: SubmissionResult,
        banner: Optional[FeedbackBanner],
        dismiss_after_seconds: Optional[float] = None,
        **data: Any
    ) -> "FlowOutcomeResponse":
        return cls(
            status=result.status.value,
            request_id=result.request_id,
            banner=BannerResponse.from_banner(banner),
            dismiss_after_seconds=dismiss_after_seconds if result.ok else None,
            data=data,
        )


class BatchReportResponse(BaseModel):
    all_reported: bool
    count: int


class ReportStatusResponse(BaseModel):
    image_url: str
    reported: bool
