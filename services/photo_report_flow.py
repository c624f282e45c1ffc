"""
Photo report dialog flow: reason checkboxes plus one guarded report submission.
"""

from typing import Any, Callable, Optional

from entities.report import ReportReasonFlags
from entities.session import UserSession
from entities.submission import FeedbackBanner, SubmissionRequest, SubmissionResult
from services.report_photo_service import ReportPhotoService
from services.report_reasons import build_reason, toggle_flag
from services.reports_refresh_service import ReportsRefreshService
from services.scheduler import FlowTimers
from services.submission_flow import FlowMessages, SubmissionFlow
from common.logging import get_logger

logger = get_logger("photo_report_flow")

PHOTO_REPORT_MESSAGES = FlowMessages(
    success="Reported",
    failure="Report failed",
    invalid_request="Report failed",
)


class PhotoReportFlow:
    """One open "report photo" dialog."""

    def __init__(
        self,
        image_url: str,
        image_user_id: str,
        session: UserSession,
        report_service: ReportPhotoService,
        refresh_service: Optional[ReportsRefreshService] = None,
        timers: Optional[FlowTimers] = None,
        feedback_duration: Optional[float] = None,
        dismiss_delay: Optional[float] = None,
        on_feedback: Optional[Callable[[FeedbackBanner], Any]] = None,
        on_feedback_cleared: Optional[Callable[[FeedbackBanner], Any]] = None,
        on_dismiss: Optional[Callable[[], Any]] = None,
        on_report_completed: Optional[Callable[[], Any]] = None,
    ):
        self.image_url = image_url
        self.image_user_id = image_user_id
        self.session = session
        self.report_service = report_service
        self.refresh_service = refresh_service
        self.flags = ReportReasonFlags()
        self._on_report_completed = on_report_completed

        self.flow = SubmissionFlow(
            name="photo_report",
            operation=self._send_report,
            messages=PHOTO_REPORT_MESSAGES,
            timers=timers,
            feedback_duration=feedback_duration,
            dismiss_delay=dismiss_delay,
            required_payload_fields=("image_url",),
            on_success=self._refresh_reports,
            on_completed=self._report_completed,
            on_feedback=on_feedback,
            on_feedback_cleared=on_feedback_cleared,
            on_dismiss=on_dismiss,
        )

    def toggle_flag(self, name: str) -> bool:
        """Flip one reason checkbox and return its new value."""
        self.flags = toggle_flag(self.flags, name)
        value = getattr(self.flags, name)
        logger.debug(f"Reason '{name}' toggled to {value}")
        return value

    def set_flags(self, flags: ReportReasonFlags) -> None:
        self.flags = flags

    @property
    def reason(self) -> str:
        return build_reason(self.flags)

    def build_request(self) -> SubmissionRequest:
        return SubmissionRequest(
            subject_id=self.image_user_id,
            actor_id=self.session.user_id,
            payload={"image_url": self.image_url, "reason": self.reason},
        )

    async def report(self) -> SubmissionResult:
        return await self.flow.submit(self.build_request())

    async def _send_report(self, request: SubmissionRequest) -> bool:
        return await self.report_service.report_photo(
            request.payload["image_url"],
            request.subject_id,
            request.payload["reason"],
            reporter=self.session,
        )

    def _refresh_reports(self) -> None:
        if self.refresh_service is not None:
            self.refresh_service.refresh(self.session.device_id)

    def _report_completed(self, result: SubmissionResult) -> None:
        if self._on_report_completed is not None:
            self._on_report_completed()

    def dismiss(self) -> None:
        self.flow.dismiss()

    def close(self) -> None:
        self.flow.close()

    async def __aenter__(self) -> "PhotoReportFlow":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
