"""
Submit-with-deduplication-and-feedback flow.

One SubmissionFlow drives a single user action: validate the request, run
exactly one remote operation at a time, show a transient banner with the
outcome and, after a success, signal dismissal of the surrounding dialog.

All state changes happen on the event loop that awaits `submit`; the remote
operation itself may run elsewhere (the record store pushes blocking client
calls to worker threads) and its result is observed back on the loop.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from common.exceptions import (
    BusinessLogicException,
    FlowClosedException,
    InvalidSubmissionRequestException,
    RemoteSubmissionFailedException,
    SubmissionInFlightException,
)
from common.logging import (
    LogContext,
    get_logger,
    log_business_event,
    log_error,
    log_flow_transition,
    log_performance,
)
from config.config import settings
from entities.submission import (
    FeedbackBanner,
    FlowState,
    SubmissionError,
    SubmissionRequest,
    SubmissionResult,
)
from services.scheduler import FlowTimers

logger = get_logger("submission_flow")

Operation = Callable[[SubmissionRequest], Awaitable[bool]]
Validator = Callable[[SubmissionRequest], Optional[str]]

FEEDBACK_TIMER = "feedback"
DISMISS_TIMER = "dismiss"


@dataclass(frozen=True)
class FlowMessages:
    """Banner texts for each outcome. No invalid_request text means no banner."""
    success: str
    failure: str
    invalid_request: Optional[str] = None


class SubmissionFlow:
    """
    Orchestrates validation, one guarded remote call, and timed feedback.

    `operation` returns True when the remote side accepted the request;
    returning False or raising counts as a remote failure. `on_success` is the
    aggregate refresh trigger and runs exactly once per successful flow.
    """

    def __init__(
        self,
        name: str,
        operation: Operation,
        messages: FlowMessages,
        timers: Optional[FlowTimers] = None,
        feedback_duration: Optional[float] = None,
        dismiss_delay: Optional[float] = None,
        required_payload_fields: Sequence[str] = (),
        validators: Sequence[Validator] = (),
        on_success: Optional[Callable[[], Any]] = None,
        on_completed: Optional[Callable[[SubmissionResult], Any]] = None,
        on_feedback: Optional[Callable[[FeedbackBanner], Any]] = None,
        on_feedback_cleared: Optional[Callable[[FeedbackBanner], Any]] = None,
        on_dismiss: Optional[Callable[[], Any]] = None,
        auto_dismiss: bool = True,
    ):
        self.name = name
        self._operation = operation
        self.messages = messages
        self.timers = timers or FlowTimers()
        self.feedback_duration = feedback_duration if feedback_duration is not None else settings.feedback_duration_seconds
        self.dismiss_delay = dismiss_delay if dismiss_delay is not None else settings.dismiss_delay_seconds
        self.required_payload_fields = tuple(required_payload_fields)
        self.validators = tuple(validators)
        self.auto_dismiss = auto_dismiss

        self._on_success = on_success
        self._on_completed = on_completed
        self._on_feedback = on_feedback
        self._on_feedback_cleared = on_feedback_cleared
        self._on_dismiss = on_dismiss

        self._state = FlowState.IDLE
        self._in_flight = False
        self._task: Optional[asyncio.Future] = None
        self._banner: Optional[FeedbackBanner] = None
        self._succeeded = False
        self._closed = False

    # ---- state ----

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def banner(self) -> Optional[FeedbackBanner]:
        return self._banner

    @property
    def succeeded(self) -> bool:
        return self._succeeded

    @property
    def closed(self) -> bool:
        return self._closed

    def _set_state(self, state: FlowState) -> None:
        if state != self._state:
            log_flow_transition(self.name, self._state.value, state.value)
            self._state = state

    def _accepts_submissions(self) -> bool:
        return not (self._closed or self._succeeded or self._state == FlowState.DISMISSED)

    # ---- submission ----

    def validate(self, request: SubmissionRequest) -> Optional[str]:
        """Return a reason the request is invalid, or None."""
        missing = request.missing_identifiers()
        if missing:
            return f"Missing required identifier(s): {', '.join(missing)}"

        for field in self.required_payload_fields:
            value = request.payload.get(field)
            if value is None or (isinstance(value, (str, list, tuple, Mapping)) and not value):
                return f"Missing required field: {field}"

        for validator in self.validators:
            problem = validator(request)
            if problem:
                return problem
        return None

    async def submit(self, request: SubmissionRequest) -> SubmissionResult:
        with LogContext(flow=self.name, submission_id=request.request_id, generate_request_id=False):
            return await self._submit(request)

    async def _submit(self, request: SubmissionRequest) -> SubmissionResult:
        if not self._accepts_submissions():
            logger.info(f"{self.name}: submission {request.request_id} rejected, flow is closed")
            return SubmissionResult.failure(
                SubmissionError.FLOW_CLOSED,
                detail=f"The {self.name} flow is closed",
                request_id=request.request_id
            )

        if self._in_flight:
            logger.info(f"{self.name}: submission {request.request_id} rejected, another is in flight")
            return SubmissionResult.failure(
                SubmissionError.ALREADY_IN_FLIGHT,
                detail=f"A {self.name} submission is already in progress",
                request_id=request.request_id
            )

        self._set_state(FlowState.VALIDATING)
        problem = self.validate(request)
        if problem:
            logger.info(f"{self.name}: invalid request {request.request_id}: {problem}")
            self._set_state(FlowState.IDLE)
            banner_text = self.messages.invalid_request
            if banner_text:
                self.schedule_feedback(banner_text, is_error=True)
            return SubmissionResult.failure(
                SubmissionError.INVALID_REQUEST,
                detail=problem,
                request_id=request.request_id
            )

        self._in_flight = True
        self._set_state(FlowState.SUBMITTING)
        start_time = time.time()
        detail = None
        try:
            self._task = asyncio.ensure_future(self._operation(request))
            try:
                accepted = bool(await self._task)
            except asyncio.CancelledError:
                if not self._closed:
                    self._set_state(FlowState.IDLE)
                    raise
                logger.info(f"{self.name}: submission {request.request_id} cancelled by teardown")
                return SubmissionResult.failure(
                    SubmissionError.FLOW_CLOSED,
                    detail="Cancelled by teardown",
                    request_id=request.request_id
                )
            except Exception as e:
                log_error(e, context={"flow": self.name, "request_id": request.request_id})
                detail = getattr(e, "detail", None) or str(e)
                accepted = False
        finally:
            self._in_flight = False
            self._task = None

        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation=f"{self.name}_submit",
            duration_ms=duration_ms,
            success=accepted
        )

        if self._closed:
            return SubmissionResult.failure(
                SubmissionError.FLOW_CLOSED,
                detail="Flow closed before the result arrived",
                request_id=request.request_id
            )

        if not accepted:
            return self._handle_failure(request, detail)
        return self._handle_success(request)

    def _handle_success(self, request: SubmissionRequest) -> SubmissionResult:
        result = SubmissionResult.success(request_id=request.request_id)
        self._succeeded = True
        self._set_state(FlowState.FEEDBACK)

        log_business_event(
            event_type=f"{self.name.upper()}_SUBMITTED",
            entity_type=self.name,
            entity_id=request.subject_id,
            action="submit",
            user_id=request.actor_id,
            details={"request_id": request.request_id}
        )

        self.schedule_feedback(self.messages.success)
        self._notify(self._on_success)
        self._notify(self._on_completed, result)
        if self.auto_dismiss:
            self.schedule_dismiss()
        return result

    def _handle_failure(self, request: SubmissionRequest, detail: Optional[str]) -> SubmissionResult:
        logger.warning(f"{self.name}: submission {request.request_id} failed: {detail or 'rejected by remote'}")
        self._set_state(FlowState.FEEDBACK)
        self.schedule_feedback(self.messages.failure, is_error=True)
        self._set_state(FlowState.IDLE)
        return SubmissionResult.failure(
            SubmissionError.REMOTE_FAILURE,
            detail=detail or "Remote side rejected the submission",
            request_id=request.request_id
        )

    # ---- feedback and dismissal ----

    def schedule_feedback(
        self,
        message: str,
        duration: Optional[float] = None,
        is_error: bool = False
    ) -> FeedbackBanner:
        """Show `message` now and clear it after `duration` seconds."""
        duration = duration if duration is not None else self.feedback_duration
        now = self.timers.now()
        banner = FeedbackBanner(
            message=message,
            shown_at=now,
            visible_until=now + duration,
            is_error=is_error
        )
        self._banner = banner
        self.timers.call_later(FEEDBACK_TIMER, duration, lambda: self._clear_feedback(banner))
        self._notify(self._on_feedback, banner)
        return banner

    def _clear_feedback(self, banner: FeedbackBanner) -> None:
        if self._banner is banner:
            self._banner = None
        self._notify(self._on_feedback_cleared, banner)

    def schedule_dismiss(self, delay: Optional[float] = None) -> None:
        """Signal dismissal after `delay` seconds; only valid after a success."""
        if not self._succeeded:
            raise BusinessLogicException(
                detail=f"The {self.name} flow can only auto-dismiss after a successful submission",
                error_code="DISMISS_REQUIRES_SUCCESS",
                context={"flow": self.name, "state": self._state.value}
            )
        delay = delay if delay is not None else self.dismiss_delay
        if self.timers.call_later(DISMISS_TIMER, delay, self._fire_dismiss):
            self._set_state(FlowState.SCHEDULED_DISMISS)

    def _fire_dismiss(self) -> None:
        if self._state == FlowState.DISMISSED:
            return
        self._set_state(FlowState.DISMISSED)
        logger.debug(f"{self.name}: dismissed")
        self._notify(self._on_dismiss)

    def dismiss(self) -> None:
        """Dismiss right away, e.g. the user tapped outside the dialog."""
        self.timers.cancel(DISMISS_TIMER)
        self._fire_dismiss()

    # ---- teardown ----

    def close(self) -> None:
        """Cancel pending timers and an in-flight remote call. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.timers.close()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug(f"{self.name}: closed in state {self._state.value}")

    async def __aenter__(self) -> "SubmissionFlow":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _notify(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            # Listener errors must not corrupt the flow state
            log_error(e, context={"flow": self.name, "callback": getattr(callback, "__name__", repr(callback))})


def raise_for_result(result: SubmissionResult, flow_name: str, banner: Optional[FeedbackBanner] = None) -> None:
    """Turn a failed result into the matching API exception; no-op on success."""
    if result.ok:
        return
    context = {"flow": flow_name, "request_id": result.request_id}
    if banner is not None:
        context["banner"] = banner.message

    if result.error == SubmissionError.INVALID_REQUEST:
        raise InvalidSubmissionRequestException(detail=result.detail or "Invalid submission request", context=context)
    if result.error == SubmissionError.ALREADY_IN_FLIGHT:
        raise SubmissionInFlightException(flow_name, context=context)
    if result.error == SubmissionError.FLOW_CLOSED:
        raise FlowClosedException(flow_name, context=context)
    raise RemoteSubmissionFailedException(
        detail=result.detail or f"The {flow_name} submission failed",
        flow_name=flow_name,
        context=context
    )
