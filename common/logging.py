"""
Structured logging for the submission flows.

Every record carries the ambient request identity (request id, user, device)
and, while a flow is submitting, the flow name and submission id.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)
device_id_var: ContextVar[Optional[str]] = ContextVar('device_id', default=None)
flow_var: ContextVar[Optional[str]] = ContextVar('flow', default=None)
submission_id_var: ContextVar[Optional[str]] = ContextVar('submission_id', default=None)

# Output key -> context variable
_CONTEXT_FIELDS = (
    ("request_id", request_id_var),
    ("user_id", user_id_var),
    ("device_id", device_id_var),
    ("flow", flow_var),
    ("submission_id", submission_id_var),
)

# Attributes every LogRecord has; anything else came in through `extra`
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_NOISY_LOGGERS = ("uvicorn", "fastapi", "httpx", "httpcore", "postgrest", "hpack")


def current_context() -> Dict[str, str]:
    """Non-empty logging context values of the running task."""
    return {key: var.get() for key, var in _CONTEXT_FIELDS if var.get()}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(current_context())

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS and key not in entry:
                entry[key] = value

        try:
            return json.dumps(entry, default=str, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            return f"LOG_SERIALIZATION_ERROR: {e} | {entry['message']}"


class PlainFormatter(logging.Formatter):
    """Human readable lines with the context appended in brackets."""

    def __init__(self):
        super().__init__('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = current_context()
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


class LogContext:
    """
    Binds values to the logging context for the duration of a `with` block.

    Only non-empty values are bound; a missing request id is generated.
    """

    def __init__(
        self,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
        device_id: Optional[str] = None,
        flow: Optional[str] = None,
        submission_id: Optional[str] = None,
        generate_request_id: bool = True
    ):
        if request_id is None and generate_request_id:
            request_id = str(uuid.uuid4())
        self.request_id = request_id
        self._values = {
            request_id_var: request_id,
            user_id_var: user_id,
            device_id_var: device_id,
            flow_var: flow,
            submission_id_var: submission_id,
        }
        self._tokens = []

    def __enter__(self) -> "LogContext":
        for var, value in self._values.items():
            if value:
                self._tokens.append(var.set(value))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        while self._tokens:
            token = self._tokens.pop()
            token.var.reset(token)


def setup_logging(
    level: str = "INFO",
    format_type: str = "structured",
    log_file: Optional[str] = None
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 'structured' for JSON lines, anything else for plain text
        log_file: Optional file that receives the same records as stdout
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(numeric_level)
    formatter = StructuredFormatter() if format_type == "structured" else PlainFormatter()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_performance(
    operation: str,
    duration_ms: float,
    success: bool = True,
    **kwargs
) -> None:
    """Duration of a remote operation."""
    get_logger("performance").info(
        f"{operation} took {duration_ms:.1f}ms",
        extra={
            "operation": operation,
            "duration_ms": round(duration_ms, 3),
            "success": success,
            **kwargs
        }
    )


def log_flow_transition(flow: str, from_state: str, to_state: str, **details) -> None:
    """State machine step of a submission flow."""
    get_logger("flow").debug(
        f"{flow}: {from_state} -> {to_state}",
        extra={"from_state": from_state, "to_state": to_state, **details}
    )


def log_business_event(
    event_type: str,
    entity_type: str,
    entity_id: str,
    action: str,
    user_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Something the product cares about happened, e.g. a photo was reported."""
    get_logger("business").info(
        f"Business event: {event_type}",
        extra={
            "event_type": event_type,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "actor_id": user_id,
            "details": details or {}
        }
    )


def log_error(
    error: BaseException,
    context: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None
) -> None:
    """Log an exception with its error code and context when it carries them."""
    extra: Dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **(context or {})
    }
    if user_id:
        extra["actor_id"] = user_id
    error_code = getattr(error, "error_code", None)
    if error_code:
        extra["error_code"] = error_code
    error_context = getattr(error, "context", None)
    if error_context:
        extra["exception_context"] = error_context

    get_logger("error").error(
        f"Error occurred: {type(error).__name__}",
        extra=extra,
        exc_info=(type(error), error, error.__traceback__)
    )
