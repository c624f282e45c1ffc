"""
Response envelopes shared by every endpoint that reports a flow outcome or error.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from common.logging import request_id_var


class ErrorDetail(BaseModel):
    code: str
    message: str
    field: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class APIResponse(BaseModel):
    """`{success, data | error, request_id, timestamp}`"""
    success: bool
    data: Optional[Any] = None
    error: Optional[ErrorDetail] = None
    meta: Optional[Dict[str, Any]] = None
    request_id: Optional[str] = None
    timestamp: str


class ValidationErrorResponse(APIResponse):
    success: bool = False
    validation_errors: List[Dict[str, Any]]


def _jsonable(value: Any) -> Any:
    """Best-effort conversion to JSON types; unknown objects become strings."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Enum):
        return _jsonable(value.value)
    if isinstance(value, BaseModel):
        return _jsonable(value.model_dump(exclude_none=True))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return str(value)


def _envelope(model: APIResponse, status_code: int) -> JSONResponse:
    return JSONResponse(content=_jsonable(model.model_dump(exclude_none=True)), status_code=status_code)


def _stamp() -> Dict[str, Any]:
    return {"request_id": request_id_var.get(), "timestamp": datetime.now(timezone.utc).isoformat()}


def create_success_response(
    data: Any,
    meta: Optional[Dict[str, Any]] = None,
    status_code: int = status.HTTP_200_OK
) -> JSONResponse:
    return _envelope(APIResponse(success=True, data=data, meta=meta, **_stamp()), status_code)


def create_error_response(
    error_code: str,
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    field: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    error = ErrorDetail(
        code=error_code,
        message=message,
        field=field,
        context=_jsonable(context) if context else None
    )
    return _envelope(APIResponse(success=False, error=error, **_stamp()), status_code)


def create_validation_error_response(
    validation_errors: List[Dict[str, Any]],
    message: str = "Validation failed"
) -> JSONResponse:
    response = ValidationErrorResponse(
        error=ErrorDetail(code="VALIDATION_ERROR", message=message),
        validation_errors=_jsonable(validation_errors),
        **_stamp()
    )
    return _envelope(response, status.HTTP_422_UNPROCESSABLE_ENTITY)
