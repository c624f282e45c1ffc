"""
Centralized exception classes for the moderation flows.
Provides a hierarchy of custom exceptions with proper error codes and messages.
"""

from typing import Optional, Dict, Any
from fastapi import HTTPException, status


class BaseFlowException(HTTPException):
    """Base exception class for all moderation flow errors."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}


# Validation Exceptions
class ValidationException(BaseFlowException):
    """Data validation errors."""

    def __init__(
        self,
        detail: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        error_code: str = "VALIDATION_ERROR",
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
            context=context or {"field": field, "value": value}
        )


class InvalidSubmissionRequestException(ValidationException):
    """A submission is missing required identifiers or payload fields."""

    def __init__(
        self,
        detail: str = "Invalid submission request",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            field=field,
            error_code="INVALID_REQUEST",
            context=context
        )


# Resource Exceptions
class ResourceException(BaseFlowException):
    """Resource-related errors."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_404_NOT_FOUND,
        error_code: str = "RESOURCE_ERROR",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            status_code=status_code,
            error_code=error_code,
            context=context or {"resource_type": resource_type, "resource_id": resource_id}
        )


class ResourceLimitExceededException(ResourceException):
    """Resource limit exceeded errors."""

    def __init__(
        self,
        resource_type: str,
        limit: int,
        current: int,
        detail: Optional[str] = None,
        error_code: str = "RESOURCE_LIMIT_EXCEEDED",
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail or f"{resource_type} limit exceeded: {current}/{limit}",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code=error_code,
            resource_type=resource_type,
            context=context or {"limit": limit, "current": current}
        )


class SelectionLimitExceededException(ResourceLimitExceededException):
    """Adding an item would push a selection past its cap."""

    def __init__(
        self,
        item: str,
        limit: int,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            resource_type="selection",
            limit=limit,
            current=limit,
            detail=f"You can select up to {limit} items",
            error_code="LIMIT_EXCEEDED",
            context=context or {"item": item, "limit": limit}
        )
        self.item = item
        self.limit = limit


# Business Logic Exceptions
class BusinessLogicException(BaseFlowException):
    """Business logic errors."""

    def __init__(
        self,
        detail: str,
        error_code: str = "BUSINESS_LOGIC_ERROR",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            status_code=status_code,
            error_code=error_code,
            context=context
        )


class SubmissionInFlightException(BusinessLogicException):
    """A submission is already running on the same flow."""

    def __init__(
        self,
        flow_name: str,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=f"A {flow_name} submission is already in progress",
            error_code="ALREADY_IN_FLIGHT",
            status_code=status.HTTP_409_CONFLICT,
            context=context or {"flow": flow_name}
        )


class FlowClosedException(BusinessLogicException):
    """The flow has been dismissed or torn down."""

    def __init__(
        self,
        flow_name: str,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=f"The {flow_name} flow is closed",
            error_code="FLOW_CLOSED",
            status_code=status.HTTP_409_CONFLICT,
            context=context or {"flow": flow_name}
        )


# External Service Exceptions
class ExternalServiceException(BaseFlowException):
    """External service errors."""

    def __init__(
        self,
        detail: str,
        service_name: str,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=error_code,
            context=context or {"service_name": service_name}
        )


class RecordStoreException(ExternalServiceException):
    """Remote record store errors."""

    def __init__(
        self,
        detail: str,
        collection: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            service_name="record_store",
            error_code="RECORD_STORE_ERROR",
            context=context or {"collection": collection, "operation": operation}
        )


class RemoteSubmissionFailedException(ExternalServiceException):
    """The remote side of a submission reported failure."""

    def __init__(
        self,
        detail: str,
        flow_name: str,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            service_name=flow_name,
            error_code="REMOTE_FAILURE",
            context=context or {"flow": flow_name}
        )


class PreferenceStoreException(BaseFlowException):
    """Local preference store errors."""

    def __init__(
        self,
        detail: str,
        key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="PREFERENCE_STORE_ERROR",
            context=context or {"key": key}
        )
