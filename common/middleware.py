"""
Request tracking and last-resort error handling.
"""
import time
from typing import Any, Dict

from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp
from pydantic import ValidationError

from common.exceptions import BaseFlowException
from common.logging import LogContext, get_logger
from common.responses import (
    create_error_response,
    create_validation_error_response,
)

REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-Id"
DEVICE_ID_HEADER = "X-Device-Id"

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "RESOURCE_CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
    500: "INTERNAL_SERVER_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def _request_fields(request: Request) -> Dict[str, Any]:
    return {"path": str(request.url.path), "method": request.method}


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """
    Binds the correlation id and caller identity to the logging context and
    echoes the correlation id back in the response headers.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.logger = get_logger("middleware")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        with LogContext(
            request_id=request.headers.get(REQUEST_ID_HEADER),
            user_id=request.headers.get(USER_ID_HEADER),
            device_id=request.headers.get(DEVICE_ID_HEADER),
        ) as ctx:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = ctx.request_id
            self.logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    **_request_fields(request),
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 3),
                }
            )
            return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns exceptions that escaped the routers into error envelopes."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.logger = get_logger("error_handler")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except BaseFlowException as e:
            return self._flow_error(e, request)
        except HTTPException as e:
            return self._http_error(e, request)
        except ValidationError as e:
            return self._validation_error(e, request)
        except Exception as e:
            return self._unexpected_error(e, request)

    def _flow_error(self, error: BaseFlowException, request: Request) -> JSONResponse:
        log = self.logger.warning if error.status_code < 500 else self.logger.error
        log(
            f"Flow exception: {error.error_code}",
            extra={
                **_request_fields(request),
                "error_code": error.error_code,
                "status_code": error.status_code,
                "context": error.context,
            }
        )
        response = create_error_response(
            error_code=error.error_code,
            message=error.detail,
            status_code=error.status_code,
            context=error.context
        )
        return _with_headers(response, error.headers)

    def _http_error(self, error: HTTPException, request: Request) -> JSONResponse:
        self.logger.warning(
            f"HTTP exception: {error.status_code}",
            extra={**_request_fields(request), "status_code": error.status_code, "detail": error.detail}
        )
        response = create_error_response(
            error_code=HTTP_ERROR_CODES.get(error.status_code, "HTTP_ERROR"),
            message=str(error.detail),
            status_code=error.status_code
        )
        return _with_headers(response, error.headers)

    def _validation_error(self, error: ValidationError, request: Request) -> JSONResponse:
        self.logger.warning(
            "Validation error occurred",
            extra={**_request_fields(request), "error_count": error.error_count()}
        )
        return create_validation_error_response(
            validation_errors=[
                {
                    "field": ".".join(str(x) for x in err["loc"]),
                    "message": err["msg"],
                    "type": err["type"],
                    "value": err.get("input"),
                }
                for err in error.errors()
            ],
            message="Request validation failed"
        )

    def _unexpected_error(self, error: Exception, request: Request) -> JSONResponse:
        self.logger.error(
            f"Unexpected error: {type(error).__name__}",
            extra={**_request_fields(request), "error_type": type(error).__name__},
            exc_info=True
        )
        # Internal details stay in the log
        return create_error_response(
            error_code="INTERNAL_SERVER_ERROR",
            message="An unexpected error occurred",
            status_code=500
        )


def _with_headers(response: JSONResponse, headers) -> JSONResponse:
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


def setup_middleware(app: FastAPI) -> None:
    """Register middleware; the last one added runs first."""
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestTrackingMiddleware)
