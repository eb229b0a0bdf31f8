"""
Error handling for flight admin core
"""

from typing import Dict, Any, Optional
from datetime import datetime
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
import structlog

from .services.outcomes import CallOutcome, FALLBACK_ERROR_MESSAGE
from .types import (
    FlightAdminError, InvalidTimestampError, InvalidWindowError,
    OperationCancelled, OutcomeKind, TransportError
)

logger = structlog.get_logger()


class ErrorCode:
    """Standard error codes for flight admin core"""

    # Client errors (4xx)
    INVALID_REQUEST = "INVALID_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    INVALID_WINDOW = "INVALID_WINDOW"
    BUSINESS_FAILURE = "BUSINESS_FAILURE"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"

    # Silent outcomes
    CANCELLED = "CANCELLED"
    DUPLICATE_SUPPRESSED = "DUPLICATE_SUPPRESSED"


class ErrorHandler:
    """Centralized error handling and response formatting"""

    @staticmethod
    def create_error_response(
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create standardized error response"""

        error_response = {
            "status": "error",
            "message": message,
            "error_code": error_code,
            "timestamp": datetime.now().isoformat()
        }

        if details:
            error_response["details"] = details

        if request_id:
            error_response["request_id"] = request_id

        return error_response

    @staticmethod
    def get_user_friendly_message(error_code: str, original_message: str = None) -> str:
        """Get user-friendly error messages"""

        user_messages = {
            ErrorCode.CONNECTION_ERROR: "Network error: Please check your internet connection",
            ErrorCode.TIMEOUT_ERROR: "The request took too long to process. Please try again.",
            ErrorCode.SERVICE_UNAVAILABLE: "The booking system is temporarily unavailable. Please try again in a few minutes.",
            ErrorCode.RETRIES_EXHAUSTED: "The booking system could not be reached. Please try again later.",
            ErrorCode.INVALID_TIMESTAMP: "A booking date could not be read.",
            ErrorCode.INVALID_WINDOW: "The requested date range is not valid.",
            ErrorCode.VALIDATION_ERROR: "There's an issue with the information provided. Please check and try again.",
            ErrorCode.INTERNAL_ERROR: "We're experiencing technical difficulties. Please try again later."
        }

        return user_messages.get(error_code, original_message or FALLBACK_ERROR_MESSAGE)

    @staticmethod
    def banner_for(outcome: CallOutcome) -> Optional[str]:
        """
        Error banner text for a call outcome.

        Silent outcomes and successes get no banner; a business failure shows
        the backend's message when it sent one.
        """
        if not outcome.is_user_facing:
            return None
        return outcome.user_message

    @staticmethod
    def error_code_for(outcome: CallOutcome) -> Optional[str]:
        return {
            OutcomeKind.BUSINESS_FAILURE: ErrorCode.BUSINESS_FAILURE,
            OutcomeKind.FAILED_TERMINAL: ErrorCode.RETRIES_EXHAUSTED,
            OutcomeKind.CANCELLED: ErrorCode.CANCELLED,
            OutcomeKind.DUPLICATE_SUPPRESSED: ErrorCode.DUPLICATE_SUPPRESSED,
        }.get(outcome.kind)

    @staticmethod
    def should_retry(exception: Exception) -> bool:
        """Transport failures are retried; everything else is final"""
        return isinstance(exception, TransportError)


class ExceptionMapper:
    """Map exceptions to appropriate HTTP responses"""

    @staticmethod
    def map_exception(exception: Exception, request_id: str = None) -> HTTPException:
        """Map flight admin exceptions to HTTP exceptions"""

        if isinstance(exception, HTTPException):
            return exception

        if isinstance(exception, (InvalidTimestampError, InvalidWindowError)):
            error_code = (
                ErrorCode.INVALID_TIMESTAMP
                if isinstance(exception, InvalidTimestampError)
                else ErrorCode.INVALID_WINDOW
            )
            status_code = 400
            details = {"reason": str(exception)}
        elif isinstance(exception, TransportError):
            error_code = exception.error_code if exception.error_code in (
                ErrorCode.CONNECTION_ERROR, ErrorCode.TIMEOUT_ERROR
            ) else ErrorCode.SERVICE_UNAVAILABLE
            status_code = 504 if error_code == ErrorCode.TIMEOUT_ERROR else 503
            details = None
        elif isinstance(exception, OperationCancelled):
            error_code = ErrorCode.CANCELLED
            status_code = 499
            details = None
        else:
            error_code = ErrorCode.INTERNAL_ERROR
            status_code = 500
            details = {"exception_type": type(exception).__name__}

        return HTTPException(
            status_code=status_code,
            detail=ErrorHandler.create_error_response(
                message=ErrorHandler.get_user_friendly_message(error_code, str(exception)),
                error_code=error_code,
                details=details,
                request_id=request_id
            )
        )


# Global error handlers for FastAPI
async def flight_admin_exception_handler(request: Request, exc: FlightAdminError) -> JSONResponse:
    """Handler for flight admin exceptions"""

    request_id = getattr(request.state, 'request_id', None)
    http_exception = ExceptionMapper.map_exception(exc, request_id)

    logger.warning(
        "Request failed",
        error_type=type(exc).__name__,
        error_message=str(exc),
        status_code=http_exception.status_code,
        url=str(request.url)
    )

    return JSONResponse(
        status_code=http_exception.status_code,
        content=http_exception.detail
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions"""

    request_id = getattr(request.state, 'request_id', None)

    logger.error(
        "Unhandled error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    http_exception = ExceptionMapper.map_exception(exc, request_id)
    return JSONResponse(
        status_code=http_exception.status_code,
        content=http_exception.detail
    )
