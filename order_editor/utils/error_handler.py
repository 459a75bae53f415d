"""
Custom error handling.

This module defines the application's exception hierarchy and helpers
for consistent error reporting across the API, the backend client and
the order editing services.
"""

import logging
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Backend error steps that mean the FBR side rejected or could not be reached
FBR_ERROR_STEPS = frozenset({"fbr_validation", "fbr_connection"})


class ErrorCode(Enum):
    """
    Standardized error codes.
    """

    # General
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Backend API
    BACKEND_CONNECTION_FAILED = "BACKEND_CONNECTION_FAILED"
    BACKEND_API_ERROR = "BACKEND_API_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # FBR
    FBR_VALIDATION_FAILED = "FBR_VALIDATION_FAILED"
    FBR_CONNECTION_FAILED = "FBR_CONNECTION_FAILED"
    FBR_PREVIEW_FAILED = "FBR_PREVIEW_FAILED"

    # Order data
    INVALID_ORDER_DATA = "INVALID_ORDER_DATA"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    PRODUCTION_TOKEN_REQUIRED = "PRODUCTION_TOKEN_REQUIRED"


class ErrorSeverity(Enum):
    """
    Severity levels.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AppException(Exception):
    """
    Base class for every custom application exception.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        is_retryable: bool = False,
        is_critical: bool = False,
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Standardized error code
            details: Additional error information
            status_code: Associated HTTP status
            severity: Error severity
            is_retryable: Whether the operation may be retried
            is_critical: Whether it needs immediate attention
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.severity = severity
        self.is_retryable = is_retryable
        self.is_critical = is_critical
        self.timestamp = datetime.now(timezone.utc)
        self.traceback_str = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the exception to a dictionary.

        Returns:
            Dict: Exception representation
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
            "status_code": self.status_code,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "is_critical": self.is_critical,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback_str,
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ValidationException(AppException):
    """
    Raised when user supplied order data is rejected before any state change.
    """

    def __init__(
        self,
        message: str,
        field: str,
        invalid_value: Any = None,
        expected_format: Optional[str] = None,
        **kwargs,
    ):
        """
        Initialize the validation exception.

        Args:
            message: Error message
            field: Field that failed validation
            invalid_value: Offending value
            expected_format: Expected format
            **kwargs: Extra AppException arguments
        """
        kwargs.setdefault("error_code", ErrorCode.VALIDATION_ERROR)
        super().__init__(
            message=message,
            status_code=422,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.invalid_value = invalid_value
        self.expected_format = expected_format

        self.details.update(
            {
                "field": field,
                "invalid_value": str(invalid_value) if invalid_value is not None else None,
                "expected_format": expected_format,
            }
        )


class BackendAPIException(AppException):
    """
    Raised when a backend REST call fails.
    """

    def __init__(
        self,
        message: str,
        api_response_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        rate_limited: bool = False,
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        """
        Initialize the backend API exception.

        Args:
            message: Error message
            api_response_code: HTTP status returned by the backend
            endpoint: Endpoint that failed
            rate_limited: Whether the failure was a 429
            retry_after: Seconds before retrying
            **kwargs: Extra AppException arguments
        """
        error_code = kwargs.pop("error_code", ErrorCode.BACKEND_API_ERROR)
        severity = ErrorSeverity.MEDIUM
        is_retryable = True

        if rate_limited:
            error_code = ErrorCode.RATE_LIMIT_EXCEEDED
            severity = ErrorSeverity.LOW
        elif api_response_code == 404:
            error_code = ErrorCode.RESOURCE_NOT_FOUND
            is_retryable = False
        elif api_response_code and 400 <= api_response_code < 500:
            is_retryable = False
        elif api_response_code and api_response_code >= 500:
            severity = ErrorSeverity.HIGH

        super().__init__(
            message=message,
            error_code=error_code,
            status_code=api_response_code or 503,
            severity=severity,
            is_retryable=is_retryable,
            **kwargs,
        )

        self.api_response_code = api_response_code
        self.endpoint = endpoint
        self.rate_limited = rate_limited
        self.retry_after = retry_after

        self.details.update(
            {
                "api_response_code": api_response_code,
                "endpoint": endpoint,
                "rate_limited": rate_limited,
                "retry_after": retry_after,
            }
        )


class FbrSubmissionException(AppException):
    """
    Raised when the backend reports an FBR validation or connection failure.

    These are surfaced to the user with the per-item messages and are never
    retried automatically.
    """

    def __init__(
        self,
        message: str,
        step: str,
        item_errors: Optional[List[str]] = None,
        fbr_response: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        error_code = ErrorCode.FBR_CONNECTION_FAILED if step == "fbr_connection" else ErrorCode.FBR_VALIDATION_FAILED
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=502 if step == "fbr_connection" else 422,
            severity=ErrorSeverity.HIGH,
            is_retryable=False,
            **kwargs,
        )
        self.step = step
        self.item_errors = item_errors or []
        self.fbr_response = fbr_response

        self.details.update({"step": step, "item_errors": self.item_errors})

    @property
    def display_message(self) -> str:
        """Message followed by one line per rejected item."""
        if not self.item_errors:
            return self.message
        return "\n".join([self.message, *self.item_errors])


# === UTILITY FUNCTIONS ===


def log_error(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Log an error consistently.

    Args:
        exception: Exception to log
        context: Additional context
        level: Logging level
    """
    context = context or {}

    log_data = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
        **context,
    }

    if isinstance(exception, AppException):
        message = f"{exception.error_code.value}: {exception.message}"
        log_data.update(
            {
                "error_code": exception.error_code.value,
                "severity": exception.severity.value,
                "is_retryable": exception.is_retryable,
            }
        )
    else:
        message = f"Unhandled exception: {type(exception).__name__}: {str(exception)}"

    logger.log(level, message, extra=log_data)


class ErrorAggregator:
    """
    Collects per-record failures of a batch so the batch itself can finish.
    """

    def __init__(self):
        self.errors: List[AppException] = []
        self.warnings: List[AppException] = []
        self.total_processed = 0
        self.start_time = datetime.now(timezone.utc)

    def add_error(self, exception: AppException, context: Optional[Dict] = None):
        """
        Record a failure.

        Args:
            exception: Exception to record
            context: Additional context
        """
        exception.details.update(context or {})

        if exception.severity in [ErrorSeverity.LOW, ErrorSeverity.MEDIUM]:
            self.warnings.append(exception)
        else:
            self.errors.append(exception)

        if exception.is_critical:
            log_error(exception, context, logging.CRITICAL)

    @staticmethod
    def _describe(exception: AppException) -> Dict[str, Any]:
        error_dict = exception.to_dict()
        error_dict.pop("traceback", None)
        return error_dict

    def increment_processed(self):
        self.total_processed += 1

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def get_summary(self) -> Dict[str, Any]:
        """
        Summarize the batch.

        Returns:
            Dict: Error summary
        """
        end_time = datetime.now(timezone.utc)
        duration = (end_time - self.start_time).total_seconds()

        return {
            "total_processed": self.total_processed,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "success_count": self.total_processed - len(self.errors) - len(self.warnings),
            "duration_seconds": duration,
            "errors": [self._describe(error) for error in self.errors],
            "warnings": [self._describe(warning) for warning in self.warnings],
        }
