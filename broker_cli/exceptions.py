"""Custom exception classes for Broker CLI."""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for different types of failures."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Transport and protocol errors
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    BROKER_ERROR = "BROKER_ERROR"
    DECODE_ERROR = "DECODE_ERROR"
    ASYNC_NOT_ACCEPTED = "ASYNC_NOT_ACCEPTED"

    # Operation polling errors
    OPERATION_TIMEOUT = "OPERATION_TIMEOUT"

    # Cleanup errors
    CLEANUP_FAILED = "CLEANUP_FAILED"
    CLEANUP_CANCELLED = "CLEANUP_CANCELLED"


class BrokerCliError(Exception):
    """Base exception class for Broker CLI."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Specific error code for the failure
            details: Additional context about the error
            cause: The underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured output."""
        result = {
            'error': self.error_code.value,
            'message': self.message,
            'details': self.details
        }

        if self.cause:
            result['cause'] = str(self.cause)

        return result

    def __str__(self) -> str:
        """String representation of the exception."""
        base_str = f"{self.error_code.value}: {self.message}"

        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            base_str += f" ({details_str})"

        if self.cause:
            base_str += f" [caused by: {self.cause}]"

        return base_str


class ValidationError(BrokerCliError):
    """Exception for validation failures."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        details = {}
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = str(value)

        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details
        )


class BrokerURLError(ValidationError):
    """Exception for an invalid combination of broker addressing flags."""


class ParameterError(ValidationError):
    """Exception for a JSON flag value that is not an object."""


class ConfigurationError(BrokerCliError):
    """Exception for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, cause: Optional[Exception] = None):
        details = {}
        if config_key:
            details['config_key'] = config_key

        super().__init__(
            message=message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
            cause=cause
        )


class TransportError(BrokerCliError):
    """Exception for failures building or sending an HTTP request."""

    def __init__(self, message: str, method: Optional[str] = None, url: Optional[str] = None,
                 cause: Optional[Exception] = None):
        details = {}
        if method:
            details['method'] = method
        if url:
            details['url'] = url

        super().__init__(
            message=message,
            error_code=ErrorCode.TRANSPORT_ERROR,
            details=details,
            cause=cause
        )


class BrokerError(BrokerCliError):
    """A well-formed broker response carrying an error status.

    ``envelope`` holds the parsed provider error envelope when the body
    could be decoded, otherwise None. ``body`` always keeps the raw text.
    """

    def __init__(
        self,
        status_code: int,
        description: str,
        body: str = "",
        envelope: Optional[Any] = None
    ):
        self.status_code = status_code
        self.description = description
        self.body = body
        self.envelope = envelope

        super().__init__(
            message=description,
            error_code=ErrorCode.BROKER_ERROR,
            details={'status_code': status_code}
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['body'] = self.body
        return result

    def __str__(self) -> str:
        code = str(self.status_code) if self.status_code else "<nil>"
        description = self.description or "<nil>"
        return f"StatusCode: {code}\n Description: {description}\n Details: {self.body}"


class AsyncNotAcceptedError(BrokerCliError):
    """The broker answered 202 to a request that did not accept incomplete operations."""

    def __init__(self, body: str = ""):
        self.body = body
        super().__init__(
            message=f"request shouldn't be handled asynchronously: {body}",
            error_code=ErrorCode.ASYNC_NOT_ACCEPTED,
            details={'status_code': 202}
        )


class DecodeError(BrokerCliError):
    """Exception for a response body that could not be decoded."""

    def __init__(self, body: str, cause: Optional[Exception] = None):
        self.body = body
        super().__init__(
            message=f"error unmarshalling response body: {body}",
            error_code=ErrorCode.DECODE_ERROR,
            cause=cause
        )


class OperationTimeoutError(BrokerCliError):
    """Exception raised when polling is cancelled or runs past its deadline."""

    def __init__(self, message: str, last_operation: Optional[Any] = None,
                 timeout_seconds: Optional[float] = None):
        self.last_operation = last_operation
        details = {}
        if timeout_seconds is not None:
            details['timeout_seconds'] = timeout_seconds
        if last_operation is not None:
            details['last_state'] = last_operation.state

        super().__init__(
            message=message,
            error_code=ErrorCode.OPERATION_TIMEOUT,
            details=details
        )


class CleanupError(BrokerCliError):
    """Aggregated failure of a broker cleanup, keyed by instance ID."""

    def __init__(self, broker_url: str, errors: Dict[str, Exception]):
        self.broker_url = broker_url
        self.errors = errors

        super().__init__(
            message=f"failed to cleanup service instances in broker with error {errors}",
            error_code=ErrorCode.CLEANUP_FAILED,
            details={'broker_url': broker_url, 'failed_instances': sorted(errors)}
        )


class CleanupCancelledError(BrokerCliError):
    """The user declined the cleanup confirmation prompt."""

    def __init__(self, broker_url: str):
        super().__init__(
            message="Stopped broker cleanup as per user request",
            error_code=ErrorCode.CLEANUP_CANCELLED,
            details={'broker_url': broker_url}
        )


def format_error_response(error: Exception, include_traceback: bool = False) -> Dict[str, Any]:
    """Format an exception into a standardized error response."""
    if isinstance(error, BrokerCliError):
        response = error.to_dict()
    else:
        # Handle non-custom exceptions
        response = {
            'error': ErrorCode.INTERNAL_ERROR.value,
            'message': str(error),
            'details': {}
        }

    if include_traceback:
        import traceback
        response['traceback'] = traceback.format_exc()

    return response
