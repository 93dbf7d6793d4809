"""
Custom error classes for data processing services.

Provides structured error handling with error codes,
context information, and proper exception chaining.
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """Error context information."""
    service: str
    operation: str
    account: Optional[str] = None
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


class DataProcessingError(Exception):
    """Base exception for data processing errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        result = {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

        if self.context:
            result["context"] = {
                "service": self.context.service,
                "operation": self.context.operation,
                "account": self.context.account,
                "correlation_id": self.context.correlation_id,
                "metadata": self.context.metadata,
            }

        return result


class ValidationError(DataProcessingError):
    """Error raised when data validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            context=context,
            details=details or {}
        )
        self.field = field
        self.value = value

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)


class ProcessingError(DataProcessingError):
    """Error raised during a processing cycle."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="PROCESSING_ERROR",
            context=context,
            details=details or {}
        )
        self.stage = stage

        if stage:
            self.details["stage"] = stage


class StorageError(DataProcessingError):
    """Error raised when storage operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "STORAGE_ERROR",
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            context=context,
            details=details or {}
        )
        self.operation = operation
        self.table = table

        if operation:
            self.details["operation"] = operation
        if table:
            self.details["table"] = table


class StoreReadError(StorageError):
    """Error raised when an aggregate row cannot be loaded."""

    def __init__(self, message: str, table: Optional[str] = None, **kwargs: Any):
        super().__init__(message, operation="load", table=table, error_code="STORE_READ_ERROR", **kwargs)


class StoreWriteError(StorageError):
    """Error raised when a batch of aggregate rows cannot be written."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        row_count: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, operation="put_batch", table=table, error_code="STORE_WRITE_ERROR", **kwargs)
        self.row_count = row_count
        if row_count is not None:
            self.details["row_count"] = row_count


class RateLookupError(StorageError):
    """Error raised when the trade history query itself fails.

    Distinct from a lookup that succeeds but finds no trades.
    """

    def __init__(
        self,
        message: str,
        currency: Optional[str] = None,
        issuer: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, operation="query_trade_history", error_code="RATE_LOOKUP_ERROR", **kwargs)
        if currency:
            self.details["currency"] = currency
        if issuer:
            self.details["issuer"] = issuer


class ConfigurationError(DataProcessingError):
    """Error raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            context=context,
            details=details or {}
        )
        self.config_key = config_key
        self.config_value = config_value

        if config_key:
            self.details["config_key"] = config_key
        if config_value is not None:
            self.details["config_value"] = str(config_value)


class OperationTimeoutError(DataProcessingError):
    """Error raised when an external call exceeds its time budget."""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        operation: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="TIMEOUT_ERROR",
            context=context,
            details=details or {}
        )
        self.timeout_seconds = timeout_seconds
        self.operation = operation

        if timeout_seconds is not None:
            self.details["timeout_seconds"] = timeout_seconds
        if operation:
            self.details["operation"] = operation


def create_error_context(
    service: str,
    operation: str,
    account: Optional[str] = None,
    correlation_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> ErrorContext:
    """Create error context."""
    return ErrorContext(
        service=service,
        operation=operation,
        account=account,
        correlation_id=correlation_id,
        metadata=metadata or {}
    )
