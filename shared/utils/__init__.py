"""
Utility modules for data processing services.

Provides common utilities for:
- Structured logging
- Error handling
- UTC day boundaries and sortable row keys
"""

from .logging import setup_logging, add_account
from .errors import (
    DataProcessingError,
    ValidationError,
    ProcessingError,
    StorageError,
    StoreReadError,
    StoreWriteError,
    RateLookupError,
    ConfigurationError,
    OperationTimeoutError,
)
from .timeutil import start_of_day, build_row_key, parse_row_key, now_utc

__all__ = [
    "setup_logging",
    "add_account",
    "DataProcessingError",
    "ValidationError",
    "ProcessingError",
    "StorageError",
    "StoreReadError",
    "StoreWriteError",
    "RateLookupError",
    "ConfigurationError",
    "OperationTimeoutError",
    "start_of_day",
    "build_row_key",
    "parse_row_key",
    "now_utc",
]
