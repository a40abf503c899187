"""
Error Handling Utilities for BEAM module signing.

Provides consistent error reporting for the places where an error is
turned into an outcome instead of being propagated (the loader gateway
and the command line):
1. Error categorization and severity levels
2. Detailed error logging with context
3. Stack trace preservation

USAGE:
    from beamsign.utils.error_handling import (
        handle_error,
        ErrorCategory,
        safe_execute,
    )

    # Context manager usage
    with safe_execute("signing module", ErrorCategory.CRYPTO) as result:
        result.value = sign(module, secret_key)

    # Direct error handling
    try:
        verify_module()
    except BeamSigningError as e:
        handle_error(e, "verify_module", ErrorCategory.CONTAINER)
"""

import logging
import sys
import threading
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from ..errors import (
    AttributeDecodeError,
    BeamSigningError,
    MalformedContainerError,
    MissingCodeChunkError,
    ReconstructionError,
)

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors for proper handling and reporting."""
    # Container structure (chunks, header, reconstruction)
    CONTAINER = "container"

    # Attr chunk contents
    ATTRIBUTES = "attributes"

    # Keys and signatures
    CRYPTO = "crypto"

    # Reading modules and key files
    FILESYSTEM = "filesystem"

    # Runtime module loader
    LOADER = "loader"

    # Unknown/uncategorized
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    # Informational - operation can continue
    INFO = "info"

    # Warning - something unexpected but not critical
    WARNING = "warning"

    # Error - operation failed
    ERROR = "error"

    # Critical - a defect or an integrity problem
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Detailed context information for an error."""
    error: Exception
    category: ErrorCategory
    severity: ErrorSeverity
    operation: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    thread_name: str = field(default_factory=lambda: threading.current_thread().name)
    stack_trace: str = ""
    additional_context: Dict[str, Any] = field(default_factory=dict)
    python_version: str = field(default_factory=lambda: sys.version.split()[0])

    def __post_init__(self):
        if not self.stack_trace and self.error.__traceback__ is not None:
            self.stack_trace = ''.join(traceback.format_exception(
                type(self.error), self.error, self.error.__traceback__
            ))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            'error_type': type(self.error).__name__,
            'error_message': str(self.error),
            'category': self.category.value,
            'severity': self.severity.value,
            'operation': self.operation,
            'timestamp': self.timestamp,
            'thread_name': self.thread_name,
            'stack_trace': self.stack_trace,
            'additional_context': self.additional_context,
            'python_version': self.python_version,
        }

    def format_log_message(self) -> str:
        """Format a detailed log message."""
        lines = [
            f"ERROR [{self.severity.value.upper()}] in {self.operation}",
            f"  Category: {self.category.value}",
            f"  Type: {type(self.error).__name__}",
            f"  Message: {self.error}",
            f"  Thread: {self.thread_name}",
            f"  Timestamp: {self.timestamp}",
        ]

        if self.additional_context:
            lines.append("  Context:")
            for key, value in self.additional_context.items():
                lines.append(f"    {key}: {value}")

        if self.stack_trace:
            lines.append("  Stack Trace:")
            for line in self.stack_trace.split('\n'):
                if line.strip():
                    lines.append(f"    {line}")

        return '\n'.join(lines)


def categorize_error(error: Exception) -> ErrorCategory:
    """Pick a category for an exception raised while handling a module."""
    if isinstance(error, AttributeDecodeError):
        return ErrorCategory.ATTRIBUTES
    if isinstance(error, (MalformedContainerError, MissingCodeChunkError, ReconstructionError)):
        return ErrorCategory.CONTAINER
    if isinstance(error, OSError):
        return ErrorCategory.FILESYSTEM
    if isinstance(error, (ValueError, TypeError)):
        # PyNaCl reports malformed keys this way
        return ErrorCategory.CRYPTO
    return ErrorCategory.UNKNOWN


def determine_severity(
    error: Exception,
    category: ErrorCategory,
) -> ErrorSeverity:
    """
    Determine the severity level for an error based on type and category.
    """
    # Rebuilding a module we just read should never fail
    if isinstance(error, ReconstructionError):
        return ErrorSeverity.CRITICAL

    if isinstance(error, FileNotFoundError):
        return ErrorSeverity.WARNING

    if category == ErrorCategory.UNKNOWN and not isinstance(error, BeamSigningError):
        return ErrorSeverity.CRITICAL

    return ErrorSeverity.ERROR


_LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


def handle_error(
    error: Exception,
    operation: str,
    category: Optional[ErrorCategory] = None,
    severity: Optional[ErrorSeverity] = None,
    additional_context: Optional[Dict[str, Any]] = None,
    reraise: bool = False,
    log_level: Optional[int] = None,
) -> ErrorContext:
    """
    Handle an error with detailed logging.

    Args:
        error: The exception that occurred
        operation: Name of the operation that failed
        category: Category of the error (derived from the error if omitted)
        severity: Severity level (auto-determined if not provided)
        additional_context: Additional context information
        reraise: Whether to re-raise the exception after handling
        log_level: Override the log level (auto-determined if not provided)

    Returns:
        ErrorContext with full error details
    """
    if category is None:
        category = categorize_error(error)

    if severity is None:
        severity = determine_severity(error, category)

    context = ErrorContext(
        error=error,
        category=category,
        severity=severity,
        operation=operation,
        additional_context=additional_context or {},
    )

    if log_level is None:
        log_level = _LOG_LEVELS.get(severity, logging.ERROR)

    logger.log(log_level, context.format_log_message())

    if reraise:
        raise error

    return context


class ExecutionResult:
    """Outcome holder yielded by safe_execute()."""

    def __init__(self, default: Any = None):
        self.value = default
        self.error: Optional[ErrorContext] = None
        self.success = True


@contextmanager
def safe_execute(
    operation: str,
    category: Optional[ErrorCategory] = None,
    default_return: Any = None,
    reraise: bool = False,
    additional_context: Optional[Dict[str, Any]] = None,
) -> Iterator[ExecutionResult]:
    """
    Context manager for safe execution with error handling.

    Usage:
        with safe_execute("reading module", ErrorCategory.FILESYSTEM) as result:
            result.value = read_chunks(path)

    Args:
        operation: Name of the operation
        category: Error category
        default_return: Default value to return on error
        reraise: Whether to re-raise exceptions
        additional_context: Additional context information
    """
    result = ExecutionResult(default_return)

    try:
        yield result
    except Exception as e:
        result.success = False
        result.error = handle_error(
            e,
            operation,
            category=category,
            additional_context=additional_context,
            reraise=reraise,
        )
        result.value = default_return


__all__ = [
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'ExecutionResult',
    'categorize_error',
    'determine_severity',
    'handle_error',
    'safe_execute',
]
