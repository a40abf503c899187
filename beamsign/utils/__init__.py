"""
Utility modules for BEAM module signing.

Provides common utilities including:
- Error categorization and reporting with verbose logging
"""

from .error_handling import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    ExecutionResult,
    categorize_error,
    determine_severity,
    handle_error,
    safe_execute,
)

__all__ = [
    # Error handling
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'ExecutionResult',
    'categorize_error',
    'determine_severity',
    'handle_error',
    'safe_execute',
]
