"""
Lib package for AI Mandalart.

Contains shared utilities:
- exceptions.py: Exception hierarchy
- errors.py: Centralized error response builder with i18n
- logging.py: structlog configuration
- prompts.py: Prompt templates for the Suggestion Service
"""

from mandalart.lib.errors import (
    INTERNAL_ERROR,
    INVALID_TRANSITION,
    NOT_FOUND,
    PRECONDITION_FAILED,
    RESULT_NOT_READY,
    SESSION_CHANGED,
    SUGGESTION_FAILED,
    VALIDATION_ERROR,
    build_error_response,
    get_error_message,
)
from mandalart.lib.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    MandalartException,
    SerializationError,
    ServiceError,
    SessionChangedError,
    StateError,
    ValidationError,
)

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_TRANSITION",
    "NOT_FOUND",
    "PRECONDITION_FAILED",
    "RESULT_NOT_READY",
    "SESSION_CHANGED",
    "SUGGESTION_FAILED",
    "VALIDATION_ERROR",
    "build_error_response",
    "get_error_message",
    "ConfigurationError",
    "ExternalServiceError",
    "MandalartException",
    "SerializationError",
    "ServiceError",
    "SessionChangedError",
    "StateError",
    "ValidationError",
]
