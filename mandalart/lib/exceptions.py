"""
Exception hierarchy for AI Mandalart.

Every error raised by the service derives from MandalartException so callers
can catch the whole family while still distinguishing:
- configuration problems found at startup
- Suggestion Service (LLM) failures after retries are exhausted
- persisted session payloads that cannot be decoded
- illegal wizard transitions requested through the API

The session state machine itself never raises these for capacity or lookup
misses; those degrade to no-ops.
"""

from __future__ import annotations


class MandalartException(Exception):
    """Base exception for all AI Mandalart errors."""


class ConfigurationError(MandalartException):
    """Missing or malformed environment configuration."""


class ValidationError(MandalartException):
    """Input that fails validation before it reaches the session."""


class SerializationError(MandalartException):
    """A stored session payload could not be encoded or decoded."""


class ServiceError(MandalartException):
    """Failure of a service the wizard depends on."""


class ExternalServiceError(ServiceError):
    """The LLM provider failed, timed out or returned an unusable body."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(message)


class StateError(MandalartException):
    """A wizard transition that the transition table does not allow."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move from {current} to {requested}")


class SessionChangedError(MandalartException):
    """The session changed while a suggestion was being fetched for it."""


__all__ = [
    "MandalartException",
    "ConfigurationError",
    "ValidationError",
    "SerializationError",
    "ServiceError",
    "ExternalServiceError",
    "StateError",
    "SessionChangedError",
]
