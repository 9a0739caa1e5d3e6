"""
Centralized error response builder for AI Mandalart.

Error codes are constants mapped to translatable messages. The builder
returns the dict used in the `error` field of the API response envelope.
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Error Code Constants
# =============================================================================

NOT_FOUND = "NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"
INVALID_TRANSITION = "INVALID_TRANSITION"
PRECONDITION_FAILED = "PRECONDITION_FAILED"
SUGGESTION_FAILED = "SUGGESTION_FAILED"
RESULT_NOT_READY = "RESULT_NOT_READY"
SESSION_CHANGED = "SESSION_CHANGED"

# =============================================================================
# i18n Message Registry
#
# Maps error_code -> language -> message. Missing languages fall back to "en".
# =============================================================================

_ERROR_MESSAGES: dict[str, dict[str, str]] = {
    NOT_FOUND: {
        "en": "The requested resource was not found.",
        "ko": "요청한 항목을 찾을 수 없습니다.",
    },
    VALIDATION_ERROR: {
        "en": "Invalid input. Please check your request.",
        "ko": "입력값이 올바르지 않습니다. 요청을 확인해주세요.",
    },
    INTERNAL_ERROR: {
        "en": "An internal error occurred. Please try again.",
        "ko": "내부 오류가 발생했습니다. 다시 시도해주세요.",
    },
    INVALID_TRANSITION: {
        "en": "This step cannot be opened from the current step.",
        "ko": "현재 단계에서 해당 단계로 이동할 수 없습니다.",
    },
    PRECONDITION_FAILED: {
        "en": "Finish the current step before moving on.",
        "ko": "현재 단계를 먼저 완료해주세요.",
    },
    SUGGESTION_FAILED: {
        "en": "We could not get suggestions right now. Please try again.",
        "ko": "지금은 제안을 가져올 수 없습니다. 다시 시도해주세요.",
    },
    RESULT_NOT_READY: {
        "en": "The Mandalart is not complete yet.",
        "ko": "만다라트가 아직 완성되지 않았습니다.",
    },
    SESSION_CHANGED: {
        "en": "The session changed in the meantime. Please try again.",
        "ko": "그사이 세션이 변경되었습니다. 다시 시도해주세요.",
    },
}

_DEFAULT_LANG = "en"


def get_error_message(code: str, lang: str = "en") -> str:
    """
    Get a translated error message for a given error code.

    Falls back to English for unknown languages and to a generic message for
    unknown codes.
    """
    messages = _ERROR_MESSAGES.get(code, {})
    return messages.get(lang, messages.get(_DEFAULT_LANG, "An error occurred."))


def build_error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
    lang: str = "en",
) -> dict[str, Any]:
    """
    Build a structured error dict: {"code", "message", "details"?}.

    Args:
        code: Error code constant
        message: Override message (skips the i18n lookup)
        details: Extra machine-readable details
        lang: Language for the i18n lookup

    Returns:
        Error dict for the response envelope
    """
    resolved_message = message if message is not None else get_error_message(code, lang)
    error: dict[str, Any] = {
        "code": code,
        "message": resolved_message,
    }
    if details is not None:
        error["details"] = details
    return error


__all__ = [
    "NOT_FOUND",
    "VALIDATION_ERROR",
    "INTERNAL_ERROR",
    "INVALID_TRANSITION",
    "PRECONDITION_FAILED",
    "SUGGESTION_FAILED",
    "RESULT_NOT_READY",
    "SESSION_CHANGED",
    "get_error_message",
    "build_error_response",
]
