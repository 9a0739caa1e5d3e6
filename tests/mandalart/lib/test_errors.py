"""
Tests for the centralized error response builder.
"""

from __future__ import annotations

import pytest

from mandalart.lib.errors import (
    INVALID_TRANSITION,
    NOT_FOUND,
    SESSION_CHANGED,
    SUGGESTION_FAILED,
    build_error_response,
    get_error_message,
)


class TestGetErrorMessage:

    @pytest.mark.parametrize("lang", ["en", "ko"])
    def test_known_code_has_translation(self, lang: str) -> None:
        assert get_error_message(SUGGESTION_FAILED, lang)

    def test_korean_message(self) -> None:
        assert get_error_message(NOT_FOUND, "ko") == "요청한 항목을 찾을 수 없습니다."

    def test_session_changed_message(self) -> None:
        assert get_error_message(SESSION_CHANGED) == "The session changed in the meantime. Please try again."

    def test_unknown_language_falls_back_to_english(self) -> None:
        assert get_error_message(NOT_FOUND, "de") == get_error_message(NOT_FOUND, "en")

    def test_unknown_code_gets_generic_message(self) -> None:
        assert get_error_message("NOPE") == "An error occurred."


class TestBuildErrorResponse:

    def test_minimal_error(self) -> None:
        error = build_error_response(INVALID_TRANSITION)
        assert error == {
            "code": INVALID_TRANSITION,
            "message": "This step cannot be opened from the current step.",
        }

    def test_override_message_and_details(self) -> None:
        error = build_error_response(NOT_FOUND, "Gone", details={"id": "x"}, lang="ko")
        assert error["message"] == "Gone"
        assert error["details"] == {"id": "x"}
