"""
Pydantic Schemas for the AI Mandalart REST API.

Defines the request bodies, the response envelope helpers and the JSON view
of a session returned by every session endpoint.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from mandalart.i18n.strings import t
from mandalart.lib.errors import build_error_response
from mandalart.modules.session_state import (
    QUICK_CONTEXT_OPTIONS,
    InterviewAnswer,
    MandalartSession,
    QuickContext,
    SessionStep,
)

# =============================================================================
# Response Envelope
# =============================================================================


def success_response(data: Any) -> dict[str, Any]:
    """Wrap a payload as {"success": true, "data": ..., "error": null}."""
    return {"success": True, "data": data, "error": None}


def error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
    lang: str = "en",
) -> dict[str, Any]:
    """Wrap an error code as {"success": false, "data": null, "error": {...}}."""
    return {
        "success": False,
        "data": None,
        "error": build_error_response(code, message, details, lang),
    }


def session_view(session: MandalartSession, lang: str = "en") -> dict[str, Any]:
    """Session snapshot plus the localized name of the current step."""
    step = session.current_step.value
    return {
        "session": session.to_dict(),
        "step": {
            "key": step,
            "name": t(lang, "steps", step),
            "description": t(lang, "steps", f"{step}_desc"),
        },
    }


# =============================================================================
# Request Schemas
# =============================================================================


def _strip(value: str) -> str:
    return value.strip() if isinstance(value, str) else value


class StepRequest(BaseModel):
    """Move the wizard to another step."""

    step: SessionStep


class QuickContextRequest(BaseModel):
    """Optional profile; each field is empty or one of the allowed option codes."""

    nickname: str = Field(default="", max_length=50)
    life_area: str = Field(default="", max_length=50)
    current_status: str = Field(default="", max_length=50)
    goal_style: str = Field(default="", max_length=50)
    year_keyword: str = Field(default="", max_length=50)

    @field_validator("nickname", mode="before")
    @classmethod
    def strip_nickname(cls, v: str) -> str:
        return _strip(v)

    @field_validator("life_area", "current_status", "goal_style", "year_keyword")
    @classmethod
    def check_option(cls, v: str, info: Any) -> str:
        if v and v not in QUICK_CONTEXT_OPTIONS[info.field_name]:
            allowed = ", ".join(QUICK_CONTEXT_OPTIONS[info.field_name])
            raise ValueError(f"must be one of: {allowed}")
        return v

    def to_quick_context(self) -> QuickContext:
        return QuickContext(
            nickname=self.nickname,
            life_area=self.life_area,
            current_status=self.current_status,
            goal_style=self.goal_style,
            year_keyword=self.year_keyword,
        )


class GoalRequest(BaseModel):
    """Goal text typed by the user or picked from discovery."""

    goal: str = Field(..., min_length=1, max_length=500)

    @field_validator("goal", mode="before")
    @classmethod
    def strip_goal(cls, v: str) -> str:
        return _strip(v)


class AnswerRequest(BaseModel):
    """One interview or discovery answer."""

    question: str = Field(..., min_length=1, max_length=500)
    answer: str = Field(..., min_length=1, max_length=2000)

    @field_validator("question", "answer", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip(v)

    def to_answer(self) -> InterviewAnswer:
        return InterviewAnswer(question=self.question, answer=self.answer)


class PillarToggleRequest(BaseModel):
    pillar_id: str = Field(..., min_length=1, max_length=100)


class CustomPillarRequest(BaseModel):
    """User-authored pillar; the description defaults to a generated one."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip(v)


class ActionToggleRequest(BaseModel):
    action_id: str = Field(..., min_length=1, max_length=200)


__all__ = [
    "success_response",
    "error_response",
    "session_view",
    "StepRequest",
    "QuickContextRequest",
    "GoalRequest",
    "AnswerRequest",
    "PillarToggleRequest",
    "CustomPillarRequest",
    "ActionToggleRequest",
]
