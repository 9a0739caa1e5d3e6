"""
Mandalart Session State and Data Structures.

Defines the wizard steps, the immutable session aggregate and its JSON
layout. Every entity is a frozen dataclass with tuple sequences, so a
snapshot handed to a reader can never be changed in place; transitions in
session_machine.py build new objects with dataclasses.replace().

Persisted layout (camelCase keys):
    {projectInfo, quickContext, userContext, suggestedPillars,
     selectedPillars, mandalart, currentStep, isDiscoveryMode,
     discoveryAnswers, suggestedGoals, actionSelection, schemaVersion}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from mandalart.lib.exceptions import SerializationError

SCHEMA_VERSION = 1
STORAGE_KEY = "ai-mandalart-session"
PROJECT_NAME = "AI Mandalart"

MAX_PILLARS = 8
MAX_ACTIONS = 8


# =============================================================================
# Enums
# =============================================================================

class SessionStep(StrEnum):
    """Wizard position. Exactly one is active at a time."""

    QUICK_CONTEXT = "QUICK_CONTEXT"
    GOAL_INPUT = "GOAL_INPUT"
    DISCOVERY = "DISCOVERY"
    ARCHETYPE_RESULT = "ARCHETYPE_RESULT"
    INTERVIEW = "INTERVIEW"
    PILLAR_SELECTION = "PILLAR_SELECTION"
    ACTION_SELECTION = "ACTION_SELECTION"
    GENERATING = "GENERATING"
    RESULT = "RESULT"


class Archetype(StrEnum):
    """High-level goal classification used to tailor the interview."""

    BUSINESS = "BUSINESS"
    GROWTH = "GROWTH"
    RELATION = "RELATION"
    ROUTINE = "ROUTINE"


# Allowed quick-context values; labels live in mandalart.i18n.strings
QUICK_CONTEXT_OPTIONS: dict[str, tuple[str, ...]] = {
    "life_area": ("career", "health", "relationships", "finance", "self_growth", "hobby"),
    "current_status": ("student", "employee", "founder", "freelancer", "job_seeking", "other"),
    "goal_style": ("challenging", "stable", "experimental", "recharge"),
    "year_keyword": ("growth", "change", "stability", "challenge", "balance", "recovery"),
}


# =============================================================================
# Session Data Structures
# =============================================================================

@dataclass(frozen=True)
class ProjectInfo:
    """Archetype detected for the goal, with the time it was recorded."""

    archetype: Archetype
    created_at: str
    name: str = PROJECT_NAME

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "archetype": self.archetype.value, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectInfo:
        return cls(
            archetype=Archetype(data["archetype"]),
            created_at=str(data["createdAt"]),
            name=str(data.get("name", PROJECT_NAME)),
        )


@dataclass(frozen=True)
class QuickContext:
    """Optional up-front profile collected before the goal."""

    nickname: str = ""
    life_area: str = ""
    current_status: str = ""
    goal_style: str = ""
    year_keyword: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "nickname": self.nickname,
            "lifeArea": self.life_area,
            "currentStatus": self.current_status,
            "goalStyle": self.goal_style,
            "yearKeyword": self.year_keyword,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuickContext:
        return cls(
            nickname=str(data.get("nickname", "")),
            life_area=str(data.get("lifeArea", "")),
            current_status=str(data.get("currentStatus", "")),
            goal_style=str(data.get("goalStyle", "")),
            year_keyword=str(data.get("yearKeyword", "")),
        )


@dataclass(frozen=True)
class InterviewAnswer:
    """One question/answer pair from the interview or discovery."""

    question: str
    answer: str

    def to_dict(self) -> dict[str, Any]:
        return {"question": self.question, "answer": self.answer}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InterviewAnswer:
        return cls(question=str(data["question"]), answer=str(data["answer"]))


@dataclass(frozen=True)
class Persona:
    """Interview answers in asked order plus the derived vibe summary."""

    identity_answers: tuple[InterviewAnswer, ...] = ()
    vibe_summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "identityAnswers": [a.to_dict() for a in self.identity_answers],
            "vibeSummary": self.vibe_summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Persona:
        return cls(
            identity_answers=tuple(InterviewAnswer.from_dict(a) for a in data.get("identityAnswers", [])),
            vibe_summary=str(data.get("vibeSummary", "")),
        )


@dataclass(frozen=True)
class UserContext:
    """The goal text and the persona built around it."""

    goal: str
    persona: Persona = field(default_factory=Persona)

    def to_dict(self) -> dict[str, Any]:
        return {"goal": self.goal, "persona": self.persona.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserContext:
        return cls(goal=str(data["goal"]), persona=Persona.from_dict(data.get("persona") or {}))


@dataclass(frozen=True)
class Pillar:
    """
    Candidate strategy category.

    color_index is only set while the pillar is selected and equals its
    1-based position in selection order.
    """

    id: str
    title: str
    description: str = ""
    color_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title, "description": self.description}
        if self.color_index is not None:
            data["colorIndex"] = self.color_index
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pillar:
        color_index = data.get("colorIndex")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            description=str(data.get("description", "")),
            color_index=int(color_index) if color_index is not None else None,
        )


@dataclass(frozen=True)
class SubGrid:
    """One finalized 3x3 block: pillar title plus its 8 chosen actions."""

    id: str
    title: str
    opacity_level: int
    color_index: int
    actions: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "opacityLevel": self.opacity_level,
            "colorIndex": self.color_index,
            "actions": list(self.actions),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubGrid:
        opacity_level = int(data["opacityLevel"])
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            opacity_level=opacity_level,
            color_index=int(data.get("colorIndex", opacity_level)),
            actions=tuple(str(a) for a in data["actions"]),
        )


@dataclass(frozen=True)
class MandalartData:
    """The terminal artifact: the core goal and 8 sub-grids."""

    core: str
    sub_grids: tuple[SubGrid, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"core": self.core, "subGrids": [g.to_dict() for g in self.sub_grids]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MandalartData:
        return cls(
            core=str(data["core"]),
            sub_grids=tuple(SubGrid.from_dict(g) for g in data["subGrids"]),
        )


# =============================================================================
# Action Selection Data Structures
# =============================================================================

@dataclass(frozen=True)
class ActionItem:
    """A suggested action; the id tells apart identical text from different batches."""

    id: str
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActionItem:
        return cls(id=str(data["id"]), text=str(data["text"]))


@dataclass(frozen=True)
class PillarActions:
    """Suggestion pool and ordered selection for the pillar being worked on."""

    pillar_id: str
    suggested: tuple[ActionItem, ...] = ()
    selected: tuple[ActionItem, ...] = ()
    batch: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "pillarId": self.pillar_id,
            "suggested": [a.to_dict() for a in self.suggested],
            "selected": [a.to_dict() for a in self.selected],
            "batch": self.batch,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PillarActions:
        return cls(
            pillar_id=str(data["pillarId"]),
            suggested=tuple(ActionItem.from_dict(a) for a in data.get("suggested", [])),
            selected=tuple(ActionItem.from_dict(a) for a in data.get("selected", [])),
            batch=int(data.get("batch", 0)),
        )


@dataclass(frozen=True)
class ActionSelectionState:
    """Progress through the action phase, one selected pillar at a time."""

    pillar_index: int
    current: PillarActions
    completed: tuple[SubGrid, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "pillarIndex": self.pillar_index,
            "current": self.current.to_dict(),
            "completed": [g.to_dict() for g in self.completed],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActionSelectionState:
        return cls(
            pillar_index=int(data["pillarIndex"]),
            current=PillarActions.from_dict(data["current"]),
            completed=tuple(SubGrid.from_dict(g) for g in data.get("completed", [])),
        )


# =============================================================================
# Session Aggregate
# =============================================================================

@dataclass(frozen=True)
class MandalartSession:
    """The whole wizard session; the only aggregate root."""

    project_info: ProjectInfo | None = None
    quick_context: QuickContext | None = None
    user_context: UserContext | None = None
    suggested_pillars: tuple[Pillar, ...] = ()
    selected_pillars: tuple[Pillar, ...] = ()
    mandalart: MandalartData | None = None
    current_step: SessionStep = SessionStep.QUICK_CONTEXT
    is_discovery_mode: bool = False
    discovery_answers: tuple[InterviewAnswer, ...] = ()
    suggested_goals: tuple[str, ...] = ()
    action_selection: ActionSelectionState | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectInfo": self.project_info.to_dict() if self.project_info else None,
            "quickContext": self.quick_context.to_dict() if self.quick_context else None,
            "userContext": self.user_context.to_dict() if self.user_context else None,
            "suggestedPillars": [p.to_dict() for p in self.suggested_pillars],
            "selectedPillars": [p.to_dict() for p in self.selected_pillars],
            "mandalart": self.mandalart.to_dict() if self.mandalart else None,
            "currentStep": self.current_step.value,
            "isDiscoveryMode": self.is_discovery_mode,
            "discoveryAnswers": [a.to_dict() for a in self.discovery_answers],
            "suggestedGoals": list(self.suggested_goals),
            "actionSelection": self.action_selection.to_dict() if self.action_selection else None,
            "schemaVersion": SCHEMA_VERSION,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MandalartSession:
        """
        Rebuild a session from its persisted layout.

        Raises:
            SerializationError: Unknown schema version or malformed shape
        """
        if not isinstance(data, dict):
            raise SerializationError(f"Session payload must be an object, got {type(data).__name__}")

        version = data.get("schemaVersion", SCHEMA_VERSION)
        if version != SCHEMA_VERSION:
            raise SerializationError(f"Unsupported session schema version: {version!r}")

        try:
            project_info = data.get("projectInfo")
            quick_context = data.get("quickContext")
            user_context = data.get("userContext")
            mandalart = data.get("mandalart")
            action_selection = data.get("actionSelection")
            return cls(
                project_info=ProjectInfo.from_dict(project_info) if project_info else None,
                quick_context=QuickContext.from_dict(quick_context) if quick_context else None,
                user_context=UserContext.from_dict(user_context) if user_context else None,
                suggested_pillars=tuple(Pillar.from_dict(p) for p in data.get("suggestedPillars", [])),
                selected_pillars=tuple(Pillar.from_dict(p) for p in data.get("selectedPillars", [])),
                mandalart=MandalartData.from_dict(mandalart) if mandalart else None,
                current_step=SessionStep(data.get("currentStep", SessionStep.QUICK_CONTEXT)),
                is_discovery_mode=bool(data.get("isDiscoveryMode", False)),
                discovery_answers=tuple(InterviewAnswer.from_dict(a) for a in data.get("discoveryAnswers", [])),
                suggested_goals=tuple(str(g) for g in data.get("suggestedGoals", [])),
                action_selection=ActionSelectionState.from_dict(action_selection) if action_selection else None,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SerializationError(f"Malformed session payload: {exc}") from exc


INITIAL_SESSION = MandalartSession()


def initial_session() -> MandalartSession:
    """The documented empty session every wizard starts from."""
    return INITIAL_SESSION


def serialize_session(session: MandalartSession) -> str:
    """Encode a session as the JSON text stored under the session key."""
    return json.dumps(session.to_dict(), ensure_ascii=False)


def deserialize_session(raw: str | bytes) -> MandalartSession:
    """
    Decode stored JSON text back into a session.

    Raises:
        SerializationError: The text is not JSON or not a valid session
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SerializationError(f"Stored session is not valid JSON: {exc}") from exc
    return MandalartSession.from_dict(data)


__all__ = [
    "SCHEMA_VERSION",
    "STORAGE_KEY",
    "PROJECT_NAME",
    "MAX_PILLARS",
    "MAX_ACTIONS",
    "SessionStep",
    "Archetype",
    "QUICK_CONTEXT_OPTIONS",
    "ProjectInfo",
    "QuickContext",
    "InterviewAnswer",
    "Persona",
    "UserContext",
    "Pillar",
    "SubGrid",
    "MandalartData",
    "ActionItem",
    "PillarActions",
    "ActionSelectionState",
    "MandalartSession",
    "INITIAL_SESSION",
    "initial_session",
    "serialize_session",
    "deserialize_session",
]
