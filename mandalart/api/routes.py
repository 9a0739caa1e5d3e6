"""
REST API Routes for AI Mandalart.

Every wizard operation is exposed as an endpoint on one session. All
responses use the {"success", "data", "error"} envelope.

Endpoints (all under /api/v1 prefix):
- /health - Health check
- /quick-context/options - Localized quick-context choices
- /sessions/{id} - Snapshot (GET) and reset (DELETE)
- /sessions/{id}/step, /quick-context, /goal, /back-to-goal
- /sessions/{id}/discovery/... - Goal discovery for users without a goal
- /sessions/{id}/interview/... - Persona interview
- /sessions/{id}/pillars/... - Pillar selection
- /sessions/{id}/actions/... - Per-pillar action selection
- /sessions/{id}/grid - Renderer snapshot of the finished Mandalart
- /sessions/{id}/blessing - One-line cheer for the finished Mandalart

Suggestion calls run before any mutation: when the Suggestion Service fails
the session is left exactly as it was and the endpoint answers 502. A
suggestion is only applied if the session is unchanged since it was
requested; otherwise the endpoint answers 409 SESSION_CHANGED.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from mandalart.api.dependencies import get_language, get_store, get_suggestions
from mandalart.api.schemas import (
    ActionToggleRequest,
    AnswerRequest,
    CustomPillarRequest,
    GoalRequest,
    PillarToggleRequest,
    QuickContextRequest,
    StepRequest,
    error_response,
    session_view,
    success_response,
)
from mandalart.i18n.strings import t
from mandalart.lib import prompts
from mandalart.lib.errors import (
    INVALID_TRANSITION,
    PRECONDITION_FAILED,
    RESULT_NOT_READY,
    SUGGESTION_FAILED,
)
from mandalart.lib.exceptions import ExternalServiceError
from mandalart.modules import action_selection
from mandalart.modules import session_machine as machine
from mandalart.modules.grid_layout import render_snapshot
from mandalart.modules.session_state import (
    QUICK_CONTEXT_OPTIONS,
    Archetype,
    MandalartSession,
    Pillar,
    SessionStep,
)
from mandalart.services.session_store import SessionStore
from mandalart.services.suggestion_service import SuggestionResult, SuggestionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


# =============================================================================
# Helpers
# =============================================================================


def _error(status_code: int, code: str, lang: str, message: str | None = None,
           details: dict[str, Any] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(code, message, details, lang))


def _suggestion_failed(lang: str, reason: str | None) -> JSONResponse:
    logger.warning("Suggestion failed: %s", reason)
    return _error(502, SUGGESTION_FAILED, lang, details={"reason": reason} if reason else None)


def _view(session: MandalartSession, lang: str, **extra: Any) -> dict[str, Any]:
    data = session_view(session, lang)
    data.update(extra)
    return success_response(data)


def _goal_and_vibe(session: MandalartSession) -> tuple[str, str]:
    if session.user_context is None:
        return "", ""
    return session.user_context.goal, session.user_context.persona.vibe_summary


def _archetype(session: MandalartSession) -> Archetype | None:
    return session.project_info.archetype if session.project_info else None


# Composite transitions, applied in one dispatch so listeners see one change


def _adopt_goal(session: MandalartSession, goal: str, archetype: Archetype) -> MandalartSession:
    session = machine.set_goal(session, goal)
    session = machine.set_archetype(session, archetype)
    return machine.set_step(session, SessionStep.ARCHETYPE_RESULT)


def _finish_interview(session: MandalartSession, summary: str, pillars: tuple[Pillar, ...]) -> MandalartSession:
    if session.user_context is None or session.project_info is None:
        return session
    session = machine.set_vibe_summary(session, summary)
    session = machine.set_suggested_pillars(session, pillars)
    return machine.set_step(session, SessionStep.PILLAR_SELECTION)


def _open_interview(session: MandalartSession) -> MandalartSession:
    return machine.set_step(session, SessionStep.INTERVIEW)


# =============================================================================
# Health & Options
# =============================================================================


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint (minimal, no internal details)."""
    return success_response({"status": "ok"})


@router.get("/quick-context/options")
async def quick_context_options(lang: str = Depends(get_language)) -> dict[str, Any]:
    """Allowed quick-context values with their labels in the request language."""
    return success_response({
        field: [{"value": value, "label": t(lang, "quick_context", value)} for value in values]
        for field, values in QUICK_CONTEXT_OPTIONS.items()
    })


# =============================================================================
# Session Endpoints
# =============================================================================


@router.get("/sessions/{session_id}")
async def get_session(
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    return _view(await store.get_snapshot(), lang)


@router.delete("/sessions/{session_id}")
async def reset_session(
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    """Start over: the session returns to its initial state and storage is cleared."""
    logger.info("Session reset")
    return _view(await store.reset_session(), lang)


@router.post("/sessions/{session_id}/step", response_model=None)
async def set_step(
    body: StepRequest,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """
    Move to another step.

    With strict transitions enabled an illegal move answers 409 and leaves
    the session unchanged.
    """
    current = (await store.get_snapshot()).current_step
    session = await store.set_step(body.step)
    if session.current_step != body.step:
        return _error(409, INVALID_TRANSITION, lang, details={"from": current.value, "to": body.step.value})
    return _view(session, lang)


@router.post("/sessions/{session_id}/quick-context", response_model=None)
async def set_quick_context(
    body: QuickContextRequest,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Save the profile and continue to the goal; only valid on the first step."""
    snapshot = await store.get_snapshot()
    if snapshot.current_step != SessionStep.QUICK_CONTEXT:
        return _error(409, INVALID_TRANSITION, lang, details={"from": snapshot.current_step.value})
    return _view(await store.set_quick_context(body.to_quick_context()), lang)


@router.post("/sessions/{session_id}/goal", response_model=None)
async def submit_goal(
    body: GoalRequest,
    store: SessionStore = Depends(get_store),
    suggestions: SuggestionService = Depends(get_suggestions),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Detect the archetype of the goal, then store both and show the result."""
    snapshot = await store.get_snapshot()
    try:
        detection = await suggestions.detect_archetype(body.goal, snapshot.quick_context, lang)
    except ExternalServiceError as exc:
        return _suggestion_failed(lang, str(exc))

    session = await store.dispatch_if_current(snapshot, _adopt_goal, body.goal, detection.archetype)
    logger.info("Goal classified as %s (%.2f)", detection.archetype, detection.confidence)
    return _view(session, lang, detection=detection.to_dict())


@router.post("/sessions/{session_id}/back-to-goal")
async def back_to_goal(
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    return _view(await store.back_to_goal_input(), lang)


# =============================================================================
# Discovery Endpoints
# =============================================================================


@router.post("/sessions/{session_id}/discovery")
async def enter_discovery(
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    """Switch to goal discovery and hand out the question bank."""
    session = await store.enter_discovery_mode()
    return _view(session, lang, questions=list(prompts.discovery_questions(lang)))


@router.get("/sessions/{session_id}/discovery/questions/{index}")
async def get_discovery_question(
    index: int,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    questions = prompts.discovery_questions(lang)
    complete = index < 0 or index >= len(questions)
    return success_response({
        "question": "" if complete else questions[index],
        "questionIndex": index,
        "isComplete": complete,
        "total": len(questions),
    })


@router.post("/sessions/{session_id}/discovery/answers", response_model=None)
async def add_discovery_answer(
    body: AnswerRequest,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    if not (await store.get_snapshot()).is_discovery_mode:
        return _error(409, PRECONDITION_FAILED, lang)
    return _view(await store.add_discovery_answer(body.to_answer()), lang)


@router.post("/sessions/{session_id}/discovery/goals", response_model=None)
async def suggest_discovery_goals(
    store: SessionStore = Depends(get_store),
    suggestions: SuggestionService = Depends(get_suggestions),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Turn the discovery answers into goal suggestions."""
    snapshot = await store.get_snapshot()
    if not snapshot.discovery_answers:
        return _error(409, PRECONDITION_FAILED, lang)

    result: SuggestionResult[str] = await suggestions.suggest_discovery_goals(snapshot.discovery_answers, lang)
    if not result.ok:
        return _suggestion_failed(lang, result.error)

    session = await store.dispatch_if_current(snapshot, machine.set_suggested_goals, result.items)
    return _view(session, lang, summary=result.summary, suggestion=result.to_dict())


@router.post("/sessions/{session_id}/discovery/choose")
async def choose_discovery_goal(
    body: GoalRequest,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    """Adopt a discovered goal and return to goal input with it filled in."""
    return _view(await store.resolve_discovery_goal(body.goal), lang)


# =============================================================================
# Interview Endpoints
# =============================================================================


@router.post("/sessions/{session_id}/interview/questions", response_model=None)
async def interview_questions(
    store: SessionStore = Depends(get_store),
    suggestions: SuggestionService = Depends(get_suggestions),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Start the interview; questions fall back to the static bank, so this never 502s."""
    snapshot = await store.get_snapshot()
    archetype = _archetype(snapshot)
    goal, _ = _goal_and_vibe(snapshot)
    if archetype is None or not goal:
        return _error(409, PRECONDITION_FAILED, lang)

    questions = await suggestions.generate_interview_questions(archetype, goal, snapshot.quick_context, lang)
    session = await store.dispatch_if_current(snapshot, _open_interview)
    return _view(session, lang, questions=list(questions))


@router.post("/sessions/{session_id}/interview/answers", response_model=None)
async def add_interview_answer(
    body: AnswerRequest,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    if (await store.get_snapshot()).user_context is None:
        return _error(409, PRECONDITION_FAILED, lang)
    return _view(await store.add_interview_answer(body.to_answer()), lang)


@router.post("/sessions/{session_id}/interview/complete", response_model=None)
async def complete_interview(
    store: SessionStore = Depends(get_store),
    suggestions: SuggestionService = Depends(get_suggestions),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """
    Summarize the interview and load the first pillar suggestions.

    Both calls must succeed before anything is written.
    """
    snapshot = await store.get_snapshot()
    archetype = _archetype(snapshot)
    if archetype is None or snapshot.user_context is None or not snapshot.user_context.persona.identity_answers:
        return _error(409, PRECONDITION_FAILED, lang)

    goal = snapshot.user_context.goal
    try:
        summary = await suggestions.summarize_interview(
            archetype, goal, snapshot.user_context.persona.identity_answers, lang,
        )
    except ExternalServiceError as exc:
        return _suggestion_failed(lang, str(exc))

    result = await suggestions.suggest_pillars(archetype, goal, summary, lang)
    if not result.ok:
        return _suggestion_failed(lang, result.error)

    session = await store.dispatch_if_current(snapshot, _finish_interview, summary, result.items)
    return _view(session, lang, suggestion=result.to_dict())


# =============================================================================
# Pillar Endpoints
# =============================================================================


@router.post("/sessions/{session_id}/pillars/toggle")
async def toggle_pillar(
    body: PillarToggleRequest,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    """Select or deselect; a full selection or an unknown id leaves it unchanged."""
    before = await store.get_snapshot()
    session = await store.toggle_pillar_selection(body.pillar_id)
    return _view(session, lang, changed=session is not before)


@router.post("/sessions/{session_id}/pillars/custom")
async def add_custom_pillar(
    body: CustomPillarRequest,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    before = await store.get_snapshot()
    session = await store.add_custom_pillar(body.title, body.description, lang=lang)
    return _view(session, lang, changed=session is not before)


@router.post("/sessions/{session_id}/pillars/regenerate", response_model=None)
async def regenerate_pillars(
    store: SessionStore = Depends(get_store),
    suggestions: SuggestionService = Depends(get_suggestions),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Replace every unselected pillar with fresh suggestions; the selection stays."""
    snapshot = await store.get_snapshot()
    archetype = _archetype(snapshot)
    if archetype is None or snapshot.user_context is None:
        return _error(409, PRECONDITION_FAILED, lang)

    count, selected, rejected = machine.pillar_regeneration_request(snapshot)
    goal, vibe = _goal_and_vibe(snapshot)
    result = await suggestions.regenerate_pillars(archetype, goal, vibe, selected, rejected, count, lang)
    if not result.ok:
        return _suggestion_failed(lang, result.error)

    session = await store.dispatch_if_current(snapshot, machine.apply_pillar_regeneration, result.items)
    return _view(session, lang, suggestion=result.to_dict())


@router.post("/sessions/{session_id}/pillars/confirm", response_model=None)
async def confirm_pillars(
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Lock in the 8 pillars and open action selection on the first one."""
    session = await store.start_action_selection()
    if session.action_selection is None:
        return _error(409, PRECONDITION_FAILED, lang, details={"selected": len(session.selected_pillars)})
    return _view(session, lang)


# =============================================================================
# Action Endpoints
# =============================================================================


@router.post("/sessions/{session_id}/actions/suggest", response_model=None)
async def suggest_actions(
    store: SessionStore = Depends(get_store),
    suggestions: SuggestionService = Depends(get_suggestions),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Load a suggestion batch for the pillar being worked on."""
    snapshot = await store.get_snapshot()
    pillar = machine.current_action_pillar(snapshot)
    if pillar is None:
        return _error(409, PRECONDITION_FAILED, lang)

    goal, vibe = _goal_and_vibe(snapshot)
    result = await suggestions.suggest_actions(goal, vibe, pillar, lang)
    if not result.ok:
        return _suggestion_failed(lang, result.error)

    session = await store.dispatch_if_current(snapshot, machine.set_suggested_actions, result.items)
    return _view(session, lang, suggestion=result.to_dict())


@router.post("/sessions/{session_id}/actions/toggle")
async def toggle_action(
    body: ActionToggleRequest,
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any]:
    before = await store.get_snapshot()
    session = await store.toggle_action_selection(body.action_id)
    return _view(session, lang, changed=session is not before)


@router.post("/sessions/{session_id}/actions/regenerate", response_model=None)
async def regenerate_actions(
    store: SessionStore = Depends(get_store),
    suggestions: SuggestionService = Depends(get_suggestions),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Replace every unselected action with fresh suggestions; the selection stays."""
    snapshot = await store.get_snapshot()
    pillar = machine.current_action_pillar(snapshot)
    if pillar is None or snapshot.action_selection is None:
        return _error(409, PRECONDITION_FAILED, lang)

    request = action_selection.regeneration_request(snapshot.action_selection.current)
    goal, vibe = _goal_and_vibe(snapshot)
    result = await suggestions.regenerate_actions(
        goal, vibe, pillar, request.selected, request.rejected, request.count, lang,
    )
    if not result.ok:
        return _suggestion_failed(lang, result.error)

    session = await store.dispatch_if_current(snapshot, machine.apply_action_regeneration, result.items)
    return _view(session, lang, suggestion=result.to_dict())


@router.post("/sessions/{session_id}/actions/complete", response_model=None)
async def complete_actions(
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Freeze the current pillar; after the last one the Mandalart is written."""
    before = await store.get_snapshot()
    session = await store.complete_pillar_actions()
    if session is before:
        selected = len(before.action_selection.current.selected) if before.action_selection else 0
        return _error(409, PRECONDITION_FAILED, lang, details={"selected": selected})
    if session.current_step == SessionStep.RESULT:
        logger.info("Mandalart complete")
    return _view(session, lang)


# =============================================================================
# Result Endpoints
# =============================================================================


@router.get("/sessions/{session_id}/grid", response_model=None)
async def get_grid(
    store: SessionStore = Depends(get_store),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    """Read-only 9x9 layout for the renderer; only once the Mandalart is done."""
    snapshot = await store.get_snapshot()
    if snapshot.current_step != SessionStep.RESULT or snapshot.mandalart is None:
        return _error(409, RESULT_NOT_READY, lang)
    nickname = snapshot.quick_context.nickname if snapshot.quick_context else None
    return success_response(render_snapshot(snapshot.mandalart, nickname, lang))


@router.post("/sessions/{session_id}/blessing", response_model=None)
async def blessing(
    store: SessionStore = Depends(get_store),
    suggestions: SuggestionService = Depends(get_suggestions),
    lang: str = Depends(get_language),
) -> dict[str, Any] | JSONResponse:
    snapshot = await store.get_snapshot()
    if snapshot.mandalart is None:
        return _error(409, RESULT_NOT_READY, lang)

    titles = [grid.title for grid in snapshot.mandalart.sub_grids]
    try:
        text = await suggestions.generate_blessing(snapshot.mandalart.core, titles, lang)
    except ExternalServiceError as exc:
        return _suggestion_failed(lang, str(exc))
    return success_response({"blessing": text})


__all__ = ["router"]
