"""
Mandalart Session State Machine.

Every operation is a pure transition: it takes the current session plus the
input and returns the next session. A transition that does not apply
(capacity reached, unknown id, missing precondition) returns the *same*
object, which is how SessionStore tells a no-op from a mutation. Nothing
here raises for bad input and nothing here does I/O.

Flow:
    QUICK_CONTEXT -> GOAL_INPUT -> (DISCOVERY) -> ARCHETYPE_RESULT
    -> INTERVIEW -> PILLAR_SELECTION -> ACTION_SELECTION -> RESULT

Selection invariants:
    - at most MAX_PILLARS selected pillars
    - selected pillars carry color_index 1..N in selection order, with no gaps
    - at most MAX_ACTIONS selected actions per pillar
    - mandalart is only written as a complete 8 x 8 artifact
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import Iterable

from mandalart.i18n.strings import t
from mandalart.modules import action_selection
from mandalart.modules.session_state import (
    INITIAL_SESSION,
    MAX_ACTIONS,
    MAX_PILLARS,
    ActionSelectionState,
    Archetype,
    InterviewAnswer,
    MandalartData,
    MandalartSession,
    Persona,
    Pillar,
    PillarActions,
    ProjectInfo,
    QuickContext,
    SessionStep,
    SubGrid,
    UserContext,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Transition Table
# =============================================================================

TRANSITIONS: dict[SessionStep, frozenset[SessionStep]] = {
    SessionStep.QUICK_CONTEXT: frozenset({SessionStep.GOAL_INPUT}),
    SessionStep.GOAL_INPUT: frozenset({SessionStep.DISCOVERY, SessionStep.ARCHETYPE_RESULT}),
    SessionStep.DISCOVERY: frozenset({SessionStep.GOAL_INPUT}),
    SessionStep.ARCHETYPE_RESULT: frozenset({SessionStep.INTERVIEW}),
    SessionStep.INTERVIEW: frozenset({SessionStep.PILLAR_SELECTION}),
    SessionStep.PILLAR_SELECTION: frozenset({SessionStep.ACTION_SELECTION}),
    SessionStep.ACTION_SELECTION: frozenset({SessionStep.GENERATING, SessionStep.RESULT}),
    SessionStep.GENERATING: frozenset({SessionStep.RESULT}),
    SessionStep.RESULT: frozenset(),
}


def is_complete_mandalart(mandalart: MandalartData | None) -> bool:
    """True when the artifact has MAX_PILLARS sub-grids of MAX_ACTIONS actions each."""
    if mandalart is None or len(mandalart.sub_grids) != MAX_PILLARS:
        return False
    return all(len(grid.actions) == MAX_ACTIONS for grid in mandalart.sub_grids)


def can_transition(session: MandalartSession, step: SessionStep) -> bool:
    """
    Check a step change against the transition table.

    Staying on the current step is always allowed, and so is going back to
    GOAL_INPUT from any step but RESULT. Entering ACTION_SELECTION needs a
    full pillar selection; entering RESULT needs a complete mandalart.
    """
    current = session.current_step
    if step == current:
        return True
    if step == SessionStep.GOAL_INPUT and current != SessionStep.RESULT:
        return True
    if step not in TRANSITIONS[current]:
        return False
    if step == SessionStep.ACTION_SELECTION:
        return len(session.selected_pillars) == MAX_PILLARS
    if step == SessionStep.RESULT:
        return is_complete_mandalart(session.mandalart)
    return True


# =============================================================================
# Step & Profile Transitions
# =============================================================================

def set_step(session: MandalartSession, step: SessionStep | str, strict: bool = False) -> MandalartSession:
    """
    Move the wizard to `step`.

    Permissive by default; with `strict` an illegal move is a no-op.
    """
    try:
        target = SessionStep(step)
    except ValueError:
        logger.warning("Ignoring unknown step %r", step)
        return session

    if target == session.current_step:
        return session
    if strict and not can_transition(session, target):
        logger.info("Rejected transition %s -> %s", session.current_step, target)
        return session
    return replace(session, current_step=target)


def set_quick_context(session: MandalartSession, context: QuickContext) -> MandalartSession:
    """Store the profile and advance to GOAL_INPUT. Frozen once past the first step."""
    if session.current_step != SessionStep.QUICK_CONTEXT:
        return session
    return replace(session, quick_context=context, current_step=SessionStep.GOAL_INPUT)


def set_goal(session: MandalartSession, goal: str) -> MandalartSession:
    """
    Store the goal text, creating an empty persona on first use.

    Blank goals are ignored.
    """
    cleaned = goal.strip() if isinstance(goal, str) else ""
    if not cleaned:
        return session
    persona = session.user_context.persona if session.user_context else Persona()
    return replace(session, user_context=UserContext(goal=cleaned, persona=persona))


def set_archetype(
    session: MandalartSession,
    archetype: Archetype | str,
    now: datetime | None = None,
) -> MandalartSession:
    """Record the detected archetype and when it was detected."""
    try:
        value = Archetype(archetype)
    except ValueError:
        logger.warning("Ignoring unknown archetype %r", archetype)
        return session
    created_at = (now or datetime.now(UTC)).isoformat()
    return replace(session, project_info=ProjectInfo(archetype=value, created_at=created_at))


def add_interview_answer(session: MandalartSession, answer: InterviewAnswer) -> MandalartSession:
    """Append an answer; needs a goal (and so a persona) to exist."""
    if session.user_context is None or not answer.answer.strip():
        return session
    persona = session.user_context.persona
    persona = replace(persona, identity_answers=persona.identity_answers + (answer,))
    return replace(session, user_context=replace(session.user_context, persona=persona))


def set_vibe_summary(session: MandalartSession, summary: str) -> MandalartSession:
    """Store the derived persona summary; needs a goal to exist."""
    if session.user_context is None:
        return session
    persona = replace(session.user_context.persona, vibe_summary=summary)
    return replace(session, user_context=replace(session.user_context, persona=persona))


# =============================================================================
# Discovery Transitions
# =============================================================================

def enter_discovery_mode(session: MandalartSession) -> MandalartSession:
    """Guide a user without a goal: set the flag and jump to DISCOVERY."""
    if session.is_discovery_mode and session.current_step == SessionStep.DISCOVERY:
        return session
    return replace(session, is_discovery_mode=True, current_step=SessionStep.DISCOVERY)


def add_discovery_answer(session: MandalartSession, answer: InterviewAnswer) -> MandalartSession:
    if not answer.answer.strip():
        return session
    return replace(session, discovery_answers=session.discovery_answers + (answer,))


def set_suggested_goals(session: MandalartSession, goals: Iterable[str]) -> MandalartSession:
    cleaned = tuple(g.strip() for g in goals if isinstance(g, str) and g.strip())
    return replace(session, suggested_goals=cleaned)


def resolve_discovery_goal(session: MandalartSession, goal: str) -> MandalartSession:
    """Adopt a discovered goal, leave discovery mode and return to GOAL_INPUT."""
    with_goal = set_goal(session, goal)
    if with_goal is session:
        return session
    return replace(with_goal, is_discovery_mode=False, current_step=SessionStep.GOAL_INPUT)


def back_to_goal_input(session: MandalartSession) -> MandalartSession:
    """Explicit back navigation; the finished RESULT step only leaves through reset."""
    if session.current_step in (SessionStep.GOAL_INPUT, SessionStep.RESULT):
        return session
    return replace(session, current_step=SessionStep.GOAL_INPUT)


# =============================================================================
# Pillar Transitions
# =============================================================================

def _reindexed(pillars: Iterable[Pillar]) -> tuple[Pillar, ...]:
    """Give selected pillars the dense color_index sequence 1..N in their order."""
    return tuple(
        pillar if pillar.color_index == position else replace(pillar, color_index=position)
        for position, pillar in enumerate(pillars, start=1)
    )


def set_suggested_pillars(session: MandalartSession, pillars: Iterable[Pillar]) -> MandalartSession:
    """Replace the suggestion pool. The selection is left alone."""
    pool = tuple(replace(p, color_index=None) if p.color_index is not None else p for p in pillars)
    return replace(session, suggested_pillars=pool)


def toggle_pillar_selection(
    session: MandalartSession,
    pillar_id: str,
    explicit_pillar: Pillar | None = None,
) -> MandalartSession:
    """
    Select or deselect a pillar.

    - Selected already: removed, the rest reindexed to 1..N.
    - Room left: resolved from the pool (or `explicit_pillar` for user-authored
      pillars) and appended with the next color_index.
    - Full, or not resolvable: no-op.

    Any change to the selection discards action-phase progress, which was
    built for the previous set of pillars.
    """
    selected = session.selected_pillars

    if any(p.id == pillar_id for p in selected):
        remaining = _reindexed(p for p in selected if p.id != pillar_id)
        return replace(session, selected_pillars=remaining, action_selection=None)

    if len(selected) >= MAX_PILLARS:
        return session

    pillar = next((p for p in session.suggested_pillars if p.id == pillar_id), None)
    if pillar is None and explicit_pillar is not None and explicit_pillar.id == pillar_id:
        pillar = explicit_pillar
    if pillar is None:
        return session

    chosen = replace(pillar, color_index=len(selected) + 1)
    return replace(session, selected_pillars=selected + (chosen,), action_selection=None)


def add_custom_pillar(
    session: MandalartSession,
    title: str,
    description: str = "",
    pillar_id: str | None = None,
    lang: str = "en",
) -> MandalartSession:
    """
    Add a user-authored pillar to the pool and select it.

    Blank titles, id clashes and a full selection are no-ops.
    """
    cleaned_title = title.strip()
    if not cleaned_title or len(session.selected_pillars) >= MAX_PILLARS:
        return session

    taken = {p.id for p in session.suggested_pillars} | {p.id for p in session.selected_pillars}
    if pillar_id is not None:
        if pillar_id in taken:
            return session
        new_id = pillar_id
    else:
        counter = len(taken) + 1
        new_id = f"custom_{counter}"
        while new_id in taken:
            counter += 1
            new_id = f"custom_{counter}"

    pillar = Pillar(
        id=new_id,
        title=cleaned_title,
        description=description.strip() or t(lang, "pillars", "custom_description", title=cleaned_title),
    )
    with_pool = replace(session, suggested_pillars=session.suggested_pillars + (pillar,))
    return toggle_pillar_selection(with_pool, pillar.id, explicit_pillar=pillar)


def pillar_regeneration_request(session: MandalartSession) -> tuple[int, tuple[Pillar, ...], tuple[Pillar, ...]]:
    """
    Count, selected and rejected pillars for a "refresh unselected" request.

    Returns:
        (count, selected, rejected) where rejected are pool entries not selected
    """
    selected_ids = {p.id for p in session.selected_pillars}
    rejected = tuple(p for p in session.suggested_pillars if p.id not in selected_ids)
    return len(rejected), session.selected_pillars, rejected


def apply_pillar_regeneration(session: MandalartSession, new_pillars: Iterable[Pillar]) -> MandalartSession:
    """
    Keep the selected pool entries and replace the rest with `new_pillars`.

    Only called with the result of a successful regeneration, so a failed
    request never touches the pool or the selection.
    """
    fresh = tuple(new_pillars)
    if not fresh:
        return session
    selected_ids = {p.id for p in session.selected_pillars}
    kept = tuple(p for p in session.suggested_pillars if p.id in selected_ids)
    return set_suggested_pillars(session, kept + fresh)


# =============================================================================
# Action Transitions
# =============================================================================

def start_action_selection(session: MandalartSession) -> MandalartSession:
    """Open the action phase on the first selected pillar. Needs a full selection."""
    if len(session.selected_pillars) != MAX_PILLARS:
        return session
    if session.action_selection is not None and session.current_step == SessionStep.ACTION_SELECTION:
        return session
    first = session.selected_pillars[0]
    return replace(
        session,
        action_selection=ActionSelectionState(pillar_index=0, current=PillarActions(pillar_id=first.id)),
        current_step=SessionStep.ACTION_SELECTION,
    )


def current_action_pillar(session: MandalartSession) -> Pillar | None:
    """The selected pillar whose actions are being chosen, if any."""
    state = session.action_selection
    if state is None or state.pillar_index >= len(session.selected_pillars):
        return None
    return session.selected_pillars[state.pillar_index]


def _with_progress(session: MandalartSession, progress: PillarActions) -> MandalartSession:
    state = session.action_selection
    if state is None or progress is state.current:
        return session
    return replace(session, action_selection=replace(state, current=progress))


def set_suggested_actions(session: MandalartSession, texts: Iterable[str]) -> MandalartSession:
    """Load a first suggestion batch for the current pillar."""
    state = session.action_selection
    if state is None:
        return session
    return _with_progress(session, action_selection.with_suggestions(state.current, texts))


def toggle_action_selection(session: MandalartSession, action_id: str) -> MandalartSession:
    state = session.action_selection
    if state is None:
        return session
    return _with_progress(session, action_selection.toggle_action(state.current, action_id))


def apply_action_regeneration(session: MandalartSession, texts: Iterable[str]) -> MandalartSession:
    """Keep the selected actions, replace the unselected ones with `texts`."""
    state = session.action_selection
    fresh = list(texts)
    if state is None or not fresh:
        return session
    return _with_progress(session, action_selection.with_regenerated(state.current, fresh))


def complete_pillar_actions(session: MandalartSession) -> MandalartSession:
    """
    Freeze the current pillar's 8 actions into a SubGrid.

    Moves on to the next pillar, or after the last one writes the mandalart
    (core = goal) and enters RESULT. Fewer than 8 actions: no-op.
    """
    state = session.action_selection
    pillar = current_action_pillar(session)
    if state is None or pillar is None:
        return session

    grid = action_selection.build_sub_grid(state.current, pillar, state.pillar_index)
    if grid is None:
        return session

    completed = state.completed + (grid,)
    next_index = state.pillar_index + 1

    if next_index >= len(session.selected_pillars):
        core = session.user_context.goal if session.user_context else ""
        finished = set_mandalart(session, core, completed)
        if finished is session:
            return session
        return replace(finished, action_selection=None, current_step=SessionStep.RESULT)

    next_pillar = session.selected_pillars[next_index]
    return replace(
        session,
        action_selection=ActionSelectionState(
            pillar_index=next_index,
            current=PillarActions(pillar_id=next_pillar.id),
            completed=completed,
        ),
    )


# =============================================================================
# Result & Reset
# =============================================================================

def set_mandalart(session: MandalartSession, core: str, sub_grids: Iterable[SubGrid]) -> MandalartSession:
    """Write the terminal artifact; anything but 8 x 8 is ignored."""
    mandalart = MandalartData(core=core, sub_grids=tuple(sub_grids))
    if not is_complete_mandalart(mandalart):
        logger.warning(
            "Ignoring incomplete mandalart with %d sub-grids", len(mandalart.sub_grids),
        )
        return session
    return replace(session, mandalart=mandalart)


def reset_session(session: MandalartSession) -> MandalartSession:
    """Back to the documented initial session, whatever came before."""
    return INITIAL_SESSION


__all__ = [
    "TRANSITIONS",
    "is_complete_mandalart",
    "can_transition",
    "set_step",
    "set_quick_context",
    "set_goal",
    "set_archetype",
    "add_interview_answer",
    "set_vibe_summary",
    "enter_discovery_mode",
    "add_discovery_answer",
    "set_suggested_goals",
    "resolve_discovery_goal",
    "back_to_goal_input",
    "set_suggested_pillars",
    "toggle_pillar_selection",
    "add_custom_pillar",
    "pillar_regeneration_request",
    "apply_pillar_regeneration",
    "start_action_selection",
    "current_action_pillar",
    "set_suggested_actions",
    "toggle_action_selection",
    "apply_action_regeneration",
    "complete_pillar_actions",
    "set_mandalart",
    "reset_session",
]
