"""
Shared test fixtures for AI Mandalart.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode, no real LLM key)
- Isolated session store registry backed by in-memory storage
- Pillar pools and sessions at well-known points of the wizard

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime

import pytest

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("MANDALART_DEV_MODE", "1")
os.environ.setdefault("MANDALART_ENVIRONMENT", "test")

from mandalart.config.settings import get_settings  # noqa: E402
from mandalart.modules import session_machine as machine  # noqa: E402
from mandalart.modules.session_state import (  # noqa: E402
    INITIAL_SESSION,
    Archetype,
    MandalartSession,
    Pillar,
    QuickContext,
)
from mandalart.services.session_store import (  # noqa: E402
    InMemorySessionStorage,
    SessionStore,
    configure_session_storage,
    reset_session_stores,
)

FIXED_NOW = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)
GOAL = "Run a half marathon this year"


# ---------------------------------------------------------------------------
# 2. Registry isolation -- every test starts with no cached stores/settings
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_sessions():
    get_settings.cache_clear()
    reset_session_stores()
    configure_session_storage(InMemorySessionStorage())
    yield
    reset_session_stores()
    get_settings.cache_clear()


@pytest.fixture()
def storage() -> InMemorySessionStorage:
    return InMemorySessionStorage()


@pytest.fixture()
def store(storage: InMemorySessionStorage) -> SessionStore:
    return SessionStore("test-session", storage=storage)


# ---------------------------------------------------------------------------
# 3. Domain fixtures
# ---------------------------------------------------------------------------

def _pillars(count: int, prefix: str = "pillar") -> tuple[Pillar, ...]:
    return tuple(
        Pillar(id=f"{prefix}_{n}", title=f"Area {n}", description=f"Description {n}")
        for n in range(1, count + 1)
    )


@pytest.fixture()
def pillar_pool() -> tuple[Pillar, ...]:
    """Twelve suggested pillars, as returned by a full suggestion batch."""
    return _pillars(12)


@pytest.fixture()
def goal_session() -> MandalartSession:
    """Profile, goal and archetype set; sitting on ARCHETYPE_RESULT."""
    session = machine.set_quick_context(
        INITIAL_SESSION, QuickContext(nickname="Mina", life_area="health", goal_style="challenging"),
    )
    session = machine.set_goal(session, GOAL)
    session = machine.set_archetype(session, Archetype.ROUTINE, now=FIXED_NOW)
    return machine.set_step(session, "ARCHETYPE_RESULT")


@pytest.fixture()
def pillar_session(goal_session: MandalartSession, pillar_pool: tuple[Pillar, ...]) -> MandalartSession:
    """Interview summarised and 12 pillars suggested; nothing selected yet."""
    session = machine.set_vibe_summary(goal_session, "Steady, curious and early to rise")
    session = machine.set_suggested_pillars(session, pillar_pool)
    return machine.set_step(session, "PILLAR_SELECTION")


@pytest.fixture()
def eight_selected(pillar_session: MandalartSession) -> MandalartSession:
    """First 8 pool pillars selected in order."""
    session = pillar_session
    for pillar in pillar_session.suggested_pillars[:8]:
        session = machine.toggle_pillar_selection(session, pillar.id)
    return session


def choose_actions(session: MandalartSession, pillar_number: int) -> MandalartSession:
    """Load 12 actions for the current pillar and select the first 8."""
    session = machine.set_suggested_actions(
        session, [f"Action {pillar_number}-{n}" for n in range(1, 13)],
    )
    for item in session.action_selection.current.suggested[:8]:
        session = machine.toggle_action_selection(session, item.id)
    return session


@pytest.fixture()
def result_session(eight_selected: MandalartSession) -> MandalartSession:
    """A session that went all the way to RESULT."""
    session = machine.start_action_selection(eight_selected)
    for number in range(1, 9):
        session = choose_actions(session, number)
        session = machine.complete_pillar_actions(session)
    return session


@pytest.fixture()
def pick_actions():
    """The choose_actions helper, for tests that walk the action phase themselves."""
    return choose_actions
