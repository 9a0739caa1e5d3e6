"""
Observable, persisted store for Mandalart wizard sessions.

A SessionStore is the only thing allowed to replace a session. Each mutation
runs as "load from storage -> compute next -> persist -> publish" under a
lock. Loading on every mutation keeps several stores over one backend
(other workers, a store rebuilt after eviction) from writing a stale
snapshot over each other's changes.

Persistence is fail-open: a stored value that cannot be decoded is logged,
deleted and replaced by the initial session.

Stores are shared per session id through get_session_store(), so every view
of one session in a process observes the same notifications.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Iterable, Protocol

from mandalart.config.settings import get_settings
from mandalart.lib.exceptions import SerializationError, SessionChangedError
from mandalart.modules import session_machine as machine
from mandalart.modules.session_state import (
    INITIAL_SESSION,
    STORAGE_KEY,
    Archetype,
    InterviewAnswer,
    MandalartSession,
    Pillar,
    QuickContext,
    SessionStep,
    SubGrid,
    deserialize_session,
    serialize_session,
)
from mandalart.services.redis_service import RedisService, get_redis_service

logger = logging.getLogger(__name__)

Listener = Callable[[MandalartSession], None]
Transition = Callable[..., MandalartSession]


# =============================================================================
# Storage Backends
# =============================================================================

class SessionStorage(Protocol):
    """Durable key-value slot holding serialized sessions."""

    async def load(self, key: str) -> str | None: ...

    async def save(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...


class InMemorySessionStorage:
    """Process-local storage, used in development and tests."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def load(self, key: str) -> str | None:
        return self._data.get(key)

    async def save(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class RedisSessionStorage:
    """
    Redis-backed storage with an in-memory mirror.

    Reads prefer Redis and fall back to the mirror when Redis has nothing
    or is unreachable; writes always update both. A delete that cannot reach
    Redis leaves a tombstone, so the old value is not read back once Redis
    returns; the delete is retried on the next access.
    """

    def __init__(self, redis_service: RedisService | None = None, ttl: int | None = None) -> None:
        self._redis = redis_service or get_redis_service()
        self._ttl = ttl or None
        self._memory = InMemorySessionStorage()
        self._tombstones: set[str] = set()

    async def load(self, key: str) -> str | None:
        if key in self._tombstones:
            if await self._redis.delete(key) is not None:
                self._tombstones.discard(key)
            return None
        value = await self._redis.get(key)
        if value is not None:
            return value
        return await self._memory.load(key)

    async def save(self, key: str, value: str) -> None:
        self._tombstones.discard(key)
        await self._memory.save(key, value)
        if not await self._redis.set(key, value, ttl=self._ttl):
            logger.debug("Session %s kept in memory only", key)

    async def remove(self, key: str) -> None:
        await self._memory.remove(key)
        if await self._redis.delete(key) is None:
            logger.warning("Could not delete %s from Redis; will retry", key)
            self._tombstones.add(key)

    async def aclose(self) -> None:
        await self._redis.aclose()


# =============================================================================
# Session Store
# =============================================================================

class SessionStore:
    """
    Single source of truth for one wizard session.

    Readers get immutable snapshots through get_snapshot() or by subscribing;
    all changes go through the operation methods below.
    """

    def __init__(
        self,
        session_id: str,
        storage: SessionStorage | None = None,
        strict_transitions: bool = False,
    ) -> None:
        """
        Args:
            session_id: Id of the wizard session (one per browser/client)
            storage: Persistence backend (in-memory if None)
            strict_transitions: Enforce the transition table in set_step
        """
        self.session_id = session_id
        self.strict_transitions = strict_transitions
        self._storage: SessionStorage = storage if storage is not None else InMemorySessionStorage()
        self._key = f"{STORAGE_KEY}:{session_id}"
        self._lock = asyncio.Lock()
        self._listeners: list[Listener] = []
        self._raw: str | None = None
        self._state: MandalartSession = INITIAL_SESSION

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def _load(self) -> MandalartSession:
        # Unchanged stored text keeps the cached snapshot object
        raw = await self._storage.load(self._key)
        if raw is not None and raw == self._raw:
            return self._state
        if raw is None:
            state = INITIAL_SESSION
        else:
            try:
                state = deserialize_session(raw)
            except SerializationError as exc:
                logger.warning("Discarding unreadable session %s: %s", self._key, exc)
                await self._storage.remove(self._key)
                raw, state = None, INITIAL_SESSION
        self._raw, self._state = raw, state
        return state

    # -------------------------------------------------------------------------
    # Snapshot & subscriptions
    # -------------------------------------------------------------------------

    async def get_snapshot(self) -> MandalartSession:
        """Current immutable session, as persisted."""
        async with self._lock:
            return await self._load()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with every new snapshot.

        Returns:
            Function that removes the listener; calling it twice is harmless
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def dispatch(self, transition: Transition, *args: Any, **kwargs: Any) -> MandalartSession:
        """
        Apply a pure transition to the stored session.

        A transition that returns the same object is a no-op: nothing is
        persisted and nobody is notified.
        """
        async with self._lock:
            return await self._apply(await self._load(), transition, args, kwargs)

    async def dispatch_if_current(
        self,
        expected: MandalartSession,
        transition: Transition,
        *args: Any,
        **kwargs: Any,
    ) -> MandalartSession:
        """
        Apply a transition only if the session still equals `expected`.

        Used for results computed from an earlier snapshot, such as an LLM
        suggestion fetched while other requests could change the session.

        Raises:
            SessionChangedError: The session was changed or reset meanwhile
        """
        async with self._lock:
            current = await self._load()
            if current is not expected and current != expected:
                raise SessionChangedError(f"Session {self.session_id} changed during the request")
            return await self._apply(current, transition, args, kwargs)

    async def _apply(
        self,
        previous: MandalartSession,
        transition: Transition,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> MandalartSession:
        updated = transition(previous, *args, **kwargs)
        if updated is previous:
            return previous
        raw = serialize_session(updated)
        await self._storage.save(self._key, raw)
        self._raw, self._state = raw, updated
        self._notify(updated)
        return updated

    def _notify(self, session: MandalartSession) -> None:
        for listener in list(self._listeners):
            listener(session)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def set_step(self, step: SessionStep | str) -> MandalartSession:
        return await self.dispatch(machine.set_step, step, strict=self.strict_transitions)

    async def can_transition(self, step: SessionStep) -> bool:
        return machine.can_transition(await self.get_snapshot(), step)

    async def set_quick_context(self, context: QuickContext) -> MandalartSession:
        return await self.dispatch(machine.set_quick_context, context)

    async def set_goal(self, goal: str) -> MandalartSession:
        return await self.dispatch(machine.set_goal, goal)

    async def set_archetype(self, archetype: Archetype | str) -> MandalartSession:
        return await self.dispatch(machine.set_archetype, archetype)

    async def add_interview_answer(self, answer: InterviewAnswer) -> MandalartSession:
        return await self.dispatch(machine.add_interview_answer, answer)

    async def set_vibe_summary(self, summary: str) -> MandalartSession:
        return await self.dispatch(machine.set_vibe_summary, summary)

    async def set_suggested_pillars(self, pillars: Iterable[Pillar]) -> MandalartSession:
        return await self.dispatch(machine.set_suggested_pillars, tuple(pillars))

    async def toggle_pillar_selection(self, pillar_id: str, explicit_pillar: Pillar | None = None) -> MandalartSession:
        return await self.dispatch(machine.toggle_pillar_selection, pillar_id, explicit_pillar)

    async def add_custom_pillar(self, title: str, description: str = "", lang: str = "en") -> MandalartSession:
        return await self.dispatch(machine.add_custom_pillar, title, description, lang=lang)

    async def apply_pillar_regeneration(self, pillars: Iterable[Pillar]) -> MandalartSession:
        return await self.dispatch(machine.apply_pillar_regeneration, tuple(pillars))

    async def set_mandalart(self, core: str, sub_grids: Iterable[SubGrid]) -> MandalartSession:
        return await self.dispatch(machine.set_mandalart, core, tuple(sub_grids))

    async def enter_discovery_mode(self) -> MandalartSession:
        return await self.dispatch(machine.enter_discovery_mode)

    async def add_discovery_answer(self, answer: InterviewAnswer) -> MandalartSession:
        return await self.dispatch(machine.add_discovery_answer, answer)

    async def set_suggested_goals(self, goals: Iterable[str]) -> MandalartSession:
        return await self.dispatch(machine.set_suggested_goals, tuple(goals))

    async def resolve_discovery_goal(self, goal: str) -> MandalartSession:
        return await self.dispatch(machine.resolve_discovery_goal, goal)

    async def back_to_goal_input(self) -> MandalartSession:
        return await self.dispatch(machine.back_to_goal_input)

    async def start_action_selection(self) -> MandalartSession:
        return await self.dispatch(machine.start_action_selection)

    async def set_suggested_actions(self, texts: Iterable[str]) -> MandalartSession:
        return await self.dispatch(machine.set_suggested_actions, tuple(texts))

    async def toggle_action_selection(self, action_id: str) -> MandalartSession:
        return await self.dispatch(machine.toggle_action_selection, action_id)

    async def apply_action_regeneration(self, texts: Iterable[str]) -> MandalartSession:
        return await self.dispatch(machine.apply_action_regeneration, tuple(texts))

    async def complete_pillar_actions(self) -> MandalartSession:
        return await self.dispatch(machine.complete_pillar_actions)

    async def reset_session(self) -> MandalartSession:
        """Back to the initial session; the stored value is deleted, not overwritten."""
        async with self._lock:
            await self._storage.remove(self._key)
            self._raw, self._state = None, INITIAL_SESSION
            self._notify(INITIAL_SESSION)
            return INITIAL_SESSION


# =============================================================================
# Store Registry
# =============================================================================

MAX_STORES = 10000

_stores: OrderedDict[str, SessionStore] = OrderedDict()
_stores_lock = threading.Lock()
_default_storage: SessionStorage | None = None


def _get_default_storage() -> SessionStorage:
    global _default_storage
    if _default_storage is None:
        settings = get_settings()
        _default_storage = RedisSessionStorage(
            RedisService(settings.redis_url),
            ttl=settings.session_ttl or None,
        )
    return _default_storage


def configure_session_storage(storage: SessionStorage | None) -> None:
    """Replace the backend used for stores created from now on."""
    global _default_storage
    _default_storage = storage


def _evict_idle_store() -> None:
    # Least recently used store nobody is subscribed to; state stays persisted
    for session_id, store in _stores.items():
        if store.listener_count == 0:
            del _stores[session_id]
            return


def get_session_store(session_id: str) -> SessionStore:
    """Get the shared store for a session id, creating it on first use."""
    with _stores_lock:
        store = _stores.get(session_id)
        if store is not None:
            _stores.move_to_end(session_id)
            return store

        if len(_stores) >= MAX_STORES:
            _evict_idle_store()

        store = SessionStore(
            session_id,
            storage=_get_default_storage(),
            strict_transitions=get_settings().strict_transitions,
        )
        _stores[session_id] = store
        return store


async def close_session_storage() -> None:
    """Close the Redis connection of the default backend, if one was opened."""
    if isinstance(_default_storage, RedisSessionStorage):
        await _default_storage.aclose()


def reset_session_stores() -> None:
    """Forget every cached store and the default backend."""
    global _default_storage
    with _stores_lock:
        _stores.clear()
        _default_storage = None


__all__ = [
    "SessionStorage",
    "InMemorySessionStorage",
    "RedisSessionStorage",
    "SessionStore",
    "Listener",
    "MAX_STORES",
    "configure_session_storage",
    "close_session_storage",
    "get_session_store",
    "reset_session_stores",
]
