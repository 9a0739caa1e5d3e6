"""
Tests for SessionStore, its storage backends and the store registry.

Covers:
- Snapshot reads and subscriptions (notify, unsubscribe)
- No-op transitions neither persist nor notify
- Persistence and rehydration, including corrupt payloads (fail-open)
- Several stores over one backend see each other's changes
- Results computed from an outdated snapshot are refused
- Reset clears storage, also while Redis is down
- Redis-backed storage with in-memory fallback
- Registry returns one store per session id
- Concurrent dispatch does not lose updates
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from mandalart.lib.exceptions import SessionChangedError
from mandalart.modules import session_machine as machine
from mandalart.modules.session_state import (
    INITIAL_SESSION,
    SCHEMA_VERSION,
    InterviewAnswer,
    Pillar,
    QuickContext,
    SessionStep,
    serialize_session,
)
from mandalart.services import session_store as store_module
from mandalart.services.session_store import (
    InMemorySessionStorage,
    RedisSessionStorage,
    SessionStore,
    configure_session_storage,
    get_session_store,
    reset_session_stores,
)

KEY = "ai-mandalart-session:test-session"


def pool(count=12):
    return [Pillar(id=f"p{n}", title=f"Area {n}") for n in range(1, count + 1)]


def fake_redis(get=None, set=True, delete=True):
    redis = MagicMock()
    redis.get = AsyncMock(return_value=get)
    redis.set = AsyncMock(return_value=set)
    redis.delete = AsyncMock(return_value=delete)
    redis.aclose = AsyncMock()
    return redis


# =============================================================================
# Subscriptions
# =============================================================================


class TestSubscriptions:

    async def test_new_store_starts_from_initial_session(self, store):
        assert await store.get_snapshot() == INITIAL_SESSION
        assert store.storage_key == KEY

    async def test_listener_receives_each_change(self, store):
        seen = []
        store.subscribe(seen.append)
        await store.set_goal("Learn Spanish")
        await store.set_step(SessionStep.ARCHETYPE_RESULT)
        assert [s.current_step for s in seen] == [SessionStep.QUICK_CONTEXT, SessionStep.ARCHETYPE_RESULT]
        assert seen[-1] is await store.get_snapshot()

    async def test_unsubscribe_stops_notifications(self, store):
        listener = MagicMock()
        unsubscribe = store.subscribe(listener)
        unsubscribe()
        unsubscribe()
        await store.set_goal("Learn Spanish")
        listener.assert_not_called()

    async def test_noop_neither_notifies_nor_persists(self, store, storage):
        listener = MagicMock()
        store.subscribe(listener)
        await store.set_goal("   ")
        await store.toggle_pillar_selection("missing")
        listener.assert_not_called()
        assert KEY not in storage

    async def test_unchanged_storage_keeps_snapshot_identity(self, store):
        await store.set_goal("Learn Spanish")
        assert await store.get_snapshot() is await store.get_snapshot()

    async def test_snapshots_are_stable_for_readers(self, store):
        before = await store.get_snapshot()
        await store.set_goal("Learn Spanish")
        assert before == INITIAL_SESSION


# =============================================================================
# Persistence
# =============================================================================


class TestPersistence:

    async def test_changes_are_persisted(self, store, storage):
        await store.set_goal("Learn Spanish")
        assert await storage.load(KEY) == serialize_session(await store.get_snapshot())

    async def test_new_store_rehydrates(self, store, storage):
        await store.set_quick_context(QuickContext(nickname="Mina"))
        await store.set_goal("Learn Spanish")
        await store.set_suggested_pillars(pool())
        await store.toggle_pillar_selection("p2")

        reloaded = SessionStore("test-session", storage=storage)
        assert await reloaded.get_snapshot() == await store.get_snapshot()

    @pytest.mark.parametrize(
        "raw",
        ["{broken", "[]", '{"currentStep": "NOWHERE"}', '{"schemaVersion": %d}' % (SCHEMA_VERSION + 1)],
    )
    async def test_corrupt_payload_yields_initial_session(self, storage, raw):
        await storage.save(KEY, raw)
        reloaded = SessionStore("test-session", storage=storage)
        assert await reloaded.get_snapshot() == INITIAL_SESSION
        assert KEY not in storage

    async def test_reset_clears_storage_and_notifies(self, store, storage):
        await store.set_goal("Learn Spanish")
        listener = MagicMock()
        store.subscribe(listener)

        assert await store.reset_session() == INITIAL_SESSION
        listener.assert_called_once_with(INITIAL_SESSION)
        assert KEY not in storage
        assert await SessionStore("test-session", storage=storage).get_snapshot() == INITIAL_SESSION

    async def test_reset_is_idempotent(self, store):
        await store.reset_session()
        assert await store.reset_session() == INITIAL_SESSION


class TestSharedStorage:

    async def test_stores_over_one_backend_keep_each_others_changes(self, storage):
        first = SessionStore("test-session", storage=storage)
        second = SessionStore("test-session", storage=storage)
        await first.get_snapshot()
        await second.get_snapshot()

        await first.set_goal("goal A")
        await second.enter_discovery_mode()

        session = await SessionStore("test-session", storage=storage).get_snapshot()
        assert session.user_context.goal == "goal A"
        assert session.current_step == SessionStep.DISCOVERY

    async def test_reset_by_another_store_is_seen(self, storage):
        first = SessionStore("test-session", storage=storage)
        second = SessionStore("test-session", storage=storage)
        await first.set_goal("goal A")
        await second.reset_session()

        await first.set_step(SessionStep.GOAL_INPUT)
        session = await first.get_snapshot()
        assert session.user_context is None


class TestDispatchIfCurrent:

    async def test_applies_when_unchanged(self, store):
        snapshot = await store.set_goal("Learn Spanish")
        session = await store.dispatch_if_current(snapshot, machine.set_vibe_summary, "Curious")
        assert session.user_context.persona.vibe_summary == "Curious"

    async def test_refuses_after_reset(self, store, storage):
        snapshot = await store.set_goal("Learn Spanish")
        await store.reset_session()

        with pytest.raises(SessionChangedError):
            await store.dispatch_if_current(snapshot, machine.set_suggested_pillars, tuple(pool()))
        assert KEY not in storage
        assert await store.get_snapshot() == INITIAL_SESSION

    async def test_refuses_after_change_by_another_store(self, store, storage):
        snapshot = await store.set_goal("Learn Spanish")
        await SessionStore("test-session", storage=storage).set_goal("Learn Korean")

        with pytest.raises(SessionChangedError):
            await store.dispatch_if_current(snapshot, machine.set_vibe_summary, "Curious")
        assert (await store.get_snapshot()).user_context.goal == "Learn Korean"


# =============================================================================
# Operations
# =============================================================================


class TestOperations:

    async def test_full_flow_through_store(self, store):
        await store.set_quick_context(QuickContext(nickname="Mina"))
        await store.set_goal("Learn Spanish")
        await store.set_archetype("GROWTH")
        await store.set_step(SessionStep.INTERVIEW)
        await store.add_interview_answer(InterviewAnswer("Why?", "Travel"))
        await store.set_vibe_summary("Curious traveller")
        await store.set_suggested_pillars(pool())
        for n in range(1, 8):
            await store.toggle_pillar_selection(f"p{n}")
        await store.add_custom_pillar("Podcasts")
        await store.start_action_selection()

        for number in range(8):
            session = await store.set_suggested_actions([f"Action {number}-{i}" for i in range(12)])
            for item in session.action_selection.current.suggested[:8]:
                await store.toggle_action_selection(item.id)
            await store.complete_pillar_actions()

        session = await store.get_snapshot()
        assert session.current_step == SessionStep.RESULT
        assert session.mandalart.sub_grids[-1].title == "Podcasts"

    async def test_discovery_through_store(self, store):
        await store.enter_discovery_mode()
        await store.add_discovery_answer(InterviewAnswer("Q1", "Drawing"))
        await store.set_suggested_goals(["Draw daily"])
        await store.resolve_discovery_goal("Draw daily")
        session = await store.get_snapshot()
        assert session.user_context.goal == "Draw daily"
        assert session.current_step == SessionStep.GOAL_INPUT
        assert not session.is_discovery_mode

    async def test_strict_store_rejects_illegal_step(self, storage):
        strict = SessionStore("strict", storage=storage, strict_transitions=True)
        assert await strict.set_step(SessionStep.RESULT) is INITIAL_SESSION
        assert not await strict.can_transition(SessionStep.RESULT)

    async def test_failed_regeneration_leaves_pool_and_selection(self, store):
        pillars = [Pillar(id=i, title=i) for i in "ABCD"]
        await store.set_suggested_pillars(pillars)
        await store.toggle_pillar_selection("A")
        before = await store.toggle_pillar_selection("B")

        # A failed suggestion call hands back no pillars
        after = await store.apply_pillar_regeneration([])
        assert after is before
        assert [p.id for p in after.suggested_pillars] == ["A", "B", "C", "D"]
        assert [p.id for p in after.selected_pillars] == ["A", "B"]

    async def test_concurrent_toggles_respect_capacity(self, store):
        await store.set_suggested_pillars(pool(40))
        await asyncio.gather(*(store.toggle_pillar_selection(f"p{n}") for n in range(1, 41)))

        selected = (await store.get_snapshot()).selected_pillars
        assert len(selected) == 8
        assert [p.color_index for p in selected] == list(range(1, 9))


# =============================================================================
# Redis storage
# =============================================================================


class TestRedisSessionStorage:

    async def test_reads_and_writes_go_through_redis(self):
        redis = fake_redis(get="stored")
        storage = RedisSessionStorage(redis, ttl=3600)

        await storage.save("k", "v")
        redis.set.assert_awaited_once_with("k", "v", ttl=3600)
        assert await storage.load("k") == "stored"

    async def test_falls_back_to_memory_when_redis_is_down(self):
        storage = RedisSessionStorage(fake_redis(set=False))
        await storage.save("k", "v")
        assert await storage.load("k") == "v"

    async def test_remove_clears_both(self):
        redis = fake_redis()
        storage = RedisSessionStorage(redis, ttl=0)
        await storage.save("k", "v")
        await storage.remove("k")
        redis.delete.assert_awaited_once_with("k")
        assert await storage.load("k") is None

    async def test_failed_delete_hides_value_until_retried(self):
        redis = fake_redis(delete=None)
        storage = RedisSessionStorage(redis)
        await storage.save("k", "v")
        await storage.remove("k")

        # Redis is back and still holds the old session
        redis.get.return_value = "stale"
        redis.delete.return_value = True
        assert await storage.load("k") is None
        assert redis.delete.await_count == 2

        redis.get.return_value = None
        assert await storage.load("k") is None
        redis.get.assert_awaited_once_with("k")

    async def test_reset_while_redis_is_down_stays_reset(self):
        redis = fake_redis(delete=None)
        storage = RedisSessionStorage(redis)
        store = SessionStore("test-session", storage=storage)
        await store.set_goal("Learn Spanish")
        stored = redis.set.await_args.args[1]

        await store.reset_session()
        redis.get.return_value = stored
        assert await SessionStore("test-session", storage=storage).get_snapshot() == INITIAL_SESSION

    async def test_save_after_failed_delete_is_readable(self):
        storage = RedisSessionStorage(fake_redis(delete=None, set=False))
        await storage.save("k", "old")
        await storage.remove("k")
        await storage.save("k", "new")
        assert await storage.load("k") == "new"


# =============================================================================
# Registry
# =============================================================================


class TestRegistry:

    def test_same_id_returns_same_store(self):
        assert get_session_store("abc") is get_session_store("abc")
        assert get_session_store("abc") is not get_session_store("xyz")

    async def test_views_share_notifications(self):
        seen = []
        get_session_store("abc").subscribe(seen.append)
        await get_session_store("abc").set_goal("Learn Spanish")
        assert len(seen) == 1

    async def test_reset_registry_rehydrates_from_storage(self):
        storage = InMemorySessionStorage()
        configure_session_storage(storage)
        await get_session_store("abc").set_goal("Learn Spanish")

        reset_session_stores()
        configure_session_storage(storage)
        assert (await get_session_store("abc").get_snapshot()).user_context.goal == "Learn Spanish"

    def test_idle_stores_are_evicted_at_capacity(self, monkeypatch):
        monkeypatch.setattr(store_module, "MAX_STORES", 2)
        busy = get_session_store("busy")
        busy.subscribe(lambda s: None)
        get_session_store("idle")
        get_session_store("third")

        assert get_session_store("busy") is busy
        assert "idle" not in store_module._stores
