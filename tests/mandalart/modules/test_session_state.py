"""
Tests for the session data model and its JSON layout.

Covers:
- Initial session shape
- camelCase persisted layout (colorIndex omitted when unset)
- Round trip of a fully populated session
- Schema version handling
- Corrupt payloads raise SerializationError
"""

import json

import pytest

from mandalart.lib.exceptions import SerializationError
from mandalart.modules.session_state import (
    INITIAL_SESSION,
    SCHEMA_VERSION,
    MandalartSession,
    Pillar,
    SessionStep,
    deserialize_session,
    initial_session,
    serialize_session,
)


class TestInitialSession:

    def test_initial_session_fields(self):
        session = initial_session()
        assert session is INITIAL_SESSION
        assert session.project_info is None
        assert session.quick_context is None
        assert session.user_context is None
        assert session.suggested_pillars == ()
        assert session.selected_pillars == ()
        assert session.mandalart is None
        assert session.current_step == SessionStep.QUICK_CONTEXT
        assert session.is_discovery_mode is False
        assert session.discovery_answers == ()
        assert session.suggested_goals == ()
        assert session.action_selection is None

    def test_initial_session_layout(self):
        data = INITIAL_SESSION.to_dict()
        assert data["currentStep"] == "QUICK_CONTEXT"
        assert data["schemaVersion"] == SCHEMA_VERSION
        assert data["projectInfo"] is None
        assert data["suggestedPillars"] == []


class TestPillarLayout:

    def test_unselected_pillar_has_no_color_index(self):
        data = Pillar(id="p1", title="Sleep").to_dict()
        assert "colorIndex" not in data

    def test_selected_pillar_keeps_color_index(self):
        pillar = Pillar.from_dict({"id": "p1", "title": "Sleep", "colorIndex": 3})
        assert pillar.color_index == 3
        assert pillar.to_dict()["colorIndex"] == 3


class TestRoundTrip:

    def test_result_session_round_trips(self, result_session):
        restored = deserialize_session(serialize_session(result_session))
        assert restored == result_session

    def test_action_phase_round_trips(self, eight_selected, pick_actions):
        from mandalart.modules import session_machine as machine

        session = pick_actions(machine.start_action_selection(eight_selected), 1)
        restored = deserialize_session(serialize_session(session))
        assert restored.action_selection == session.action_selection

    def test_non_ascii_text_is_stored_verbatim(self, goal_session):
        from mandalart.modules import session_machine as machine

        session = machine.set_goal(goal_session, "하프 마라톤 완주하기")
        raw = serialize_session(session)
        assert "하프 마라톤" in raw
        assert deserialize_session(raw).user_context.goal == "하프 마라톤 완주하기"

    def test_missing_schema_version_is_accepted(self):
        data = INITIAL_SESSION.to_dict()
        del data["schemaVersion"]
        assert deserialize_session(json.dumps(data)) == INITIAL_SESSION


class TestCorruptPayloads:

    @pytest.mark.parametrize(
        "raw",
        [
            "not json at all",
            "[1, 2, 3]",
            '{"currentStep": "NOT_A_STEP"}',
            '{"selectedPillars": [{"title": "no id"}]}',
            '{"projectInfo": {"archetype": "WIZARD", "createdAt": "x"}}',
            '{"mandalart": {"core": "goal"}}',
        ],
    )
    def test_malformed_payload_raises(self, raw):
        with pytest.raises(SerializationError):
            deserialize_session(raw)

    def test_unknown_schema_version_raises(self):
        data = INITIAL_SESSION.to_dict()
        data["schemaVersion"] = SCHEMA_VERSION + 1
        with pytest.raises(SerializationError, match="schema version"):
            MandalartSession.from_dict(data)
