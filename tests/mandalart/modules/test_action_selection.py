"""
Tests for per-pillar action selection helpers.
"""

import pytest

from mandalart.modules import action_selection
from mandalart.modules.session_state import ActionItem, Pillar, PillarActions


@pytest.fixture
def progress():
    return action_selection.with_suggestions(
        PillarActions(pillar_id="pillar_1"), [f"Action {n}" for n in range(1, 13)],
    )


def select(progress, count):
    for item in progress.suggested[:count]:
        progress = action_selection.toggle_action(progress, item.id)
    return progress


class TestMakeActionItems:

    def test_ids_are_batch_scoped(self):
        items = action_selection.make_action_items("p", ["Walk", "Run"], batch=3)
        assert items == (ActionItem("p:3:0", "Walk"), ActionItem("p:3:1", "Run"))

    def test_blank_and_non_string_entries_are_skipped(self):
        items = action_selection.make_action_items("p", ["Walk", "  ", None, 5, " Swim "], batch=1)
        assert [i.text for i in items] == ["Walk", "Swim"]


class TestToggle:

    def test_new_batch_clears_selection(self, progress):
        progress = select(progress, 3)
        refreshed = action_selection.with_suggestions(progress, ["Only one"])
        assert refreshed.selected == ()
        assert refreshed.batch == progress.batch + 1

    def test_select_appends_in_order(self, progress):
        progress = action_selection.toggle_action(progress, progress.suggested[4].id)
        progress = action_selection.toggle_action(progress, progress.suggested[1].id)
        assert [a.text for a in progress.selected] == ["Action 5", "Action 2"]
        assert action_selection.selection_order(progress, progress.suggested[1].id) == 2
        assert action_selection.selection_order(progress, progress.suggested[0].id) is None

    def test_deselect_keeps_relative_order(self, progress):
        progress = select(progress, 4)
        progress = action_selection.toggle_action(progress, progress.suggested[1].id)
        assert [a.text for a in progress.selected] == ["Action 1", "Action 3", "Action 4"]

    def test_ninth_selection_is_ignored(self, progress):
        progress = select(progress, 8)
        assert action_selection.toggle_action(progress, progress.suggested[9].id) is progress
        assert action_selection.is_complete(progress)

    def test_unknown_id_is_ignored(self, progress):
        assert action_selection.toggle_action(progress, "nope") is progress


class TestRegeneration:

    def test_request_describes_unselected(self, progress):
        progress = select(progress, 3)
        request = action_selection.regeneration_request(progress)
        assert request.count == 9
        assert request.selected == ("Action 1", "Action 2", "Action 3")
        assert "Action 1" not in request.rejected

    def test_new_ids_never_clash_with_kept_ones(self, progress):
        progress = select(progress, 2)
        regenerated = action_selection.with_regenerated(progress, ["Action 1", "Fresh"])
        ids = [a.id for a in regenerated.suggested]
        assert len(ids) == len(set(ids))
        assert regenerated.selected == progress.selected


class TestBuildSubGrid:

    def test_incomplete_selection_gives_none(self, progress):
        pillar = Pillar(id="pillar_1", title="Sleep", color_index=1)
        assert action_selection.build_sub_grid(select(progress, 7), pillar, 0) is None

    def test_complete_selection_gives_numbered_grid(self, progress):
        pillar = Pillar(id="pillar_1", title="Sleep", color_index=3)
        grid = action_selection.build_sub_grid(select(progress, 8), pillar, 2)
        assert grid.id == "grid_3"
        assert grid.opacity_level == 3
        assert grid.color_index == 3
        assert grid.title == "Sleep"
        assert grid.actions == tuple(f"Action {n}" for n in range(1, 9))
