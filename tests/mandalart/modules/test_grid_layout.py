"""
Tests for the 9x9 grid layout.
"""

import pytest

from mandalart.modules import grid_layout
from mandalart.modules.session_state import MandalartData


class TestIndexMapping:

    @pytest.mark.parametrize(
        "position, index",
        [(0, 0), (1, 1), (2, 2), (3, 3), (4, None), (5, 4), (6, 5), (7, 6), (8, 7)],
    )
    def test_block_to_sub_grid_index(self, position, index):
        assert grid_layout.block_to_sub_grid_index(position) == index

    def test_inverse_mapping(self):
        for index in range(8):
            block = grid_layout.sub_grid_index_to_block(index)
            assert grid_layout.block_to_sub_grid_index(block) == index


class TestBuildCells:

    def test_centre_holds_core_goal(self, result_session):
        cells = grid_layout.build_cells(result_session.mandalart)
        assert cells[4][4].text == "Run a half marathon this year"
        assert cells[4][4].kind == "core"

    def test_centre_block_holds_pillar_titles(self, result_session):
        cells = grid_layout.build_cells(result_session.mandalart)
        assert cells[3][3].text == "Area 1"
        assert cells[4][5].text == "Area 5"
        assert cells[5][5].text == "Area 8"
        assert cells[5][5].color_index == 8

    def test_outer_block_layout(self, result_session):
        cells = grid_layout.build_cells(result_session.mandalart)
        # Block 0 (top-left) belongs to sub-grid 0
        assert cells[1][1].text == "Area 1"
        assert cells[1][1].kind == "title"
        assert [cells[0][c].text for c in range(3)] == ["Action 1-1", "Action 1-2", "Action 1-3"]
        assert cells[1][0].text == "Action 1-4"
        assert cells[1][2].text == "Action 1-5"
        assert cells[2][2].text == "Action 1-8"
        # Block 8 (bottom-right) belongs to sub-grid 7
        assert cells[7][7].text == "Area 8"
        assert cells[8][8].text == "Action 8-8"

    def test_every_cell_is_filled(self, result_session):
        matrix = grid_layout.build_text_matrix(result_session.mandalart)
        assert len(matrix) == 9
        assert all(len(row) == 9 and all(row) for row in matrix)

    def test_incomplete_artifact_raises(self):
        with pytest.raises(ValueError):
            grid_layout.build_cells(MandalartData(core="goal", sub_grids=()))


class TestRenderSnapshot:

    def test_snapshot_payload(self, result_session):
        snapshot = grid_layout.render_snapshot(result_session.mandalart, nickname="Mina", locale="ko")
        assert snapshot["nickname"] == "Mina"
        assert snapshot["locale"] == "ko"
        assert snapshot["mandalart"]["core"] == "Run a half marathon this year"
        assert snapshot["cells"][4][4]["kind"] == "core"
        assert snapshot["cells"][0][0]["colorIndex"] == 1

    def test_empty_nickname_becomes_none(self, result_session):
        assert grid_layout.render_snapshot(result_session.mandalart, nickname="")["nickname"] is None
