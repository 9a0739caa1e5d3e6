"""
Grid layout bookkeeping for the 9x9 Mandalart.

The grid is a 3x3 arrangement of 3x3 blocks. Block positions run 0..8 in
row-major order; position 4 is the centre block. The 8 outer positions map
to sub-grids in order (position < 4 -> index = position, otherwise
position - 1). Inside the centre block the core goal sits in the middle cell
and each pillar title occupies the cell matching its outer block. Inside an
outer block the pillar title sits in the middle and its actions fill the
other cells in row-major order (actions[0:4] before, actions[4:8] after).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mandalart.modules.session_state import MAX_PILLARS, MandalartData, SubGrid

CENTER = 4
GRID_SIZE = 9


@dataclass(frozen=True)
class GridCell:
    """One of the 81 cells, with what it shows and where it belongs."""

    row: int
    col: int
    text: str
    kind: str  # "core" | "title" | "action"
    color_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "col": self.col,
            "text": self.text,
            "kind": self.kind,
            "colorIndex": self.color_index,
        }


def block_to_sub_grid_index(position: int) -> int | None:
    """Sub-grid index shown at block/cell `position`; None for the centre."""
    if position == CENTER:
        return None
    return position if position < CENTER else position - 1


def sub_grid_index_to_block(index: int) -> int:
    """Inverse of block_to_sub_grid_index for indices 0..7."""
    return index if index < CENTER else index + 1


def _cell_text(data: MandalartData, block: int, cell: int) -> tuple[str, str, int | None]:
    sub_index = block_to_sub_grid_index(block)

    if sub_index is None:
        if cell == CENTER:
            return data.core, "core", None
        grid = data.sub_grids[block_to_sub_grid_index(cell)]  # type: ignore[index]
        return grid.title, "title", grid.color_index

    grid: SubGrid = data.sub_grids[sub_index]
    if cell == CENTER:
        return grid.title, "title", grid.color_index
    action_index = block_to_sub_grid_index(cell)
    return grid.actions[action_index], "action", grid.color_index  # type: ignore[index]


def build_cells(data: MandalartData) -> list[list[GridCell]]:
    """
    Lay a complete mandalart out as a 9x9 matrix of cells.

    Raises:
        ValueError: The artifact does not have 8 sub-grids of 8 actions
    """
    if len(data.sub_grids) != MAX_PILLARS or any(len(g.actions) != 8 for g in data.sub_grids):
        raise ValueError("Mandalart must have 8 sub-grids with 8 actions each")

    rows: list[list[GridCell]] = []
    for row in range(GRID_SIZE):
        cells: list[GridCell] = []
        for col in range(GRID_SIZE):
            block = (row // 3) * 3 + col // 3
            cell = (row % 3) * 3 + col % 3
            text, kind, color_index = _cell_text(data, block, cell)
            cells.append(GridCell(row=row, col=col, text=text, kind=kind, color_index=color_index))
        rows.append(cells)
    return rows


def build_text_matrix(data: MandalartData) -> list[list[str]]:
    """Plain 9x9 text matrix, e.g. for CSV export or a terminal preview."""
    return [[cell.text for cell in row] for row in build_cells(data)]


def render_snapshot(
    data: MandalartData,
    nickname: str | None = None,
    locale: str = "en",
) -> dict[str, Any]:
    """
    Read-only payload handed to a renderer.

    Contains the artifact itself, the laid-out cells and display metadata.
    """
    return {
        "mandalart": data.to_dict(),
        "cells": [[cell.to_dict() for cell in row] for row in build_cells(data)],
        "nickname": nickname or None,
        "locale": locale,
    }


__all__ = [
    "CENTER",
    "GRID_SIZE",
    "GridCell",
    "block_to_sub_grid_index",
    "sub_grid_index_to_block",
    "build_cells",
    "build_text_matrix",
    "render_snapshot",
]
