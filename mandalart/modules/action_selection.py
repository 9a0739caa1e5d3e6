"""
Action selection for a single pillar.

Pure helpers over PillarActions: turning suggestion batches into ActionItems,
toggling the ordered selection (capped at MAX_ACTIONS), keeping the
selection through a regeneration and turning a finished selection into a
SubGrid. session_machine.py wires these into the session aggregate.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from mandalart.modules.session_state import (
    MAX_ACTIONS,
    ActionItem,
    Pillar,
    PillarActions,
    SubGrid,
)


@dataclass(frozen=True)
class RegenerationRequest:
    """What to ask the Suggestion Service for when refreshing unselected actions."""

    count: int
    selected: tuple[str, ...]
    rejected: tuple[str, ...]


def make_action_items(pillar_id: str, texts: Iterable[str], batch: int) -> tuple[ActionItem, ...]:
    """
    Wrap suggestion strings as ActionItems with batch-scoped ids.

    Blank or non-string entries are skipped.
    """
    cleaned = [text.strip() for text in texts if isinstance(text, str) and text.strip()]
    return tuple(
        ActionItem(id=f"{pillar_id}:{batch}:{index}", text=text)
        for index, text in enumerate(cleaned)
    )


def with_suggestions(progress: PillarActions, texts: Iterable[str]) -> PillarActions:
    """Replace the pool with a fresh batch and clear the selection."""
    batch = progress.batch + 1
    return replace(
        progress,
        suggested=make_action_items(progress.pillar_id, texts, batch),
        selected=(),
        batch=batch,
    )


def toggle_action(progress: PillarActions, action_id: str) -> PillarActions:
    """
    Select or deselect an action.

    Deselecting keeps the relative order of the rest. Selecting appends.
    Unknown ids and selections past MAX_ACTIONS leave progress unchanged.
    """
    if any(item.id == action_id for item in progress.selected):
        return replace(
            progress,
            selected=tuple(item for item in progress.selected if item.id != action_id),
        )

    if len(progress.selected) >= MAX_ACTIONS:
        return progress

    item = next((a for a in progress.suggested if a.id == action_id), None)
    if item is None:
        return progress

    return replace(progress, selected=progress.selected + (item,))


def regeneration_request(progress: PillarActions) -> RegenerationRequest:
    """Count and context for replacing every unselected suggestion."""
    selected_ids = {item.id for item in progress.selected}
    rejected = tuple(item.text for item in progress.suggested if item.id not in selected_ids)
    return RegenerationRequest(
        count=len(rejected),
        selected=tuple(item.text for item in progress.selected),
        rejected=rejected,
    )


def with_regenerated(progress: PillarActions, texts: Iterable[str]) -> PillarActions:
    """Keep the selected items, swap every unselected suggestion for the new batch."""
    batch = progress.batch + 1
    fresh = make_action_items(progress.pillar_id, texts, batch)
    return replace(progress, suggested=progress.selected + fresh, batch=batch)


def is_complete(progress: PillarActions) -> bool:
    return len(progress.selected) == MAX_ACTIONS


def selection_order(progress: PillarActions, action_id: str) -> int | None:
    """1-based display number of a selected action, None when unselected."""
    for position, item in enumerate(progress.selected, start=1):
        if item.id == action_id:
            return position
    return None


def build_sub_grid(progress: PillarActions, pillar: Pillar, position: int) -> SubGrid | None:
    """
    Freeze a completed selection into the SubGrid for the pillar at `position`.

    Args:
        progress: Action progress for the pillar
        pillar: The selected pillar the actions belong to
        position: 0-based index of the pillar in selection order

    Returns:
        The SubGrid, or None when fewer than MAX_ACTIONS actions are selected
    """
    if not is_complete(progress):
        return None
    number = position + 1
    return SubGrid(
        id=f"grid_{number}",
        title=pillar.title,
        opacity_level=number,
        color_index=pillar.color_index or number,
        actions=tuple(item.text for item in progress.selected),
    )


__all__ = [
    "RegenerationRequest",
    "make_action_items",
    "with_suggestions",
    "toggle_action",
    "regeneration_request",
    "with_regenerated",
    "is_complete",
    "selection_order",
    "build_sub_grid",
]
