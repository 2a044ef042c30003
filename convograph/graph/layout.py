"""Placement of newly forked branch nodes on the canvas."""

from __future__ import annotations

from typing import Optional

from convograph.graph.models import Position

BRANCH_LAYOUT = {
    "horizontal_spacing": 350,  # between sibling branches
    "vertical_spacing": 200,  # between a parent and its child
    "viewport_padding": 100,
    "max_viewport_width": 10000,
    "max_viewport_height": 10000,
}


def calculate_branch_position(
    parent: Position,
    branch_index: int,
    depth: int = 0,
    viewport: Optional[tuple[float, float]] = None,
) -> Position:
    """Position for the *branch_index*-th child of a node at *parent*.

    Args:
        parent: Position of the node being branched from.
        branch_index: 0 for the first child, 1 for the second, ...
        depth: Extra rows below the parent (0 = directly under it).
        viewport: Optional ``(width, height)`` to keep the node inside.
    """
    x = parent.x + branch_index * BRANCH_LAYOUT["horizontal_spacing"]
    y = parent.y + (depth + 1) * BRANCH_LAYOUT["vertical_spacing"]

    if viewport is not None:
        padding = BRANCH_LAYOUT["viewport_padding"]
        max_width = min(viewport[0], BRANCH_LAYOUT["max_viewport_width"])
        max_height = min(viewport[1], BRANCH_LAYOUT["max_viewport_height"])

        if x + padding > max_width:
            # Wrap to the parent's column, one row further down.
            x = parent.x
            y += BRANCH_LAYOUT["vertical_spacing"]
        if y + padding > max_height:
            y = max_height - padding

        x = max(padding, x)
        y = max(padding, y)

    return Position(x=x, y=y)
