"""Tests for branch placement."""

from __future__ import annotations

from convograph.graph.layout import BRANCH_LAYOUT, calculate_branch_position
from convograph.graph.models import Position


class TestCalculateBranchPosition:
    def test_first_child_directly_below(self) -> None:
        assert calculate_branch_position(Position(100, 100), 0) == Position(100, 300)

    def test_siblings_spread_horizontally(self) -> None:
        pos = calculate_branch_position(Position(100, 100), 2)
        assert pos.x == 100 + 2 * BRANCH_LAYOUT["horizontal_spacing"]
        assert pos.y == 300

    def test_depth_adds_rows(self) -> None:
        assert calculate_branch_position(Position(0, 0), 0, depth=2).y == 600

    def test_horizontal_overflow_wraps_to_parent_column(self) -> None:
        pos = calculate_branch_position(Position(500, 100), 3, viewport=(1000, 2000))
        assert pos.x == 500
        assert pos.y == 500

    def test_vertical_overflow_is_clamped(self) -> None:
        pos = calculate_branch_position(Position(200, 900), 0, viewport=(1000, 1000))
        assert pos.y == 900

    def test_padding_keeps_nodes_off_the_edge(self) -> None:
        pos = calculate_branch_position(Position(0, -500), 0, viewport=(1000, 1000))
        assert pos == Position(100, 100)
