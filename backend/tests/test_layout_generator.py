"""Tests for the shelf color layout generator."""
import random
from collections import Counter

import pytest

from catshelf.core.layout_generator import (
    GenerationErrorKind,
    LayoutGenerator,
    get_layout_generator,
)
from catshelf.models.level import BoxColor
from catshelf.models.palette import ColorConfig, ColorPalette


@pytest.fixture
def generator():
    """Generator over all six colors."""
    return LayoutGenerator(palette=ColorPalette.from_names([]), group_size=4, max_attempts=96)


def assert_group_rules(result, group_size=4):
    """Every color count is a group multiple and no shelf repeats a color."""
    counts = Counter(c for colors in result.shelf_colors for c in colors)
    for color, count in counts.items():
        assert count % group_size == 0, f"{color} appears {count} times"
    for colors in result.shelf_colors:
        assert len(colors) == len(set(colors))


class TestLayoutGenerator:
    """Test cases for LayoutGenerator.generate."""

    def test_eight_shelves_thirty_two_boxes(self, generator):
        """Test the standard 8 x 4 layout."""
        result = generator.generate(8, 0, 32, 4, rng=random.Random(42))

        assert result.ok
        assert result.error == ""
        assert result.shelf_box_counts == [4] * 8
        assert [len(c) for c in result.shelf_colors] == result.shelf_box_counts
        assert result.total_boxes == 32
        assert_group_rules(result)

    def test_empty_shelves_stay_empty(self, generator):
        """Test that exactly the requested shelves are empty."""
        result = generator.generate(10, 2, 24, 4, rng=random.Random(7))

        assert result.ok
        assert result.shelf_box_counts.count(0) == 2
        non_empty = [c for c in result.shelf_box_counts if c > 0]
        assert len(non_empty) == 8
        assert max(non_empty) - min(non_empty) <= 1
        assert_group_rules(result)

    def test_total_is_normalized_down(self, generator):
        """Test that the box total is rounded down to a group multiple."""
        result = generator.generate(8, 0, 35, 5, rng=random.Random(3))

        assert result.ok
        assert result.total_boxes == 32
        assert all(1 <= c <= 5 for c in result.shelf_box_counts)

    def test_same_seed_same_layout(self, generator):
        """Test reproducibility with an explicit random source."""
        first = generator.generate(8, 1, 28, 4, rng=random.Random(99))
        second = generator.generate(8, 1, 28, 4, rng=random.Random(99))

        assert first.to_dict() == second.to_dict()

    def test_attempt_is_pure_in_seed(self, generator):
        """Test that a single attempt depends only on its seed."""
        colors = BoxColor.all_colors()
        first = generator.attempt(1234, 8, 8, 32, 4, colors)
        second = generator.attempt(1234, 8, 8, 32, 4, colors)

        assert first == second

    def test_generate_uniform(self, generator):
        """Test uniform layouts used by controlled levels."""
        result = generator.generate_uniform(6, 4, random.Random(5))

        assert result.ok
        assert result.shelf_box_counts == [4] * 6
        assert_group_rules(result)

    def test_restricted_palette(self):
        """Test that only enabled colors are used."""
        palette = ColorPalette.from_names(["red", "blue", "green", "yellow"])
        generator = LayoutGenerator(palette=palette, max_attempts=96)
        result = generator.generate(4, 0, 16, 4, rng=random.Random(1))

        assert result.ok
        used = {c for colors in result.shelf_colors for c in colors}
        assert used == {BoxColor.RED, BoxColor.BLUE, BoxColor.GREEN, BoxColor.YELLOW}

    def test_group_size_never_below_four(self):
        """Test that smaller group sizes are raised to four."""
        generator = LayoutGenerator(group_size=2)
        assert generator.group_size == 4


class TestLayoutErrors:
    """Test cases for generation failures."""

    def test_no_colors(self):
        """Test failure when every color is disabled."""
        palette = ColorPalette([ColorConfig(c, enabled=False) for c in BoxColor])
        result = LayoutGenerator(palette=palette).generate(8, 0, 32, 4)

        assert not result.ok
        assert result.error_kind == GenerationErrorKind.NO_COLORS
        assert result.shelf_box_counts == []
        assert result.shelf_colors == []

    @pytest.mark.parametrize("shelves,empty", [(0, 0), (4, 4), (4, 9)])
    def test_invalid_shelf_count(self, generator, shelves, empty):
        """Test failure when no shelf could hold boxes."""
        result = generator.generate(shelves, empty, 16, 4)

        assert result.error_kind == GenerationErrorKind.INVALID_SHELF_COUNT

    def test_zero_max_boxes(self, generator):
        """Test failure when shelves may hold no boxes."""
        result = generator.generate(8, 0, 32, 0)

        assert result.error_kind == GenerationErrorKind.INVALID_BOX_COUNT

    def test_total_below_one_group(self, generator):
        """Test failure when the normalized total is zero."""
        result = generator.generate(8, 0, 3, 4)

        assert result.error_kind == GenerationErrorKind.INVALID_BOX_COUNT

    def test_fewer_shelves_than_group(self, generator):
        """Test failure when a group cannot reach four distinct shelves."""
        result = generator.generate(3, 0, 8, 4)

        assert result.error_kind == GenerationErrorKind.INFEASIBLE_CAPACITY

    def test_total_exceeds_capacity(self, generator):
        """Test failure when boxes do not fit."""
        result = generator.generate(8, 0, 20, 2)

        assert result.error_kind == GenerationErrorKind.INFEASIBLE_CAPACITY
        assert "exceeds capacity" in result.error

    def test_total_below_shelf_count(self, generator):
        """Test failure when some non-empty shelf would get no box."""
        result = generator.generate(8, 0, 4, 4)

        assert result.error_kind == GenerationErrorKind.INFEASIBLE_CAPACITY

    def test_max_boxes_exceeds_colors(self):
        """Test failure when a shelf would need a repeated color."""
        palette = ColorPalette.from_names(["red", "blue", "green", "yellow"])
        result = LayoutGenerator(palette=palette).generate(8, 0, 32, 5)

        assert result.error_kind == GenerationErrorKind.INSUFFICIENT_COLORS

    def test_attempts_exhausted(self):
        """Test failure when the constraints pass validation but cannot be met."""
        # Five full shelves of four colors put each color on five shelves
        palette = ColorPalette.from_names(["red", "blue", "green", "yellow"])
        generator = LayoutGenerator(palette=palette, max_attempts=5)
        result = generator.generate(5, 0, 20, 4, rng=random.Random(0))

        assert result.error_kind == GenerationErrorKind.ATTEMPTS_EXHAUSTED
        assert result.attempts == 5
        assert result.shelf_colors == []


def test_get_layout_generator_singleton():
    """Test that get_layout_generator returns the same instance."""
    assert get_layout_generator() is get_layout_generator()
