"""Shared fixtures for catshelf tests."""
from datetime import date
from typing import List, Optional

import pytest

from catshelf.clients.storage import MemoryStorage
from catshelf.models.level import BoxColor, BoxSlot, LevelDefinition, ShelfLayout


LETTERS = {
    "R": BoxColor.RED,
    "B": BoxColor.BLUE,
    "G": BoxColor.GREEN,
    "Y": BoxColor.YELLOW,
    "P": BoxColor.PURPLE,
    "O": BoxColor.ORANGE,
}


def make_level(
    shelves: List[str],
    capacity: int = 4,
    capacities: Optional[List[int]] = None,
    extra_empty_shelves: int = 0,
    ad_reward_shelves: int = 1,
    visible: bool = False,
    only_top_visible: bool = True,
    reward_score: int = 100,
) -> LevelDefinition:
    """Build a definition from strings like "RRB" (bottom to top)."""
    layouts = []
    for i, text in enumerate(shelves):
        layouts.append(ShelfLayout(
            capacity=capacities[i] if capacities else capacity,
            boxes=[BoxSlot(color=LETTERS[ch], start_visible=visible) for ch in text],
        ))
    return LevelDefinition(
        level_name="Test",
        reward_score=reward_score,
        only_top_visible=only_top_visible,
        extra_empty_shelves=extra_empty_shelves,
        ad_reward_shelves=ad_reward_shelves,
        shelves=layouts,
    )


@pytest.fixture
def level_builder():
    """Factory for small hand-written levels."""
    return make_level


@pytest.fixture
def storage():
    """Fresh in-memory storage."""
    return MemoryStorage()


@pytest.fixture
def fixed_today():
    """Clock pinned to one day."""
    return lambda: date(2026, 3, 14)
