"""Tests for the puzzle engine state machine."""
import random
from datetime import date

import pytest

from catshelf.clients.storage import MemoryStorage
from catshelf.core.engine import PuzzleEngine
from catshelf.models.level import BoxColor, GameState, GoalFindMode, ToolType


TOOLS = {ToolType.REVEAL_SHELF: 1, ToolType.UNDO_MOVE: 1, ToolType.CAT_HINT: 1}


@pytest.fixture
def make_engine(storage, fixed_today):
    """Factory for engines with deterministic collaborators."""
    def _make(levels=None, daily_play_limit=5, goal_find_mode=GoalFindMode.GOAL_BOX, today=None, store=None):
        return PuzzleEngine(
            levels=levels,
            storage=store or storage,
            rng=random.Random(1),
            today=today or fixed_today,
            daily_play_limit=daily_play_limit,
            initial_tools=dict(TOOLS),
            goal_find_mode=goal_find_mode,
            unused_tool_bonus=5,
        )
    return _make


def shelf_colors(engine):
    return [[b.color for b in s.boxes] for s in engine.level.shelves]


def board_state(engine):
    return engine.level.score, [
        (s.capacity, [(b.id, b.color, b.color_visible, b.has_goal) for b in s.boxes])
        for s in engine.level.shelves
    ]


def rejection_reason(level, i, j):
    """Name the rule a move breaks, or None when it is legal."""
    count = len(level.shelves)
    if i == j or not (0 <= i < count and 0 <= j < count):
        return "index"
    source, target = level.shelves[i].boxes, level.shelves[j]
    if not source:
        return "empty"
    if len(target.boxes) >= target.capacity:
        return "full"
    if not source[-1].color_visible:
        return "hidden"
    if target.boxes and target.boxes[-1].color != source[-1].color:
        return "color"
    return None


class TestStartLevel:
    """Test cases for TryStartLevel."""

    def test_start_consumes_attempt(self, make_engine, level_builder):
        """Test a successful start."""
        engine = make_engine(levels=[level_builder(["RGB", "BY"])])

        assert engine.state == GameState.IDLE
        assert engine.try_start_level(0)
        assert engine.state == GameState.PLAYING
        assert engine.remaining_daily_attempts() == 4
        goals = [b for s in engine.level.shelves for b in s.boxes if b.has_goal]
        assert len(goals) == 1

    def test_invalid_index(self, make_engine, level_builder):
        """Test that an unknown level index changes nothing."""
        engine = make_engine(levels=[level_builder(["RGB"])])

        assert not engine.try_start_level(3)
        assert engine.state == GameState.IDLE
        assert engine.remaining_daily_attempts() == 5

    def test_failed_goal_placement_keeps_budget(self, make_engine, level_builder):
        """Test that a start failing on goal placement consumes nothing."""
        engine = make_engine()

        assert not engine.try_start_level(level_builder(["RGB"]), goal_shelf=4)
        assert engine.state == GameState.IDLE
        assert engine.level is None
        assert engine.remaining_daily_attempts() == 5

    def test_overfilled_shelf_is_refused(self, make_engine, level_builder):
        """Test that a shelf authored past its capacity cannot start."""
        engine = make_engine()

        assert not engine.try_start_level(level_builder(["RGBYP", ""], capacity=4), goal_shelf=0)
        assert engine.state == GameState.IDLE
        assert engine.level is None
        assert engine.remaining_daily_attempts() == 5

    def test_daily_budget(self, make_engine, level_builder):
        """Test that starts stop once the daily budget is used."""
        engine = make_engine(daily_play_limit=2)
        level = level_builder(["RGB"])

        assert engine.try_start_level(level)
        assert engine.try_start_level(level)
        assert not engine.try_start_level(level)
        assert engine.remaining_daily_attempts() == 0

    def test_budget_resets_next_day(self, make_engine, level_builder):
        """Test the daily counter reset on a new date."""
        day = {"value": date(2026, 3, 14)}
        engine = make_engine(daily_play_limit=1, today=lambda: day["value"])
        level = level_builder(["RGB"])

        assert engine.try_start_level(level)
        assert not engine.try_start_level(level)

        day["value"] = date(2026, 3, 15)
        assert engine.remaining_daily_attempts() == 1
        assert engine.try_start_level(level)
        assert engine.storage.get_str(PuzzleEngine.DAILY_DATE_KEY) == "20260315"

    def test_budget_shared_through_storage(self, make_engine, level_builder, storage):
        """Test that sessions on the same storage share the budget."""
        first = make_engine(daily_play_limit=1, store=storage)
        second = make_engine(daily_play_limit=1, store=storage)

        assert first.try_start_level(level_builder(["RGB"]))
        assert not second.try_start_level(level_builder(["RGB"]))

    def test_restart_resets_tools_and_history(self, make_engine, level_builder):
        """Test that a new start clears session state."""
        engine = make_engine()
        level = level_builder(["RGB", ""])
        engine.try_start_level(level, goal_shelf=0, goal_depth=2)
        engine.try_move_top_box(0, 1)
        engine.use_tool(ToolType.CAT_HINT)

        assert engine.try_start_level(level, goal_shelf=0, goal_depth=2)
        assert engine.history_size == 0
        assert engine.get_tool_count(ToolType.CAT_HINT) == 1
        assert engine.last_hint_shelf == -1


class TestMoveTopBox:
    """Test cases for TryMoveTopBox."""

    def test_red_red_red_blue_scenario(self, make_engine, level_builder):
        """Test the classic exposed-run scenario."""
        engine = make_engine()
        level = level_builder(["RRRB", "R", ""], capacities=[5, 4, 4])
        assert engine.try_start_level(level, goal_shelf=1)

        # Red cannot land on blue
        assert not engine.try_move_top_box(1, 0)

        assert engine.try_move_top_box(0, 2)
        assert engine.level.shelves[0].is_empty
        assert engine.level.score == 30
        assert engine.state == GameState.PLAYING

    def test_rejected_moves_leave_state(self, make_engine, level_builder):
        """Test that illegal moves are no-ops."""
        engine = make_engine()
        engine.try_start_level(level_builder(["RB", "GY", ""], capacities=[4, 2, 4]), goal_shelf=0)
        before = shelf_colors(engine)

        assert not engine.try_move_top_box(0, 0)
        assert not engine.try_move_top_box(0, 1)
        assert not engine.try_move_top_box(2, 0)
        assert not engine.try_move_top_box(0, 7)
        assert shelf_colors(engine) == before
        assert engine.history_size == 0

    def test_moves_rejected_when_not_playing(self, make_engine):
        """Test that an idle session rejects intents."""
        engine = make_engine()

        assert not engine.try_move_top_box(0, 1)
        assert not engine.use_tool(ToolType.CAT_HINT)
        assert not engine.use_ad_reward_shelf()

    def test_tops_stay_visible(self, make_engine, level_builder):
        """Test the top invariant over random play."""
        engine = make_engine()
        engine.try_start_level(
            level_builder(["RGBY", "BYRG", "GRYB", "YBGR"], capacity=6, extra_empty_shelves=1),
            goal_shelf=0,
            goal_depth=3,
        )
        rng = random.Random(5)
        for _ in range(60):
            if engine.state != GameState.PLAYING:
                break
            engine.try_move_top_box(rng.randrange(5), rng.randrange(5))
            for shelf in engine.level.shelves:
                if shelf.boxes:
                    assert shelf.boxes[-1].color_visible


    def test_illegal_moves_rejected_on_random_boards(self, make_engine, level_builder):
        """Test every rejection rule over random boards with hidden tops and full shelves."""
        engine = make_engine(daily_play_limit=1000)
        rng = random.Random(17)
        seen = set()

        for _ in range(400):
            capacities = [rng.randint(1, 4) for _ in range(rng.randint(2, 5))]
            shelves = ["".join(rng.choice("RGB") for _ in range(rng.randint(0, cap))) for cap in capacities]
            shelves[0] = shelves[0] or "R"
            assert engine.try_start_level(level_builder(shelves, capacities=capacities), goal_shelf=0)
            for shelf in engine.level.shelves:
                if shelf.boxes and rng.random() < 0.3:
                    shelf.top.color_visible = False

            count = len(engine.level.shelves)
            i, j = rng.randrange(-1, count + 1), rng.randrange(-1, count + 1)
            reason = rejection_reason(engine.level, i, j)
            before = board_state(engine)

            if reason is None:
                assert engine.try_move_top_box(i, j)
                assert engine.history_size == 1
            else:
                assert not engine.try_move_top_box(i, j), reason
                assert board_state(engine) == before
                assert engine.history_size == 0
                seen.add(reason)

        assert seen == {"index", "empty", "full", "hidden", "color"}


class TestEndStates:
    """Test cases for win and lose detection."""

    def test_win_grants_reward(self, make_engine, level_builder, storage):
        """Test reward = base + score + bonus per unused tool."""
        engine = make_engine()
        engine.try_start_level(level_builder(["BRR", "R"]), goal_shelf=1)

        assert engine.try_move_top_box(1, 0)
        assert engine.state == GameState.WIN
        assert engine.level.score == 30
        assert engine.last_reward == 100 + 30 + 3 * 5
        assert engine.total_points == 145
        assert storage.get_int(PuzzleEngine.TOTAL_POINTS_KEY) == 145

    def test_used_tools_lower_bonus(self, make_engine, level_builder):
        """Test that consumed tools earn no bonus."""
        engine = make_engine()
        engine.try_start_level(level_builder(["BRR", "R"]), goal_shelf=1)
        assert engine.use_tool(ToolType.CAT_HINT)

        engine.try_move_top_box(1, 0)
        assert engine.last_reward == 100 + 30 + 2 * 5

    def test_lose_when_stuck(self, make_engine, level_builder):
        """Test that running out of moves loses."""
        engine = make_engine()
        engine.try_start_level(level_builder(["GB", "R", ""], capacities=[2, 2, 1]), goal_shelf=0, goal_depth=1)

        assert engine.try_move_top_box(0, 2)
        assert engine.state == GameState.LOSE
        assert not engine.try_move_top_box(1, 0)

    def test_points_accumulate(self, make_engine, level_builder, storage):
        """Test that wins add to persisted points."""
        storage.set_int(PuzzleEngine.TOTAL_POINTS_KEY, 50)
        engine = make_engine()
        engine.try_start_level(level_builder(["BRR", "R"]), goal_shelf=1)
        engine.try_move_top_box(1, 0)

        assert engine.total_points == 195


class TestTools:
    """Test cases for UseTool."""

    def test_reveal_shelf(self, make_engine, level_builder):
        """Test revealing every box of a shelf."""
        engine = make_engine()
        engine.try_start_level(level_builder(["RGB", ""]), goal_shelf=0)

        assert not engine.use_tool(ToolType.REVEAL_SHELF, 1)   # empty
        assert not engine.use_tool(ToolType.REVEAL_SHELF, 9)   # invalid
        assert engine.use_tool(ToolType.REVEAL_SHELF, 0)
        assert all(b.color_visible for b in engine.level.shelves[0].boxes)
        assert engine.get_tool_count(ToolType.REVEAL_SHELF) == 0
        assert not engine.use_tool(ToolType.REVEAL_SHELF, 0)

    def test_undo_restores_state(self, make_engine, level_builder):
        """Test undo right after a non-eliminating move."""
        engine = make_engine()
        engine.try_start_level(level_builder(["RGB", "B", ""]), goal_shelf=0, goal_depth=2)
        before = shelf_colors(engine)
        score = engine.level.score

        assert engine.try_move_top_box(0, 1)
        assert engine.use_tool(ToolType.UNDO_MOVE)
        assert shelf_colors(engine) == before
        assert engine.level.score == score
        assert engine.history_size == 0
        assert engine.get_tool_count(ToolType.UNDO_MOVE) == 0

    def test_undo_without_history(self, make_engine, level_builder):
        """Test that undo fails with an empty history."""
        engine = make_engine()
        engine.try_start_level(level_builder(["RGB"]), goal_shelf=0)

        assert not engine.use_tool(ToolType.UNDO_MOVE)
        assert engine.get_tool_count(ToolType.UNDO_MOVE) == 1

    def test_undo_mismatch_is_reported(self, make_engine, level_builder):
        """Test that a stale undo record fails without touching shelves."""
        engine = make_engine()
        engine.try_start_level(level_builder(["RGB", "", ""]), goal_shelf=0, goal_depth=2)
        engine.try_move_top_box(0, 1)

        # Another box now sits on top of the recorded one
        engine.level.shelves[1].boxes.append(engine.level.shelves[0].boxes.pop())
        before = shelf_colors(engine)

        assert not engine.use_tool(ToolType.UNDO_MOVE)
        assert shelf_colors(engine) == before
        assert engine.history_size == 0
        assert engine.get_tool_count(ToolType.UNDO_MOVE) == 1

    def test_undo_does_not_eliminate(self, make_engine, level_builder):
        """Test that moving a box back never triggers a clear."""
        engine = make_engine()
        engine.try_start_level(level_builder(["RRR", ""]), goal_shelf=0)

        assert engine.try_move_top_box(0, 1)
        assert engine.use_tool(ToolType.UNDO_MOVE)
        assert [b.color for b in engine.level.shelves[0].boxes] == [BoxColor.RED] * 3
        assert engine.level.shelves[1].is_empty
        assert engine.level.score == 0

    def test_cat_hint_marks_goal_shelf(self, make_engine, level_builder):
        """Test that the hint points at the goal shelf."""
        engine = make_engine()
        engine.try_start_level(level_builder(["RGB", "YP"]), goal_shelf=1, goal_depth=1)

        assert engine.use_tool(ToolType.CAT_HINT)
        assert engine.last_hint_shelf == 1
        snapshot = engine.snapshot()
        assert snapshot.shelves[1].is_hint_shelf
        assert not snapshot.shelves[0].is_hint_shelf


class TestAdRewardShelf:
    """Test cases for the ad reward shelf."""

    def test_grants_one_shelf(self, make_engine, level_builder):
        """Test shelf creation and the remaining counter."""
        engine = make_engine()
        engine.try_start_level(level_builder(["RGB"], capacity=7), goal_shelf=0)

        assert engine.use_ad_reward_shelf()
        assert len(engine.level.shelves) == 2
        assert engine.level.shelves[1].is_empty
        assert engine.level.shelves[1].capacity == 7
        assert not engine.use_ad_reward_shelf()


class TestGoalFindModes:
    """Test cases for the alternative goal-find rules."""

    def test_all_cleared_mode_needs_empty_board(self, make_engine, level_builder):
        """Test that clearing part of the board does not win."""
        engine = make_engine(goal_find_mode=GoalFindMode.ON_ALL_BOXES_CLEARED)
        engine.try_start_level(level_builder(["RR", "R", "B"]), goal_shelf=1)

        assert engine.try_move_top_box(1, 0)
        assert not engine.level.goal_found
        assert engine.state == GameState.PLAYING

    def test_all_cleared_mode_wins(self, make_engine, level_builder):
        """Test that emptying the board wins."""
        engine = make_engine(goal_find_mode=GoalFindMode.ON_ALL_BOXES_CLEARED)
        engine.try_start_level(level_builder(["RR", "R"]), goal_shelf=0)

        assert engine.try_move_top_box(1, 0)
        assert engine.state == GameState.WIN

    def test_probability_mode_certain_on_last_group(self, make_engine, level_builder):
        """Test that one remaining group always finds the cat."""
        engine = make_engine(goal_find_mode=GoalFindMode.PROBABILITY_ON_ELIMINATION)
        engine.try_start_level(level_builder(["RR", "R", "B"]), goal_shelf=2)

        assert engine.try_move_top_box(1, 0)
        assert engine.state == GameState.WIN


class TestSnapshot:
    """Test cases for observations."""

    def test_hidden_colors_are_masked(self, make_engine, level_builder):
        """Test that hidden boxes expose no color."""
        engine = make_engine()
        engine.try_start_level(level_builder(["GB"]), goal_shelf=0)
        data = engine.snapshot().to_dict()

        assert data["state"] == "playing"
        assert data["shelves"][0]["boxes"] == [
            {"color": None, "visible": False},
            {"color": "blue", "visible": True},
        ]
        assert data["tools"] == {"reveal_shelf": 1, "undo_move": 1, "cat_hint": 1}
        assert data["remaining_daily_attempts"] == 4
        assert data["ad_bonus_remaining"] == 1

    def test_idle_snapshot(self, make_engine):
        """Test the snapshot before any level."""
        data = make_engine().snapshot().to_dict()

        assert data["state"] == "idle"
        assert data["shelves"] == []
        assert data["score"] == 0


def test_default_engine_uses_settings():
    """Test construction from configured defaults."""
    engine = PuzzleEngine(storage=MemoryStorage())

    assert engine.daily_play_limit == 5
    assert engine.goal_find_mode == GoalFindMode.GOAL_BOX
    assert engine.get_tool_count(ToolType.UNDO_MOVE) == 1
