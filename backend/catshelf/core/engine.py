"""Puzzle engine: play session state machine over a runtime level."""
import logging
import math
import random
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Any, Optional, Sequence, Union

from ..clients.storage import StorageService, MemoryStorage
from ..config import get_settings
from ..models.level import (
    BoxData,
    GameState,
    GoalFindMode,
    LevelDefinition,
    MoveRecord,
    RuntimeLevel,
    ShelfData,
    ToolType,
    DEFAULT_GROUP_SIZE,
)
from .runtime import (
    GoalFinder,
    apply_move,
    build_runtime_level,
    goal_box_finder,
    has_any_valid_move,
    is_valid_move,
    locate_goal,
    overfilled_shelves,
    place_goal,
    resolve_eliminations,
)

logger = logging.getLogger(__name__)


@dataclass
class BoxView:
    """What the player sees of one box."""
    color: Optional[str]  # None while hidden
    visible: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"color": self.color, "visible": self.visible}


@dataclass
class ShelfView:
    """Observable shelf contents, bottom to top."""
    capacity: int
    boxes: List[BoxView] = field(default_factory=list)
    is_hint_shelf: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capacity": self.capacity,
            "boxes": [b.to_dict() for b in self.boxes],
            "is_hint_shelf": self.is_hint_shelf,
        }


@dataclass
class EngineSnapshot:
    """Observations published to rendering/UI layers."""
    state: GameState
    shelves: List[ShelfView]
    tools: Dict[str, int]
    last_hint_shelf: int
    score: int
    total_points: int
    remaining_daily_attempts: int
    ad_bonus_remaining: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "state": self.state.value,
            "shelves": [s.to_dict() for s in self.shelves],
            "tools": dict(self.tools),
            "last_hint_shelf": self.last_hint_shelf,
            "score": self.score,
            "total_points": self.total_points,
            "remaining_daily_attempts": self.remaining_daily_attempts,
            "ad_bonus_remaining": self.ad_bonus_remaining,
        }


class PuzzleEngine:
    """
    One play session.

    States: IDLE -> PLAYING -> WIN | LOSE. Every operation returns a bool
    and leaves the session untouched when it fails.
    """

    DAILY_DATE_KEY = "daily_date"
    DAILY_COUNT_KEY = "daily_count"
    TOTAL_POINTS_KEY = "total_points"

    def __init__(
        self,
        levels: Optional[Sequence[LevelDefinition]] = None,
        storage: Optional[StorageService] = None,
        rng: Optional[random.Random] = None,
        today: Optional[Callable[[], date]] = None,
        daily_play_limit: Optional[int] = None,
        initial_tools: Optional[Dict[ToolType, int]] = None,
        goal_find_mode: Optional[GoalFindMode] = None,
        unused_tool_bonus: Optional[int] = None,
    ):
        settings = get_settings()
        self.levels: List[LevelDefinition] = list(levels or [])
        self.storage = storage or MemoryStorage()
        self.rng = rng or random.Random()
        self._today = today or date.today
        self.daily_play_limit = max(
            0, settings.daily_play_limit if daily_play_limit is None else daily_play_limit
        )
        self.initial_tools: Dict[ToolType, int] = initial_tools or {
            ToolType.REVEAL_SHELF: settings.initial_reveal_tool_count,
            ToolType.UNDO_MOVE: settings.initial_undo_tool_count,
            ToolType.CAT_HINT: settings.initial_cat_hint_tool_count,
        }
        self.goal_find_mode = goal_find_mode or settings.goal_find_mode
        self.unused_tool_bonus = (
            settings.unused_tool_bonus if unused_tool_bonus is None else unused_tool_bonus
        )
        self.default_capacity = settings.default_shelf_capacity

        self.state = GameState.IDLE
        self.level: Optional[RuntimeLevel] = None
        self.last_hint_shelf = -1
        self.last_reward = 0
        self._history: List[MoveRecord] = []
        self._tools: Dict[ToolType, int] = {}

        self._reset_daily_counter_if_needed()
        self._reset_tools()

    # ----- Session lifecycle -----

    def remaining_daily_attempts(self) -> int:
        self._reset_daily_counter_if_needed()
        used = self.storage.get_int(self.DAILY_COUNT_KEY, 0)
        return max(0, self.daily_play_limit - used)

    @property
    def total_points(self) -> int:
        return self.storage.get_int(self.TOTAL_POINTS_KEY, 0)

    def try_start_level(
        self,
        level: Union[int, LevelDefinition],
        goal_shelf: Optional[int] = None,
        goal_depth: Optional[int] = None,
    ) -> bool:
        """
        Start a new attempt.

        Args:
            level: Index into the engine's levels, or a definition.
            goal_shelf: Explicit goal shelf; None places the goal randomly.
            goal_depth: Boxes below the top of `goal_shelf` (0 = top).

        Returns:
            True when the session is now PLAYING. On failure nothing changes
            and no daily attempt is consumed. Definitions with a shelf over
            its capacity are refused.
        """
        if isinstance(level, LevelDefinition):
            definition = level
        elif 0 <= level < len(self.levels):
            definition = self.levels[level]
        else:
            return False

        overfilled = overfilled_shelves(definition)
        if overfilled:
            logger.warning("Level %s has shelves over capacity: %s", definition.level_name, overfilled)
            return False

        if self.remaining_daily_attempts() <= 0:
            return False

        runtime = build_runtime_level(definition, self.default_capacity)
        if not place_goal(runtime, self.rng, goal_shelf, goal_depth):
            return False

        self._consume_daily_attempt()
        self._reset_tools()
        self._history.clear()
        self.last_hint_shelf = -1
        self.last_reward = 0
        self.level = runtime
        self.state = GameState.PLAYING

        logger.info(
            "level_start name=%s difficulty=%d shelves=%d boxes=%d",
            definition.level_name, runtime.difficulty, len(runtime.shelves), runtime.total_boxes,
        )
        return True

    # ----- Player intents -----

    def try_move_top_box(self, from_shelf: int, to_shelf: int) -> bool:
        """Move the visible top box of one shelf onto another."""
        if self.state != GameState.PLAYING or self.level is None:
            return False

        if not is_valid_move(self.level, from_shelf, to_shelf):
            return False

        moved = apply_move(self.level, from_shelf, to_shelf)
        self._history.append(MoveRecord(from_shelf, to_shelf, moved.id))

        resolve_eliminations(self.level, self._goal_finder())
        self._check_end_state()
        return True

    def use_tool(self, tool: ToolType, shelf_index: int = -1) -> bool:
        """Apply a tool; the count drops only when the tool worked."""
        if self.state != GameState.PLAYING or self.level is None:
            return False

        if self._tools.get(tool, 0) <= 0:
            return False

        if tool == ToolType.REVEAL_SHELF:
            success = self._reveal_shelf(shelf_index)
        elif tool == ToolType.UNDO_MOVE:
            success = self._undo_last_move()
        elif tool == ToolType.CAT_HINT:
            success = self._reveal_goal_hint()
        else:
            success = False

        if not success:
            return False

        self._tools[tool] -= 1
        logger.info("tool_use tool=%s remaining=%d", tool.value, self._tools[tool])
        return True

    def use_ad_reward_shelf(self) -> bool:
        """Grant one extra empty shelf (after a rewarded ad, handled by the caller)."""
        if self.state != GameState.PLAYING or self.level is None:
            return False

        if self.level.ad_bonus_remaining <= 0:
            return False

        capacity = self.level.shelves[0].capacity if self.level.shelves else self.default_capacity
        self.level.shelves.append(ShelfData(capacity=capacity))
        self.level.ad_bonus_remaining -= 1

        logger.info("ad_shelf_granted remaining=%d", self.level.ad_bonus_remaining)
        return True

    def get_tool_count(self, tool: ToolType) -> int:
        return self._tools.get(tool, 0)

    @property
    def history_size(self) -> int:
        return len(self._history)

    # ----- Observations -----

    def snapshot(self) -> EngineSnapshot:
        """Build the observable view of the session."""
        shelves: List[ShelfView] = []
        if self.level is not None:
            for idx, shelf in enumerate(self.level.shelves):
                shelves.append(ShelfView(
                    capacity=shelf.capacity,
                    boxes=[
                        BoxView(color=b.color.value if b.color_visible else None, visible=b.color_visible)
                        for b in shelf.boxes
                    ],
                    is_hint_shelf=idx == self.last_hint_shelf,
                ))

        return EngineSnapshot(
            state=self.state,
            shelves=shelves,
            tools={t.value: c for t, c in self._tools.items()},
            last_hint_shelf=self.last_hint_shelf,
            score=self.level.score if self.level else 0,
            total_points=self.total_points,
            remaining_daily_attempts=self.remaining_daily_attempts(),
            ad_bonus_remaining=self.level.ad_bonus_remaining if self.level else 0,
        )

    # ----- Tools -----

    def _is_valid_shelf(self, index: int) -> bool:
        return self.level is not None and 0 <= index < len(self.level.shelves)

    def _reveal_shelf(self, shelf_index: int) -> bool:
        if not self._is_valid_shelf(shelf_index):
            return False

        shelf = self.level.shelves[shelf_index]
        if shelf.is_empty:
            return False

        for box in shelf.boxes:
            box.color_visible = True
        return True

    def _undo_last_move(self) -> bool:
        """Reverse the last move without re-running eliminations."""
        if not self._history:
            return False

        record = self._history.pop()
        if not (self._is_valid_shelf(record.from_shelf) and self._is_valid_shelf(record.to_shelf)):
            logger.warning("Undo record %s points at a missing shelf", record)
            return False

        target = self.level.shelves[record.to_shelf]
        source = self.level.shelves[record.from_shelf]
        if target.is_empty or source.is_full or target.top.id != record.box_id:
            logger.warning("Undo record %s no longer matches the shelves", record)
            return False

        apply_move(self.level, record.to_shelf, record.from_shelf)
        return True

    def _reveal_goal_hint(self) -> bool:
        if self.level.goal_found:
            return False

        shelf_index = locate_goal(self.level)
        if shelf_index is None:
            candidates = [i for i, s in enumerate(self.level.shelves) if not s.is_empty]
            if not candidates:
                return False
            shelf_index = self.rng.choice(candidates)

        self.last_hint_shelf = shelf_index
        return True

    # ----- Rules -----

    def _goal_finder(self) -> GoalFinder:
        if self.goal_find_mode == GoalFindMode.ON_ALL_BOXES_CLEARED:
            return self._found_when_cleared
        if self.goal_find_mode == GoalFindMode.PROBABILITY_ON_ELIMINATION:
            return self._found_by_chance
        return goal_box_finder

    @staticmethod
    def _found_when_cleared(level: RuntimeLevel, run: List[BoxData], boxes_before: int) -> bool:
        return boxes_before - len(run) <= 0

    def _found_by_chance(self, level: RuntimeLevel, run: List[BoxData], boxes_before: int) -> bool:
        # One group left -> certain; otherwise 1 / groups remaining
        groups = max(1, math.ceil(max(DEFAULT_GROUP_SIZE, boxes_before) / DEFAULT_GROUP_SIZE))
        if groups <= 1:
            return True
        return self.rng.random() <= 1.0 / groups

    def _check_end_state(self) -> None:
        if self.level.goal_found:
            self.state = GameState.WIN
            self._grant_win_rewards()
            logger.info(
                "level_win score=%d reward_score=%d reward=%d",
                self.level.score, self.level.reward_score, self.last_reward,
            )
            return

        if not has_any_valid_move(self.level):
            self.state = GameState.LOSE
            logger.info("level_lose score=%d", self.level.score)

    def _grant_win_rewards(self) -> None:
        reward = self.level.reward_score + self.level.score
        reward += sum(self._tools.values()) * self.unused_tool_bonus
        self.last_reward = reward

        total = self.storage.get_int(self.TOTAL_POINTS_KEY, 0)
        self.storage.set_int(self.TOTAL_POINTS_KEY, total + reward)
        self.storage.save()

    def _reset_tools(self) -> None:
        for tool in ToolType:
            self._tools[tool] = max(0, self.initial_tools.get(tool, 0))

    def _reset_daily_counter_if_needed(self) -> None:
        today = self._today().strftime("%Y%m%d")
        if self.storage.get_str(self.DAILY_DATE_KEY, "") == today:
            return

        self.storage.set_str(self.DAILY_DATE_KEY, today)
        self.storage.set_int(self.DAILY_COUNT_KEY, 0)
        self.storage.save()

    def _consume_daily_attempt(self) -> None:
        self._reset_daily_counter_if_needed()
        count = self.storage.get_int(self.DAILY_COUNT_KEY, 0)
        self.storage.set_int(self.DAILY_COUNT_KEY, count + 1)
        self.storage.save()
