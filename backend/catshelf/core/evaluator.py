"""Monte Carlo solvability evaluator for level definitions."""
import logging
import random
import statistics
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import get_settings
from ..models.level import LevelDefinition, LevelEvaluation
from .runtime import (
    apply_move,
    build_runtime_level,
    collect_valid_moves,
    overfilled_shelves,
    resolve_eliminations,
    would_create_elimination,
)

logger = logging.getLogger(__name__)


@dataclass
class PlayoutResult:
    """Outcome of one simulated playout."""
    seed: int
    cleared: bool
    moves_used: int
    stuck: bool = False


class SolvabilityEvaluator:
    """
    Estimates solvability by greedy playouts.

    Each run builds its own runtime level and random stream, so runs can
    execute on worker threads and still aggregate to the same numbers.
    """

    SOLVABLE_THRESHOLD = 0.25
    SEED_STRIDE = 7919

    def __init__(
        self,
        runs: Optional[int] = None,
        max_steps: Optional[int] = None,
        base_seed: Optional[int] = None,
    ):
        settings = get_settings()
        self.runs = max(1, settings.simulation_runs if runs is None else runs)
        self.max_steps = max(1, settings.simulation_max_steps if max_steps is None else max_steps)
        self.base_seed = settings.simulation_base_seed if base_seed is None else base_seed

    def evaluate(
        self,
        level: LevelDefinition,
        runs: Optional[int] = None,
        max_steps: Optional[int] = None,
        base_seed: Optional[int] = None,
        parallel: bool = False,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> Optional[LevelEvaluation]:
        """
        Run playouts and summarize them.

        Args:
            level: Definition to evaluate (never mutated).
            runs: Number of playouts R.
            max_steps: Move budget B per playout.
            base_seed: Seed of run 0; run i uses base_seed + i * 7919.
            parallel: Execute playouts on a thread pool.
            should_cancel: Polled between runs; returning True abandons the evaluation.

        Returns:
            LevelEvaluation, or None when cancelled.

        Raises:
            ValueError: If a shelf holds more boxes than its capacity.
        """
        overfilled = overfilled_shelves(level)
        if overfilled:
            raise ValueError(f"Shelves over capacity: {overfilled}")

        runs = max(1, self.runs if runs is None else runs)
        max_steps = max(1, self.max_steps if max_steps is None else max_steps)
        base_seed = self.base_seed if base_seed is None else base_seed
        seeds = [base_seed + i * self.SEED_STRIDE for i in range(runs)]

        if parallel and runs > 1:
            results = self._run_parallel(level, seeds, max_steps, should_cancel)
        else:
            results = []
            for seed in seeds:
                if should_cancel is not None and should_cancel():
                    results = None
                    break
                results.append(self.run_playout(level, seed, max_steps))

        if results is None:
            logger.info("Evaluation cancelled for %s", level.level_name)
            return None

        return self._summarize(results)

    def _run_parallel(
        self,
        level: LevelDefinition,
        seeds: List[int],
        max_steps: int,
        should_cancel: Optional[Callable[[], bool]],
    ) -> Optional[List[PlayoutResult]]:
        with ThreadPoolExecutor(max_workers=min(8, len(seeds))) as executor:
            futures = []
            for seed in seeds:
                if should_cancel is not None and should_cancel():
                    for future in futures:
                        future.cancel()
                    return None
                futures.append(executor.submit(self.run_playout, level, seed, max_steps))

            return [future.result() for future in futures]

    def run_playout(self, level: LevelDefinition, seed: int, max_steps: int) -> PlayoutResult:
        """Play one greedy game: prefer moves that eliminate, random otherwise."""
        rng = random.Random(seed)
        sim = build_runtime_level(level)

        for step in range(max_steps):
            if sim.total_boxes == 0:
                return PlayoutResult(seed=seed, cleared=True, moves_used=step)

            moves = collect_valid_moves(sim)
            if not moves:
                return PlayoutResult(seed=seed, cleared=False, moves_used=step, stuck=True)

            # Eliminating moves first, random order within each class
            _, _, (from_idx, to_idx) = min(
                (not would_create_elimination(sim, f, t), rng.random(), (f, t))
                for f, t in moves
            )
            apply_move(sim, from_idx, to_idx)
            resolve_eliminations(sim)

        return PlayoutResult(seed=seed, cleared=sim.total_boxes == 0, moves_used=max_steps)

    def _summarize(self, results: List[PlayoutResult]) -> LevelEvaluation:
        successes = [r for r in results if r.cleared]
        rate = len(successes) / len(results)
        difficulty = min(10, max(1, int(round((1.0 - rate) * 10))))

        return LevelEvaluation(
            likely_solvable=rate >= self.SOLVABLE_THRESHOLD,
            solvable_rate=rate,
            estimated_difficulty=difficulty,
            runs=len(results),
            avg_moves=statistics.mean(r.moves_used for r in successes) if successes else 0.0,
        )


# Singleton instance
_evaluator: Optional[SolvabilityEvaluator] = None


def get_evaluator() -> SolvabilityEvaluator:
    """Get or create evaluator singleton instance."""
    global _evaluator
    if _evaluator is None:
        _evaluator = SolvabilityEvaluator()
    return _evaluator
