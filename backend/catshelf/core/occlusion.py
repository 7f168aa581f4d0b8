"""Hidden (gray) box allocation across shelves."""
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Sequence

from ..config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class OcclusionResult:
    """Per-shelf hidden counts plus the target bookkeeping."""
    hidden_counts: List[int] = field(default_factory=list)
    requested_hidden: int = 0
    target_hidden: int = 0
    message: str = ""
    ok: bool = True

    @property
    def adjusted(self) -> bool:
        return self.requested_hidden != self.target_hidden

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ok": self.ok,
            "hidden_counts": list(self.hidden_counts),
            "requested_hidden": self.requested_hidden,
            "target_hidden": self.target_hidden,
            "adjusted": self.adjusted,
            "message": self.message,
        }


class OcclusionAllocator:
    """Spreads a global hidden fraction over shelves without hiding any top box."""

    def __init__(self, gray_percentage: Optional[float] = None):
        if gray_percentage is None:
            gray_percentage = get_settings().gray_percentage
        self.gray_percentage = min(1.0, max(0.0, gray_percentage))

    def allocate(
        self,
        shelf_box_counts: Sequence[int],
        hidden_fraction: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> OcclusionResult:
        """
        Compute how many boxes to hide on each shelf.

        Args:
            shelf_box_counts: Box count per shelf.
            hidden_fraction: Target fraction in [0, 1]; defaults to the configured one.
            rng: Random source for tie breaking.

        Returns:
            OcclusionResult. `adjusted` is set when the top-box rule lowered the target.
        """
        if not shelf_box_counts:
            return OcclusionResult(ok=False, message="Shelf box distribution is empty.")

        fraction = self.gray_percentage if hidden_fraction is None else hidden_fraction
        fraction = min(1.0, max(0.0, fraction))
        rng = rng or random.Random()

        total_boxes = sum(max(0, c) for c in shelf_box_counts)
        requested = int(round(total_boxes * fraction))

        # The top box of a shelf is never hidden
        capacity = [max(0, c - 1) for c in shelf_box_counts]
        target = min(max(requested, 0), sum(capacity))

        hidden = [0] * len(shelf_box_counts)
        remaining = target
        while remaining > 0:
            open_shelves = [i for i, cap in enumerate(capacity) if hidden[i] < cap]
            if not open_shelves:
                break
            min_hidden = min(hidden[i] for i in open_shelves)
            candidates = [i for i in open_shelves if hidden[i] == min_hidden]
            hidden[rng.choice(candidates)] += 1
            remaining -= 1

        result = OcclusionResult(
            hidden_counts=hidden,
            requested_hidden=requested,
            target_hidden=target,
        )
        if result.adjusted:
            result.message = (
                f"Gray target adjusted from {requested} to {target} "
                "(top boxes cannot be hidden)."
            )
            logger.warning(result.message)

        return result


# Singleton instance
_allocator: Optional[OcclusionAllocator] = None


def get_occlusion_allocator() -> OcclusionAllocator:
    """Get or create occlusion allocator singleton instance."""
    global _allocator
    if _allocator is None:
        _allocator = OcclusionAllocator()
    return _allocator
