"""API dependencies."""
import logging
import threading
from typing import Dict, Optional

from ..core.engine import PuzzleEngine
from ..core.evaluator import get_evaluator, SolvabilityEvaluator
from ..core.layout_generator import get_layout_generator, LayoutGenerator
from ..core.level_factory import get_level_factory, LevelFactory
from ..core.occlusion import get_occlusion_allocator, OcclusionAllocator
from ..clients.storage import get_storage, StorageService
from ..config import get_settings

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    In-process play sessions keyed by session id.

    Holds at most `max_sessions` engines. Adding past the bound evicts the
    oldest finished (win/lose) session, or the oldest session when none
    has finished.
    """

    def __init__(self, max_sessions: Optional[int] = None):
        self._lock = threading.Lock()
        self._sessions: Dict[str, PuzzleEngine] = {}
        self.max_sessions = max(1, get_settings().max_sessions if max_sessions is None else max_sessions)

    def add(self, session_id: str, engine: PuzzleEngine) -> None:
        with self._lock:
            self._sessions[session_id] = engine
            while len(self._sessions) > self.max_sessions:
                evicted = self._pick_eviction()
                del self._sessions[evicted]
                logger.info("Evicted session %s", evicted)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def _pick_eviction(self) -> str:
        # Dict order is insertion order, so the first match is the oldest
        for session_id, engine in self._sessions.items():
            if engine.state.is_terminal:
                return session_id
        return next(iter(self._sessions))

    def get(self, session_id: str) -> Optional[PuzzleEngine]:
        with self._lock:
            return self._sessions.get(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


_registry = SessionRegistry()


def get_generator() -> LayoutGenerator:
    """Dependency for layout generator."""
    return get_layout_generator()


def get_allocator() -> OcclusionAllocator:
    """Dependency for occlusion allocator."""
    return get_occlusion_allocator()


def get_factory() -> LevelFactory:
    """Dependency for level factory."""
    return get_level_factory()


def get_level_evaluator() -> SolvabilityEvaluator:
    """Dependency for solvability evaluator."""
    return get_evaluator()


def get_session_storage() -> StorageService:
    """Dependency for the storage shared by play sessions."""
    return get_storage()


def get_sessions() -> SessionRegistry:
    """Dependency for the play session registry."""
    return _registry
