"""Application configuration settings."""
import os
import json
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional, List

from .models.level import GoalFindMode


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Cat Shelf Puzzle Core"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS settings - as comma-separated string or JSON array
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Palette - comma-separated or JSON array of color names, empty = all colors
    enabled_colors: str = ""

    # Generation settings
    same_color_group_size: int = 4
    max_generate_attempts: int = 96
    gray_percentage: float = 0.35
    default_shelf_capacity: int = 12

    # Session settings
    daily_play_limit: int = 5
    initial_reveal_tool_count: int = 1
    initial_undo_tool_count: int = 1
    initial_cat_hint_tool_count: int = 1
    unused_tool_bonus: int = 5
    max_sessions: int = 1000
    goal_find_mode: GoalFindMode = GoalFindMode.GOAL_BOX

    # Solvability simulation settings
    simulation_runs: int = 24
    simulation_max_steps: int = 300
    simulation_base_seed: int = 3107

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("same_color_group_size")
    @classmethod
    def _min_group_size(cls, value: int) -> int:
        return max(4, value)

    @field_validator("max_generate_attempts", "simulation_runs", "simulation_max_steps", "max_sessions")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        return max(1, value)

    @field_validator("gray_percentage")
    @classmethod
    def _clamp_percentage(cls, value: float) -> float:
        return min(1.0, max(0.0, value))

    @field_validator(
        "daily_play_limit",
        "initial_reveal_tool_count",
        "initial_undo_tool_count",
        "initial_cat_hint_tool_count",
    )
    @classmethod
    def _non_negative(cls, value: int) -> int:
        return max(0, value)

    def _parse_list(self, raw: str) -> List[str]:
        """Parse a comma-separated or JSON array string."""
        if not raw:
            return []

        # Try JSON parse first
        try:
            items = json.loads(raw)
            if isinstance(items, list):
                return [str(i) for i in items]
        except json.JSONDecodeError:
            pass

        # Fall back to comma-separated
        return [o.strip() for o in raw.split(",") if o.strip()]

    def get_cors_origins(self) -> List[str]:
        """Parse CORS origins from string (comma-separated or JSON)."""
        return self._parse_list(self.cors_origins) or ["http://localhost:5173"]

    def get_enabled_colors(self) -> List[str]:
        """Parse enabled color names; empty list means every color."""
        return self._parse_list(self.enabled_colors)


# Don't use lru_cache in production to allow env var updates
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings instance (cached in production for performance)."""
    global _settings
    if _settings is None or os.getenv("DEBUG", "false").lower() == "true":
        _settings = Settings()
    return _settings
