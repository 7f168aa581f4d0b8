"""Color palette definitions."""
from dataclasses import dataclass
from typing import Dict, List, Iterable, Optional, Tuple

from .level import BoxColor


RGBA = Tuple[float, float, float, float]

# Default display colors (RGBA, 0-1)
DEFAULT_DISPLAY_COLORS: Dict[BoxColor, RGBA] = {
    BoxColor.RED: (0.88, 0.25, 0.25, 1.0),
    BoxColor.BLUE: (0.27, 0.5, 0.9, 1.0),
    BoxColor.GREEN: (0.28, 0.74, 0.38, 1.0),
    BoxColor.YELLOW: (0.95, 0.83, 0.24, 1.0),
    BoxColor.PURPLE: (0.62, 0.39, 0.86, 1.0),
    BoxColor.ORANGE: (0.95, 0.56, 0.21, 1.0),
}

WHITE: RGBA = (1.0, 1.0, 1.0, 1.0)
DEFAULT_GRAY: RGBA = (0.45, 0.45, 0.45, 1.0)


@dataclass
class ColorConfig:
    """Display configuration for one color."""
    color: BoxColor
    display_color: RGBA = WHITE
    enabled: bool = True

    def to_dict(self) -> Dict:
        return {
            "color": self.color.value,
            "display_color": list(self.display_color),
            "enabled": self.enabled,
        }


class ColorPalette:
    """
    Set of enabled colors and their display metadata.

    Display metadata is passed through untouched; generation only looks at
    the ordered list of active colors.
    """

    def __init__(
        self,
        configs: Optional[Iterable[ColorConfig]] = None,
        gray_display_color: RGBA = DEFAULT_GRAY,
    ):
        by_color = {c.color: c for c in (configs or [])}
        # Missing colors get a default, enabled config
        self._configs: List[ColorConfig] = [
            by_color.get(color) or ColorConfig(color, DEFAULT_DISPLAY_COLORS.get(color, WHITE), True)
            for color in BoxColor.all_colors()
        ]
        self.gray_display_color = gray_display_color

    @classmethod
    def from_names(cls, names: Optional[Iterable[str]] = None) -> "ColorPalette":
        """
        Build a palette enabling only the named colors.

        Args:
            names: Color names; empty or None enables every color.

        Raises:
            ValueError: If a name is not a known color.
        """
        wanted = {BoxColor.parse(n) for n in (names or []) if n.strip()}
        configs = [
            ColorConfig(
                color=color,
                display_color=DEFAULT_DISPLAY_COLORS.get(color, WHITE),
                enabled=not wanted or color in wanted,
            )
            for color in BoxColor.all_colors()
        ]
        return cls(configs)

    @property
    def configs(self) -> List[ColorConfig]:
        return list(self._configs)

    def active_colors(self) -> List[BoxColor]:
        """Enabled colors in palette order."""
        return [c.color for c in self._configs if c.enabled]

    def to_dict(self) -> Dict:
        return {
            "colors": [c.to_dict() for c in self._configs],
            "active_colors": [c.value for c in self.active_colors()],
            "gray_display_color": list(self.gray_display_color),
        }
