"""Settings panel — the global generation settings and learned preferences.

Read-only: the studio screen changes settings through key bindings and calls
``set_state`` afterwards.
"""

from __future__ import annotations

from rich.text import Text
from textual.widget import Widget

from preferences.aggregator import PreferenceProfile
from studio.models import PATINA_MATERIALS, GenerationConfig

_ARROWS = ["↑", "↗", "→", "↘", "↓", "↙", "←", "↖"]


def shadow_arrow(angle: int) -> str:
    return _ARROWS[round(angle / 45) % 8]


def _bar(value: int, width: int = 10) -> str:
    filled = max(0, min(width, round(value / 100 * width)))
    return "█" * filled + "░" * (width - filled)


class SettingsPanel(Widget):
    DEFAULT_CSS = """
    SettingsPanel {
        width: 38;
        height: 1fr;
        padding: 0 1;
        border-right: solid $primary;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._config: GenerationConfig | None = None
        self._profile: PreferenceProfile | None = None
        self._preset_count: int = 0

    def set_state(
        self,
        config: GenerationConfig,
        profile: PreferenceProfile,
        preset_count: int = 0,
    ) -> None:
        self._config = config
        self._profile = profile
        self._preset_count = preset_count
        self.refresh()

    def render(self) -> Text:
        text = Text()
        config = self._config
        if config is None:
            return text
        material = config.material

        text.append("◆ Settings\n\n", style="bold cyan")
        text.append("Material   ", style="dim")
        text.append(f"{material.type.upper()}\n", style="bold")
        if material.type in PATINA_MATERIALS:
            text.append("  Patina   ", style="dim")
            text.append(f"{_bar(material.patina_intensity)} {material.patina_intensity}%\n")
            text.append("  Variant  ", style="dim")
            text.append(f"{material.patina_variation}\n")
        elif material.type == "texture":
            text.append("  Texture  ", style="dim")
            text.append(f"{_bar(material.texture_intensity)} {material.texture_intensity}%\n")

        text.append("Shadow     ", style="dim")
        text.append(f"{shadow_arrow(config.shadow_angle)} {config.shadow_angle}° {config.shadow_intensity}\n")
        text.append("Elevation  ", style="dim")
        text.append(f"{_bar(config.elevation)} {config.elevation}%")
        text.append(" grounded\n" if config.is_grounded else " floating\n", style="dim")
        text.append("Aspect     ", style="dim")
        text.append(f"{config.aspect_ratio} @ {config.resolution}\n")
        text.append("Lighting   ", style="dim")
        text.append("enhanced\n" if config.enhanced_lighting else "standard\n")
        text.append("Presets    ", style="dim")
        text.append(f"{self._preset_count} saved\n")

        profile = self._profile
        text.append("\n◆ Learned style\n", style="bold magenta")
        if profile is None or profile.is_empty:
            text.append("Rate results 4★ or higher to teach the studio.\n", style="dim italic")
        else:
            text.append(f"from {profile.sample_size} favourite(s)\n", style="dim")
            if profile.material:
                text.append(f"  material  {profile.material}\n")
            if profile.shadow_intensity:
                text.append(f"  shadows   {profile.shadow_intensity}\n")
            if profile.shadow_angle_bucket is not None:
                text.append(f"  angle     ~{profile.shadow_angle_bucket}°\n")
            if profile.enhanced_lighting is not None:
                text.append(f"  lighting  {'enhanced' if profile.enhanced_lighting else 'standard'}\n")
            if profile.floating is not None:
                text.append(f"  placement {'floating' if profile.floating else 'grounded'}\n")
        return text
