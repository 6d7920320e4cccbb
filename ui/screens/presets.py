"""Preset picker — apply or delete a saved material preset.

Enter applies the highlighted preset to the global settings, ``d`` deletes
it.  Closing returns to the studio screen.
"""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import OptionList, Static
from textual.widgets.option_list import Option

from studio.session import StudioSession


def _describe(preset) -> str:
    material = preset.material
    detail = ""
    if hasattr(material, "patina_intensity"):
        detail = f" · patina {material.patina_intensity}% {material.patina_variation}"
    elif hasattr(material, "texture_intensity"):
        detail = f" · texture {material.texture_intensity}%"
    return f"{preset.name}  [{material.type}{detail}]"


class PresetScreen(ModalScreen[None]):
    BINDINGS = [
        Binding("escape", "dismiss", "Close"),
        Binding("d", "delete", "Delete"),
    ]

    DEFAULT_CSS = """
    PresetScreen {
        align: center middle;
        background: $background 60%;
    }
    #preset-box {
        width: 64;
        height: auto;
        max-height: 80%;
        padding: 1 2;
        border: heavy $accent;
        background: $surface;
    }
    #preset-title {
        text-align: center;
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }
    #preset-help {
        color: $text-muted;
        margin-top: 1;
    }
    """

    def __init__(self, session: StudioSession, **kwargs) -> None:
        super().__init__(**kwargs)
        self._session = session

    def compose(self) -> ComposeResult:
        with Vertical(id="preset-box"):
            yield Static("◆  Material Presets  ◆", id="preset-title")
            yield OptionList(id="preset-list")
            yield Static("Enter apply · D delete · Esc close", id="preset-help")

    def on_mount(self) -> None:
        self._reload()
        self.query_one("#preset-list", OptionList).focus()

    def _reload(self) -> None:
        options = self.query_one("#preset-list", OptionList)
        options.clear_options()
        presets = self._session.presets.presets
        if not presets:
            options.add_option(Option("No presets yet. Press F on the studio screen to save one.", disabled=True))
            return
        options.add_options([Option(_describe(p), id=p.id) for p in presets])

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option.id is None:
            return
        self._session.apply_preset(event.option.id)
        self.dismiss(None)

    def action_delete(self) -> None:
        options = self.query_one("#preset-list", OptionList)
        if options.highlighted is None:
            return
        option = options.get_option_at_index(options.highlighted)
        if option.id is not None and self._session.delete_preset(option.id):
            self._reload()
