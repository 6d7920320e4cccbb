"""Single-line input modal used for the API key, upload paths and preset names.

Dismisses with the entered text, or ``None`` when cancelled.
"""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static


class PromptScreen(ModalScreen[str | None]):
    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    DEFAULT_CSS = """
    PromptScreen {
        align: center middle;
        background: $background 60%;
    }
    #prompt-box {
        width: 70;
        height: auto;
        padding: 1 2;
        border: heavy $accent;
        background: $surface;
    }
    #prompt-title {
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }
    #prompt-hint {
        color: $text-muted;
        margin-bottom: 1;
    }
    #prompt-actions {
        height: auto;
        margin-top: 1;
        align-horizontal: right;
    }
    #prompt-actions Button {
        margin-left: 1;
    }
    """

    def __init__(
        self,
        title: str,
        hint: str = "",
        placeholder: str = "",
        password: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._title = title
        self._hint = hint
        self._placeholder = placeholder
        self._password = password

    def compose(self) -> ComposeResult:
        with Vertical(id="prompt-box"):
            yield Static(self._title, id="prompt-title")
            if self._hint:
                yield Static(self._hint, id="prompt-hint")
            yield Input(placeholder=self._placeholder, password=self._password, id="prompt-input")
            with Horizontal(id="prompt-actions"):
                yield Button("OK", variant="primary", id="ok")
                yield Button("Cancel", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value.strip() or None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok":
            self.dismiss(self.query_one("#prompt-input", Input).value.strip() or None)
        else:
            self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)


def api_key_prompt() -> PromptScreen:
    return PromptScreen(
        "◆  Gemini API Key  ◆",
        hint="Paste a key from Google AI Studio. It is kept in memory only; "
        "set GEMINI_API_KEY in .env to skip this step.",
        placeholder="AIza...",
        password=True,
    )
