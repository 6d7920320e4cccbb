from __future__ import annotations

from rich.text import Text
from textual.widget import Widget

from studio.session import StudioSession


class QueueStatus(Widget):
    """Run state, slot usage and the current banner."""

    DEFAULT_CSS = """
    QueueStatus {
        height: 2;
        padding: 0 1;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._session: StudioSession | None = None

    def set_session(self, session: StudioSession) -> None:
        self._session = session
        self.refresh()

    def render(self) -> Text:
        text = Text()
        session = self._session
        if session is None:
            return text

        if session.queue.is_running:
            text.append("▶ RUNNING ", style="bold green")
        else:
            text.append("⏸ PAUSED ", style="bold yellow")
        if session.queue.is_busy:
            text.append("[generating...] ", style="dim yellow")
        text.append(session.queue_status(), style="dim")

        if not session.credentials.has_valid_credential():
            text.append("\n⚠ No API key. Press K to enter one.", style="bold red")
        elif session.banner:
            text.append(f"\n{session.banner}", style="bold cyan")
        return text
