"""ProShot Studio — Textual application entry point.

``StudioApp`` owns the ``StudioSession`` and runs the queue controller's
loop as a long-lived worker on the app's event loop, so store updates and
widget refreshes happen on the same thread.

In demo mode the session uses ``DemoImageGenerator`` and an always-valid
credential; otherwise Gemini, with the API key from the environment or the
key prompt.
"""

from __future__ import annotations

import logging

from textual.app import App

from providers.credentials import EnvCredentialProvider, StaticCredentialProvider
from providers.demo import DemoImageGenerator
from providers.gemini import GeminiImageGenerator
from studio.config import StudioConfig
from studio.session import StudioSession
from ui.screens.prompt import api_key_prompt

logger = logging.getLogger(__name__)


class StudioApp(App):
    """Root Textual application for ProShot Studio."""

    TITLE = "ProShot Studio"
    SUB_TITLE = "AI product photography"

    def __init__(self, demo: bool = False, config: StudioConfig | None = None) -> None:
        super().__init__()
        self.demo_mode = demo
        config = config or StudioConfig.from_env()

        if demo:
            credentials = StaticCredentialProvider()
            generator = DemoImageGenerator()
        else:
            credentials = EnvCredentialProvider(prompt=self.prompt_api_key)
            generator = GeminiImageGenerator(
                lambda: credentials.api_key,
                model=config.image_model,
            )
        self.session = StudioSession(generator, credentials, config)
        if demo:
            self.sub_title = "demo mode"

    def on_mount(self) -> None:
        from ui.screens.studio import StudioScreen

        self.push_screen(StudioScreen())
        self.run_worker(self.session.queue.run_forever(), name="queue", group="queue")
        logger.info("Studio started (demo=%s)", self.demo_mode)

    async def prompt_api_key(self) -> str | None:
        """Show the key modal and wait for it.  Must run inside a worker."""
        return await self.push_screen_wait(api_key_prompt())

    def on_unmount(self) -> None:
        self.session.close()
