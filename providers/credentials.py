"""Credential providers for the image generator.

``EnvCredentialProvider`` starts from the key in the environment (``.env``
is loaded by ``studio.config``) and can re-prompt through an async callback
supplied by the UI.  ``invalidate()`` forgets the key after the service
reports it expired; generation stays blocked until a new one is entered.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from studio.config import get_api_key

logger = logging.getLogger(__name__)

KeyPrompt = Callable[[], Awaitable[str | None]]


class EnvCredentialProvider:
    def __init__(self, prompt: KeyPrompt | None = None, api_key: str | None = None) -> None:
        self._prompt = prompt
        self._api_key = api_key if api_key is not None else get_api_key()
        if not self._api_key:
            logger.warning(
                "GEMINI_API_KEY is not set. Generation stays blocked until a key "
                "is entered or the variable is set in your .env file."
            )

    @property
    def api_key(self) -> str | None:
        return self._api_key

    def set_prompt(self, prompt: KeyPrompt | None) -> None:
        self._prompt = prompt

    def set_api_key(self, key: str | None) -> None:
        key = (key or "").strip()
        self._api_key = key or None
        if self._api_key:
            logger.info("API key updated")

    def has_valid_credential(self) -> bool:
        return bool(self._api_key)

    async def acquire_credential(self) -> None:
        if self._prompt is None:
            logger.warning("No key prompt available; set GEMINI_API_KEY instead")
            return
        self.set_api_key(await self._prompt())

    def invalidate(self) -> None:
        logger.warning("API key invalidated")
        self._api_key = None


class StaticCredentialProvider:
    """Always-valid credential for demo mode."""

    def __init__(self) -> None:
        self.invalidations = 0

    @property
    def api_key(self) -> str | None:
        return "demo"

    def has_valid_credential(self) -> bool:
        return True

    async def acquire_credential(self) -> None:
        return None

    def invalidate(self) -> None:
        self.invalidations += 1
