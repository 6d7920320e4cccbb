"""Offline image generator for ``--demo`` runs and manual UI testing."""

from __future__ import annotations

import asyncio
import logging

from directives.compiler import GenerationRequest
from studio.models import ImagePayload
from studio.queue import Sleep

logger = logging.getLogger(__name__)


class DemoImageGenerator:
    """Echoes the source image back after a short delay."""

    def __init__(self, delay_seconds: float = 1.5, sleep: Sleep = asyncio.sleep) -> None:
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self.requests: list[GenerationRequest] = []

    async def generate(
        self,
        image_bytes: bytes,
        media_type: str,
        request: GenerationRequest,
    ) -> ImagePayload:
        self.requests.append(request)
        logger.debug("Demo generation for request %s", request.fingerprint[:12])
        await self._sleep(self.delay_seconds)
        return ImagePayload(data=image_bytes, media_type=media_type)
