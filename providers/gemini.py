"""Gemini image generator built on the google-genai SDK.

One call per job: the compiled prompt plus the source image go to the image
model, and the first inline image part of the first candidate comes back as
the result.  SDK errors are translated into the ``studio.errors`` hierarchy
so the queue controller can classify them.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from directives.compiler import GenerationRequest
from studio.config import DEFAULT_IMAGE_MODEL
from studio.errors import (
    CredentialExpiredError,
    GenerationError,
    RateLimitError,
)
from studio.models import ImagePayload

logger = logging.getLogger(__name__)

_EXPIRED_KEY_MARKERS = ("requested entity was not found", "api key not valid", "api_key_invalid")


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, bytes):
        return data
    if isinstance(data, str):
        return base64.b64decode(data)
    raise TypeError(f"Unsupported inline data type: {type(data)}")


def extract_image(response: Any) -> ImagePayload:
    """Return the first inline image in ``response``'s first candidate."""
    candidates = getattr(response, "candidates", None) or []
    content = getattr(candidates[0], "content", None) if candidates else None
    parts = getattr(content, "parts", None) if content is not None else None
    if not parts:
        raise GenerationError("The model returned no content.")

    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            return ImagePayload(
                data=_as_bytes(inline.data),
                media_type=getattr(inline, "mime_type", None) or "image/png",
            )
    raise GenerationError("No image generated.")


def translate_api_error(exc: genai_errors.APIError) -> GenerationError:
    """Map an SDK error onto the studio's failure types."""
    message = getattr(exc, "message", None) or str(exc)
    code = getattr(exc, "code", None)
    status = str(getattr(exc, "status", "") or "")
    lowered = message.lower()

    if code == 429 or status == "RESOURCE_EXHAUSTED":
        return RateLimitError(message, status_code=429)
    if any(marker in lowered for marker in _EXPIRED_KEY_MARKERS):
        return CredentialExpiredError(message, status_code=code)
    return GenerationError(message, status_code=code)


class GeminiImageGenerator:
    """``ImageGenerator`` backed by a Gemini image model."""

    def __init__(
        self,
        api_key_source: Callable[[], str | None],
        model: str = DEFAULT_IMAGE_MODEL,
        client_factory: Callable[..., Any] = genai.Client,
    ) -> None:
        self._api_key_source = api_key_source
        self.model = model
        self._client_factory = client_factory
        self._client: Any = None
        self._client_key: str | None = None

    def _client_for(self, api_key: str) -> Any:
        # A new key (after re-prompting) needs a new client.
        if self._client is None or self._client_key != api_key:
            self._client = self._client_factory(api_key=api_key)
            self._client_key = api_key
        return self._client

    async def generate(
        self,
        image_bytes: bytes,
        media_type: str,
        request: GenerationRequest,
    ) -> ImagePayload:
        api_key = self._api_key_source()
        if not api_key:
            raise CredentialExpiredError("API Key not found. Please select your key again.")

        client = self._client_for(api_key)
        config = types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=types.ImageConfig(
                aspect_ratio=request.aspect_ratio,
                image_size=request.resolution,
            ),
        )
        contents = [
            request.prompt,
            types.Part.from_bytes(data=image_bytes, mime_type=media_type),
        ]

        logger.debug("Calling %s (request %s)", self.model, request.fingerprint[:12])
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise translate_api_error(exc) from exc

        return extract_image(response)
