"""Interfaces of the external collaborators the studio core depends on.

Concrete implementations live in ``providers/`` (Gemini, demo, credentials)
and ``storage/`` (persistence).  The core only relies on these protocols so
tests can swap in fakes.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from directives.compiler import GenerationRequest
from studio.models import ImagePayload


@runtime_checkable
class CredentialProvider(Protocol):
    def has_valid_credential(self) -> bool: ...

    async def acquire_credential(self) -> None:
        """Interactively obtain a credential (e.g. prompt for an API key)."""
        ...

    def invalidate(self) -> None:
        """Forget the cached 'credential is valid' flag."""
        ...


@runtime_checkable
class ImageGenerator(Protocol):
    async def generate(
        self,
        image_bytes: bytes,
        media_type: str,
        request: GenerationRequest,
    ) -> ImagePayload:
        """Transform one image.  Failures raise ``GenerationError`` subclasses."""
        ...
