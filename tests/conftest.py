"""Shared fakes for the queue and session tests."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from directives.compiler import GenerationRequest
from studio.models import ImagePayload


class FakeGenerator:
    """Image generator that replays scripted outcomes.

    Each outcome is an ``ImagePayload`` to return or an exception to raise;
    once the script runs out the source image is echoed back.  ``on_call``
    is awaited inside the call, before the outcome, to simulate user actions
    while a request is in flight.
    """

    def __init__(self, outcomes: list | None = None) -> None:
        self.outcomes = list(outcomes or [])
        self.requests: list[GenerationRequest] = []
        self.on_call: Callable[[], Awaitable[None]] | None = None

    async def generate(
        self,
        image_bytes: bytes,
        media_type: str,
        request: GenerationRequest,
    ) -> ImagePayload:
        self.requests.append(request)
        if self.on_call is not None:
            await self.on_call()
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return ImagePayload(data=b"generated:" + image_bytes, media_type="image/png")


class FakeCredentials:
    def __init__(self, valid: bool = True) -> None:
        self.valid = valid
        self.invalidations = 0
        self.acquisitions = 0

    def has_valid_credential(self) -> bool:
        return self.valid

    async def acquire_credential(self) -> None:
        self.acquisitions += 1
        self.valid = True

    def invalidate(self) -> None:
        self.invalidations += 1
        self.valid = False


class RecordingSleep:
    """Stands in for ``asyncio.sleep``; records every requested delay."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self.on_sleep: Callable[[float], None] | None = None

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.on_sleep is not None:
            self.on_sleep(seconds)
        await asyncio.sleep(0)


@pytest.fixture()
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture()
def credentials() -> FakeCredentials:
    return FakeCredentials()


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()
