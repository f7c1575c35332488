"""Shared test helpers: scripted lookups and polling."""

import asyncio
import time
from collections.abc import Callable

import pytest

from khs.errors import LookupFailedError


class ScriptedLookup:
    """Lookup returning queued results in order, repeating the last one forever.

    An exception instance in the script is raised instead of returned.
    """

    def __init__(self, *script: list[str] | BaseException) -> None:
        self._script = list(script)
        self.calls: list[str] = []

    async def __call__(self, host: str) -> list[str]:
        self.calls.append(host)
        result = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(result, BaseException):
            raise result
        return list(result)


class GatedLookup:
    """Lookup whose calls after the first block until ``release()``."""

    def __init__(self, result: list[str]) -> None:
        self._result = result
        self._gate = asyncio.Event()
        self.calls: list[str] = []

    def release(self) -> None:
        self._gate.set()

    async def __call__(self, host: str) -> list[str]:
        self.calls.append(host)
        if len(self.calls) > 1:
            await self._gate.wait()
        return list(self._result)


def fail(host: str = "svc") -> LookupFailedError:
    return LookupFailedError(host, "no such host")


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the event loop until it holds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail(f"condition not met within {timeout}s")
        await asyncio.sleep(0.005)
