"""Unit-specific fixtures (no Julia, no real subprocesses unless stated)."""

from __future__ import annotations

import pytest

from juliadoc.cache import TTLCache
from juliadoc.dispatcher import ToolDispatcher


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubRunner:
    """RunnerProtocol double that records calls and replays canned results.

    ``result`` may be a string (returned) or an exception (raised).
    """

    def __init__(self, result: str | Exception = "ok") -> None:
        self.result = result
        self.calls: list[tuple[str, str | None]] = []

    async def run(self, script: str, package: str | None = None) -> str:
        self.calls.append((script, package))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> TTLCache:
    """TTL cache with the default 300s TTL driven by a fake clock."""
    return TTLCache(ttl_seconds=300, clock=clock)


@pytest.fixture()
def runner() -> StubRunner:
    return StubRunner()


@pytest.fixture()
def dispatcher(cache: TTLCache, runner: StubRunner) -> ToolDispatcher:
    return ToolDispatcher(cache, runner)
