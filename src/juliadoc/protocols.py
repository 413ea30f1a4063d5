"""Protocol interfaces for swappable components.

The dispatcher references these protocols, not the concrete implementations,
so tests can substitute a stub runner or a cache driven by a fake clock.
"""

from __future__ import annotations

from typing import Protocol


class CacheProtocol(Protocol):
    """Interface for the tool result cache."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self) -> None: ...


class RunnerProtocol(Protocol):
    """Interface for the Julia script runner."""

    async def run(self, script: str, package: str | None = None) -> str: ...
