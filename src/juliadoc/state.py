"""Process-wide application state, built once at startup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from juliadoc.cache import TTLCache
from juliadoc.dispatcher import ToolDispatcher
from juliadoc.runner import ProcessRunner, locate_interpreter

if TYPE_CHECKING:
    from juliadoc.config import Settings

log = structlog.get_logger()


@dataclass
class AppState:
    settings: Settings
    cache: TTLCache
    runner: ProcessRunner
    dispatcher: ToolDispatcher


def build_state(settings: Settings) -> AppState:
    """Resolve the interpreter and wire the cache, runner and dispatcher.

    The interpreter location and the process environment are captured here
    and never re-read.
    """
    executable = locate_interpreter(settings.julia.executable)
    log.info("julia_located", executable=executable, project=settings.julia.project)

    cache = TTLCache(ttl_seconds=settings.cache.ttl_seconds)
    runner = ProcessRunner(
        executable,
        project=settings.julia.project,
        timeout_seconds=settings.julia.timeout_seconds,
    )
    return AppState(
        settings=settings,
        cache=cache,
        runner=runner,
        dispatcher=ToolDispatcher(cache, runner),
    )
