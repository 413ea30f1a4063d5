"""Tool dispatch: validate, consult the cache, build, run, store.

Each tool call moves through Validating → CacheLookup → (hit: Done) or
(miss: Building → Executing → Success → CacheStore → Done, or Failure → Done).
Failures are returned as text in an ordinary ``ToolResponse``; nothing is
raised to the transport and failures are never cached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError

from juliadoc.errors import ErrorCode, JuliaDocError
from juliadoc.models.tools import (
    DetailLevel,
    ExploreProjectInput,
    GetDocInput,
    GetSourceInput,
    ListPackageInput,
    Operation,
    ToolRequest,
    ToolResponse,
)
from juliadoc.scripts import build_script

if TYPE_CHECKING:
    from collections.abc import Mapping

    from juliadoc.protocols import CacheProtocol, RunnerProtocol

log = structlog.get_logger()

_INPUT_MODELS: dict[Operation, type[BaseModel]] = {
    Operation.GET_DOC: GetDocInput,
    Operation.LIST_PACKAGE: ListPackageInput,
    Operation.EXPLORE_PROJECT: ExploreProjectInput,
    Operation.GET_SOURCE: GetSourceInput,
}


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error["loc"])
        problems.append(f"{loc}: {error['msg']}" if loc else error["msg"])
    return "Invalid input: " + "; ".join(problems)


def validate_request(operation: Operation | str, arguments: Mapping[str, Any]) -> ToolRequest:
    """Check tool arguments and fill in option defaults.

    Raises:
        JuliaDocError: ``INVALID_INPUT`` for an unknown operation or bad arguments.
    """
    try:
        operation = Operation(operation)
    except ValueError:
        raise JuliaDocError(ErrorCode.INVALID_INPUT, f"Unknown tool: {operation!r}") from None

    try:
        validated = _INPUT_MODELS[operation].model_validate(dict(arguments))
    except ValidationError as exc:
        raise JuliaDocError(ErrorCode.INVALID_INPUT, _format_validation_error(exc)) from None

    options = validated.model_dump(exclude={"path"})
    return ToolRequest(operation=operation, path=validated.path, options=options)


def cache_key(request: ToolRequest) -> str:
    """Derive a deterministic key from the operation, path and every option.

    e.g. ``get-doc:Base.sort:detail_level=concise:include_unexported=false``
    """
    parts = [str(request.operation), request.path]
    for name in sorted(request.options):
        value = request.options[name]
        rendered = str(value).lower() if isinstance(value, bool) else str(value)
        parts.append(f"{name}={rendered}")
    return ":".join(parts)


class ToolDispatcher:
    """Entry points for the four tools, sharing one cache and one runner."""

    def __init__(self, cache: CacheProtocol, runner: RunnerProtocol) -> None:
        self._cache = cache
        self._runner = runner

    async def get_doc(
        self,
        path: str,
        detail_level: DetailLevel | str = DetailLevel.FULL,
        include_unexported: bool = False,
    ) -> ToolResponse:
        return await self.call(
            Operation.GET_DOC,
            {"path": path, "detail_level": detail_level, "include_unexported": include_unexported},
        )

    async def list_package(self, path: str, include_unexported: bool = False) -> ToolResponse:
        return await self.call(
            Operation.LIST_PACKAGE, {"path": path, "include_unexported": include_unexported}
        )

    async def explore_project(self, path: str) -> ToolResponse:
        return await self.call(Operation.EXPLORE_PROJECT, {"path": path})

    async def get_source(self, path: str) -> ToolResponse:
        return await self.call(Operation.GET_SOURCE, {"path": path})

    async def call(self, operation: Operation | str, arguments: Mapping[str, Any]) -> ToolResponse:
        """Run one tool call to completion. Never raises ``JuliaDocError``."""
        path = arguments.get("path")
        log.info(
            "tool_call",
            operation=str(operation),
            path=path[:200] if isinstance(path, str) else path,
        )
        try:
            request = validate_request(operation, arguments)
        except JuliaDocError as exc:
            return self._failure(exc)

        key = cache_key(request)
        cached = self._cache.get(key)
        if cached is not None:
            log.info("cache_hit", key=key)
            return ToolResponse(text=cached, cached=True)

        try:
            script = build_script(request.operation, request.path, request.options)
            text = await self._runner.run(script.text, script.package)
        except JuliaDocError as exc:
            return self._failure(exc)

        self._cache.set(key, text)
        return ToolResponse(text=text)

    @staticmethod
    def _failure(exc: JuliaDocError) -> ToolResponse:
        log.warning("tool_failed", code=str(exc.code), recoverable=exc.recoverable)
        return ToolResponse(text=exc.render(), is_error=True)
