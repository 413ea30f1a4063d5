"""MCP server entry point.

Binds the four tools to FastMCP over stdio. Tool handlers only translate
between MCP arguments and the dispatcher; every result, including errors,
comes back as plain text content.

Run with ``juliadoc`` or ``python -m juliadoc.server``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Literal

import structlog
from mcp.server.fastmcp import FastMCP
from pydantic import Field

from juliadoc.config import Settings
from juliadoc.logging_config import setup_logging
from juliadoc.state import AppState, build_state

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

log = structlog.get_logger()

SERVER_NAME = "juliadoc"

_SYMBOL_PATH_HELP = "Path to Julia object (e.g., 'Base.sort', 'AbstractArray')"
_UNEXPORTED_HELP = "Whether to include unexported symbols"


def create_server(state: AppState) -> FastMCP:
    """Build a FastMCP server whose tools dispatch through ``state``."""

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[AppState]:
        log.info(
            "server_start",
            julia=state.runner.executable,
            project=state.runner.project,
            cache_ttl_seconds=state.cache.ttl_seconds,
        )
        try:
            yield state
        finally:
            state.cache.clear()
            log.info("server_stop")

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)

    @mcp.tool(
        name="get-doc",
        description="Get Julia documentation for a package, module, type, function, or method",
    )
    async def get_doc(
        path: Annotated[str, Field(description=_SYMBOL_PATH_HELP)],
        detail_level: Annotated[
            Literal["concise", "full", "all"],
            Field(
                description=(
                    "Level of documentation detail: concise (just signatures), "
                    "full (standard docs), or all (docs, method signatures and fields)"
                )
            ),
        ] = "full",
        include_unexported: Annotated[bool, Field(description=_UNEXPORTED_HELP)] = False,
    ) -> str:
        response = await state.dispatcher.get_doc(path, detail_level, include_unexported)
        return response.text

    @mcp.tool(
        name="list-package",
        description="List available symbols in a Julia package or module",
    )
    async def list_package(
        path: Annotated[str, Field(description="Package or module name")],
        include_unexported: Annotated[bool, Field(description=_UNEXPORTED_HELP)] = False,
    ) -> str:
        response = await state.dispatcher.list_package(path, include_unexported)
        return response.text

    @mcp.tool(
        name="explore-project",
        description="Explore a Julia project's structure and dependencies",
    )
    async def explore_project(
        path: Annotated[str, Field(description="Path to Julia project directory")],
    ) -> str:
        response = await state.dispatcher.explore_project(path)
        return response.text

    @mcp.tool(
        name="get-source",
        description="Get Julia source code for a function, type, or method",
    )
    async def get_source(
        path: Annotated[str, Field(description=_SYMBOL_PATH_HELP)],
    ) -> str:
        response = await state.dispatcher.get_source(path)
        return response.text

    return mcp


def main() -> None:
    # Settings validation runs before any transport starts: bad config exits non-zero.
    settings = Settings()
    setup_logging(settings.logging)
    state = build_state(settings)
    create_server(state).run(transport="stdio")


if __name__ == "__main__":
    main()
