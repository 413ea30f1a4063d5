"""Unit tests for juliadoc.dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import structlog.testing

from juliadoc.dispatcher import ToolDispatcher, cache_key, validate_request
from juliadoc.errors import ErrorCode, JuliaDocError
from juliadoc.models.tools import DetailLevel, Operation, ToolRequest
from juliadoc.runner import DIAGNOSTICS_HEADING, classify_error

if TYPE_CHECKING:
    from juliadoc.cache import TTLCache
    from tests.unit.conftest import FakeClock, StubRunner

# ---------------------------------------------------------------------------
# validate_request
# ---------------------------------------------------------------------------


class TestValidateRequest:
    def test_fills_defaults(self) -> None:
        request = validate_request("get-doc", {"path": "Base.sort"})
        assert request.operation is Operation.GET_DOC
        assert request.options == {
            "detail_level": DetailLevel.FULL,
            "include_unexported": False,
        }

    def test_strips_path(self) -> None:
        request = validate_request(Operation.GET_SOURCE, {"path": "  Foo.bar "})
        assert request.path == "Foo.bar"

    def test_empty_path(self) -> None:
        with pytest.raises(JuliaDocError) as exc_info:
            validate_request(Operation.GET_DOC, {"path": "   "})
        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert "path must not be empty" in exc_info.value.message

    def test_missing_path(self) -> None:
        with pytest.raises(JuliaDocError) as exc_info:
            validate_request(Operation.LIST_PACKAGE, {})
        assert exc_info.value.code == ErrorCode.INVALID_INPUT

    def test_bad_detail_level(self) -> None:
        with pytest.raises(JuliaDocError) as exc_info:
            validate_request(Operation.GET_DOC, {"path": "Base.sort", "detail_level": "verbose"})
        assert "detail_level" in exc_info.value.message

    def test_unknown_argument(self) -> None:
        with pytest.raises(JuliaDocError):
            validate_request(Operation.GET_SOURCE, {"path": "Base.sort", "detail_level": "all"})

    def test_unknown_operation(self) -> None:
        with pytest.raises(JuliaDocError) as exc_info:
            validate_request("run-code", {"path": "Base.sort"})
        assert "Unknown tool" in exc_info.value.message

    def test_project_path_may_contain_spaces(self) -> None:
        request = validate_request(Operation.EXPLORE_PROJECT, {"path": "/home/me/My Project"})
        assert request.path == "/home/me/My Project"
        assert request.options == {}


# ---------------------------------------------------------------------------
# cache_key
# ---------------------------------------------------------------------------


class TestCacheKey:
    def test_format(self) -> None:
        request = validate_request(Operation.GET_DOC, {"path": "Base.sort", "detail_level": "concise"})
        assert cache_key(request) == "get-doc:Base.sort:detail_level=concise:include_unexported=false"

    def test_identical_requests_share_a_key(self) -> None:
        explicit = validate_request(
            Operation.GET_DOC,
            {"path": "Base.sort", "detail_level": "full", "include_unexported": False},
        )
        implicit = validate_request(Operation.GET_DOC, {"path": "Base.sort"})
        assert cache_key(explicit) == cache_key(implicit)

    def test_detail_level_distinguishes(self) -> None:
        concise = validate_request(Operation.GET_DOC, {"path": "Base.sort", "detail_level": "concise"})
        full = validate_request(Operation.GET_DOC, {"path": "Base.sort", "detail_level": "full"})
        assert cache_key(concise) != cache_key(full)

    def test_include_unexported_distinguishes(self) -> None:
        exported = validate_request(Operation.LIST_PACKAGE, {"path": "Base"})
        everything = validate_request(
            Operation.LIST_PACKAGE, {"path": "Base", "include_unexported": True}
        )
        assert cache_key(exported) != cache_key(everything)

    def test_operation_distinguishes(self) -> None:
        doc = ToolRequest(operation=Operation.GET_SOURCE, path="Base.sort")
        source = ToolRequest(operation=Operation.LIST_PACKAGE, path="Base.sort")
        assert cache_key(doc) != cache_key(source)

    def test_option_order_is_irrelevant(self) -> None:
        a = ToolRequest(operation=Operation.GET_DOC, path="x", options={"b": 1, "a": True})
        b = ToolRequest(operation=Operation.GET_DOC, path="x", options={"a": True, "b": 1})
        assert cache_key(a) == cache_key(b) == "get-doc:x:a=true:b=1"


# ---------------------------------------------------------------------------
# ToolDispatcher
# ---------------------------------------------------------------------------


class TestToolDispatcher:
    async def test_get_doc_concise_end_to_end(
        self, dispatcher: ToolDispatcher, runner: StubRunner, cache: TTLCache
    ) -> None:
        runner.result = "Type signature: Tuple{typeof(sort), AbstractVector}"

        response = await dispatcher.get_doc("Base.sort", detail_level="concise")

        assert response.text == "Type signature: Tuple{typeof(sort), AbstractVector}"
        assert response.is_error is False
        assert response.cached is False
        script, package = runner.calls[0]
        assert 'println("Type signature: "' in script
        assert package is None
        key = "get-doc:Base.sort:detail_level=concise:include_unexported=false"
        assert cache.get(key) == response.text

    async def test_repeated_get_source_hits_cache(
        self, dispatcher: ToolDispatcher, runner: StubRunner
    ) -> None:
        runner.result = "Found 1 method(s):\n\nMethod 1:\nType signature: Tuple{typeof(Foo.bar)}"

        first = await dispatcher.get_source("Foo.bar")
        second = await dispatcher.get_source("Foo.bar")

        assert second.text == first.text
        assert second.cached is True
        assert len(runner.calls) == 1
        assert runner.calls[0][1] == "Foo"

    async def test_cache_expires(
        self, dispatcher: ToolDispatcher, runner: StubRunner, clock: FakeClock
    ) -> None:
        await dispatcher.get_source("Foo.bar")
        clock.advance(301)
        response = await dispatcher.get_source("Foo.bar")
        assert response.cached is False
        assert len(runner.calls) == 2

    async def test_detail_levels_cached_independently(
        self, dispatcher: ToolDispatcher, runner: StubRunner
    ) -> None:
        runner.result = "concise output"
        await dispatcher.get_doc("Base.sort", detail_level="concise")
        runner.result = "full output"
        response = await dispatcher.get_doc("Base.sort", detail_level="full")
        assert response.text == "full output"
        assert len(runner.calls) == 2

    async def test_list_package_missing_package(self, dispatcher: ToolDispatcher, runner: StubRunner) -> None:
        diagnostics = f"{DIAGNOSTICS_HEADING}\nInstalled packages:\n  [682c06a0] JSON v0.21.4"
        runner.result = classify_error(
            "ERROR: could not load package NoSuchPkg",
            package="NoSuchPkg",
            diagnostics=diagnostics,
        )

        response = await dispatcher.list_package("NoSuchPkg")

        assert response.is_error is True
        assert "NoSuchPkg" in response.text
        assert DIAGNOSTICS_HEADING in response.text
        assert runner.calls[0][1] == "NoSuchPkg"

    async def test_failures_are_not_cached(
        self, dispatcher: ToolDispatcher, runner: StubRunner
    ) -> None:
        runner.result = JuliaDocError(ErrorCode.TIMEOUT, "too slow", recoverable=True)
        first = await dispatcher.get_doc("Base.sort")
        assert first.is_error is True
        assert first.text == "too slow"

        runner.result = "docs"
        second = await dispatcher.get_doc("Base.sort")
        assert second.text == "docs"
        assert second.cached is False
        assert len(runner.calls) == 2

    async def test_invalid_input_never_runs_julia(
        self, dispatcher: ToolDispatcher, runner: StubRunner
    ) -> None:
        response = await dispatcher.get_doc('Base.sort"); run(`id`); ("')
        assert response.is_error is True
        assert "Invalid" in response.text
        assert runner.calls == []

    async def test_suggestion_included_in_text(
        self, dispatcher: ToolDispatcher, runner: StubRunner
    ) -> None:
        runner.result = JuliaDocError(
            ErrorCode.INTERPRETER_NOT_FOUND,
            "Julia executable not found: julia",
            suggestion="Install Julia.",
        )
        response = await dispatcher.explore_project("/work/MyPkg")
        assert response.text == "Julia executable not found: julia\n\nInstall Julia."

    async def test_explore_project(self, dispatcher: ToolDispatcher, runner: StubRunner) -> None:
        runner.result = "Project: MyPkg v0.1.0\n\nDependencies:\n - JSON = 682c06a0-..."
        response = await dispatcher.explore_project("/work/MyPkg")
        assert response.text.startswith("Project: MyPkg v0.1.0")
        assert 'joinpath("/work/MyPkg", "Project.toml")' in runner.calls[0][0]

    async def test_call_by_name(self, dispatcher: ToolDispatcher, runner: StubRunner) -> None:
        runner.result = "Function sort"
        response = await dispatcher.call("list-package", {"path": "Base"})
        assert response.text == "Function sort"
        assert "names(m; all=false)" in runner.calls[0][0]

    async def test_oversized_path_is_rejected(
        self, dispatcher: ToolDispatcher, runner: StubRunner
    ) -> None:
        response = await dispatcher.get_doc("a" * 300_000)
        assert response.is_error is True
        assert "must not exceed 500 characters" in response.text
        assert len(response.text) < 1000
        assert runner.calls == []

    async def test_oversized_project_path_is_rejected(
        self, dispatcher: ToolDispatcher, runner: StubRunner
    ) -> None:
        response = await dispatcher.explore_project("/work/" + "a" * 1000)
        assert response.is_error is True
        assert runner.calls == []

    async def test_unencodable_project_path_is_rejected(
        self, dispatcher: ToolDispatcher, runner: StubRunner
    ) -> None:
        response = await dispatcher.explore_project("/work/\ud800")
        assert response.is_error is True
        assert response.text.startswith("Invalid input")
        assert runner.calls == []

    async def test_spawn_failure_comes_back_as_text(self, cache: TTLCache) -> None:
        class FailingRunner:
            async def run(self, script: str, package: str | None = None) -> str:
                raise JuliaDocError(ErrorCode.INTERPRETER_ERROR, "Could not start Julia: E2BIG")

        response = await ToolDispatcher(cache, FailingRunner()).get_source("Base.sort")
        assert response.is_error is True
        assert response.text == "Could not start Julia: E2BIG"

    async def test_logged_path_is_truncated(self, dispatcher: ToolDispatcher) -> None:
        with structlog.testing.capture_logs() as logs:
            await dispatcher.get_doc("a" * 300_000)
        call = next(entry for entry in logs if entry["event"] == "tool_call")
        assert len(call["path"]) == 200
