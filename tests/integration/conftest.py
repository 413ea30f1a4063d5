"""Integration test fixtures.

The server is exercised without Julia: the interpreter override points at a
path that does not exist, so any call that reaches the runner fails with
INTERPRETER_NOT_FOUND.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from juliadoc.config import Settings
from juliadoc.state import AppState, build_state

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def missing_julia(tmp_path: Path) -> str:
    return str(tmp_path / "bin" / "julia")


@pytest.fixture()
def app_state(missing_julia: str) -> AppState:
    return build_state(Settings(julia={"executable": missing_julia}))


@pytest.fixture()
def subprocess_env(missing_julia: str) -> dict[str, str]:
    """Environment for running the server as a child process."""
    env = os.environ.copy()
    env["JULIADOC__JULIA__EXECUTABLE"] = missing_julia
    env["JULIADOC__LOGGING__LEVEL"] = "WARNING"
    return env
