"""Julia subprocess execution and stderr classification.

Scripts are passed to ``julia -e`` as a single argv element; no shell is
involved. Any stderr output is treated as failure: it is classified into an
``ErrorCode`` by substring, and a second short Julia run collects environment
diagnostics (active project, depot path, installed packages) that are
appended to the error message.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import re
import shlex
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from juliadoc.errors import ErrorCode, JuliaDocError
from juliadoc.scripts import DIAGNOSTIC_SCRIPT

if TYPE_CHECKING:
    from collections.abc import Mapping

log = structlog.get_logger()

DEFAULT_EXECUTABLE = "julia"
DEFAULT_TIMEOUT_SECONDS = 60.0
DIAGNOSTICS_HEADING = "Julia environment diagnostics:"

# Searched when `julia` is not on PATH: juliaup, pipx-style, Homebrew.
_INSTALL_DIRS = (
    Path.home() / ".juliaup" / "bin",
    Path.home() / ".local" / "bin",
    Path("/usr/local/bin"),
    Path("/opt/homebrew/bin"),
)

_PACKAGE_NAME_RE = re.compile(r"[Pp]ackage `?([^\W\d]\w*)`? not found")


def locate_interpreter(override: str | None = None) -> str:
    """Resolve the Julia executable once at startup.

    An explicit override wins; a bare command name in the override is looked
    up on PATH. Without an override, PATH is searched first, then well-known
    install directories. Falls back to the bare name ``julia`` so that a
    missing interpreter surfaces as ``INTERPRETER_NOT_FOUND`` on first use
    rather than at startup.
    """
    if override:
        expanded = os.path.expanduser(override)
        if os.sep in expanded or (os.altsep and os.altsep in expanded):
            return expanded
        return shutil.which(expanded) or expanded

    found = shutil.which(DEFAULT_EXECUTABLE)
    if found:
        return found
    for directory in _INSTALL_DIRS:
        candidate = directory / DEFAULT_EXECUTABLE
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return DEFAULT_EXECUTABLE


def classify_error(
    stderr: str,
    *,
    package: str | None = None,
    project: str | None = None,
    diagnostics: str | None = None,
) -> JuliaDocError:
    """Map Julia stderr output to a ``JuliaDocError``. First match wins."""
    detail = stderr.strip()
    suggestion = None

    if "could not load package" in stderr or _PACKAGE_NAME_RE.search(stderr):
        match = _PACKAGE_NAME_RE.search(stderr)
        name = package or (match.group(1) if match else "unknown")
        code = ErrorCode.PACKAGE_NOT_FOUND
        header = f"Package not found: {name}"
        if project:
            header += f" (project: {project})"
        project_flag = f" --project={shlex.quote(project)}" if project else ""
        suggestion = f"Install it with: julia{project_flag} -e 'using Pkg; Pkg.add(\"{name}\")'"
    elif "UndefVarError" in stderr:
        code = ErrorCode.UNDEFINED_REFERENCE
        header = "Undefined variable"
    elif "not found" in stderr:
        code = ErrorCode.SYMBOL_NOT_FOUND
        header = "Symbol not found"
    else:
        code = ErrorCode.INTERPRETER_ERROR
        header = "Julia error"

    message = f"{header}\n\n{detail}"
    if diagnostics:
        message += f"\n\n{diagnostics}"
    return JuliaDocError(code, message, suggestion=suggestion)


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()


class ProcessRunner:
    """Runs Julia scripts, implementing RunnerProtocol."""

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        *,
        project: str | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.executable = executable
        self.project = project
        self.timeout_seconds = timeout_seconds
        # Snapshot so JULIA_DEPOT_PATH, JULIA_LOAD_PATH and PATH are fixed at startup.
        self._env = dict(os.environ if env is None else env)

    def command(self, script: str) -> list[str]:
        argv = [self.executable, "--color=no"]
        if self.project:
            argv.append(f"--project={self.project}")
        argv += ["-e", script]
        return argv

    async def run(self, script: str, package: str | None = None) -> str:
        """Run ``script`` and return its stripped stdout.

        Raises:
            JuliaDocError: classified from stderr, or ``EMPTY_RESULT`` when the
                script printed nothing, ``TIMEOUT``, ``INTERPRETER_NOT_FOUND``.
        """
        stdout, stderr = await self._execute(script)

        if stderr.strip():
            log.warning("julia_error", package=package, stderr=stderr.strip()[:500])
            diagnostics = await self.diagnostics()
            raise classify_error(
                stderr, package=package, project=self.project, diagnostics=diagnostics
            )

        result = stdout.strip()
        if not result:
            raise JuliaDocError(
                ErrorCode.EMPTY_RESULT,
                "No result: Julia ran successfully but printed nothing.",
            )
        return result

    async def diagnostics(self) -> str:
        """Describe the Julia environment for inclusion in an error message."""
        try:
            stdout, stderr = await self._execute(DIAGNOSTIC_SCRIPT)
        except JuliaDocError as exc:
            body = f"(diagnostics unavailable: {exc.message})"
        else:
            body = "\n".join(part for part in (stdout.strip(), stderr.strip()) if part)
        return f"{DIAGNOSTICS_HEADING}\n{body or '(no output)'}"

    async def _execute(self, script: str) -> tuple[str, str]:
        argv = self.command(script)
        log.debug("julia_exec", command=shlex.join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            log.error("julia_not_found", executable=self.executable)
            raise JuliaDocError(
                ErrorCode.INTERPRETER_NOT_FOUND,
                f"Julia executable not found: {self.executable}",
                suggestion=(
                    "Install Julia from https://julialang.org/downloads/ and make sure "
                    "`julia` is on PATH, or set JULIADOC__JULIA__EXECUTABLE."
                ),
            ) from exc
        except (OSError, ValueError) as exc:
            # e.g. E2BIG for an oversized script, or text the OS cannot encode.
            log.error("julia_spawn_failed", executable=self.executable, error=str(exc))
            raise JuliaDocError(
                ErrorCode.INTERPRETER_ERROR,
                f"Could not start Julia: {exc}",
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.timeout_seconds
            )
        except TimeoutError:
            await _terminate(proc)
            log.warning("julia_timeout", timeout_seconds=self.timeout_seconds)
            raise JuliaDocError(
                ErrorCode.TIMEOUT,
                f"Julia did not finish within {self.timeout_seconds:g} seconds and was stopped.",
                suggestion="Package precompilation can be slow on first use; try again.",
                recoverable=True,
            ) from None
        except asyncio.CancelledError:
            await _terminate(proc)
            raise

        return (
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
