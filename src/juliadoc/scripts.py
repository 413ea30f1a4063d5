"""Julia script rendering for each tool operation.

Everything here is pure string work: no I/O and no subprocesses. Symbol
paths are checked against a strict dotted-identifier grammar before they are
spliced into a template, and directory paths are embedded as escaped Julia
string literals, so a tool argument can never inject extra Julia code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from juliadoc.errors import ErrorCode, JuliaDocError
from juliadoc.models.tools import DetailLevel, Operation, is_symbol_path

if TYPE_CHECKING:
    from collections.abc import Mapping

# Modules that are loaded in every Julia session and never need an import.
ROOT_MODULES = frozenset({"Base", "Core", "Main"})

RULE_WIDTH = 40
CONTEXT_LINES = 5

# ---------------------------------------------------------------------------
# Templates. Rendered with str.format, so literal Julia braces are doubled.
# ---------------------------------------------------------------------------

_DOC_CONCISE = r"""
let obj = {path}
    ms = obj isa Module ? [] : collect(methods(obj))
    if isempty(ms)
        println("Type signature: ", typeof(obj))
    end
    for m in ms
        println("Type signature: ", m.sig)
    end
end
"""

_DOC_FULL = r"""
println(@doc {path})
"""

_DOC_ALL = r"""
println(@doc {path})
println("\n", "-"^{rule}, "\n")
let obj = {path}
    ms = obj isa Module ? [] : collect(methods(obj))
    if !isempty(ms)
        println("Method signatures:")
        for m in ms
            println(" - ", m.sig)
        end
    end
    if obj isa DataType
        println("\nFields:")
        for field in fieldnames(obj)
            println(" - ", field, "::", fieldtype(obj, field))
        end
    end
end
"""

_DOC_UNEXPORTED = r"""
let m = {path}
    for n in sort(filter(n -> !startswith(string(n), "#"), names(m; all=true)))
        isdefined(m, n) || continue
        println("\n", "-"^{rule}, "\n")
        println(Base.Docs.doc(Base.Docs.Binding(m, n)))
    end
end
"""

_LIST_PACKAGE = r"""
let m = {path}
    for n in sort(filter(n -> !startswith(string(n), "#"), names(m; all={all})))
        isdefined(m, n) || continue
        println(typeof(getfield(m, n)), " ", n)
    end
end
"""

_EXPLORE_PROJECT = r"""
using TOML
let project = TOML.parsefile(joinpath({directory}, "Project.toml"))
    version = get(project, "version", nothing)
    println("Project: ", get(project, "name", "(unnamed)"), version === nothing ? "" : " v$version")
    println("\nDependencies:")
    for (dep, uuid) in sort(collect(get(project, "deps", Dict())); by=first)
        println(" - ", dep, " = ", uuid)
    end
    compat = get(project, "compat", Dict())
    if !isempty(compat)
        println("\nCompat:")
        for (dep, spec) in sort(collect(compat); by=first)
            println(" - ", dep, " = ", spec)
        end
    end
end
"""

# find_method_end is a nesting counter over block keywords. It is a heuristic:
# one-line blocks, comments ending in "end" and keywords inside strings can
# throw it off. A definition with no block opener on its first line (short
# form `f(x) = ...`) ends on that line.
_GET_SOURCE = r"""
using InteractiveUtils

function find_method_end(lines, start_line)
    nesting_level = 0
    for i in start_line:length(lines)
        line = strip(lines[i])
        isempty(line) && continue
        if occursin(r"^(function|if|for|while|let|try|begin|module|struct|mutable struct|macro|quote)\b", line)
            nesting_level += 1
        end
        if occursin(r"\bdo\b", line)
            nesting_level += 1
        end
        if endswith(line, "end")
            nesting_level -= 1
        end
        nesting_level <= 0 && return i
    end
    return length(lines)
end

function show_method_info(m)
    println("Type signature: ", m.sig)
    println("-"^{rule})
    try
        file, line = functionloc(m)
        println("Source location: ", file, ":", line)
        println("-"^{rule})
        if isfile(file)
            lines = split(read(file, String), "\n")
            first_line = max(1, line - {context})
            last_line = min(length(lines), find_method_end(lines, line) + {context})
            for i in first_line:last_line
                marker = i == line ? "➜ " : "  "
                println(marker, i, ": ", lines[i])
            end
        else
            println("Could not find source file")
        end
    catch e
        println("Error retrieving source: ", sprint(showerror, e))
    end
    println()
end

let ms = methods({path})
    if isempty(ms)
        println("No methods found for {path}")
    else
        println("Found ", length(ms), " method(s):")
        println()
        for (i, m) in enumerate(ms)
            println("Method ", i, ":")
            show_method_info(m)
        end
    end
end
"""

DIAGNOSTIC_SCRIPT = r"""
using Pkg
println("Julia version: ", VERSION)
println("Active project: ", something(Base.active_project(), "(none)"))
println("DEPOT_PATH: ", join(DEPOT_PATH, ", "))
println("LOAD_PATH: ", join(LOAD_PATH, ", "))
println("Installed packages:")
Pkg.status()
"""


@dataclass(frozen=True)
class Script:
    """A rendered Julia program and the package it imports, if any."""

    text: str
    package: str | None = None


def julia_string_literal(value: str) -> str:
    """Quote ``value`` as a Julia string literal with no interpolation."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


def package_for(operation: Operation, path: str) -> str | None:
    """Return the package a script must import to resolve ``path``.

    For ``list-package`` the path itself names a module, so its first segment
    is a package even when undotted. For symbol lookups only a dotted path
    names a package.
    """
    head, dot, _ = path.partition(".")
    if operation is Operation.EXPLORE_PROJECT:
        return None
    if operation is not Operation.LIST_PACKAGE and not dot:
        return None
    if head in ROOT_MODULES:
        return None
    return head


def build_script(
    operation: Operation | str,
    path: str,
    options: Mapping[str, Any] | None = None,
) -> Script:
    """Render the Julia program answering one tool request.

    Raises:
        JuliaDocError: ``INVALID_INPUT`` for an unknown operation, a path
            that is not a plain dotted Julia name, or a bad option value.
    """
    options = options or {}
    try:
        operation = Operation(operation)
    except ValueError:
        raise JuliaDocError(
            ErrorCode.INVALID_INPUT, f"Unknown operation: {operation!r}"
        ) from None

    if operation is Operation.EXPLORE_PROJECT:
        if not path or any(ord(c) < 32 for c in path):
            raise JuliaDocError(ErrorCode.INVALID_INPUT, f"Invalid project path: {path!r}")
        text = _EXPLORE_PROJECT.format(directory=julia_string_literal(path))
        return Script(text=text.strip() + "\n")

    if not is_symbol_path(path):
        raise JuliaDocError(
            ErrorCode.INVALID_INPUT,
            f"Invalid path: {path!r}",
            suggestion="Use a dotted Julia name such as 'Base.sort' or 'LinearAlgebra.norm'.",
        )

    include_unexported = bool(options.get("include_unexported", False))

    if operation is Operation.GET_DOC:
        try:
            detail_level = DetailLevel(options.get("detail_level", DetailLevel.FULL))
        except ValueError:
            raise JuliaDocError(
                ErrorCode.INVALID_INPUT,
                f"Invalid detail_level: {options.get('detail_level')!r}",
                suggestion="Use one of: concise, full, all.",
            ) from None
        if include_unexported:
            body = _DOC_UNEXPORTED.format(path=path, rule=RULE_WIDTH)
        elif detail_level is DetailLevel.CONCISE:
            body = _DOC_CONCISE.format(path=path)
        elif detail_level is DetailLevel.ALL:
            body = "using InteractiveUtils\n" + _DOC_ALL.format(path=path, rule=RULE_WIDTH)
        else:
            body = _DOC_FULL.format(path=path)
    elif operation is Operation.LIST_PACKAGE:
        body = _LIST_PACKAGE.format(path=path, all=str(include_unexported).lower())
    else:
        body = _GET_SOURCE.format(path=path, rule=RULE_WIDTH, context=CONTEXT_LINES)

    package = package_for(operation, path)
    text = body.strip() + "\n"
    if package is not None:
        text = f"import {package}\n{text}"
    return Script(text=text, package=package)
