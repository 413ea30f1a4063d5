from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# Julia identifier: a letter or underscore, then word characters or "!"
_SEGMENT = r"[^\W\d][\w!]*"
_SYMBOL_PATH_RE = re.compile(rf"{_SEGMENT}(?:\.{_SEGMENT})*")


def is_symbol_path(v: str) -> bool:
    """True if ``v`` is a plain dotted Julia name safe to splice into a script."""
    return _SYMBOL_PATH_RE.fullmatch(v) is not None


class Operation(StrEnum):
    GET_DOC = "get-doc"
    LIST_PACKAGE = "list-package"
    EXPLORE_PROJECT = "explore-project"
    GET_SOURCE = "get-source"


class DetailLevel(StrEnum):
    CONCISE = "concise"
    FULL = "full"
    ALL = "all"


MAX_PATH_LENGTH = 500


def _check_text(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("path must not be empty")
    if len(v) > MAX_PATH_LENGTH:
        raise ValueError(f"path must not exceed {MAX_PATH_LENGTH} characters")
    try:
        v.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("path must be valid UTF-8 text") from None
    return v


def _check_symbol_path(v: str) -> str:
    v = _check_text(v)
    if not is_symbol_path(v):
        raise ValueError(
            f"Invalid path: {v!r}. Expected a dotted Julia name such as 'Base.sort'"
        )
    return v


class GetDocInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    detail_level: DetailLevel = DetailLevel.FULL
    include_unexported: bool = False

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return _check_symbol_path(v)


class ListPackageInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    include_unexported: bool = False

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return _check_symbol_path(v)


class ExploreProjectInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str  # Project directory containing Project.toml

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        v = _check_text(v)
        if any(ord(c) < 32 for c in v):
            raise ValueError("path must not contain control characters")
        return v


class GetSourceInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return _check_symbol_path(v)


class ToolRequest(BaseModel):
    """A validated tool call, ready for the script builder."""

    operation: Operation
    path: str
    options: dict[str, Any] = {}


class ToolResponse(BaseModel):
    text: str  # Tool output or a human-readable error message
    cached: bool = False
    is_error: bool = False
