from __future__ import annotations

from juliadoc.models.cache import CacheEntry
from juliadoc.models.tools import (
    DetailLevel,
    ExploreProjectInput,
    GetDocInput,
    GetSourceInput,
    ListPackageInput,
    Operation,
    ToolRequest,
    ToolResponse,
    is_symbol_path,
)

__all__ = [
    # cache
    "CacheEntry",
    # tools
    "Operation",
    "DetailLevel",
    "GetDocInput",
    "ListPackageInput",
    "ExploreProjectInput",
    "GetSourceInput",
    "ToolRequest",
    "ToolResponse",
    "is_symbol_path",
]
