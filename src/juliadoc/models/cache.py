from __future__ import annotations

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """A cached tool result."""

    value: str  # Rendered tool output
    created_at: float  # Reading of the cache clock when stored
