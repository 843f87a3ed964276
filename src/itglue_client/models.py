"""
Pydantic models for IT Glue API payloads.

Resources themselves stay plain dicts (flattened JSON:API attributes with
camelCase keys); these models cover the fixed-shape parts of the protocol:
pagination meta, pages, decoded documents and JSON:API error objects.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class LinkRef(BaseModel):
    """Weak (id, type) reference to another resource. Never resolved."""

    id: str
    type: str


class PaginationMeta(BaseModel):
    """Pagination block of a list response."""

    current_page: int = 1
    next_page: int | None = None
    prev_page: int | None = None
    total_pages: int = 1
    total_count: int = 0

    @property
    def has_next(self) -> bool:
        return self.next_page is not None


class Page(BaseModel, Generic[T]):
    """One page of a collection."""

    data: list[T] = Field(default_factory=list)
    meta: PaginationMeta = Field(default_factory=PaginationMeta)
    included: list[dict[str, Any]] | None = None


class DecodedDocument(BaseModel):
    """A JSON:API envelope after decoding."""

    data: dict[str, Any] | list[dict[str, Any]]
    meta: PaginationMeta | None = None
    included: list[dict[str, Any]] | None = None


class JsonApiErrorSource(BaseModel):
    pointer: str | None = None
    parameter: str | None = None


class JsonApiErrorObject(BaseModel):
    """Single entry of a JSON:API ``errors`` array."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    status: str | int | None = None
    code: str | int | None = None
    title: str | None = None
    detail: str | None = None
    source: JsonApiErrorSource | None = None
    meta: dict[str, Any] | None = None

    def format(self) -> str:
        """Human readable ``title: detail: (pointer)`` line."""
        parts = [p for p in (self.title, self.detail) if p]
        if self.source and self.source.pointer:
            parts.append(f"({self.source.pointer})")
        return ": ".join(parts) or "Unknown validation error"


class RateLimitStatus(BaseModel):
    """Read-only snapshot of the rate limiter for monitoring."""

    enabled: bool
    current_count: int
    max_requests: int
    remaining: int
    window_seconds: float
    is_throttling: bool
    is_limited: bool
