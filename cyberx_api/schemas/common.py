"""
Shared request/response shapes: pagination query, paginated envelope, error and message bodies.
"""
import math
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginationQuery(BaseModel):
    """List query: defaults applied here, not at call sites."""
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: str | None = None
    include_deleted: bool = False

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def pagination_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=100),
    include_deleted: bool = Query(False),
) -> PaginationQuery:
    """Dependency: build PaginationQuery from query string."""
    return PaginationQuery(
        page=page,
        limit=limit,
        search=(search or "").strip() or None,
        include_deleted=include_deleted,
    )


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, query: PaginationQuery, total: int) -> "Pagination":
        total_pages = math.ceil(total / query.limit) if total else 0
        return cls(
            current_page=query.page,
            total_pages=total_pages,
            total_count=total,
            has_next_page=query.page < total_pages,
            has_prev_page=query.page > 1,
        )


class Page(BaseModel, Generic[T]):
    success: bool = True
    data: list[T]
    pagination: Pagination


class ItemsResponse(BaseModel, Generic[T]):
    success: bool = True
    data: list[T]
    count: int


class ItemResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Documented shape of every error body (rendered by the handlers in main.py)."""
    success: bool = False
    error: str
    message: str
    code: str | None = None
