from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class ErrorOut(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class MessageOut(BaseModel):
    message: str


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, items: List[T], *, total: int, page: int, limit: int) -> "Page[T]":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next_page=(page - 1) * limit + limit < total,
            has_prev_page=page > 1,
        )
