"""
Schemas shared by all list endpoints.
"""
import math
from typing import Literal

from pydantic import BaseModel

SortOrder = Literal["asc", "desc"]


class PaginationMeta(BaseModel):
    """Pagination block returned next to ``items``."""
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


class MessageResponse(BaseModel):
    """Simple acknowledgement."""
    success: bool = True
    message: str | None = None
