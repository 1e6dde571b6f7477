"""Pagination parameters and the page-envelope math for user listings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.core.errors import ValidationError

if TYPE_CHECKING:
    from app.core.config import Settings

# OFFSET is a signed 64-bit value in both PostgreSQL and SQLite.
MAX_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class PaginationQuery:
    """Validated 1-based page request."""

    page: int
    size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size

    @classmethod
    def from_params(
        cls, page: int | None, size: int | None, settings: Settings
    ) -> PaginationQuery:
        """
        Apply defaults and bounds. Raises ValidationError for page < 1,
        size < 1, size above PAGE_SIZE_MAX, or a page whose offset does not
        fit in a 64-bit integer.
        """
        page = 1 if page is None else page
        size = settings.PAGE_SIZE_DEFAULT if size is None else size
        if page < 1:
            raise ValidationError("page must be >= 1")
        if size < 1:
            raise ValidationError("size must be >= 1")
        if size > settings.PAGE_SIZE_MAX:
            raise ValidationError(f"size must be <= {settings.PAGE_SIZE_MAX}")
        if (page - 1) * size > MAX_OFFSET:
            raise ValidationError("page is out of range")
        return cls(page=page, size=size)


def total_pages(total_count: int, size: int) -> int:
    """ceil(total_count / size); zero rows means zero pages."""
    return math.ceil(total_count / size)


def has_more(page: int, pages: int) -> bool:
    return page < pages
