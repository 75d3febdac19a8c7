"""Offset/limit pagination shared by list endpoints"""
from dataclasses import dataclass

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_PAGE = 10000
MAX_LIMIT = 100


@dataclass(frozen=True)
class Page:
    """1-based page number and page size"""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
