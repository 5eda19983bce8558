import math
from dataclasses import dataclass, replace
from typing import List, Optional, Union

ALLOWED_PAGE_SIZES = (10, 25, 50, 100)
DEFAULT_PAGE_SIZE = 25

ELLIPSIS = "..."


def validate_page_size(size: int) -> int:
    if size not in ALLOWED_PAGE_SIZES:
        allowed = ", ".join(str(s) for s in ALLOWED_PAGE_SIZES)
        raise ValueError(f"Page size must be one of {allowed} (got {size})")
    return size


def skip_for(page: int, page_size: int) -> int:
    return (max(1, page) - 1) * page_size


@dataclass(frozen=True)
class PageState:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    @property
    def skip(self) -> int:
        return skip_for(self.page, self.page_size)

    @property
    def limit(self) -> int:
        return self.page_size

    def clamp_page(self, page: int) -> int:
        return min(max(1, page), self.total_pages)

    def with_page(self, page: int) -> "PageState":
        return replace(self, page=self.clamp_page(page))

    def with_page_size(self, page_size: int) -> "PageState":
        return replace(self, page=1, page_size=validate_page_size(page_size))

    def with_total(self, total: Optional[int]) -> "PageState":
        return replace(self, total=max(0, total or 0))

    def first_rank(self) -> int:
        """1-based rank of the first document on this page."""
        return self.skip + 1


def page_window(current: int, total_pages: int, max_buttons: int = 5) -> List[Union[int, str]]:
    """Page numbers for a pagination bar, with first/last pages and ellipses.

    >>> page_window(6, 10)
    [1, '...', 4, 5, 6, 7, 8, '...', 10]
    """
    if total_pages < 1:
        return []
    start = max(1, current - 2)
    end = min(total_pages, start + max_buttons - 1)
    if end == total_pages:
        start = max(1, end - max_buttons + 1)

    items: List[Union[int, str]] = []
    if start > 1:
        items.append(1)
        if start > 2:
            items.append(ELLIPSIS)
    items.extend(range(start, end + 1))
    if end < total_pages:
        if end < total_pages - 1:
            items.append(ELLIPSIS)
        items.append(total_pages)
    return items
