"""Page arithmetic for browser compatibility update listings."""

from __future__ import annotations

DEFAULT_PER_PAGE = 5


def count_pages(total: int, per_page: int = DEFAULT_PER_PAGE) -> int:
    """Number of pages needed to show ``total`` rows, ``per_page`` at a time."""
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    return -(-total // per_page)


def page_offset(page: int | None, per_page: int = DEFAULT_PER_PAGE) -> int:
    """Row offset of a 1-based page; missing or non-positive pages mean the first."""
    if page is None or page <= 0:
        page = 1
    return (page - 1) * per_page