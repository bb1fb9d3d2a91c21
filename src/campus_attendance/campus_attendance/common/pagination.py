from __future__ import annotations

from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")


def fetch_all_pages(fetch_page: Callable[[int, int], Sequence[T]], *, page_size: int) -> List[T]:
    """Read every row behind a store that caps how many rows one query returns.

    ``fetch_page(offset, limit)`` is called with consecutive windows until a
    page comes back empty or shorter than ``page_size``. Pages are separate
    reads, so a write landing between two of them may be missed or seen twice.
    """

    if page_size <= 0:
        raise ValueError("page_size must be positive")

    rows: List[T] = []
    offset = 0
    while True:
        page = list(fetch_page(offset, page_size))
        if not page:
            break
        rows.extend(page)
        if len(page) < page_size:
            break
        offset += page_size
    return rows
