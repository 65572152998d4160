from typing import Sequence, TypeVar

T = TypeVar("T")

PAGE_SIZE = 10


def page_count(offset: int, total: int, page_size: int = PAGE_SIZE) -> int:
    """Number of items in the window starting at ``offset``.

    An offset at or past the end yields an empty window instead of a
    negative count.
    """
    if offset >= total:
        return 0
    return page_size if offset + page_size <= total else total - offset


def paginate(items: Sequence[T], offset: int, page_size: int = PAGE_SIZE) -> tuple[list[T], int]:
    """Return (items[offset:offset+count], total)."""
    if offset < 0:
        raise ValueError(f"offset must be non-negative, got {offset}")
    total = len(items)
    count = page_count(offset, total, page_size)
    return list(items[offset:offset + count]), total
