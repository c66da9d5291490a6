# devtelemetry/utils/ordering.py
"""Shared "newest first, then truncate" ordering."""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")


def top_n_by_timestamp_desc(
    items: Iterable[T],
    n: Optional[int],
    key: Callable[[T], Any],
) -> List[T]:
    """
    Sort `items` by `key` descending and keep the first `n`.

    The sort is stable: items with equal keys keep their input order.
    `n=None` keeps everything; `n <= 0` keeps nothing.
    """
    if n is not None and n <= 0:
        return []
    ordered = sorted(items, key=key, reverse=True)
    return ordered if n is None else ordered[:n]
