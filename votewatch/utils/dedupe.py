"""
Helpers for filtering ingestion batches against already-stored keys.

Responsibility: Drop records whose key is already known (stored earlier
or seen earlier in the same batch), keeping source order.
"""

from __future__ import annotations

from typing import Callable, Collection, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")
K = TypeVar("K")


def dedupe_by_key(
    records: Iterable[T],
    key_fn: Callable[[T], K],
    existing_keys: Optional[Collection[K]] = None,
) -> Tuple[List[T], int]:
    """
    Keep the first record per key, skipping keys in ``existing_keys``.

    Records whose key is ``None`` are dropped and counted as skipped.

    Args:
        records: Records in source order.
        key_fn: Function computing the deduplication key.
        existing_keys: Keys that are already persisted.

    Returns:
        Tuple of (new_records, skipped_count).
    """
    known = set(existing_keys or ())
    fresh: List[T] = []
    skipped = 0

    for record in records:
        key = key_fn(record)
        if key is None or key in known:
            skipped += 1
            continue
        known.add(key)
        fresh.append(record)

    return fresh, skipped
