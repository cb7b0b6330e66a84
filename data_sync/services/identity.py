"""
Identifier generation for new records.

Ids are a collection prefix followed by the tab clock in ms ("p1769040000000").
Two creates in the same millisecond would collide, so the stamp is bumped
until the id is free in the collection being written.
"""

from typing import Callable, Iterable


def unique_id(prefix: str, taken: Iterable[str], clock: Callable[[], int]) -> str:
    """Return `{prefix}{stamp}` not present in `taken`."""
    taken = set(taken)
    stamp = clock()
    while f"{prefix}{stamp}" in taken:
        stamp += 1
    return f"{prefix}{stamp}"
