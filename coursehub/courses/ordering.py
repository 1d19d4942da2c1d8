"""Dense, zero-based ordering of sibling modules and lessons.

Each helper takes the current siblings, applies one change and renumbers the
result to ``0..n-1``. Only siblings whose ``sort_order`` actually changed are
returned, so callers persist the minimum.
"""

from collections.abc import Sequence
from typing import Protocol, TypeVar
from uuid import UUID


class Ordered(Protocol):
    id: UUID
    sort_order: int


T = TypeVar("T", bound=Ordered)


def sorted_siblings(items: Sequence[T]) -> list[T]:
    return sorted(items, key=lambda item: item.sort_order)


def clamp_position(position: int | None, count: int) -> int:
    """Clamp a requested position into ``[0, count]``; None appends.

    Examples:
        >>> clamp_position(None, 3)
        3
        >>> clamp_position(10, 3)
        3
        >>> clamp_position(-2, 3)
        0
    """
    if position is None:
        return count
    return max(0, min(position, count))


def _renumber(items: list[T]) -> list[T]:
    changed = []
    for index, item in enumerate(items):
        if item.sort_order != index:
            item.sort_order = index
            changed.append(item)
    return changed


def insert(siblings: Sequence[T], item: T, position: int | None = None) -> list[T]:
    """Place ``item`` at ``position`` and shift later siblings up.

    Returns:
        Changed siblings; ``item`` itself always gets its final order but is
        only included if it was already persisted with another value.
    """
    ordered = [s for s in sorted_siblings(siblings) if s.id != item.id]
    ordered.insert(clamp_position(position, len(ordered)), item)
    changed = _renumber(ordered)
    return [s for s in changed if s is not item]


def move(siblings: Sequence[T], item_id: UUID, position: int) -> list[T]:
    """Move one sibling to ``position``, shifting the ones in between."""
    ordered = sorted_siblings(siblings)
    target = next((s for s in ordered if s.id == item_id), None)
    if target is None:
        return []
    ordered.remove(target)
    ordered.insert(clamp_position(position, len(ordered)), target)
    return _renumber(ordered)


def remove(siblings: Sequence[T], item_id: UUID) -> list[T]:
    """Drop one sibling and compact the orders of the rest."""
    remaining = [s for s in sorted_siblings(siblings) if s.id != item_id]
    return _renumber(remaining)
