from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def bracket_size(competitor_count: int) -> int:
    """Return the smallest power of two that fits the competitors."""
    if competitor_count < 1:
        raise ValueError("Competitor count must be a positive integer.")
    size = 1
    while size < competitor_count:
        size *= 2
    return size


def total_rounds(size: int) -> int:
    rounds = 0
    while (1 << rounds) < size:
        rounds += 1
    return rounds


def seeding_indices(size: int) -> list[int]:
    """Return preferred slot indices for seeds: top, bottom, middles, quarters."""
    priority = [0]
    if size > 1:
        priority.append(size - 1)
    if size >= 4:
        half = size // 2
        priority.extend([half, half - 1])
    if size >= 8:
        half = size // 2
        quarter = size // 4
        priority.extend(
            [
                quarter,
                size - 1 - quarter,
                half + quarter,
                half - 1 - quarter,
            ]
        )
    return priority


def opponent_index(slot: int) -> int:
    return slot + 1 if slot % 2 == 0 else slot - 1


def first_open_slot(slots: Sequence[T | None], priority: Sequence[int]) -> int | None:
    """Return the first empty priority slot, else the first empty slot."""
    for index in priority:
        if slots[index] is None:
            return index
    for index, occupant in enumerate(slots):
        if occupant is None:
            return index
    return None
