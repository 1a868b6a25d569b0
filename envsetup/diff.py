"""
Desired-state diff shared by the capability resolver and the scaffold engine.
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

T = TypeVar("T")


def diff(desired: Iterable[T], is_satisfied: Callable[[T], bool]) -> list[T]:
    """
    Return the desired items that are not satisfied, in input order.

    Duplicates are reported once.

    Args:
        desired: Items describing the desired state
        is_satisfied: Predicate telling whether an item already holds

    Returns:
        Unsatisfied items
    """
    seen: set = set()
    missing: list[T] = []
    for item in desired:
        if item in seen:
            continue
        seen.add(item)
        if not is_satisfied(item):
            missing.append(item)
    return missing
