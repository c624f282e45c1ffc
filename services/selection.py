"""
Pure selection transitions for capped multi-select lists.
"""

from typing import Iterable, List, Mapping, Sequence, Tuple

from common.exceptions import SelectionLimitExceededException


def toggle(item: str, selection: Sequence[str], limit: int) -> Tuple[str, ...]:
    """
    Remove `item` if selected, otherwise add it at the end.

    Raises SelectionLimitExceededException when adding would exceed `limit`;
    the caller's selection is left as it was.
    """
    current = tuple(selection)
    if item in current:
        return tuple(x for x in current if x != item)
    if len(current) >= limit:
        raise SelectionLimitExceededException(item=item, limit=limit)
    return current + (item,)


def sorted_catalog(categories: Iterable[Mapping[str, Iterable[str]]]) -> List[str]:
    """Flatten `[{category: [labels]}]` into one sorted list without duplicates."""
    labels = set()
    for category in categories:
        for items in category.values():
            labels.update(items)
    return sorted(labels)
