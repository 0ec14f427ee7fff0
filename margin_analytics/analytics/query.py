"""Search and sort over replayed account positions."""
from __future__ import annotations

import functools
from dataclasses import fields
from typing import Any, Iterable

from ..models import AccountPosition

SORT_FIELDS = frozenset(f.name for f in fields(AccountPosition)) - {"events"}


def matches(position: AccountPosition, search_term: str) -> bool:
    """Case-insensitive substring match on owner, account id or any pool used."""
    needle = search_term.lower()
    return (
        needle in position.owner.lower()
        or needle in position.account_id.lower()
        or any(needle in pool.lower() for pool in position.pools_used)
    )


def _compare(a: Any, b: Any) -> float:
    if isinstance(a, (tuple, list, set, frozenset, dict)) and isinstance(
        b, (tuple, list, set, frozenset, dict)
    ):
        return len(a) - len(b)
    if (
        isinstance(a, (int, float))
        and isinstance(b, (int, float))
        and not isinstance(a, bool)
        and not isinstance(b, bool)
    ):
        return a - b
    sa, sb = str(a), str(b)
    return (sa > sb) - (sa < sb)


def query(
    positions: Iterable[AccountPosition],
    search_term: str = "",
    sort_field: str = "total_outstanding_debt",
    sort_direction: str = "desc",
) -> list[AccountPosition]:
    """Filter by ``search_term`` then stable-sort by ``sort_field``.

    Raises:
        ValueError: unknown sort field or direction.
    """
    if sort_field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field '{sort_field}'")
    if sort_direction not in ("asc", "desc"):
        raise ValueError(f"Sort direction must be 'asc' or 'desc', got '{sort_direction}'")

    result = list(positions)
    if search_term:
        result = [p for p in result if matches(p, search_term)]

    sign = -1 if sort_direction == "desc" else 1

    def cmp(a: AccountPosition, b: AccountPosition) -> int:
        diff = _compare(getattr(a, sort_field), getattr(b, sort_field)) * sign
        return (diff > 0) - (diff < 0)

    # list.sort is stable, so equal keys keep their input order in both directions
    result.sort(key=functools.cmp_to_key(cmp))
    return result
