"""Page requests and sort parsing.

Sort parameters follow the ``property[,property...][,asc|desc]`` convention
used by the HTTP layer, e.g. ``match_date,desc`` or ``team_a,team_b``.
Pages are 0-based.

Typical usage::

    req = PageRequest.of(page=0, size=20, sort=["match_date,desc"],
                         allowed=MATCH_SORT_PROPERTIES)
    req.offset          # 0
    req.orders          # (SortOrder("match_date", True), SortOrder("id"))
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from matchodds.core.errors import ValidationError

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

#: Property that is always appended as the final tiebreaker.
TIEBREAKER = "id"

_DIRECTIONS = {"asc": False, "desc": True}


@dataclass(frozen=True)
class SortOrder:
    prop: str
    descending: bool = False


@dataclass(frozen=True)
class PageRequest:
    """A validated page window.

    ``orders`` always ends with the ``id`` tiebreaker so that rows with equal
    sort keys keep a stable position across page boundaries.
    """

    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    orders: Tuple[SortOrder, ...] = (SortOrder(TIEBREAKER),)

    @property
    def offset(self) -> int:
        return self.page * self.size

    @classmethod
    def of(
        cls,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        sort: Optional[Sequence[str]] = None,
        *,
        allowed: Iterable[str] = (TIEBREAKER,),
        max_size: int = MAX_PAGE_SIZE,
    ) -> "PageRequest":
        if page < 0:
            raise ValidationError("Page index must not be negative")
        if size < 1 or size > max_size:
            raise ValidationError(f"Page size must be between 1 and {max_size}")
        return cls(page=page, size=size, orders=parse_sort(sort or [], allowed))


@dataclass
class PageResult(Generic[T]):
    """One page of items plus the total row count it was cut from."""

    items: List[T]
    total: int
    request: PageRequest = field(default_factory=PageRequest)

    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.request.size)


def parse_sort(params: Sequence[str], allowed: Iterable[str]) -> Tuple[SortOrder, ...]:
    """
    Parse sort parameters into an ordered tuple of :class:`SortOrder`.

    Each parameter is a comma-separated list of properties, optionally ending
    in a direction that applies to all of them.  Unknown properties raise
    :class:`ValidationError`; repeated properties keep their first position.
    """
    allowed = set(allowed)
    orders: List[SortOrder] = []
    seen = set()

    for param in params:
        tokens = [t.strip() for t in param.split(",") if t.strip()]
        if not tokens:
            continue

        descending = False
        if tokens[-1].lower() in _DIRECTIONS:
            descending = _DIRECTIONS[tokens.pop().lower()]

        for prop in tokens:
            if prop not in allowed:
                raise ValidationError(f"Invalid sort property: {prop}")
            if prop in seen:
                continue
            seen.add(prop)
            orders.append(SortOrder(prop, descending))

    if TIEBREAKER not in seen:
        orders.append(SortOrder(TIEBREAKER))
    return tuple(orders)


def total_pages(total: int, size: int) -> int:
    if size <= 0:
        return 0
    return math.ceil(total / size)
