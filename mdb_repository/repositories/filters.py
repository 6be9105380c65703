"""
Filter, ordering and page types plus their translation into MongoDB queries.

A filter is a list of ``(field, condition, value)`` triples ANDed together and
a list of ``(field, direction)`` ordering clauses applied in the listed order.
Operator/value compatibility is not checked here; the store decides.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from pymongo import ASCENDING, DESCENDING

from ..constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..exceptions import InvalidFilterError

T = TypeVar("T")

Condition = Literal[
    "==",
    "!=",
    "<",
    "<=",
    ">",
    ">=",
    "in",
    "not-in",
    "like",
    "array-contains",
    "array-contains-any",
]
Direction = Literal["asc", "desc"]

Where = list[tuple[str, Condition, Any]]
OrderBy = list[tuple[str, Direction]]

_OPERATORS: dict[str, str] = {
    "==": "$eq",
    "!=": "$ne",
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
    "in": "$in",
    "not-in": "$nin",
    "like": "$regex",
    "array-contains-any": "$in",
}

_DIRECTIONS: dict[str, int] = {
    "asc": ASCENDING,
    "desc": DESCENDING,
}


@dataclass
class Filter:
    """Where and order-by clauses shared by every read operation."""

    where: Where | None = None
    order_by: OrderBy | None = None


@dataclass
class FilterMany(Filter):
    """Filter with a requested page size (at most 100)."""

    take: int | None = None


@dataclass
class FilterPage(FilterMany):
    """Filter for paginate(); ``page_token`` resumes a previous scan."""

    page_token: str | None = None


@dataclass
class Page(Generic[T]):
    """
    One page of results.

    A ``None`` token means there is no page in that direction.
    """

    data: list[T] = field(default_factory=list)
    next_page_token: str | None = None
    prev_page_token: str | None = None


def clamp_take(
    take: int | None,
    default: int = DEFAULT_PAGE_SIZE,
    maximum: int = MAX_PAGE_SIZE,
) -> int:
    """Clamp a requested page size into ``[1, maximum]``; falsy means ``default``."""
    if not take:
        return default
    return max(1, min(take, maximum))


def build_clause(field_name: str, condition: str, value: Any) -> dict[str, Any]:
    """Translate a single where triple into a MongoDB filter document."""
    if condition == "array-contains":
        # Equality on an array field matches any element
        return {field_name: value}

    operator = _OPERATORS.get(condition)
    if operator is None:
        raise InvalidFilterError(
            f"Unsupported filter condition '{condition}'",
            field=field_name,
            condition=condition,
        )
    return {field_name: {operator: value}}


def combine(clauses: list[dict[str, Any]]) -> dict[str, Any]:
    """AND filter documents together."""
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def build_query(where: Where | None, *extra: dict[str, Any]) -> dict[str, Any]:
    """
    Build a MongoDB filter document from where triples.

    Args:
        where: Where triples, ANDed together
        *extra: Additional filter documents ANDed in front of the where clauses

    Returns:
        MongoDB filter document (``{}`` matches everything)

    Raises:
        InvalidFilterError: If a condition is not recognised
    """
    clauses = list(extra)
    for field_name, condition, value in where or []:
        clauses.append(build_clause(field_name, condition, value))
    return combine(clauses)


def build_sort(order_by: OrderBy | None) -> list[tuple[str, int]]:
    """Translate order-by pairs into a PyMongo sort specification."""
    sort = []
    for field_name, direction in order_by or []:
        if direction not in _DIRECTIONS:
            raise InvalidFilterError(
                f"Unsupported sort direction '{direction}'",
                field=field_name,
                condition=direction,
            )
        sort.append((field_name, _DIRECTIONS[direction]))
    return sort


def invert_sort(sort: list[tuple[str, int]]) -> list[tuple[str, int]]:
    """Flip every key's direction, used to read a page backwards."""
    return [(key, -direction) for key, direction in sort]
