"""Helpers for listing requests: filter keys, filter lookups and sort orders."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence

OPERATORS = frozenset(
    {
        "exact",
        "iexact",
        "contains",
        "icontains",
        "in",
        "gt",
        "gte",
        "lt",
        "lte",
        "startswith",
        "istartswith",
        "endswith",
        "iendswith",
        "isnull",
    }
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class QueryError(ValueError):
    """Raised when a listing request is malformed."""


@dataclass(frozen=True)
class Lookup:
    """One filter condition: a field path, a comparison operator and a value."""

    path: tuple[str, ...]
    operator: str
    value: Any


def filter_key(key: str) -> str:
    """Normalise a filter key: dots become ``__`` and names become snake case."""
    parts = key.replace(".", "__").split("__")
    return "__".join(_CAMEL_BOUNDARY.sub("_", part).lower() for part in parts)


def parse_filter(key: str, value: Any) -> Lookup:
    """Turn a ``field__operator`` key and its value into a :class:`Lookup`."""
    parts = filter_key(key).split("__")
    operator = "exact"
    if len(parts) > 1 and parts[-1] in OPERATORS:
        operator = parts.pop()
    if not all(parts):
        raise QueryError(f"Error: invalid filter key {key!r}")
    return Lookup(tuple(parts), operator, value)


def _directed(field: str, direction: str) -> str:
    if direction == "desc":
        return "-" + field
    if direction == "asc":
        return field
    raise QueryError("Error: Invalid order. Must be either [asc|desc]")


def sort_fields(sortby: Sequence[str] | None, order: Sequence[str] | None) -> list[str]:
    """Combine sort fields with their directions; descending fields get a ``-`` prefix."""
    sortby = list(sortby or [])
    order = list(order or [])
    if not sortby:
        if order:
            raise QueryError("Error: unused 'order' fields")
        return []
    if len(sortby) == len(order):
        return [_directed(field, direction) for field, direction in zip(sortby, order)]
    if len(order) == 1:
        return [_directed(field, order[0]) for field in sortby]
    raise QueryError("Error: 'sortby', 'order' sizes mismatch or 'order' size is not 1")