"""
Backend Queries
===============

Backend-neutral description of a filtered, ordered collection read.
Both the Firestore client and the in-memory store execute these.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Tuple

OPERATORS = ('==', '!=', '<', '<=', '>', '>=', 'array-contains', 'in')


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    """
    Immutable query builder.

    Usage:
        Query('articles').where('status', '==', 'published').order_by('created_at', 'desc').limit(10)
    """
    collection: str
    filters: Tuple[Filter, ...] = field(default_factory=tuple)
    orders: Tuple[OrderBy, ...] = field(default_factory=tuple)
    limit_count: Optional[int] = None
    offset_count: int = 0

    def where(self, field_path, op, value):
        if op not in OPERATORS:
            raise ValueError(f"Unsupported query operator: {op}")
        return replace(self, filters=self.filters + (Filter(field_path, op, value),))

    def order_by(self, field_path, direction='asc'):
        if direction not in ('asc', 'desc'):
            raise ValueError(f"Unsupported order direction: {direction}")
        return replace(self, orders=self.orders + (OrderBy(field_path, direction == 'desc'),))

    def limit(self, count):
        return replace(self, limit_count=count)

    def offset(self, count):
        return replace(self, offset_count=count)

    def between(self, field_path, start, end, end_inclusive=True):
        """Shorthand for ``start <= field <= end`` (or ``< end``)"""
        return self.where(field_path, '>=', start).where(field_path, '<=' if end_inclusive else '<', end)
