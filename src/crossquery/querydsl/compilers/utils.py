"""Compiler utility functions.

Provides helpers for normalizing compiler input, formatting boosts and
resolving sort directions.
"""

from typing import Any, Optional, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from crossquery.constants import DEFAULT_BOOST, SortType
from crossquery.exceptions import UnsupportedQueryError
from crossquery.schema import AnyQuery, BuiltQuery, NativeQuery, Sort, SortField

_native_adapter: TypeAdapter = TypeAdapter(AnyQuery)


def normalize_query_input(query: Any) -> Tuple[NativeQuery, Optional[Sort], Optional[NativeQuery]]:
    """Normalize a builder, built query, native query or dumped dict.

    Args:
        query: QueryBuilder (with .build() method), BuiltQuery, NativeQuery or dict

    Returns:
        The native query, its sort and its filter (None when the input carries none)

    Raises:
        UnsupportedQueryError: If the input cannot be read as a query
    """
    if hasattr(query, "build") and callable(query.build):
        # QueryBuilder - resolve the tree first
        query = query.build()
    if isinstance(query, BuiltQuery):
        return query.query, query.sort, query.filter
    if isinstance(query, NativeQuery):
        return query, None, None
    if isinstance(query, dict):
        try:
            if "query" in query:
                built = BuiltQuery.model_validate(query)
                return built.query, built.sort, built.filter
            return _native_adapter.validate_python(query), None, None
        except PydanticValidationError as e:
            raise UnsupportedQueryError("Cannot read query dict", reason=str(e)) from e
    raise UnsupportedQueryError("Query must be a QueryBuilder, BuiltQuery, native query or dict", got=type(query).__name__)


def format_boost(boost: float) -> str:
    """Shortest string form of a boost: 2.0 -> "2", 0.5 -> "0.5"."""
    return format(boost, "g")


def has_boost(query: NativeQuery) -> bool:
    return query.boost != DEFAULT_BOOST


def sort_order(sort_field: SortField) -> str:
    """``"asc"`` or ``"desc"``; relevance scores rank highest first unless reversed."""
    descending = sort_field.descending
    if sort_field.sort_type is SortType.SCORE:
        descending = not descending
    return "desc" if descending else "asc"
