"""Type aliases for crossquery package.

This module provides reusable type definitions to ensure consistency
across the codebase and improve code readability.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Sequence, Union

from .constants import Occur
from .schema import BuiltQuery, NativeQuery

if TYPE_CHECKING:
    from .querydsl.builder import QueryBuilder
    from .querydsl.clauses import Clause
    from .querydsl.group import QueryGroup

# A child of a query group
Entry = Union["Clause", "QueryGroup"]

# Setup callables passed to where()/setup()/and_()/or_()/not_()
QueryAction = Callable[["QueryGroup"], Any]

# Occurrence as accepted by builder calls ("must", "should", "must_not" or Occur)
OccurLike = Union[Occur, str]

Numeric = Union[int, float]
FieldValues = Sequence[str]

# Anything the compilers and the engine accept as a query
QueryInput = Union["QueryBuilder", BuiltQuery, NativeQuery, Dict[str, Any]]
