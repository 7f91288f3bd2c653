"""Base compiler interface.

Defines the abstract contract all backend-specific query compilers must follow.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from crossquery.schema import Sort
from crossquery.types import QueryInput

__all__ = ("BaseCompiler",)


class BaseCompiler(ABC):
    """Abstract base class for query compilers.

    Subclasses implement `to_where`, `to_expr` and `to_sort` to produce
    backend-specific query structures from a built query.
    """

    @abstractmethod
    def to_where(self, query: QueryInput) -> Any:
        """
        Convert a builder, built query or native query into the backend-native form.
        - string for Lucene (classic query syntax)
        - dict for Elasticsearch (request body)
        """
        raise NotImplementedError

    @abstractmethod
    def to_expr(self, query: QueryInput) -> str:
        """Convert a query into a string expression for logging and debugging."""
        raise NotImplementedError

    @abstractmethod
    def to_sort(self, sort: Optional[Sort]) -> Any:
        """Convert a composite sort into the backend-native sort form."""
        raise NotImplementedError
