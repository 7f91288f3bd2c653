"""
This __init__.py file makes the crossquery directory a Python package
and exposes the main `QueryBuilder`, `SearchEngine` and schema classes for
easy access.
"""

from .abc import Analyzer, QueryParser, SearchBackend
from .constants import NumericType, Occur, SortType
from .engine import SearchEngine
from .querydsl import QueryBuilder, QueryGroup
from .schema import BooleanQuery, BuiltQuery, SearchResult, Sort, SortField

__version__ = "0.1.0"

__all__ = [
    "QueryBuilder",
    "QueryGroup",
    "SearchEngine",
    "Analyzer",
    "QueryParser",
    "SearchBackend",
    "Occur",
    "SortType",
    "NumericType",
    "BooleanQuery",
    "BuiltQuery",
    "Sort",
    "SortField",
    "SearchResult",
]
