"""Query DSL module.

Exports the `QueryBuilder` and `QueryGroup` classes for composing clause
trees, the clause models and the default raw query parser. Compiled
representations are handled by the `compilers` subpackage.
"""

from .builder import BackendType, QueryBuilder
from .clauses import (
    Clause,
    FuzzyClause,
    NumericRangeClause,
    PhraseClause,
    PrefixClause,
    RawClause,
    TermClause,
    TermRangeClause,
    WildcardClause,
)
from .config import BuilderConfig
from .group import QueryGroup
from .parser import LuceneQueryParser, parse_query
from .registry import ClauseRegistry
from .resolver import QueryResolver

__all__ = (
    "BackendType",
    "QueryBuilder",
    "QueryGroup",
    "BuilderConfig",
    "ClauseRegistry",
    "QueryResolver",
    "LuceneQueryParser",
    "parse_query",
    "Clause",
    "TermClause",
    "PhraseClause",
    "FuzzyClause",
    "WildcardClause",
    "PrefixClause",
    "TermRangeClause",
    "NumericRangeClause",
    "RawClause",
)
