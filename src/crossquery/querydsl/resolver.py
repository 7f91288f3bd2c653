"""Flatten a query group tree into one composite `BooleanQuery`.

The resolver walks a group post-order: every clause becomes one native
query with its resolved occurrence, case policy and boost; every nested
group becomes a `BooleanQuery` clause in its parent. The tree is only read,
so resolving the same unchanged tree twice yields equal results.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Sequence

from crossquery.exceptions import InvalidArgumentError, UnsupportedQueryError
from crossquery.logger import Logger
from crossquery.schema import (
    BooleanClause,
    BooleanQuery,
    FuzzyQuery,
    NativeQuery,
    NumericRangeQuery,
    PhraseQuery,
    PrefixQuery,
    Sort,
    SortField,
    TermQuery,
    TermRangeQuery,
    WildcardQuery,
)

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
from .group import QueryGroup

__all__ = ("QueryResolver", "resolver")

logger = Logger("querydsl.resolver")


class QueryResolver:
    """Post-order flattening of a `QueryGroup` into native queries."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Callable[[Clause, QueryGroup], NativeQuery]] = {
            "term": self._term,
            "phrase": self._phrase,
            "fuzzy": self._fuzzy,
            "wildcard": self._wildcard,
            "prefix": self._prefix,
            "term_range": self._term_range,
            "numeric_range": self._numeric_range,
            "raw": self._raw,
        }

    def resolve(self, group: QueryGroup) -> BooleanQuery:
        """Resolve ``group`` and all of its descendants.

        Raises:
            QueryParseError: When a raw clause awaiting deferred parsing has invalid text
            InvalidArgumentError: When a phrase clause still has no terms
        """
        clauses = []
        for entry in group.children:
            if isinstance(entry, QueryGroup):
                query: NativeQuery = self.resolve(entry)
            else:
                query = self.resolve_clause(entry, group)
            clauses.append(BooleanClause(query=query, occur=group.resolve_occur(entry)))
        return BooleanQuery(clauses=tuple(clauses))

    def resolve_clause(self, clause: Clause, group: QueryGroup) -> NativeQuery:
        """Build the native query of one clause of ``group``, boost applied."""
        handler = self._handlers.get(getattr(clause, "kind", ""))
        if handler is None:
            raise UnsupportedQueryError("Unknown clause kind", clause=type(clause).__name__)
        return handler(clause, group).with_boost(clause.boost)

    @staticmethod
    def resolve_sort(fields: Sequence[SortField]) -> Optional[Sort]:
        """Composite sort in declared order; None when no sort fields were declared."""
        if not fields:
            return None
        return Sort(fields=tuple(fields))

    # -------------------
    # Per-kind construction
    # -------------------
    @staticmethod
    def _term(clause: TermClause, group: QueryGroup) -> NativeQuery:
        return TermQuery(field=clause.field, value=group.cased(clause.value, clause.case_sensitive))

    @staticmethod
    def _phrase(clause: PhraseClause, group: QueryGroup) -> NativeQuery:
        if not clause.terms:
            raise InvalidArgumentError("Phrase has no terms", field=clause.field, key=clause.key)
        terms = []
        for term in clause.terms:
            override = term.case_sensitive if term.case_sensitive is not None else clause.case_sensitive
            terms.append(group.cased(term.value, override))
        return PhraseQuery(field=clause.field, terms=tuple(terms), slop=clause.slop)

    @staticmethod
    def _fuzzy(clause: FuzzyClause, group: QueryGroup) -> NativeQuery:
        return FuzzyQuery(
            field=clause.field,
            value=group.cased(clause.value, clause.case_sensitive),
            max_edits=clause.max_edits,
            prefix_length=clause.prefix_length,
        )

    @staticmethod
    def _wildcard(clause: WildcardClause, group: QueryGroup) -> NativeQuery:
        return WildcardQuery(field=clause.field, pattern=group.cased(clause.pattern, clause.case_sensitive))

    @staticmethod
    def _prefix(clause: PrefixClause, group: QueryGroup) -> NativeQuery:
        return PrefixQuery(field=clause.field, prefix=group.cased(clause.prefix, clause.case_sensitive))

    @staticmethod
    def _term_range(clause: TermRangeClause, group: QueryGroup) -> NativeQuery:
        def bound(value: Optional[str]) -> Optional[str]:
            return None if value is None else group.cased(value, clause.case_sensitive)

        return TermRangeQuery(
            field=clause.field,
            lower=bound(clause.lower),
            upper=bound(clause.upper),
            include_lower=clause.include_lower,
            include_upper=clause.include_upper,
        )

    @staticmethod
    def _numeric_range(clause: NumericRangeClause, group: QueryGroup) -> NativeQuery:
        return NumericRangeQuery(
            field=clause.field,
            min_value=clause.min_value,
            max_value=clause.max_value,
            include_min=clause.include_min,
            include_max=clause.include_max,
            numeric_type=clause.numeric_type,
        )

    @staticmethod
    def _raw(clause: RawClause, group: QueryGroup) -> NativeQuery:
        if clause.parsed is not None:
            return clause.parsed
        config = group.config
        logger.debug("Parsing deferred raw clause on field %s", clause.field)
        return config.parser.parse(clause.field, clause.text, clause.analyzer or config.analyzer)


resolver = QueryResolver()
