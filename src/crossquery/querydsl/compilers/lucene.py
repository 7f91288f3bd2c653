"""Lucene classic query syntax compiler.

Transforms built queries into query strings accepted by Lucene's classic
``QueryParser`` (and by Solr/Elasticsearch ``query_string``).

Rendering:
- Occurrence: ``+`` for must, ``-`` for must-not, no prefix for should
- Nested boolean queries in parentheses
- Boost as ``^N`` when different from 1
- Special characters backslash-escaped
- A filter as an extra required clause that does not score:
  ``+(query) +(filter)^0``

Limitations:
- Empty nested boolean queries have no syntax and are omitted, and so is an
  empty filter
- Numeric ranges render as plain term ranges; the engine decides typing
- Classic Lucene matches nothing for a purely negative group; Solr and
  Elasticsearch ``query_string`` match everything not excluded
"""

from typing import List, Optional, Union

from crossquery.constants import Occur, SortType
from crossquery.exceptions import UnsupportedQueryError
from crossquery.schema import (
    BooleanQuery,
    FuzzyQuery,
    MatchAllQuery,
    NativeQuery,
    NumericRangeQuery,
    PhraseQuery,
    PrefixQuery,
    Sort,
    TermQuery,
    TermRangeQuery,
    WildcardQuery,
)
from crossquery.types import QueryInput
from crossquery.utils import escape_query_text, escape_wildcard_pattern

from .base import BaseCompiler
from .utils import format_boost, has_boost, normalize_query_input, sort_order

__all__ = (
    "LuceneQueryCompiler",
    "lucene_compiler",
)


class LuceneQueryCompiler(BaseCompiler):
    """Compile native queries into Lucene classic query strings."""

    _OCCUR_PREFIX = {
        Occur.MUST: "+",
        Occur.SHOULD: "",
        Occur.MUST_NOT: "-",
    }

    def to_where(self, query: QueryInput) -> str:
        """Convert a query to a Lucene query string.

        Args:
            query: QueryBuilder, BuiltQuery, native query or dumped dict

        Returns:
            Query string (sort is available separately via `to_sort`)
        """
        node, _, filter_node = normalize_query_input(query)
        expr = self._node_to_expr(node, top_level=True)
        if filter_node is None or not expr:
            return expr
        filter_expr = self._node_to_expr(filter_node, top_level=True)
        if not filter_expr:
            return expr
        return f"+({expr}) +({filter_expr})^0"

    def to_expr(self, query: QueryInput) -> str:
        """Convert a query to a Lucene query string (same as to_where)."""
        return self.to_where(query)

    def to_sort(self, sort: Optional[Sort]) -> Optional[str]:
        """Render a sort as a Solr-style ``field asc|desc`` list."""
        if sort is None:
            return None
        parts = []
        for sort_field in sort.fields:
            if sort_field.sort_type is SortType.SCORE:
                name = "score"
            elif sort_field.sort_type is SortType.DOC:
                name = "_docid_"
            else:
                name = sort_field.field
            parts.append(f"{name} {sort_order(sort_field)}")
        return ",".join(parts)

    # -------------------
    # Rendering
    # -------------------
    def _node_to_expr(self, node: NativeQuery, top_level: bool = False) -> str:
        """Recursively render a native query."""
        if isinstance(node, BooleanQuery):
            expr = self._boolean_to_expr(node)
            if not expr:
                return expr
            if not top_level or has_boost(node):
                expr = f"({expr})"
        elif isinstance(node, TermQuery):
            expr = f"{self._field(node.field)}:{escape_query_text(node.value)}"
        elif isinstance(node, PhraseQuery):
            text = " ".join(node.terms).replace("\\", "\\\\").replace('"', '\\"')
            expr = f'{self._field(node.field)}:"{text}"'
            if node.slop:
                expr += f"~{node.slop}"
        elif isinstance(node, FuzzyQuery):
            expr = f"{self._field(node.field)}:{escape_query_text(node.value)}~{node.max_edits}"
        elif isinstance(node, WildcardQuery):
            expr = f"{self._field(node.field)}:{escape_wildcard_pattern(node.pattern)}"
        elif isinstance(node, PrefixQuery):
            expr = f"{self._field(node.field)}:{escape_query_text(node.prefix)}*"
        elif isinstance(node, TermRangeQuery):
            expr = self._range_to_expr(node.field, node.lower, node.upper, node.include_lower, node.include_upper)
        elif isinstance(node, NumericRangeQuery):
            expr = self._range_to_expr(node.field, node.min_value, node.max_value, node.include_min, node.include_max)
        elif isinstance(node, MatchAllQuery):
            expr = "*:*"
        else:
            raise UnsupportedQueryError("Lucene compiler cannot render query", kind=getattr(node, "kind", None))

        if has_boost(node):
            expr += f"^{format_boost(node.boost)}"
        return expr

    def _boolean_to_expr(self, node: BooleanQuery) -> str:
        parts: List[str] = []
        for clause in node.clauses:
            expr = self._node_to_expr(clause.query)
            if not expr:
                continue
            parts.append(self._OCCUR_PREFIX[clause.occur] + expr)
        return " ".join(parts)

    def _range_to_expr(
        self,
        field: str,
        lower: Optional[Union[str, int, float]],
        upper: Optional[Union[str, int, float]],
        include_lower: bool,
        include_upper: bool,
    ) -> str:
        opening = "[" if include_lower else "{"
        closing = "]" if include_upper else "}"
        return f"{self._field(field)}:{opening}{self._bound(lower)} TO {self._bound(upper)}{closing}"

    @staticmethod
    def _bound(value: Optional[Union[str, int, float]]) -> str:
        if value is None:
            return "*"
        if isinstance(value, str):
            return escape_query_text(value)
        return repr(value)

    @staticmethod
    def _field(name: str) -> str:
        return escape_query_text(name)


lucene_compiler = LuceneQueryCompiler()
