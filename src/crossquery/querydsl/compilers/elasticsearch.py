"""Elasticsearch query DSL compiler.

Transforms built queries into Elasticsearch request bodies.

Elasticsearch supports:
- Compound: bool (must, should, must_not, filter)
- Term level: term, fuzzy, wildcard, prefix, range
- Full text: match_phrase (with slop)
- match_all / match_none

Limitations:
- An empty boolean query renders as ``match_none`` (Elasticsearch would read
  an empty ``bool`` as match-all)
- A bool holding only must_not clauses matches everything except the
  excluded documents, as MemoryIndex does
- A filter wraps the query as ``{"bool": {"must": [query], "filter": [filter]}}``
  so that the query's own should clauses keep their meaning
"""

import json
from typing import Any, Dict, List, Optional

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

from .base import BaseCompiler
from .utils import has_boost, normalize_query_input, sort_order

__all__ = (
    "ElasticsearchQueryCompiler",
    "elasticsearch_compiler",
)


class ElasticsearchQueryCompiler(BaseCompiler):
    """Compile native queries into Elasticsearch query DSL dicts."""

    _OCCUR_KEY = {
        Occur.MUST: "must",
        Occur.SHOULD: "should",
        Occur.MUST_NOT: "must_not",
    }

    def to_where(self, query: QueryInput) -> Dict[str, Any]:
        """Convert a query to an Elasticsearch search request body.

        Args:
            query: QueryBuilder, BuiltQuery, native query or dumped dict

        Returns:
            ``{"query": ...}`` plus ``"sort"`` when the query carries one
        """
        node, sort, filter_node = normalize_query_input(query)
        query_dict = self._node_to_dict(node)
        if filter_node is not None:
            query_dict = {"bool": {"must": [query_dict], "filter": [self._node_to_dict(filter_node)]}}
        body: Dict[str, Any] = {"query": query_dict}
        sort_list = self.to_sort(sort)
        if sort_list:
            body["sort"] = sort_list
        return body

    def to_expr(self, query: QueryInput) -> str:
        """Convert a query to a canonical JSON string of the request body."""
        return json.dumps(self.to_where(query), sort_keys=True)

    def to_sort(self, sort: Optional[Sort]) -> List[Dict[str, Any]]:
        if sort is None:
            return []
        result = []
        for sort_field in sort.fields:
            order = {"order": sort_order(sort_field)}
            if sort_field.sort_type is SortType.SCORE:
                result.append({"_score": order})
            elif sort_field.sort_type is SortType.DOC:
                result.append({"_doc": order})
            else:
                result.append({sort_field.field: order})
        return result

    # -------------------
    # Rendering
    # -------------------
    def _node_to_dict(self, node: NativeQuery) -> Dict[str, Any]:
        """Recursively transform a native query into query DSL."""
        if isinstance(node, BooleanQuery):
            return self._boolean_to_dict(node)
        if isinstance(node, TermQuery):
            return {"term": {node.field: self._with_boost({"value": node.value}, node)}}
        if isinstance(node, PhraseQuery):
            params: Dict[str, Any] = {"query": " ".join(node.terms)}
            if node.slop:
                params["slop"] = node.slop
            return {"match_phrase": {node.field: self._with_boost(params, node)}}
        if isinstance(node, FuzzyQuery):
            params = {"value": node.value, "fuzziness": node.max_edits, "prefix_length": node.prefix_length}
            return {"fuzzy": {node.field: self._with_boost(params, node)}}
        if isinstance(node, WildcardQuery):
            return {"wildcard": {node.field: self._with_boost({"value": node.pattern}, node)}}
        if isinstance(node, PrefixQuery):
            return {"prefix": {node.field: self._with_boost({"value": node.prefix}, node)}}
        if isinstance(node, TermRangeQuery):
            params = self._range_params(node.lower, node.upper, node.include_lower, node.include_upper)
            return {"range": {node.field: self._with_boost(params, node)}}
        if isinstance(node, NumericRangeQuery):
            params = self._range_params(node.min_value, node.max_value, node.include_min, node.include_max)
            return {"range": {node.field: self._with_boost(params, node)}}
        if isinstance(node, MatchAllQuery):
            return {"match_all": self._with_boost({}, node)}
        raise UnsupportedQueryError("Elasticsearch compiler cannot render query", kind=getattr(node, "kind", None))

    def _boolean_to_dict(self, node: BooleanQuery) -> Dict[str, Any]:
        if not node.clauses:
            return {"match_none": {}}
        body: Dict[str, List[Dict[str, Any]]] = {}
        for clause in node.clauses:
            body.setdefault(self._OCCUR_KEY[clause.occur], []).append(self._node_to_dict(clause.query))
        return {"bool": self._with_boost(body, node)}

    @staticmethod
    def _range_params(lower: Any, upper: Any, include_lower: bool, include_upper: bool) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if lower is not None:
            params["gte" if include_lower else "gt"] = lower
        if upper is not None:
            params["lte" if include_upper else "lt"] = upper
        return params

    @staticmethod
    def _with_boost(params: Dict[str, Any], node: NativeQuery) -> Dict[str, Any]:
        if has_boost(node):
            params["boost"] = node.boost
        return params


elasticsearch_compiler = ElasticsearchQueryCompiler()
