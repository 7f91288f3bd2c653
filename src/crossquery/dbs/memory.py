"""In-memory search backend.

This module provides a small inverted-index style implementation of the
SearchBackend interface. It evaluates every native query kind against
analyzed document fields and is used as the reference engine in tests and
examples.

Key Features:
    - Per-field analyzers (StandardAnalyzer by default)
    - Term, phrase (with slop), fuzzy, wildcard, prefix and range matching
    - Boolean must / should / must-not semantics with summed scores
      (a purely negative boolean matches every document it does not exclude)
    - Multi-field sorting with string, numeric, score and doc order
    - Clause-count limit surfaced as TooManyClausesError
"""

from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Optional

from rapidfuzz.distance import Levenshtein

from crossquery.abc import Analyzer, SearchBackend
from crossquery.analyzers import StandardAnalyzer
from crossquery.constants import NUMERIC_SORT_TYPES, Occur, SortType
from crossquery.exceptions import InvalidArgumentError, TooManyClausesError, UnsupportedQueryError
from crossquery.logger import Logger
from crossquery.schema import (
    BooleanQuery,
    FuzzyQuery,
    MatchAllQuery,
    NativeQuery,
    NumericRangeQuery,
    PhraseQuery,
    PrefixQuery,
    SearchHit,
    Sort,
    SortField,
    TermQuery,
    TermRangeQuery,
    WildcardQuery,
)
from crossquery.settings import settings as api_settings
from crossquery.utils import is_finite_number, wildcard_to_regex


class _IndexedDocument:
    """Stored document plus its analyzed tokens and raw values per field."""

    __slots__ = ("doc_id", "source", "tokens", "values")

    def __init__(self, doc_id: int, source: Dict[str, Any]) -> None:
        self.doc_id = doc_id
        self.source = source
        self.tokens: Dict[str, List[str]] = {}
        self.values: Dict[str, List[Any]] = {}


def _in_range(value: Any, lower: Any, upper: Any, include_lower: bool, include_upper: bool) -> bool:
    if lower is not None and (value < lower or (value == lower and not include_lower)):
        return False
    if upper is not None and (value > upper or (value == upper and not include_upper)):
        return False
    return True


def _phrase_matches(positions: List[List[int]], slop: int) -> int:
    """Count start positions from which the terms occur in order within ``slop`` extra positions."""
    matches = 0
    for start in positions[0]:
        previous = start
        for term_positions in positions[1:]:
            following = [p for p in term_positions if p > previous]
            if not following:
                break
            previous = following[0]
        else:
            if previous - start - (len(positions) - 1) <= slop:
                matches += 1
    return matches


class MemoryIndex(SearchBackend):
    """Search backend keeping documents and analyzed fields in process memory.

    Documents are plain dicts. String values (and lists of strings) are
    analyzed with the field's analyzer; other scalar values are indexed as a
    single token of their string form and are also available to numeric
    range queries and numeric sorts.

    Attributes:
        analyzers: Analyzer per field name
        default_analyzer: Analyzer for fields without an explicit one
        max_clause_count: Largest number of clauses a single boolean query may hold
    """

    name = "memory"

    def __init__(
        self,
        analyzers: Optional[Dict[str, Analyzer]] = None,
        default_analyzer: Optional[Analyzer] = None,
        max_clause_count: Optional[int] = None,
    ) -> None:
        self.analyzers: Dict[str, Analyzer] = dict(analyzers or {})
        self.default_analyzer = default_analyzer or StandardAnalyzer()
        if max_clause_count is None:
            max_clause_count = api_settings.MAX_CLAUSE_COUNT
        if max_clause_count < 1:
            raise InvalidArgumentError("max_clause_count must be positive", max_clause_count=max_clause_count)
        self.max_clause_count = max_clause_count
        self._documents: List[_IndexedDocument] = []
        self.logger = Logger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------
    def analyzer_for(self, field: str) -> Analyzer:
        return self.analyzers.get(field, self.default_analyzer)

    def add_documents(self, documents: Iterable[Dict[str, Any]]) -> List[int]:
        """Index documents and return their ids (insertion positions).

        Raises:
            InvalidArgumentError: If a document is not a dict
        """
        ids = []
        for source in documents:
            if not isinstance(source, dict):
                raise InvalidArgumentError("Documents must be dicts", document=source)
            doc = _IndexedDocument(len(self._documents), dict(source))
            for field, value in source.items():
                raw = list(value) if isinstance(value, (list, tuple)) else [value]
                doc.values[field] = raw
                tokens: List[str] = []
                for item in raw:
                    if item is None:
                        continue
                    if isinstance(item, str):
                        tokens.extend(self.analyzer_for(field).tokenize(item))
                    else:
                        tokens.append(str(item))
                doc.tokens[field] = tokens
            self._documents.append(doc)
            ids.append(doc.doc_id)
        self.logger.message(f"Indexed {len(ids)} document(s).")
        return ids

    def count(self) -> int:
        return len(self._documents)

    def get(self, doc_id: int) -> Dict[str, Any]:
        if not 0 <= doc_id < len(self._documents):
            raise InvalidArgumentError("Unknown document id", doc_id=doc_id)
        return dict(self._documents[doc_id].source)

    # ------------------------------------------------------------------
    # Searching
    # ------------------------------------------------------------------
    def search(
        self, query: NativeQuery, sort: Optional[Sort] = None, filter_query: Optional[NativeQuery] = None
    ) -> List[SearchHit]:
        """Return every matching document ordered by ``sort`` or by score.

        Documents must also match ``filter_query`` when one is given; the
        filter never contributes to the score.

        Raises:
            TooManyClausesError: If a boolean query holds more than ``max_clause_count`` clauses
            UnsupportedQueryError: If the query tree contains an unknown kind
        """
        self._check_clause_count(query)
        if filter_query is not None:
            self._check_clause_count(filter_query)
        hits = []
        for doc in self._documents:
            if filter_query is not None and self._score(filter_query, doc) is None:
                continue
            score = self._score(query, doc)
            if score is not None:
                hits.append(SearchHit(doc_id=doc.doc_id, score=score, document=dict(doc.source)))
        if sort is None:
            hits.sort(key=lambda hit: (-hit.score, hit.doc_id))
        else:
            hits.sort(key=cmp_to_key(lambda a, b: self._compare(sort, a, b)))
        self.logger.message(f"Search returned {len(hits)} results.")
        return hits

    def _check_clause_count(self, query: NativeQuery) -> None:
        if not isinstance(query, BooleanQuery):
            return
        if len(query.clauses) > self.max_clause_count:
            raise TooManyClausesError(
                "Boolean query has too many clauses",
                clauses=len(query.clauses),
                max_clause_count=self.max_clause_count,
            )
        for clause in query.clauses:
            self._check_clause_count(clause.query)

    def _score(self, query: NativeQuery, doc: _IndexedDocument) -> Optional[float]:
        """Score of ``doc`` for ``query``, or None when it does not match."""
        if isinstance(query, BooleanQuery):
            score = self._score_boolean(query, doc)
        elif isinstance(query, MatchAllQuery):
            score = 1.0
        elif isinstance(query, NumericRangeQuery):
            score = self._score_numeric_range(query, doc)
        else:
            score = self._score_terms(query, doc.tokens.get(getattr(query, "field", ""), []))
        if score is None:
            return None
        return score * query.boost

    def _score_boolean(self, query: BooleanQuery, doc: _IndexedDocument) -> Optional[float]:
        total = 0.0
        required = False
        matched_should = False
        positive = False
        for clause in query.clauses:
            score = self._score(clause.query, doc)
            if clause.occur is Occur.MUST_NOT:
                if score is not None:
                    return None
            elif clause.occur is Occur.MUST:
                positive = True
                if score is None:
                    return None
                required = True
                total += score
            else:
                positive = True
                if score is not None:
                    matched_should = True
                    total += score
        if required or matched_should:
            return total
        # Only prohibited clauses: everything not excluded matches
        if query.clauses and not positive:
            return 0.0
        return None

    def _score_terms(self, query: NativeQuery, tokens: List[str]) -> Optional[float]:
        if isinstance(query, TermQuery):
            matches = float(tokens.count(query.value))
        elif isinstance(query, PhraseQuery):
            if not query.terms:
                return None
            positions = [[i for i, token in enumerate(tokens) if token == term] for term in query.terms]
            matches = float(_phrase_matches(positions, query.slop)) if all(positions) else 0.0
        elif isinstance(query, FuzzyQuery):
            matches = self._score_fuzzy(query, tokens)
        elif isinstance(query, WildcardQuery):
            pattern = wildcard_to_regex(query.pattern)
            matches = float(sum(1 for token in tokens if pattern.fullmatch(token)))
        elif isinstance(query, PrefixQuery):
            matches = float(sum(1 for token in tokens if token.startswith(query.prefix)))
        elif isinstance(query, TermRangeQuery):
            hit = any(
                _in_range(token, query.lower, query.upper, query.include_lower, query.include_upper)
                for token in tokens
            )
            matches = 1.0 if hit else 0.0
        else:
            raise UnsupportedQueryError("Memory index cannot evaluate query", kind=getattr(query, "kind", None))
        return matches if matches > 0 else None

    @staticmethod
    def _score_fuzzy(query: FuzzyQuery, tokens: List[str]) -> float:
        prefix = query.value[: query.prefix_length]
        score = 0.0
        for token in tokens:
            if not token.startswith(prefix):
                continue
            distance = Levenshtein.distance(token, query.value, score_cutoff=query.max_edits)
            if distance <= query.max_edits:
                score += (query.max_edits + 1 - distance) / (query.max_edits + 1)
        return score

    @staticmethod
    def _score_numeric_range(query: NumericRangeQuery, doc: _IndexedDocument) -> Optional[float]:
        for value in doc.values.get(query.field, []):
            if not is_finite_number(value):
                continue
            if _in_range(value, query.min_value, query.max_value, query.include_min, query.include_max):
                return 1.0
        return None

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------
    def _compare(self, sort: Sort, a: SearchHit, b: SearchHit) -> int:
        for sort_field in sort.fields:
            result = self._compare_field(sort_field, a, b)
            if result:
                return result
        return (a.doc_id > b.doc_id) - (a.doc_id < b.doc_id)

    def _compare_field(self, sort_field: SortField, a: SearchHit, b: SearchHit) -> int:
        left, right = self._sort_value(sort_field, a), self._sort_value(sort_field, b)
        # Missing values sort last in both directions
        if left is None or right is None:
            return (left is None) - (right is None)
        result = (left > right) - (left < right)
        if sort_field.sort_type is SortType.SCORE:
            result = -result
        return -result if sort_field.descending else result

    def _sort_value(self, sort_field: SortField, hit: SearchHit) -> Any:
        if sort_field.sort_type is SortType.SCORE:
            return hit.score
        if sort_field.sort_type is SortType.DOC:
            return hit.doc_id
        values = [v for v in self._documents[hit.doc_id].values.get(sort_field.field, []) if v is not None]
        if not values:
            return None
        value = values[0]
        if sort_field.sort_type in NUMERIC_SORT_TYPES:
            if is_finite_number(value):
                return value
            try:
                return float(value)
            except (TypeError, ValueError):
                return None
        return str(value)
