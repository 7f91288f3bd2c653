"""Pydantic schemas for engine-native queries, sorts and search results.

Native queries are immutable and compare structurally, so two builds of an
unchanged tree produce equal objects. Every query carries a ``kind`` tag;
``AnyQuery`` is the discriminated union over all of them and allows a
dumped query to be validated back into the right model.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

from .constants import DEFAULT_BOOST, NumericType, Occur, SortType
from .exceptions import InvalidArgumentError

NumericBound = Optional[Union[StrictInt, StrictFloat]]


class NativeQuery(BaseModel):
    """Common base of every engine-native query."""

    model_config = ConfigDict(frozen=True)

    boost: float = Field(DEFAULT_BOOST, description="Multiplicative scoring weight.")

    def with_boost(self, boost: Optional[float]) -> "NativeQuery":
        """Return a copy with ``boost`` multiplied in; ``None`` keeps the query as is."""
        if boost is None:
            return self
        return self.model_copy(update={"boost": self.boost * boost})


class TermQuery(NativeQuery):
    kind: Literal["term"] = "term"
    field: str
    value: str


class PhraseQuery(NativeQuery):
    kind: Literal["phrase"] = "phrase"
    field: str
    terms: Tuple[str, ...] = ()
    slop: int = Field(0, ge=0, description="Allowed positional distance between terms.")


class FuzzyQuery(NativeQuery):
    kind: Literal["fuzzy"] = "fuzzy"
    field: str
    value: str
    max_edits: int = Field(2, ge=0, le=2)
    prefix_length: int = Field(0, ge=0)


class WildcardQuery(NativeQuery):
    kind: Literal["wildcard"] = "wildcard"
    field: str
    pattern: str


class PrefixQuery(NativeQuery):
    kind: Literal["prefix"] = "prefix"
    field: str
    prefix: str


class TermRangeQuery(NativeQuery):
    kind: Literal["term_range"] = "term_range"
    field: str
    lower: Optional[str] = None
    upper: Optional[str] = None
    include_lower: bool = True
    include_upper: bool = True


class NumericRangeQuery(NativeQuery):
    kind: Literal["numeric_range"] = "numeric_range"
    field: str
    min_value: NumericBound = None
    max_value: NumericBound = None
    include_min: bool = True
    include_max: bool = True
    numeric_type: NumericType = NumericType.INT


class MatchAllQuery(NativeQuery):
    kind: Literal["match_all"] = "match_all"


class BooleanClause(BaseModel):
    """One occurrence-tagged entry of a boolean query."""

    model_config = ConfigDict(frozen=True)

    query: "AnyQuery"
    occur: Occur

    @field_validator("occur")
    @classmethod
    def _check_concrete(cls, value: Occur) -> Occur:
        if value is Occur.UNSET:
            raise ValueError("boolean clauses need a resolved occurrence")
        return value


class BooleanQuery(NativeQuery):
    """Composite query: zero or more must / should / must-not clauses."""

    kind: Literal["boolean"] = "boolean"
    clauses: Tuple[BooleanClause, ...] = ()

    def queries_for(self, occur: Occur) -> Tuple[NativeQuery, ...]:
        return tuple(c.query for c in self.clauses if c.occur is occur)

    @property
    def must(self) -> Tuple[NativeQuery, ...]:
        return self.queries_for(Occur.MUST)

    @property
    def should(self) -> Tuple[NativeQuery, ...]:
        return self.queries_for(Occur.SHOULD)

    @property
    def must_not(self) -> Tuple[NativeQuery, ...]:
        return self.queries_for(Occur.MUST_NOT)

    def clause_count(self, recursive: bool = False) -> int:
        """Number of clauses, optionally including every nested boolean query."""
        count = len(self.clauses)
        if recursive:
            for clause in self.clauses:
                if isinstance(clause.query, BooleanQuery):
                    count += clause.query.clause_count(recursive=True)
        return count


AnyQuery = Annotated[
    Union[
        TermQuery,
        PhraseQuery,
        FuzzyQuery,
        WildcardQuery,
        PrefixQuery,
        TermRangeQuery,
        NumericRangeQuery,
        MatchAllQuery,
        BooleanQuery,
    ],
    Field(discriminator="kind"),
]

BooleanClause.model_rebuild()
BooleanQuery.model_rebuild()


class SortField(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    descending: bool = False
    sort_type: SortType = SortType.STRING


class Sort(BaseModel):
    """Composite sort; field order decides tie-break precedence."""

    model_config = ConfigDict(frozen=True)

    fields: Tuple[SortField, ...] = Field(..., min_length=1)


class BuiltQuery(BaseModel):
    """Result of ``QueryBuilder.build()``: one composite query plus optional sort and filter.

    ``filter`` restricts the documents ``query`` may match without adding to
    their score.
    """

    model_config = ConfigDict(frozen=True)

    query: BooleanQuery
    sort: Optional[Sort] = None
    filter: Optional[AnyQuery] = None


class SearchHit(BaseModel):
    doc_id: int
    score: float
    document: Dict[str, Any] = Field(default_factory=dict)


class SearchResult(BaseModel):
    """Outcome of executing a query: hit count, timing and ordered hits."""

    total_hits: int
    elapsed_ms: float = 0.0
    limit: int
    matches: List[SearchHit] = Field(default_factory=list, description="Every matching hit, in result order.")

    @property
    def hits(self) -> List[SearchHit]:
        """Top hits, capped at the execution limit."""
        return self.matches[: self.limit]

    def get_top_documents(self) -> List[Dict[str, Any]]:
        return [hit.document for hit in self.hits]

    def get_paged_documents(self, start: int, end: int) -> List[Dict[str, Any]]:
        """Return documents at positions ``start`` (inclusive) to ``end`` (exclusive)."""
        if start < 0 or end < start:
            raise InvalidArgumentError("Invalid page bounds", start=start, end=end)
        return [hit.document for hit in self.matches[start:end]]
