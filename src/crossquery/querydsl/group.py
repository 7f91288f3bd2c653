"""Query groups: composite nodes of the clause tree.

A `QueryGroup` holds an ordered list of clauses and nested groups together
with the defaults its children fall back to:

- ``default_children_occur`` for children added with an unset occurrence
  (``Occur.SHOULD`` unless configured otherwise);
- ``case_sensitive`` for clauses without their own override.

Usage:

    root = QueryBuilder()
    root.term("title", "africa", key="region")
    root.terms("title", ["wildlife", "safari"], occur=Occur.MUST)
    inner = root.group(default_children_occur=Occur.MUST_NOT)
    inner.wildcard("description", "pol*")
    root.remove("region")
"""

from __future__ import annotations

import weakref
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from crossquery.abc import Analyzer
from crossquery.constants import DEFAULT_OCCUR, NumericType, Occur
from crossquery.exceptions import InvalidArgumentError
from crossquery.logger import Logger
from crossquery.settings import settings
from crossquery.types import Entry, Numeric, OccurLike, QueryAction
from crossquery.utils import is_finite_number, lowercase_invariant

from .clauses import (
    Clause,
    FuzzyClause,
    NumericRangeClause,
    PhraseClause,
    PhraseTerm,
    PrefixClause,
    RawClause,
    TermClause,
    TermRangeClause,
    WildcardClause,
    coerce_occur,
    require_boost,
    require_field,
    require_text,
    require_values,
)
from .config import BuilderConfig
from .registry import ClauseRegistry

__all__ = ("QueryGroup",)

logger = Logger("querydsl.group")

ClauseT = TypeVar("ClauseT", bound=Clause)

_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1


def _default_children(value: Optional[OccurLike]) -> Occur:
    occur = coerce_occur(value)
    return DEFAULT_OCCUR if occur is Occur.UNSET else occur


def _infer_numeric_type(*bounds: Optional[Numeric]) -> NumericType:
    present = [b for b in bounds if b is not None]
    if all(isinstance(b, int) for b in present):
        if any(b < _INT32_MIN or b > _INT32_MAX for b in present):
            return NumericType.LONG
        return NumericType.INT
    return NumericType.DOUBLE


class QueryGroup:
    """Composite node aggregating clauses and nested groups.

    Args:
        parent: Enclosing group; kept as a weak reference used for defaulting only
        occur: Occurrence of this group inside its parent (UNSET defers to the parent)
        default_children_occur: Occurrence for children added without one (SHOULD when None)
        case_sensitive: Case flag for clauses without an override (inherits the parent's when None)
        key: Key naming this group in its parent's registry
        config: Shared builder configuration (the parent's when None)
    """

    def __init__(
        self,
        parent: Optional["QueryGroup"] = None,
        occur: OccurLike = Occur.UNSET,
        default_children_occur: Optional[OccurLike] = None,
        case_sensitive: Optional[bool] = None,
        key: Optional[str] = None,
        config: Optional[BuilderConfig] = None,
    ) -> None:
        self._parent_ref: Optional[weakref.ReferenceType[QueryGroup]] = (
            weakref.ref(parent) if parent is not None else None
        )
        self._occur = coerce_occur(occur)
        self._default_children_occur = _default_children(default_children_occur)
        if case_sensitive is None:
            case_sensitive = parent.case_sensitive if parent is not None else settings.QUERY_CASE_SENSITIVE
        self.case_sensitive: bool = bool(case_sensitive)
        self.key = key
        if config is None:
            config = parent.config if parent is not None else BuilderConfig()
        self.config: BuilderConfig = config
        self._children: List[Entry] = []
        self._registry = ClauseRegistry()

    # -------------------
    # Tree structure
    # -------------------
    @property
    def parent(self) -> Optional["QueryGroup"]:
        """The enclosing group, or None for a root (or a group whose root was discarded)."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def children(self) -> Tuple[Entry, ...]:
        return tuple(self._children)

    @property
    def registry(self) -> ClauseRegistry:
        return self._registry

    def __len__(self) -> int:
        return len(self._children)

    def __iter__(self) -> Iterator[Entry]:
        return iter(tuple(self._children))

    def __contains__(self, key: object) -> bool:
        return key in self._registry

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} occur={self._occur.value} "
            f"default_children_occur={self._default_children_occur.value} "
            f"case_sensitive={self.case_sensitive} children={len(self._children)}>"
        )

    def keys(self) -> List[str]:
        return self._registry.keys()

    def get(self, key: str) -> Optional[Entry]:
        """Return the clause or sub-group registered under ``key`` in this group."""
        return self._registry.get(key)

    # -------------------
    # Occurrence and case resolution
    # -------------------
    @property
    def occur(self) -> Occur:
        """Declared occurrence, possibly UNSET."""
        return self._occur

    @property
    def resolved_occur(self) -> Occur:
        """Occurrence of this group inside its parent, after defaulting."""
        if self._occur is not Occur.UNSET:
            return self._occur
        parent = self.parent
        if parent is None:
            return DEFAULT_OCCUR
        return parent.default_children_occur

    @property
    def default_children_occur(self) -> Occur:
        """Occurrence given to unset children; fixed when the group is created."""
        return self._default_children_occur

    def resolve_occur(self, entry: Entry) -> Occur:
        """Concrete occurrence of a child: its own if set, else this group's default."""
        if entry.occur is Occur.UNSET:
            return self._default_children_occur
        return entry.occur

    def resolve_case_sensitive(self, override: Optional[bool] = None) -> bool:
        return self.case_sensitive if override is None else override

    def cased(self, value: str, override: Optional[bool] = None) -> str:
        """Return ``value`` as the engine should see it under this group's case policy."""
        if self.resolve_case_sensitive(override):
            return value
        return lowercase_invariant(value)

    # -------------------
    # Internal helpers
    # -------------------
    def _attach(self, entry: Entry, key: Optional[str]) -> None:
        if key is not None:
            self._registry.register(key, entry)
        self._children.append(entry)
        logger.debug("Added %s to %r (key=%s)", type(entry).__name__, self, key)

    def _make_clause(self, clause_cls: Type[ClauseT], **fields: Any) -> ClauseT:
        fields["occur"] = coerce_occur(fields.get("occur"))
        try:
            return clause_cls(**fields)
        except PydanticValidationError as exc:
            errors = exc.errors()
            reason = errors[0]["msg"] if errors else str(exc)
            raise InvalidArgumentError(
                f"Invalid {clause_cls.__name__} arguments", field=fields.get("field"), reason=reason
            ) from exc

    def _add_clause(self, clause_cls: Type[ClauseT], **fields: Any) -> ClauseT:
        key = fields.get("key")
        self._registry.check_available(key)
        clause = self._make_clause(clause_cls, **fields)
        self._attach(clause, key)
        return clause

    def _child_group(self, **kwargs: Any) -> "QueryGroup":
        return QueryGroup(parent=self, **kwargs)

    def _add_each(
        self,
        adder: Callable[..., Any],
        field: str,
        values: Sequence[str],
        occur: OccurLike,
        boost: Optional[float],
        key: Optional[str],
        case_sensitive: Optional[bool],
    ) -> "QueryGroup":
        require_field(field)
        values = require_values(values)
        require_boost(boost)
        children_occur = coerce_occur(occur)
        self._registry.check_available(key)
        group = self._child_group(default_children_occur=children_occur, key=key)
        for value in values:
            adder(group, field, value, boost=boost, case_sensitive=case_sensitive)
        self._attach(group, key)
        return group

    # -------------------
    # Setup expressions
    # -------------------
    def where(self, action: QueryAction) -> "QueryGroup":
        """Run ``action(self)`` and return this group, e.g. ``.where(lambda g: g.term("title", "africa"))``."""
        return self.setup(action)

    def setup(self, *actions: QueryAction) -> "QueryGroup":
        """Run every action against this group, in order."""
        for action in actions:
            if not callable(action):
                raise InvalidArgumentError("Setup actions must be callable", action=action)
        for action in actions:
            action(self)
        return self

    # -------------------
    # Groups
    # -------------------
    def group(
        self,
        occur: OccurLike = Occur.UNSET,
        default_children_occur: Optional[OccurLike] = None,
        case_sensitive: Optional[bool] = None,
        key: Optional[str] = None,
    ) -> "QueryGroup":
        """Add and return an empty nested group."""
        self._registry.check_available(key)
        child = self._child_group(
            occur=occur, default_children_occur=default_children_occur, case_sensitive=case_sensitive, key=key
        )
        self._attach(child, key)
        return child

    def _combine(
        self, children_occur: Occur, actions: Tuple[QueryAction, ...], occur: OccurLike, key: Optional[str]
    ) -> "QueryGroup":
        self._registry.check_available(key)
        child = self._child_group(occur=occur, default_children_occur=children_occur, key=key)
        child.setup(*actions)
        self._attach(child, key)
        return child

    def and_(self, *actions: QueryAction, occur: OccurLike = Occur.UNSET, key: Optional[str] = None) -> "QueryGroup":
        """Nested group whose children must all match."""
        return self._combine(Occur.MUST, actions, occur, key)

    def or_(self, *actions: QueryAction, occur: OccurLike = Occur.UNSET, key: Optional[str] = None) -> "QueryGroup":
        """Nested group where any child may match."""
        return self._combine(Occur.SHOULD, actions, occur, key)

    def not_(self, *actions: QueryAction, occur: OccurLike = Occur.UNSET, key: Optional[str] = None) -> "QueryGroup":
        """Nested group whose children must not match."""
        return self._combine(Occur.MUST_NOT, actions, occur, key)

    # -------------------
    # Keyed mutation
    # -------------------
    def remove(self, key: str) -> bool:
        """Remove the entry registered under ``key``; unknown keys are ignored.

        Returns:
            True if an entry was removed
        """
        entry = self._registry.pop(key)
        if entry is None:
            logger.debug("No entry registered under key=%s in %r", key, self)
            return False
        self._children = [child for child in self._children if child is not entry]
        logger.debug("Removed %s under key=%s", type(entry).__name__, key)
        return True

    # -------------------
    # Term expressions
    # -------------------
    def term(
        self,
        field: str,
        value: str,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> TermClause:
        """Exact term match (wildcards belong in `wildcard`)."""
        return self._add_clause(
            TermClause, field=field, value=value, occur=occur, boost=boost, key=key, case_sensitive=case_sensitive
        )

    def terms(
        self,
        field: str,
        values: Sequence[str],
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> "QueryGroup":
        """One term per value in a new sub-group whose children default to ``occur``.

        ``occur=Occur.SHOULD`` reads "any of these values", ``Occur.MUST``
        "all of them". ``key`` names the sub-group.
        """
        return self._add_each(QueryGroup.term, field, values, occur, boost, key, case_sensitive)

    def prefix(
        self,
        field: str,
        value: str,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> PrefixClause:
        return self._add_clause(
            PrefixClause, field=field, prefix=value, occur=occur, boost=boost, key=key, case_sensitive=case_sensitive
        )

    # -------------------
    # Keyword expressions
    # -------------------
    def keyword(
        self,
        field: str,
        value: str,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> RawClause:
        """Raw clause parsed with the keyword analyzer; lowercased unless case sensitive."""
        require_text(value)
        value = self.cased(value, case_sensitive)
        return self._add_raw(
            field,
            value,
            occur,
            boost,
            key,
            self.config.keyword_analyzer,
            keyword=True,
            case_sensitive=case_sensitive,
        )

    def keywords(
        self,
        field: str,
        values: Sequence[str],
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> "QueryGroup":
        return self._add_each(QueryGroup.keyword, field, values, occur, boost, key, case_sensitive)

    # -------------------
    # Fuzzy expressions
    # -------------------
    def fuzzy(
        self,
        field: str,
        value: str,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
        max_edits: Optional[int] = None,
        prefix_length: Optional[int] = None,
    ) -> FuzzyClause:
        """Edit-distance match (at most ``max_edits`` edits, first ``prefix_length`` chars exact)."""
        return self._add_clause(
            FuzzyClause,
            field=field,
            value=value,
            occur=occur,
            boost=boost,
            key=key,
            case_sensitive=case_sensitive,
            max_edits=self.config.fuzzy_max_edits if max_edits is None else max_edits,
            prefix_length=self.config.fuzzy_prefix_length if prefix_length is None else prefix_length,
        )

    # -------------------
    # Phrase expressions
    # -------------------
    def phrase(
        self,
        field: str,
        values: Optional[Sequence[str]] = None,
        slop: int = 0,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> PhraseClause:
        """Phrase of ``values``; more terms can be appended with ``add_term``.

        A phrase that still has no terms when the tree is built is rejected.

        Args:
            slop: Allowed distance between the terms
        """
        terms = [PhraseTerm(value=v) for v in require_values(values, allow_empty=True)]
        return self._add_clause(
            PhraseClause,
            field=field,
            terms=terms,
            slop=slop,
            occur=occur,
            boost=boost,
            key=key,
            case_sensitive=case_sensitive,
        )

    # -------------------
    # Wildcard expressions
    # -------------------
    def wildcard(
        self,
        field: str,
        pattern: str,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> WildcardClause:
        return self._add_clause(
            WildcardClause, field=field, pattern=pattern, occur=occur, boost=boost, key=key, case_sensitive=case_sensitive
        )

    def wildcards(
        self,
        field: str,
        patterns: Sequence[str],
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> "QueryGroup":
        return self._add_each(QueryGroup.wildcard, field, patterns, occur, boost, key, case_sensitive)

    # -------------------
    # Range expressions
    # -------------------
    def term_range(
        self,
        field: str,
        lower: Optional[str],
        upper: Optional[str],
        include_lower: bool = True,
        include_upper: bool = True,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        case_sensitive: Optional[bool] = None,
    ) -> TermRangeClause:
        """Lexicographic range; ``None`` leaves a side open."""
        return self._add_clause(
            TermRangeClause,
            field=field,
            lower=lower,
            upper=upper,
            include_lower=include_lower,
            include_upper=include_upper,
            occur=occur,
            boost=boost,
            key=key,
            case_sensitive=case_sensitive,
        )

    def numeric_range(
        self,
        field: str,
        min_value: Optional[Numeric],
        max_value: Optional[Numeric],
        include_min: bool = True,
        include_max: bool = True,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        numeric_type: Optional[Union[NumericType, str]] = None,
    ) -> NumericRangeClause:
        """Numeric range; the numeric type is inferred from the bounds when not given."""
        for bound in (min_value, max_value):
            if bound is not None and not is_finite_number(bound):
                raise InvalidArgumentError("Range bounds must be finite numbers", field=field, bound=bound)
        if numeric_type is None:
            numeric_type = _infer_numeric_type(min_value, max_value)
        return self._add_clause(
            NumericRangeClause,
            field=field,
            min_value=min_value,
            max_value=max_value,
            include_min=include_min,
            include_max=include_max,
            numeric_type=numeric_type,
            occur=occur,
            boost=boost,
            key=key,
        )

    # -------------------
    # Raw expressions
    # -------------------
    def raw(
        self,
        field: str,
        text: str,
        occur: OccurLike = Occur.UNSET,
        boost: Optional[float] = None,
        key: Optional[str] = None,
        analyzer: Optional[Analyzer] = None,
    ) -> RawClause:
        """Free query text parsed against ``field`` by the configured parser.

        Raises:
            QueryParseError: With eager parsing, when the text is not valid syntax
        """
        return self._add_raw(field, text, occur, boost, key, analyzer)

    def _add_raw(
        self,
        field: str,
        text: str,
        occur: OccurLike,
        boost: Optional[float],
        key: Optional[str],
        analyzer: Optional[Analyzer],
        keyword: bool = False,
        case_sensitive: Optional[bool] = None,
    ) -> RawClause:
        self._registry.check_available(key)
        clause = self._make_clause(
            RawClause,
            field=field,
            text=text,
            occur=occur,
            boost=boost,
            key=key,
            analyzer=analyzer,
            keyword=keyword,
            case_sensitive=case_sensitive,
        )
        if self.config.raw_parsing == "eager":
            parsed = self.config.parser.parse(field, text, analyzer or self.config.analyzer)
            clause = clause.model_copy(update={"parsed": parsed})
        self._attach(clause, key)
        return clause
