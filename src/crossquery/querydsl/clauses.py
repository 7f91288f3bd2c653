"""Clause models: the leaves of a query group.

Clauses form a closed set of kinds (term, phrase, fuzzy, wildcard, prefix,
term range, numeric range, raw). Each model stores the caller's input
untouched; lowercasing and occurrence defaulting happen when the tree is
resolved. Everything except ``boost`` (and the term list of a phrase) is
frozen once the clause exists.
"""

from __future__ import annotations

import math
from abc import abstractmethod
from typing import Any, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator, model_validator

from crossquery.abc import Analyzer
from crossquery.constants import OCCUR_ALIASES, NumericType, Occur
from crossquery.exceptions import InvalidArgumentError
from crossquery.schema import NativeQuery
from crossquery.utils import is_finite_number

__all__ = (
    "Clause",
    "TermClause",
    "PhraseTerm",
    "PhraseClause",
    "FuzzyClause",
    "WildcardClause",
    "PrefixClause",
    "TermRangeClause",
    "NumericRangeClause",
    "RawClause",
    "coerce_occur",
    "require_field",
    "require_text",
    "require_values",
    "require_boost",
)


# ---------------------------------------------------------------------------
# Argument checks (raise InvalidArgumentError, never pydantic errors)
# ---------------------------------------------------------------------------


def coerce_occur(value: Union[Occur, str, None]) -> Occur:
    """Accept an `Occur` or one of its names/aliases; None means UNSET."""
    if value is None:
        return Occur.UNSET
    if isinstance(value, Occur):
        return value
    if isinstance(value, str):
        occur = OCCUR_ALIASES.get(value.strip().lower())
        if occur is not None:
            return occur
    raise InvalidArgumentError("Unknown occurrence", occur=value)


def require_field(field: Any) -> str:
    if not isinstance(field, str) or not field.strip():
        raise InvalidArgumentError("Field name must be a non-empty string", field=field)
    return field


def require_text(value: Any, name: str = "value") -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(f"Clause {name} must be a non-empty string", **{name: value})
    return value


def require_values(values: Any, allow_empty: bool = False) -> Tuple[str, ...]:
    """Check a sequence of text values; a bare string is rejected."""
    if values is None:
        if allow_empty:
            return ()
        raise InvalidArgumentError("Values must not be None")
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise InvalidArgumentError("Values must be a sequence of strings", values=values)
    if not values and not allow_empty:
        raise InvalidArgumentError("Values must not be empty", values=values)
    return tuple(require_text(v) for v in values)


def require_boost(boost: Any) -> Optional[float]:
    if boost is None:
        return None
    if not is_finite_number(boost):
        raise InvalidArgumentError("Boost must be a finite number", boost=boost)
    return float(boost)


# ---------------------------------------------------------------------------
# Clause models
# ---------------------------------------------------------------------------


class Clause(BaseModel):
    """Common fields of every clause kind."""

    model_config = ConfigDict(validate_assignment=True, arbitrary_types_allowed=True)

    field: str = Field(..., frozen=True)
    occur: Occur = Field(Occur.UNSET, frozen=True)
    boost: Optional[float] = Field(None, description="Scoring weight; None leaves the engine default.")
    key: Optional[str] = Field(None, frozen=True)
    case_sensitive: Optional[bool] = Field(None, frozen=True, description="Overrides the group flag when set.")

    @field_validator("field")
    @classmethod
    def _check_field(cls, value: str) -> str:
        return require_field(value)

    @field_validator("boost", mode="before")
    @classmethod
    def _check_boost(cls, value: Any) -> Optional[float]:
        return require_boost(value)

    @property
    @abstractmethod
    def values(self) -> Tuple[Any, ...]:
        """Values carried by the clause, in declaration order."""


class TermClause(Clause):
    kind: Literal["term"] = Field("term", frozen=True)
    value: str = Field(..., frozen=True)

    @field_validator("value")
    @classmethod
    def _check_value(cls, value: str) -> str:
        return require_text(value)

    @property
    def values(self) -> Tuple[str, ...]:
        return (self.value,)


class PhraseTerm(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    case_sensitive: Optional[bool] = None


class PhraseClause(Clause):
    """Ordered terms matched within ``slop`` positions of each other."""

    kind: Literal["phrase"] = Field("phrase", frozen=True)
    terms: List[PhraseTerm] = Field(default_factory=list, frozen=True)
    slop: int = Field(0, ge=0, frozen=True)

    def add_term(self, value: str, case_sensitive: Optional[bool] = None) -> "PhraseClause":
        """Append a term; a per-term case override beats the clause and group flags."""
        self.terms.append(PhraseTerm(value=require_text(value), case_sensitive=case_sensitive))
        return self

    @property
    def values(self) -> Tuple[str, ...]:
        return tuple(term.value for term in self.terms)


class FuzzyClause(Clause):
    kind: Literal["fuzzy"] = Field("fuzzy", frozen=True)
    value: str = Field(..., frozen=True)
    max_edits: int = Field(2, ge=0, le=2, frozen=True)
    prefix_length: int = Field(0, ge=0, frozen=True)

    @field_validator("value")
    @classmethod
    def _check_value(cls, value: str) -> str:
        return require_text(value)

    @property
    def values(self) -> Tuple[str, ...]:
        return (self.value,)


class WildcardClause(Clause):
    """Glob-style match: ``*`` any run of characters, ``?`` exactly one."""

    kind: Literal["wildcard"] = Field("wildcard", frozen=True)
    pattern: str = Field(..., frozen=True)

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        return require_text(value, "pattern")

    @property
    def values(self) -> Tuple[str, ...]:
        return (self.pattern,)


class PrefixClause(Clause):
    kind: Literal["prefix"] = Field("prefix", frozen=True)
    prefix: str = Field(..., frozen=True)

    @field_validator("prefix")
    @classmethod
    def _check_prefix(cls, value: str) -> str:
        return require_text(value, "prefix")

    @property
    def values(self) -> Tuple[str, ...]:
        return (self.prefix,)


class TermRangeClause(Clause):
    """Lexicographic range; a missing bound leaves that side open."""

    kind: Literal["term_range"] = Field("term_range", frozen=True)
    lower: Optional[str] = Field(None, frozen=True)
    upper: Optional[str] = Field(None, frozen=True)
    include_lower: bool = Field(True, frozen=True)
    include_upper: bool = Field(True, frozen=True)

    @model_validator(mode="after")
    def _check_bounds(self) -> "TermRangeClause":
        if self.lower is None and self.upper is None:
            raise InvalidArgumentError("Range needs at least one bound", field=self.field)
        return self

    @property
    def values(self) -> Tuple[Optional[str], ...]:
        return (self.lower, self.upper)


class NumericRangeClause(Clause):
    kind: Literal["numeric_range"] = Field("numeric_range", frozen=True)
    min_value: Optional[Union[StrictInt, StrictFloat]] = Field(None, frozen=True)
    max_value: Optional[Union[StrictInt, StrictFloat]] = Field(None, frozen=True)
    include_min: bool = Field(True, frozen=True)
    include_max: bool = Field(True, frozen=True)
    numeric_type: NumericType = Field(NumericType.INT, frozen=True)

    @model_validator(mode="after")
    def _check_bounds(self) -> "NumericRangeClause":
        if self.min_value is None and self.max_value is None:
            raise InvalidArgumentError("Range needs at least one bound", field=self.field)
        for bound in (self.min_value, self.max_value):
            if bound is not None and not math.isfinite(bound):
                raise InvalidArgumentError("Range bounds must be finite", field=self.field, bound=bound)
        return self

    @property
    def values(self) -> Tuple[Optional[Union[int, float]], ...]:
        return (self.min_value, self.max_value)


class RawClause(Clause):
    """Free query text handed to the configured parser.

    ``parsed`` is filled when the clause is created with eager parsing;
    otherwise the text is parsed each time the tree is resolved.
    """

    kind: Literal["raw"] = Field("raw", frozen=True)
    text: str = Field(..., frozen=True)
    analyzer: Optional[Analyzer] = Field(None, frozen=True)
    keyword: bool = Field(False, frozen=True)
    parsed: Optional[NativeQuery] = Field(None, frozen=True)

    @field_validator("text")
    @classmethod
    def _check_text(cls, value: str) -> str:
        if not value.strip():
            raise InvalidArgumentError("Raw query text must not be empty", text=value)
        return value

    @property
    def values(self) -> Tuple[str, ...]:
        return (self.text,)
