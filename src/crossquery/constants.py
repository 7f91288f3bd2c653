"""
Occurrence, sort and numeric type constants shared by the builder, the
native query model and the compilers.
"""

from enum import Enum


class Occur(str, Enum):
    """Boolean role of a clause relative to its siblings."""

    MUST = "must"
    SHOULD = "should"
    MUST_NOT = "must_not"
    UNSET = "unset"


class SortType(str, Enum):
    STRING = "string"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    SCORE = "score"
    DOC = "doc"


class NumericType(str, Enum):
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"


NUMERIC_SORT_TYPES = frozenset({SortType.INT, SortType.LONG, SortType.FLOAT, SortType.DOUBLE})

DEFAULT_OCCUR = Occur.SHOULD
DEFAULT_BOOST = 1.0

OCCUR_ALIASES = {
    "must": Occur.MUST,
    "+": Occur.MUST,
    "and": Occur.MUST,
    "should": Occur.SHOULD,
    "or": Occur.SHOULD,
    "must_not": Occur.MUST_NOT,
    "mustnot": Occur.MUST_NOT,
    "not": Occur.MUST_NOT,
    "-": Occur.MUST_NOT,
    "unset": Occur.UNSET,
    "notset": Occur.UNSET,
}
