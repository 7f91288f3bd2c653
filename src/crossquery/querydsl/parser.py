"""Parse raw query text (Lucene classic syntax subset) into native queries.

The lark grammar produces a parse tree, a `Transformer` turns it into small
intermediate nodes, and `LuceneQueryParser` converts those nodes into
native queries once the effective field of every term is known (a
``field:`` prefix on a parenthesised group applies to everything inside).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
from typing import Any, List, Optional, Union

from lark import Lark, Token, Transformer, UnexpectedInput

from crossquery.abc import Analyzer, QueryParser
from crossquery.analyzers import StandardAnalyzer
from crossquery.constants import Occur
from crossquery.exceptions import InvalidArgumentError, QueryParseError
from crossquery.logger import Logger
from crossquery.schema import (
    BooleanClause,
    BooleanQuery,
    FuzzyQuery,
    MatchAllQuery,
    NativeQuery,
    PhraseQuery,
    PrefixQuery,
    TermQuery,
    TermRangeQuery,
    WildcardQuery,
)
from crossquery.settings import settings
from crossquery.utils import has_wildcard, iter_escaped, lowercase_invariant, unescape_query_text

__all__ = ("LuceneQueryParser", "parse_query")


def _load_grammar() -> str:
    """Load the Lark grammar from the package resources."""
    return resources.files("crossquery.querydsl").joinpath("grammar.lark").read_text()


_GRAMMAR_TEXT = _load_grammar()

_parser = Lark(_GRAMMAR_TEXT, parser="lalr")


# ---------------------------------------------------------------------------
# Intermediate nodes
# ---------------------------------------------------------------------------


@dataclass
class _TextAtom:
    """Bare term or quoted phrase. ``text`` keeps its backslash escapes."""

    text: str
    quoted: bool = False
    fuzzy: Optional[str] = None


@dataclass
class _RangeAtom:
    lower: Optional[str]
    upper: Optional[str]
    include_lower: bool = True
    include_upper: bool = True


@dataclass
class _MatchAllAtom:
    pass


@dataclass
class _Clause:
    """One clause of a boolean expression with its modifier and leading conjunction."""

    node: "_Primary"
    modifier: Optional[str] = None  # "+" or "-"
    conj: Optional[str] = None  # "AND" or "OR"


@dataclass
class _Bool:
    clauses: List[_Clause] = field(default_factory=list)


@dataclass
class _Primary:
    atom: Union[_TextAtom, _RangeAtom, _MatchAllAtom, _Bool]
    field: Optional[str] = None
    boost: Optional[float] = None


class _QueryTransformer(Transformer):
    """Transform the lark parse tree into intermediate nodes."""

    def start(self, items: List[Any]) -> _Bool:
        return items[0] if items else _Bool()

    def expr(self, items: List[Union[_Clause, Token]]) -> _Bool:
        clauses = []
        conj: Optional[str] = None
        for item in items:
            if isinstance(item, Token):
                conj = item.type
                continue
            item.conj = conj
            clauses.append(item)
            conj = None
        return _Bool(clauses=clauses)

    def clause(self, items: List[Any]) -> _Clause:
        if len(items) == 2:
            modifier = "+" if str(items[0]) == "+" else "-"
            return _Clause(node=items[1], modifier=modifier)
        return _Clause(node=items[0])

    def primary(self, items: List[Any]) -> _Primary:
        field_name: Optional[str] = None
        boost: Optional[float] = None
        atom: Any = None
        for item in items:
            if isinstance(item, Token) and item.type == "FIELD":
                field_name = str(item)[:-1]
            elif isinstance(item, Token) and item.type == "BOOST":
                boost = float(str(item)[1:])
            else:
                atom = item
        return _Primary(atom=atom, field=field_name, boost=boost)

    def term_atom(self, items: List[Token]) -> _TextAtom:
        fuzzy = str(items[1])[1:] if len(items) > 1 else None
        return _TextAtom(text=str(items[0]), fuzzy=fuzzy)

    def phrase_atom(self, items: List[Token]) -> _TextAtom:
        fuzzy = str(items[1])[1:] if len(items) > 1 else None
        return _TextAtom(text=str(items[0])[1:-1], quoted=True, fuzzy=fuzzy)

    def bound(self, items: List[Token]) -> Optional[str]:
        token = items[0]
        if token.type == "PHRASE":
            return unescape_query_text(str(token)[1:-1])
        if str(token) == "*":
            return None
        return unescape_query_text(str(token))

    def range_atom(self, items: List[Any]) -> _RangeAtom:
        opening, lower, upper, closing = items
        return _RangeAtom(
            lower=lower,
            upper=upper,
            include_lower=str(opening) == "[",
            include_upper=str(closing) == "]",
        )

    def group_atom(self, items: List[_Bool]) -> _Bool:
        return items[0]

    def match_all(self, items: List[Token]) -> _MatchAllAtom:
        return _MatchAllAtom()


_transformer = _QueryTransformer()


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _fuzzy_edits(suffix: str, value: str, default: int) -> int:
    """Translate a ``~`` suffix into a maximum edit distance (0-2).

    ``~`` alone uses the default, ``~N`` (N >= 1) means N edits and a
    fraction below one is read as a minimum similarity.
    """
    if not suffix:
        return default
    amount = float(suffix)
    if amount >= 1:
        return min(int(amount), 2)
    if amount == 0:
        return 0
    return max(0, min(2, int((1.0 - amount) * len(value))))


class LuceneQueryParser(QueryParser):
    """Default raw query parser.

    Args:
        analyzer: Analyzer for plain terms and phrases (StandardAnalyzer when None)
        default_operator: "OR" makes unmodified clauses optional, "AND" makes them required
        lowercase_expanded_terms: Lowercase wildcard, prefix, fuzzy and range terms
        fuzzy_max_edits: Edit distance used for a bare ``~``
    """

    def __init__(
        self,
        analyzer: Optional[Analyzer] = None,
        default_operator: Optional[str] = None,
        lowercase_expanded_terms: Optional[bool] = None,
        fuzzy_max_edits: Optional[int] = None,
    ) -> None:
        operator = (default_operator or settings.RAW_DEFAULT_OPERATOR).upper()
        if operator not in ("OR", "AND"):
            raise InvalidArgumentError("default_operator must be 'OR' or 'AND'", default_operator=default_operator)
        self.analyzer = analyzer or StandardAnalyzer()
        self.default_operator = operator
        self.lowercase_expanded_terms = (
            settings.RAW_LOWERCASE_EXPANDED_TERMS if lowercase_expanded_terms is None else lowercase_expanded_terms
        )
        self.fuzzy_max_edits = settings.FUZZY_MAX_EDITS if fuzzy_max_edits is None else fuzzy_max_edits
        self.logger = Logger(self.__class__.__name__)

    @property
    def default_occur(self) -> Occur:
        return Occur.MUST if self.default_operator == "AND" else Occur.SHOULD

    def parse(self, field: str, text: str, analyzer: Optional[Analyzer] = None) -> NativeQuery:
        analyzer = analyzer or self.analyzer
        try:
            tree = _parser.parse(text)
        except UnexpectedInput as e:
            raise QueryParseError(
                "Cannot parse query text",
                field=field,
                text=text,
                line=getattr(e, "line", None),
                column=getattr(e, "column", None),
            ) from e
        root = _transformer.transform(tree)
        query = self._convert_bool(root, field, analyzer)
        if query is None:
            query = BooleanQuery()
        self.logger.debug("Parsed %r on field %s into %s query", text, field, query.kind)
        return query

    # -------------------
    # Intermediate node -> native query
    # -------------------
    def _expanded(self, value: str) -> str:
        return lowercase_invariant(value) if self.lowercase_expanded_terms else value

    def _convert(self, node: Any, field: str, analyzer: Analyzer) -> Optional[NativeQuery]:
        if isinstance(node, _Bool):
            return self._convert_bool(node, field, analyzer)
        if isinstance(node, _Primary):
            query = self._convert(node.atom, node.field or field, analyzer)
            if query is not None and node.boost is not None:
                query = query.with_boost(node.boost)
            return query
        if isinstance(node, _TextAtom):
            return self._convert_text(node, field, analyzer)
        if isinstance(node, _RangeAtom):
            return TermRangeQuery(
                field=field,
                lower=None if node.lower is None else self._expanded(node.lower),
                upper=None if node.upper is None else self._expanded(node.upper),
                include_lower=node.include_lower,
                include_upper=node.include_upper,
            )
        if isinstance(node, _MatchAllAtom):
            return MatchAllQuery()
        raise QueryParseError("Unexpected parse node", node=type(node).__name__)

    def _clause_occur(self, clause: _Clause) -> Occur:
        if clause.modifier == "-":
            return Occur.MUST_NOT
        if clause.modifier == "+" or clause.conj == "AND":
            return Occur.MUST
        if clause.conj == "OR":
            return Occur.SHOULD
        return self.default_occur

    def _convert_bool(self, node: _Bool, field: str, analyzer: Analyzer) -> Optional[NativeQuery]:
        entries: List[List[Any]] = []
        for clause in node.clauses:
            # A conjunction also binds the clause before it, unless that one is prohibited
            if entries and entries[-1][0] is not Occur.MUST_NOT:
                if clause.conj == "AND":
                    entries[-1][0] = Occur.MUST
                elif clause.conj == "OR" and self.default_operator == "AND":
                    entries[-1][0] = Occur.SHOULD
            query = self._convert(clause.node, field, analyzer)
            if query is not None:
                entries.append([self._clause_occur(clause), query])
        clauses = [BooleanClause(query=query, occur=occur) for occur, query in entries]
        if not clauses:
            return None
        if len(clauses) == 1 and clauses[0].occur is not Occur.MUST_NOT:
            return clauses[0].query
        return BooleanQuery(clauses=tuple(clauses))

    def _convert_text(self, atom: _TextAtom, field: str, analyzer: Analyzer) -> Optional[NativeQuery]:
        if atom.quoted:
            terms = analyzer.tokenize(unescape_query_text(atom.text))
            slop = int(float(atom.fuzzy)) if atom.fuzzy else 0
            return self._terms_query(field, terms, slop)

        if has_wildcard(atom.text):
            return self._wildcard_query(field, atom.text)

        value = unescape_query_text(atom.text)
        if atom.fuzzy is not None:
            value = self._expanded(value)
            return FuzzyQuery(
                field=field,
                value=value,
                max_edits=_fuzzy_edits(atom.fuzzy, value, self.fuzzy_max_edits),
                prefix_length=settings.FUZZY_PREFIX_LENGTH,
            )
        return self._terms_query(field, analyzer.tokenize(value), 0)

    def _wildcard_query(self, field: str, text: str) -> NativeQuery:
        chars = list(iter_escaped(text))
        live = [i for i, (ch, escaped) in enumerate(chars) if ch in "*?" and not escaped]
        if len(chars) > 1 and live == [len(chars) - 1] and chars[-1][0] == "*":
            return PrefixQuery(field=field, prefix=self._expanded(unescape_query_text(text[:-1])))
        return WildcardQuery(field=field, pattern=self._expanded(text))

    @staticmethod
    def _terms_query(field: str, terms: List[str], slop: int) -> Optional[NativeQuery]:
        if not terms:
            return None
        if len(terms) == 1:
            return TermQuery(field=field, value=terms[0])
        return PhraseQuery(field=field, terms=tuple(terms), slop=slop)


def parse_query(field: str, text: str, analyzer: Optional[Analyzer] = None) -> NativeQuery:
    """Parse ``text`` with a default `LuceneQueryParser`."""
    return LuceneQueryParser().parse(field, text, analyzer)
