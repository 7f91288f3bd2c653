"""Tests for QueryGroup clause construction, keys and nested groups."""

import math

import pytest
from pydantic import ValidationError as PydanticValidationError

from crossquery.constants import NumericType, Occur
from crossquery.exceptions import (
    DuplicateKeyError,
    InvalidArgumentError,
    InvalidConfigError,
    QueryParseError,
)
from crossquery.querydsl.builder import QueryBuilder
from crossquery.querydsl.clauses import (
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
from crossquery.querydsl.group import QueryGroup
from crossquery.schema import BooleanQuery, TermQuery


class TestClauseConstruction:
    """Each builder call appends one clause and returns it."""

    def test_term_returns_clause(self, builder):
        clause = builder.term("title", "Africa")
        assert isinstance(clause, TermClause)
        assert clause.value == "Africa"
        assert clause.occur is Occur.UNSET
        assert builder.children == (clause,)

    def test_base_clause_is_abstract(self):
        with pytest.raises(TypeError):
            Clause(field="title")

    def test_children_keep_insertion_order(self, builder):
        first = builder.term("title", "africa")
        second = builder.prefix("title", "eur")
        third = builder.wildcard("title", "r?ad")
        assert builder.children == (first, second, third)
        assert isinstance(second, PrefixClause)
        assert isinstance(third, WildcardClause)

    def test_occur_accepts_aliases(self, builder):
        assert builder.term("title", "a", occur="must").occur is Occur.MUST
        assert builder.term("title", "b", occur="-").occur is Occur.MUST_NOT
        assert builder.term("title", "c", occur=Occur.SHOULD).occur is Occur.SHOULD

    def test_unknown_occur_rejected(self, builder):
        with pytest.raises(InvalidArgumentError, match="Unknown occurrence"):
            builder.term("title", "africa", occur="sometimes")
        assert len(builder) == 0

    def test_fuzzy_uses_config_defaults(self, builder):
        clause = builder.fuzzy("title", "afrika")
        assert isinstance(clause, FuzzyClause)
        assert clause.max_edits == builder.config.fuzzy_max_edits
        assert clause.prefix_length == builder.config.fuzzy_prefix_length

    def test_fuzzy_max_edits_bounds(self, builder):
        assert builder.fuzzy("title", "afrika", max_edits=1).max_edits == 1
        with pytest.raises(InvalidArgumentError):
            builder.fuzzy("title", "afrika", max_edits=3)
        assert len(builder) == 1

    def test_phrase_add_term(self, builder):
        phrase = builder.phrase("title", ["wildlife"], slop=2)
        assert isinstance(phrase, PhraseClause)
        assert phrase.add_term("Africa", case_sensitive=True) is phrase
        assert phrase.values == ("wildlife", "Africa")
        assert phrase.terms[1].case_sensitive is True
        assert phrase.slop == 2

    def test_phrase_without_values(self, builder):
        phrase = builder.phrase("title")
        assert phrase.values == ()

    def test_term_range(self, builder):
        clause = builder.term_range("title", "asia", None, include_lower=False)
        assert isinstance(clause, TermRangeClause)
        assert clause.values == ("asia", None)
        assert clause.include_lower is False

    @pytest.mark.parametrize(
        "bounds,expected",
        [
            ((100, 1000), NumericType.INT),
            ((None, 2**40), NumericType.LONG),
            ((0.5, None), NumericType.DOUBLE),
            ((1, 2.5), NumericType.DOUBLE),
        ],
    )
    def test_numeric_range_infers_type(self, builder, bounds, expected):
        clause = builder.numeric_range("views", *bounds)
        assert isinstance(clause, NumericRangeClause)
        assert clause.numeric_type is expected

    def test_numeric_range_explicit_type(self, builder):
        clause = builder.numeric_range("views", 1, 2, numeric_type="float")
        assert clause.numeric_type is NumericType.FLOAT


class TestArgumentValidation:
    """Rejected calls raise InvalidArgumentError and leave the group unchanged."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda g: g.term("", "africa"),
            lambda g: g.term("   ", "africa"),
            lambda g: g.term("title", ""),
            lambda g: g.term("title", None),
            lambda g: g.term("title", "africa", boost=math.nan),
            lambda g: g.term("title", "africa", boost=math.inf),
            lambda g: g.terms("title", []),
            lambda g: g.terms("title", "africa"),
            lambda g: g.terms("title", ["africa", ""]),
            lambda g: g.wildcards("title", None),
            lambda g: g.keywords("", ["a"]),
            lambda g: g.term_range("title", None, None),
            lambda g: g.numeric_range("views", None, None),
            lambda g: g.numeric_range("views", math.inf, None),
            lambda g: g.numeric_range("views", True, None),
            lambda g: g.numeric_range("views", "1", None),
            lambda g: g.raw("title", "   "),
            lambda g: g.phrase("title", ["wildlife"], slop=-1),
        ],
    )
    def test_invalid_arguments(self, builder, call):
        with pytest.raises(InvalidArgumentError):
            call(builder)
        assert len(builder) == 0
        assert builder.keys() == []

    def test_boost_is_mutable_and_validated(self, builder):
        clause = builder.term("title", "africa")
        clause.boost = 2.5
        assert clause.boost == 2.5
        with pytest.raises(InvalidArgumentError):
            clause.boost = math.nan
        assert clause.boost == 2.5

    def test_other_fields_are_frozen(self, builder):
        clause = builder.term("title", "africa")
        with pytest.raises(PydanticValidationError):
            clause.value = "europe"

    def test_add_term_rejects_empty_value(self, builder):
        phrase = builder.phrase("title", ["wildlife"])
        with pytest.raises(InvalidArgumentError):
            phrase.add_term("")
        assert phrase.values == ("wildlife",)


class TestKeys:
    """Keyed addressing within one group."""

    def test_get_and_contains(self, builder):
        clause = builder.term("title", "africa", key="region")
        assert "region" in builder
        assert builder.get("region") is clause
        assert builder.keys() == ["region"]
        assert builder.get("missing") is None

    def test_duplicate_key_rejected(self, builder):
        original = builder.term("title", "africa", key="region")
        with pytest.raises(DuplicateKeyError):
            builder.term("title", "europe", key="region")
        assert builder.get("region") is original
        assert builder.children == (original,)

    def test_empty_key_rejected(self, builder):
        with pytest.raises(InvalidArgumentError):
            builder.term("title", "africa", key="")

    def test_remove(self, builder):
        builder.term("title", "africa", key="region")
        kept = builder.term("title", "europe")
        assert builder.remove("region") is True
        assert "region" not in builder
        assert builder.children == (kept,)

    def test_remove_unknown_key_is_noop(self, builder):
        kept = builder.term("title", "africa")
        assert builder.remove("missing") is False
        assert builder.children == (kept,)

    def test_key_reusable_after_removal(self, builder):
        builder.term("title", "africa", key="k1")
        builder.remove("k1")
        replacement = builder.term("title", "europe", key="k1")
        assert builder.get("k1") is replacement
        assert builder.children == (replacement,)

    def test_keys_do_not_cross_groups(self, builder):
        child = builder.group()
        inner = child.term("title", "road", key="k")
        outer = builder.term("title", "africa", key="k")
        assert builder.remove("k") is True
        assert child.get("k") is inner
        assert builder.children == (child,)
        assert outer not in builder.children

    def test_remove_only_drops_the_keyed_entry(self, builder):
        builder.term("title", "africa")
        keyed = builder.term("title", "africa", key="dup")
        builder.remove("dup")
        assert len(builder) == 1
        assert keyed not in builder.children


class TestPluralVariants:
    """terms / keywords / wildcards create one implicit sub-group."""

    def test_terms_creates_sub_group(self, builder):
        group = builder.terms("title", ["africa", "road"], occur=Occur.MUST, key="both")
        assert isinstance(group, QueryGroup)
        assert builder.children == (group,)
        assert builder.get("both") is group
        assert group.default_children_occur is Occur.MUST
        assert group.occur is Occur.UNSET
        assert [c.value for c in group.children] == ["africa", "road"]
        assert all(c.occur is Occur.UNSET and c.key is None for c in group.children)
        assert all(group.resolve_occur(c) is Occur.MUST for c in group.children)

    def test_terms_default_occur_is_should(self, builder):
        group = builder.terms("title", ["africa", "europe"])
        assert group.default_children_occur is Occur.SHOULD

    def test_terms_boost_applies_to_each_clause(self, builder):
        group = builder.terms("title", ["africa", "europe"], boost=2.0)
        assert [c.boost for c in group.children] == [2.0, 2.0]

    def test_wildcards(self, builder):
        group = builder.wildcards("title", ["afr*", "eur*"], occur="must_not")
        assert group.default_children_occur is Occur.MUST_NOT
        assert all(isinstance(c, WildcardClause) for c in group.children)

    def test_keywords(self, builder):
        group = builder.keywords("category", ["Nature", "News"])
        assert [c.text for c in group.children] == ["nature", "news"]

    def test_removing_sub_group_by_key(self, builder):
        builder.terms("title", ["africa", "road"], key="pair")
        builder.remove("pair")
        assert len(builder) == 0


class TestNestedGroups:
    """Group structure, defaults and inheritance."""

    def test_group_parent_is_weak_lookup(self, builder):
        child = builder.group()
        assert child.parent is builder
        assert builder.parent is None

    def test_child_inherits_case_flag(self):
        root = QueryBuilder(case_sensitive=True)
        assert root.group().case_sensitive is True
        assert root.group(case_sensitive=False).case_sensitive is False

    def test_child_shares_config(self, builder):
        assert builder.group().config is builder.config

    def test_default_children_occur_fixed_at_construction(self, builder):
        builder.term("title", "africa")
        entry = builder.children[0]
        assert builder.resolve_occur(entry) is Occur.SHOULD
        before = builder.build()
        with pytest.raises(AttributeError):
            builder.default_children_occur = Occur.MUST
        assert builder.default_children_occur is Occur.SHOULD
        assert builder.resolve_occur(entry) is Occur.SHOULD
        assert builder.build() == before

    def test_nested_must_not_group(self, builder):
        inner = builder.group(default_children_occur=Occur.MUST_NOT)
        clause = inner.term("title", "road")
        assert inner.resolve_occur(clause) is Occur.MUST_NOT
        assert inner.resolved_occur is Occur.SHOULD
        assert builder.resolve_occur(inner) is Occur.SHOULD

    def test_group_occur_against_parent_default(self):
        root = QueryBuilder(default_children_occur="must")
        child = root.group()
        assert child.resolved_occur is Occur.MUST
        explicit = root.group(occur="should")
        assert explicit.resolved_occur is Occur.SHOULD

    def test_resolution_does_not_mutate(self, builder):
        clause = builder.term("title", "africa")
        assert builder.resolve_occur(clause) is Occur.SHOULD
        assert builder.resolve_occur(clause) is Occur.SHOULD
        assert clause.occur is Occur.UNSET

    @pytest.mark.parametrize(
        "method,children_occur",
        [("and_", Occur.MUST), ("or_", Occur.SHOULD), ("not_", Occur.MUST_NOT)],
    )
    def test_boolean_sugar(self, builder, method, children_occur):
        group = getattr(builder, method)(
            lambda g: g.term("title", "africa"),
            lambda g: g.term("title", "road"),
            key="pair",
        )
        assert group.default_children_occur is children_occur
        assert len(group) == 2
        assert builder.get("pair") is group

    def test_failed_action_attaches_nothing(self, builder):
        def broken(group):
            group.term("title", "africa")
            group.term("", "road")

        with pytest.raises(InvalidArgumentError):
            builder.and_(broken)
        assert len(builder) == 0


class TestSetup:
    """where / setup / builder constructor actions."""

    def test_where_returns_group(self, builder):
        assert builder.where(lambda g: g.term("title", "africa")) is builder
        assert len(builder) == 1

    def test_setup_runs_actions_in_order(self, builder):
        builder.setup(
            lambda g: g.term("title", "africa", key="first"),
            lambda g: g.term("title", "europe", key="second"),
        )
        assert builder.keys() == ["first", "second"]

    def test_setup_rejects_non_callables(self, builder):
        with pytest.raises(InvalidArgumentError):
            builder.setup(lambda g: g.term("title", "africa"), "term")
        assert len(builder) == 0

    def test_builder_constructor_actions(self):
        query = QueryBuilder(lambda q: q.term("title", "africa"), lambda q: q.term("title", "europe"))
        assert [c.value for c in query.children] == ["africa", "europe"]


class TestRawClauses:
    """Raw and keyword clauses parse their text with the configured parser."""

    def test_raw_parsed_eagerly(self, builder):
        clause = builder.raw("title", "africa AND road")
        assert isinstance(clause, RawClause)
        assert isinstance(clause.parsed, BooleanQuery)
        assert [c.occur for c in clause.parsed.clauses] == [Occur.MUST, Occur.MUST]

    def test_raw_parse_error_at_construction(self, builder):
        with pytest.raises(QueryParseError):
            builder.raw("title", "(africa", key="bad")
        assert len(builder) == 0
        assert "bad" not in builder

    def test_deferred_raw_parse_error_at_build(self):
        query = QueryBuilder(raw_parsing="deferred")
        clause = query.raw("title", "(africa")
        assert clause.parsed is None
        with pytest.raises(QueryParseError):
            query.build()

    def test_unknown_raw_parsing_mode(self):
        with pytest.raises(InvalidConfigError):
            QueryBuilder(raw_parsing="lazy")

    def test_keyword_lowercased(self, builder):
        clause = builder.keyword("category", "Nature")
        assert clause.keyword is True
        assert clause.text == "nature"
        assert clause.parsed == TermQuery(field="category", value="nature")

    def test_keyword_case_sensitive(self, builder):
        clause = builder.keyword("category", "Nature", case_sensitive=True)
        assert clause.parsed == TermQuery(field="category", value="Nature")
