"""Tests for flattening a query tree with QueryBuilder.build()."""

import pytest

from crossquery.constants import NumericType, Occur, SortType
from crossquery.exceptions import InvalidArgumentError
from crossquery.querydsl.builder import QueryBuilder
from crossquery.querydsl.resolver import QueryResolver
from crossquery.schema import (
    BooleanClause,
    BooleanQuery,
    BuiltQuery,
    FuzzyQuery,
    NumericRangeQuery,
    PhraseQuery,
    PrefixQuery,
    Sort,
    SortField,
    TermQuery,
    TermRangeQuery,
    WildcardQuery,
)
from crossquery.utils import lowercase_invariant


def term(value, occur=Occur.SHOULD, field="title", boost=1.0):
    return BooleanClause(query=TermQuery(field=field, value=value, boost=boost), occur=occur)


class TestScenarios:
    """End-to-end tree shapes."""

    def test_two_unset_terms_default_to_should(self, builder):
        builder.term("title", "africa")
        builder.term("title", "europe")
        built = builder.build()
        assert isinstance(built, BuiltQuery)
        assert built.query == BooleanQuery(clauses=(term("africa"), term("europe")))
        assert built.sort is None

    def test_terms_must_is_logical_and(self, builder):
        builder.terms("title", ["africa", "road"], occur=Occur.MUST)
        query = builder.build().query
        assert query == BooleanQuery(
            clauses=(
                BooleanClause(
                    query=BooleanQuery(clauses=(term("africa", Occur.MUST), term("road", Occur.MUST))),
                    occur=Occur.SHOULD,
                ),
            )
        )

    def test_remove_then_readd_same_key(self, builder):
        builder.term("title", "africa", key="k1")
        builder.remove("k1")
        builder.term("title", "europe", key="k1")
        assert builder.build().query == BooleanQuery(clauses=(term("europe"),))

    def test_nested_must_not_group(self, builder):
        inner = builder.group(default_children_occur=Occur.MUST_NOT)
        inner.term("title", "road")
        builder.term("title", "africa")
        query = builder.build().query
        assert query.clauses[0] == BooleanClause(
            query=BooleanQuery(clauses=(term("road", Occur.MUST_NOT),)),
            occur=Occur.SHOULD,
        )
        assert query.clauses[1] == term("africa")

    def test_empty_builder(self, builder):
        assert builder.build().query == BooleanQuery()


class TestBuildProperties:
    """Determinism, purity and removal."""

    def test_build_is_idempotent(self, builder):
        builder.term("title", "africa", boost=2.0)
        builder.terms("title", ["road", "trip"], occur="must")
        builder.not_(lambda g: g.wildcard("title", "pol*"))
        builder.sort("published", descending=True)
        assert builder.build() == builder.build()

    def test_build_does_not_resolve_in_place(self, builder):
        clause = builder.term("title", "Africa")
        child = builder.group()
        builder.build()
        assert clause.occur is Occur.UNSET
        assert clause.value == "Africa"
        assert child.occur is Occur.UNSET

    def test_removed_key_never_built(self, builder):
        builder.term("title", "africa", key="gone")
        builder.term("title", "europe")
        builder.remove("gone")
        built = builder.build()
        assert all(c.query.value != "africa" for c in built.query.clauses)

    def test_rebuild_after_mutation(self, builder):
        builder.term("title", "africa")
        first = builder.build()
        builder.term("title", "europe")
        second = builder.build()
        assert len(first.query.clauses) == 1
        assert len(second.query.clauses) == 2

    def test_empty_phrase_rejected_at_build(self, builder):
        phrase = builder.phrase("title")
        with pytest.raises(InvalidArgumentError, match="Phrase has no terms"):
            builder.build()
        phrase.add_term("Wildlife")
        assert builder.build().query.clauses[0].query == PhraseQuery(field="title", terms=("wildlife",))

    def test_empty_phrase_in_nested_group_rejected(self, builder):
        builder.term("title", "africa")
        builder.group().phrase("title", [])
        with pytest.raises(InvalidArgumentError):
            builder.build()
        with pytest.raises(InvalidArgumentError):
            builder.to_where("lucene")

    def test_built_query_outlives_builder(self):
        query = QueryBuilder(lambda q: q.term("title", "africa"))
        built = query.build()
        del query
        assert built.query.clauses[0].query.value == "africa"


class TestCaseSensitivity:
    """Lowercasing of text values at build time."""

    @pytest.mark.parametrize("value", ["Africa", "ÉCOLE", "STRASSE", "MiXeD CaSe"])
    def test_case_insensitive_values_lowercased(self, builder, value):
        builder.term("title", value)
        assert builder.build().query.clauses[0].query.value == lowercase_invariant(value)

    def test_clause_override_wins(self, builder):
        builder.term("title", "Africa", case_sensitive=True)
        assert builder.build().query.clauses[0].query.value == "Africa"

    def test_case_sensitive_builder(self):
        query = QueryBuilder(case_sensitive=True)
        query.term("title", "Africa")
        query.term("title", "Europe", case_sensitive=False)
        values = [c.query.value for c in query.build().query.clauses]
        assert values == ["Africa", "europe"]

    def test_child_group_flag(self, builder):
        child = builder.group(case_sensitive=True)
        child.term("title", "Africa")
        assert builder.build().query.clauses[0].query.clauses[0].query.value == "Africa"

    def test_phrase_term_override(self, builder):
        builder.phrase("title", ["Wildlife"]).add_term("Africa", case_sensitive=True)
        phrase = builder.build().query.clauses[0].query
        assert phrase == PhraseQuery(field="title", terms=("wildlife", "Africa"))

    def test_expanded_kinds_lowercased(self, builder):
        builder.fuzzy("title", "AFRIKA", max_edits=1)
        builder.wildcard("title", "Eur*")
        builder.prefix("title", "POL")
        builder.term_range("title", "Asia", "Bears Den")
        queries = [c.query for c in builder.build().query.clauses]
        assert queries == [
            FuzzyQuery(field="title", value="afrika", max_edits=1, prefix_length=builder.config.fuzzy_prefix_length),
            WildcardQuery(field="title", pattern="eur*"),
            PrefixQuery(field="title", prefix="pol"),
            TermRangeQuery(field="title", lower="asia", upper="bears den"),
        ]

    def test_numeric_range_untouched(self, builder):
        builder.numeric_range("views", 100, None, include_min=False)
        assert builder.build().query.clauses[0].query == NumericRangeQuery(
            field="views", min_value=100, max_value=None, include_min=False, numeric_type=NumericType.INT
        )


class TestBoost:
    """Boost is applied multiplicatively."""

    def test_default_boost(self, builder):
        builder.term("title", "africa")
        assert builder.build().query.clauses[0].query.boost == 1.0

    def test_explicit_boost(self, builder):
        builder.term("title", "africa", boost=2.5)
        assert builder.build().query.clauses[0] == term("africa", boost=2.5)

    def test_boost_changed_after_add(self, builder):
        clause = builder.term("title", "africa")
        clause.boost = 3.0
        assert builder.build().query.clauses[0].query.boost == 3.0

    def test_raw_boost_multiplies_parsed_boost(self, builder):
        builder.raw("title", "africa^3", boost=2.0)
        assert builder.build().query.clauses[0].query.boost == 6.0


class TestRawResolution:
    def test_eager_raw_uses_parsed_query(self, builder):
        builder.raw("description", "lions")
        assert builder.build().query.clauses[0] == term("lions", field="description")

    def test_deferred_raw_parsed_at_build(self):
        query = QueryBuilder(raw_parsing="deferred")
        query.raw("description", "Lions AND Savanna")
        parsed = query.build().query.clauses[0].query
        assert parsed == BooleanQuery(
            clauses=(
                term("lions", Occur.MUST, field="description"),
                term("savanna", Occur.MUST, field="description"),
            )
        )


class TestSort:
    def test_sort_in_declared_order(self, builder):
        builder.sort("published", descending=True, sort_type="long").sort("title")
        assert builder.build().sort == Sort(
            fields=(
                SortField(field="published", descending=True, sort_type=SortType.LONG),
                SortField(field="title"),
            )
        )

    def test_clear_sort(self, builder):
        builder.sort("published")
        builder.clear_sort()
        assert builder.build().sort is None

    def test_invalid_sort_type(self, builder):
        with pytest.raises(InvalidArgumentError):
            builder.sort("published", sort_type="date")
        with pytest.raises(InvalidArgumentError):
            builder.sort("")
        assert builder.sort_fields == ()

    def test_resolve_sort_empty(self):
        assert QueryResolver.resolve_sort([]) is None


class TestFilter:
    def test_no_filter_by_default(self, builder):
        builder.term("title", "africa")
        assert builder.build().filter is None
        assert builder.current_filter is None

    def test_native_filter_kept_as_is(self, builder):
        native = TermQuery(field="category", value="Nature")
        builder.filter(native)
        assert builder.build().filter == native

    def test_action_filter_resolved_at_build(self, builder):
        builder.term("title", "africa")
        builder.filter(lambda f: f.term("category", "Nature"), lambda f: f.term("category", "News"))
        assert builder.build().filter == BooleanQuery(
            clauses=(term("nature", field="category"), term("news", field="category"))
        )
        assert len(builder.children) == 1

    def test_filter_group_default_occur(self, builder):
        builder.filter(lambda f: f.term("category", "nature"), default_children_occur="must")
        assert builder.build().filter.clauses[0].occur is Occur.MUST

    def test_filter_follows_builder_case_flag(self):
        query = QueryBuilder(case_sensitive=True)
        query.filter(lambda f: f.term("category", "Nature"))
        assert query.build().filter.clauses[0].query.value == "Nature"

    def test_later_filter_replaces_earlier(self, builder):
        builder.filter(TermQuery(field="category", value="nature"))
        builder.filter(TermQuery(field="category", value="news"))
        assert builder.build().filter.value == "news"

    def test_clear_filter(self, builder):
        builder.filter(TermQuery(field="category", value="nature"))
        assert builder.clear_filter() is builder
        assert builder.build().filter is None

    @pytest.mark.parametrize("bad", [42, "category:nature", None])
    def test_invalid_filter(self, builder, bad):
        with pytest.raises(InvalidArgumentError):
            builder.filter(bad)
        assert builder.current_filter is None

    def test_actions_after_native_filter_rejected(self, builder):
        with pytest.raises(InvalidArgumentError):
            builder.filter(TermQuery(field="category", value="nature"), lambda f: None)

    def test_builder_cannot_filter_on_itself(self, builder):
        with pytest.raises(InvalidArgumentError):
            builder.filter(builder)

    def test_filter_in_dict_form(self, builder):
        builder.filter(TermQuery(field="category", value="nature"))
        data = builder.to_dict()
        assert data["filter"] == {"kind": "term", "field": "category", "value": "nature", "boost": 1.0}
        assert BuiltQuery.model_validate(data) == builder.build()


class TestDictForm:
    def test_to_dict(self, builder):
        builder.term("title", "africa", occur="must")
        data = builder.to_dict()
        assert data["query"]["kind"] == "boolean"
        assert data["query"]["clauses"][0]["occur"] == "must"
        assert data["query"]["clauses"][0]["query"] == {
            "kind": "term",
            "field": "title",
            "value": "africa",
            "boost": 1.0,
        }
        assert data["sort"] is None

    def test_generic_to_where_and_expr(self, builder):
        builder.term("title", "africa")
        assert builder.to_where() == builder.to_dict()
        assert builder.to_expr() == str(builder.to_dict())
