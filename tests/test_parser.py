from __future__ import annotations

import pytest

from core.query.errors import LexError, ParseError
from core.query.lexer import Token, TokenKind
from core.query.parser import Parser, evaluate


class FakeStore:
    """Store over plain integers keyed by tag, recording each leaf lookup."""

    def __init__(self, tags: dict[str, set[int]]) -> None:
        self._tags = tags
        self.lookups: list[str] = []

    def photos_with_tag_exact(self, text):
        self.lookups.append(text)
        return set(self._tags.get(text, set()))

    def photos_with_tag_pattern(self, pattern):
        raise AssertionError("no wildcards expected")


@pytest.fixture
def abc(make_photo):
    """a = {1, 2, 3}, b = {2}, c = {3, 4}: b and c are disjoint."""
    p1 = make_photo("1.jpg", tags=("a",))
    p2 = make_photo("2.jpg", tags=("a", "b"))
    p3 = make_photo("3.jpg", tags=("a", "c"))
    p4 = make_photo("4.jpg", tags=("c",))
    return p1, p2, p3, p4


def test_implicit_and_is_intersection(repo, abc):
    a, c = repo.photos_with_tag_exact("a"), repo.photos_with_tag_exact("c")
    assert evaluate("a c", repo) == a & c
    assert evaluate("a c", repo) == {abc[2]}


def test_plus_is_union(repo, abc):
    assert evaluate("b + c", repo) == {abc[1], abc[2], abc[3]}


def test_fused_minus_is_difference(repo, abc):
    a, b = repo.photos_with_tag_exact("a"), repo.photos_with_tag_exact("b")
    assert evaluate("a -b", repo) == a - b
    assert evaluate("a -b", repo) == {abc[0], abc[2]}


def test_operators_are_left_associative(repo, abc):
    p1, p2, p3, p4 = abc
    a = repo.photos_with_tag_exact("a")
    b = repo.photos_with_tag_exact("b")
    c = repo.photos_with_tag_exact("c")
    result = evaluate("a - b + c", repo)
    assert result == (a - b) | c == {p1, p3, p4}
    assert result != a - (b | c)


def test_grouping_changes_the_result(repo, abc):
    p1, p2, p3, _p4 = abc
    assert evaluate("(a + b) - c", repo) == {p1, p2}
    assert evaluate("a + (b - c)", repo) == {p1, p2, p3}


def test_group_after_operand_gets_implicit_and(repo, abc):
    assert evaluate("a (b + c)", repo) == {abc[1], abc[2]}


def test_quoted_tag_is_one_tag(repo, make_photo):
    single = make_photo(tags=("max boots",))
    both = make_photo(tags=("max", "boots"))
    make_photo(tags=("max",))
    assert evaluate('"max boots"', repo) == {single}
    assert evaluate("max boots", repo) == {both}


def test_ratings(repo, make_photo):
    unrated = make_photo()
    rated = {r: make_photo(rating=r) for r in range(1, 6)}
    assert evaluate("r:", repo) == {unrated}
    assert evaluate("r:135", repo) == {rated[1], rated[3], rated[5]}
    assert evaluate("r:2 + r:", repo) == {rated[2], unrated}


def test_out_of_range_rating_digits_match_nothing(repo, make_photo):
    rated = {r: make_photo(rating=r) for r in range(1, 6)}
    assert evaluate("r:6", repo) == set()
    assert evaluate("r:16", repo) == {rated[1]}
    assert evaluate("r:0", repo) == set()


def test_date_comparisons(repo, make_photo):
    jan = make_photo(taken_time="2020-01-01")
    jun = make_photo(taken_time="2020-06-15")
    next_year = make_photo(taken_time="2021-01-01")
    make_photo(taken_time=None)
    assert evaluate(">2020-06-01", repo) == {jun, next_year}
    assert evaluate("<2020-06-01", repo) == {jan}
    assert evaluate("=2020-06", repo) == {jun}
    assert evaluate("=2020", repo) == {jan, jun}


def test_dates_with_times_compare_as_strings(repo, make_photo):
    morning = make_photo(taken_time="2020-06-15 08:00:00")
    evening = make_photo(taken_time="2020-06-15 20:00:00")
    assert evaluate(">2020-06-15", repo) == {morning, evening}
    assert evaluate("<2020-06-15", repo) == set()
    assert evaluate("=2020-06-15", repo) == {morning, evening}


def test_combined_expression(repo, make_photo):
    target = make_photo(tags=("max",), rating=1, taken_time="2021-03-01")
    make_photo(tags=("max", "boots"), rating=1, taken_time="2021-03-01")
    make_photo(tags=("max",), rating=3, taken_time="2021-03-01")
    make_photo(tags=("max",), rating=2, taken_time="2019-03-01")
    assert evaluate("max -boots r:12 >2020-01-01", repo) == {target}


def test_wildcard_tags(repo, make_photo):
    maxed = make_photo(tags=("max",))
    max_boots = make_photo(tags=("max boots",))
    make_photo(tags=("boots",))
    make_photo(tags=("m_x",))
    assert evaluate("ma%", repo) == {maxed, max_boots}
    assert evaluate("%boots", repo) == {max_boots} | repo.photos_with_tag_exact("boots")


def test_wildcard_matching_is_case_insensitive(repo, make_photo):
    maxed = make_photo(tags=("max",))
    assert evaluate("MA%", repo) == {maxed}
    assert evaluate("MAX", repo) == set()


def test_underscore_is_literal_in_patterns(repo, make_photo):
    underscored = make_photo(tags=("m_x",))
    make_photo(tags=("max",))
    assert evaluate("m_%", repo) == {underscored}


def test_union_deduplicates(repo, abc):
    result = evaluate("a + a + b", repo)
    assert len(result) == 3


def test_empty_result_is_not_an_error(repo, abc):
    assert evaluate("nosuchtag", repo) == set()


@pytest.mark.parametrize(
    "expression",
    ["(a + b", "a)", "a +", "-a", "+", "()", "", "   ", "a ( b", ")"],
)
def test_malformed_expressions_raise_parse_error(repo, abc, expression):
    with pytest.raises(ParseError):
        evaluate(expression, repo)


def test_parse_error_reports_position(repo, abc):
    with pytest.raises(ParseError) as excinfo:
        evaluate("a + b )", repo)
    assert excinfo.value.position == 6
    assert excinfo.value.token == ")"


def test_lex_error_aborts_evaluation(repo, abc):
    with pytest.raises(LexError):
        evaluate('a + "b', repo)


def test_parser_over_plain_store():
    store = FakeStore({"a": {1, 2, 3}, "b": {2}, "c": {3, 4}})
    tokens = [
        Token(TokenKind.TAG, "a", 0, "a"),
        Token(TokenKind.DIFFERENCE, "-", 2, "-"),
        Token(TokenKind.TAG, "b", 4, "b"),
        Token(TokenKind.UNION, "+", 6, "+"),
        Token(TokenKind.TAG, "c", 8, "c"),
    ]
    assert Parser(tokens, store).parse() == {1, 3, 4}
    assert store.lookups == ["a", "b", "c"]


def test_each_leaf_queries_the_store_once():
    store = FakeStore({"a": {1}, "b": {1, 2}})
    assert evaluate("a + b a", store) == {1}
    assert store.lookups == ["a", "b", "a"]
