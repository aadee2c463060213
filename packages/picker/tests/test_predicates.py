"""Tests for pi_picker.predicates"""
import pytest

from pi_picker.errors import FilterError
from pi_picker.indices import Ref
from pi_picker.predicates import (
    META_FUZZY_POSITIONS,
    META_FUZZY_SCORE,
    META_REGEXP_RANGES,
    fuzzy_score,
    predicate_fuzzy,
    predicate_regexp,
    predicate_substring,
)


class TestFuzzyScore:
    def test_prefix_match_offsets(self):
        score, positions = fuzzy_score("ap", "apple")
        assert positions == [0, 1]

    def test_non_subsequence_rejected(self):
        assert fuzzy_score("pa", "apple") is None
        assert fuzzy_score("cba", "abc") is None
        assert fuzzy_score("xyz", "hello") is None

    def test_gapped_subsequence_accepted(self):
        result = fuzzy_score("abc", "aXbXc")
        assert result is not None
        assert result[1] == [0, 2, 4]

    def test_offsets_length_equals_pattern_length(self):
        for pattern in ("a", "an", "ana", "aa", "nn"):
            result = fuzzy_score(pattern, "banana")
            assert result is not None
            assert len(result[1]) == len(pattern)

    def test_repeated_characters_use_distinct_positions(self):
        _, positions = fuzzy_score("aa", "banana")
        assert len(set(positions)) == 2

    def test_empty_pattern(self):
        assert fuzzy_score("", "anything") == (0, [])

    def test_pattern_longer_than_text(self):
        assert fuzzy_score("abcdef", "abc") is None

    def test_consecutive_scores_higher(self):
        dense, _ = fuzzy_score("he", "hello")
        sparse, _ = fuzzy_score("hl", "hello")
        assert dense > sparse

    def test_shorter_gap_always_scores_higher(self):
        near, _ = fuzzy_score("ab", "a" + "x" * 9 + "b")
        far, _ = fuzzy_score("ab", "a" + "x" * 40 + "b")
        assert near > far

    def test_gap_penalty_strictly_increasing(self):
        scores = [fuzzy_score("ab", "a" + "x" * gap + "b")[0] for gap in range(1, 60)]
        assert all(a > b for a, b in zip(scores, scores[1:]))

    def test_word_boundary_scores_higher(self):
        aligned, positions = fuzzy_score("fb", "foo_bar")
        mid_word, _ = fuzzy_score("fb", "afoobar")
        assert positions == [0, 4]
        assert aligned > mid_word

    def test_camel_case_boundary(self):
        camel, _ = fuzzy_score("fb", "fooBar")
        flat, _ = fuzzy_score("fb", "foobar")
        assert camel > flat

    def test_best_alignment_chosen(self):
        # the contiguous "ab" at the end beats the scattered early one
        _, positions = fuzzy_score("ab", "axxxxab")
        assert positions == [5, 6]

    def test_smart_case(self):
        assert fuzzy_score("a", "ABC") is not None
        assert fuzzy_score("A", "abc") is None
        assert fuzzy_score("A", "xAbc")[1] == [1]


class TestPredicateFuzzy:
    def test_attaches_score_and_positions(self):
        ref = predicate_fuzzy("apple", Ref(4), "ap")
        assert ref.position == 4
        assert ref.get(META_FUZZY_POSITIONS) == [0, 1]
        assert ref.get(META_FUZZY_SCORE) == fuzzy_score("ap", "apple")[0]

    def test_rejects(self):
        assert predicate_fuzzy("banana", Ref(0), "ap") is None

    def test_scores_accumulate_across_tokens(self):
        first = predicate_fuzzy("foo bar", Ref(0), "foo")
        second = predicate_fuzzy("foo bar", first, "bar")
        foo_score, _ = fuzzy_score("foo", "foo bar")
        bar_score, _ = fuzzy_score("bar", "foo bar")
        assert second.get(META_FUZZY_SCORE) == foo_score + bar_score
        assert second.get(META_FUZZY_POSITIONS) == [0, 1, 2, 4, 5, 6]


class TestPredicateRegexp:
    def test_match_range(self):
        ref = predicate_regexp("banana", Ref(0), "n.n")
        assert ref.get(META_REGEXP_RANGES) == [(2, 5)]

    def test_no_match(self):
        assert predicate_regexp("banana", Ref(0), "^n") is None

    def test_empty_pattern_is_identity(self):
        ref = Ref(2)
        assert predicate_regexp("x", ref, "") is ref
        assert predicate_substring("x", ref, "") is ref

    def test_malformed_pattern(self):
        with pytest.raises(FilterError):
            predicate_regexp("x", Ref(0), "(")
        with pytest.raises(ValueError):
            predicate_regexp("x", Ref(0), "[a-")

    def test_smart_case(self):
        assert predicate_regexp("FOO", Ref(0), "foo") is not None
        assert predicate_regexp("foo", Ref(0), "Foo") is None

    def test_ranges_accumulate(self):
        ref = predicate_regexp("foo bar", Ref(0), "foo")
        ref = predicate_regexp("foo bar", ref, "bar")
        assert ref.get(META_REGEXP_RANGES) == [(0, 3), (4, 7)]


class TestPredicateSubstring:
    def test_literal_semantics(self):
        assert predicate_substring("axb", Ref(0), "a.b") is None
        ref = predicate_substring("x a.b", Ref(0), "a.b")
        assert ref.get(META_REGEXP_RANGES) == [(2, 5)]

    def test_metacharacters_do_not_raise(self):
        assert predicate_substring("f(x)", Ref(0), "(") is not None
