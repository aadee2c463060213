"""
Filters and their composition algebra.

A filter is filter(candidates, refs, pattern) -> refs. Filters built from a
predicate keep passing refs in input order. The combinators here take
filters and return filters, so any composite can be composed again:

    pipe(f1, f2)                     f2 sees what f1 kept
    tokenized(f)                     AND across whitespace-separated tokens
    drop_first_token(f)              first token is consumed elsewhere
    compose_filters_by_pattern(...)  route each token by its prefix
    fuzzy_then_substring             fuzzy first, substring to refine
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .indices import Ref, resolve_text
from .predicates import (
    META_FUZZY_SCORE,
    Predicate,
    predicate_fuzzy,
    predicate_regexp,
    predicate_substring,
)

Filter = Callable[[Sequence[Any], list[Ref], str], list[Ref]]


def split_pattern(pattern: str) -> list[str]:
    return pattern.split()


# ─────────────────────────────────────────────────────────────────────────────
# Building blocks
# ─────────────────────────────────────────────────────────────────────────────

def make_filter(predicate: Predicate) -> Filter:
    """Lift a predicate into a filter-keep over the ref sequence."""

    def _filter(candidates: Sequence[Any], refs: list[Ref], pattern: str) -> list[Ref]:
        kept: list[Ref] = []
        for ref in refs:
            result = predicate(resolve_text(candidates, ref), ref, pattern)
            if result is not None:
                kept.append(result)
        return kept

    _filter.__name__ = f"filter_{getattr(predicate, '__name__', 'predicate')}"
    return _filter


def pipe(*filters: Filter | Sequence[Filter]) -> Filter:
    """
    Feed the output of each filter into the next. Accepts filters as
    positional arguments or a single list.
    """
    if len(filters) == 1 and isinstance(filters[0], (list, tuple)):
        stages: list[Filter] = list(filters[0])
    else:
        stages = list(filters)  # type: ignore[arg-type]

    def _pipe(candidates: Sequence[Any], refs: list[Ref], pattern: str) -> list[Ref]:
        for stage in stages:
            refs = stage(candidates, refs, pattern)
        return refs

    return _pipe


def tokenized(filter_fn: Filter) -> Filter:
    """Apply filter_fn once per whitespace token; a ref must pass them all."""

    def _tokenized(candidates: Sequence[Any], refs: list[Ref], pattern: str) -> list[Ref]:
        for token in split_pattern(pattern):
            refs = filter_fn(candidates, refs, token)
        return refs

    return _tokenized


def drop_first_token(filter_fn: Filter) -> Filter:
    """
    Discard the first token and filter on the rest. Used when the first
    token already went to an external producer (e.g. seeding a grep).
    """

    def _drop_first(candidates: Sequence[Any], refs: list[Ref], pattern: str) -> list[Ref]:
        rest = " ".join(split_pattern(pattern)[1:])
        if not rest:
            return refs
        return filter_fn(candidates, refs, rest)

    return _drop_first


# ─────────────────────────────────────────────────────────────────────────────
# Per-token prefix dispatch
# ─────────────────────────────────────────────────────────────────────────────

MATCH_ANY = None


@dataclass
class PatternRule:
    """
    Route tokens matching prefix to filters.

    prefix is a regular expression (or MATCH_ANY for the default rule).
    group selects the capture group used as the sub-pattern; None means the
    whole token.
    """
    prefix: str | None
    filters: list[Filter] = field(default_factory=list)
    group: int | None = None

    def __post_init__(self) -> None:
        self._regex = re.compile(self.prefix) if self.prefix is not MATCH_ANY else None

    def extract(self, token: str) -> str | None:
        """Sub-pattern for token, or None if this rule does not apply."""
        if self._regex is None:
            return token
        match = self._regex.search(token)
        if match is None:
            return None
        if self.group is None:
            return token
        return match.group(self.group) or ""


def compose_filters_by_pattern(
    rules: Sequence[PatternRule],
    default: PatternRule | Sequence[Filter] | None = None,
) -> Filter:
    """
    Split the pattern on whitespace and dispatch each token to the first rule
    whose prefix matches it (falling back to default). Each token narrows
    the refs further, so the result is an AND across tokens.
    """
    ordered = list(rules)
    if default is not None:
        if not isinstance(default, PatternRule):
            default = PatternRule(MATCH_ANY, list(default))
        ordered.append(default)

    def _dispatch(candidates: Sequence[Any], refs: list[Ref], pattern: str) -> list[Ref]:
        for token in split_pattern(pattern):
            for rule in ordered:
                sub_pattern = rule.extract(token)
                if sub_pattern is None:
                    continue
                if sub_pattern:
                    refs = pipe(rule.filters)(candidates, refs, sub_pattern)
                break
        return refs

    return _dispatch


# ─────────────────────────────────────────────────────────────────────────────
# Built-in filters
# ─────────────────────────────────────────────────────────────────────────────

filter_fuzzy = make_filter(predicate_fuzzy)
filter_regexp = make_filter(predicate_regexp)
filter_substring = make_filter(predicate_substring)

filter_fuzzy_tokens = tokenized(filter_fuzzy)
filter_substring_tokens = tokenized(filter_substring)
filter_regexp_tokens = tokenized(filter_regexp)


def fuzzy_then_substring(candidates: Sequence[Any], refs: list[Ref], pattern: str) -> list[Ref]:
    """
    Fuzzy-match unless the refs were already fuzzy-ranked, in which case
    narrow them with a plain substring match.
    """
    if refs and refs[0].has(META_FUZZY_SCORE):
        return filter_substring(candidates, refs, pattern)
    return filter_fuzzy(candidates, refs, pattern)


filter_fuzzy_then_substring_tokens = tokenized(fuzzy_then_substring)
