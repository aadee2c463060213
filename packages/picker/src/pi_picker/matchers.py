"""
Matchers and sorters.

matcher(candidates, session) -> refs
    Produces a source's processed set for the current query. Always starts
    from make_indices over the whole candidate array: recomputation is total,
    never incremental over the previous processed set.

sorter(refs, session) -> refs
    Reorders a processed set. Must neither drop nor add refs.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Sequence

from .filters import (
    Filter,
    filter_fuzzy_then_substring_tokens,
    filter_regexp_tokens,
    filter_substring_tokens,
)
from .indices import Ref, make_indices
from .predicates import META_FUZZY_SCORE

if TYPE_CHECKING:
    from .session import Session

Matcher = Callable[[Sequence[Any], "Session"], list[Ref]]
Sorter = Callable[[list[Ref], "Session"], list[Ref]]


def make_matcher(filter_fn: Filter) -> Matcher:
    """Bind filter_fn to the session's live query."""

    def _matcher(candidates: Sequence[Any], session: "Session") -> list[Ref]:
        return filter_fn(candidates, make_indices(candidates), session.query)

    return _matcher


def matcher_all(candidates: Sequence[Any], session: "Session") -> list[Ref]:
    """Pass-through: every live candidate, no filtering."""
    return make_indices(candidates)


matcher_fuzzy = make_matcher(filter_fuzzy_then_substring_tokens)
matcher_substring = make_matcher(filter_substring_tokens)
matcher_regexp = make_matcher(filter_regexp_tokens)

MATCHERS: dict[str, Matcher] = {
    "fuzzy": matcher_fuzzy,
    "substring": matcher_substring,
    "regexp": matcher_regexp,
}


def get_matcher(name: str) -> Matcher:
    try:
        return MATCHERS[name]
    except KeyError:
        raise ValueError(f"Unknown matcher: {name!r} (expected one of {', '.join(MATCHERS)})") from None


# ─────────────────────────────────────────────────────────────────────────────
# Sorters
# ─────────────────────────────────────────────────────────────────────────────

def sort_identity(refs: list[Ref], session: "Session") -> list[Ref]:
    return list(refs)


def sort_by_score(refs: list[Ref], session: "Session") -> list[Ref]:
    """
    Descending by fuzzy score. Unscored refs go after scored ones in natural
    order. sorted() is stable, so equal scores keep their input order.
    """

    def _key(ref: Ref) -> tuple[int, float]:
        score = ref.get(META_FUZZY_SCORE)
        if score is None:
            return (1, 0)
        return (0, -score)

    return sorted(refs, key=_key)
