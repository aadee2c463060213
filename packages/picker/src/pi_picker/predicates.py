"""
Predicates — per-candidate accept/reject plus metadata attachment.

A predicate is predicate(value, ref, pattern) -> Ref | None. It must depend
on nothing but its three arguments, which is what lets filters compose them
freely and lets tests call them in isolation.

Two scoring algorithms are provided:
- fuzzy: pattern characters appear in order (not necessarily adjacent);
  higher score = better match (contiguous runs and word starts rewarded).
- regexp / substring: pattern matches somewhere in the value.

Smart case: a pattern with an uppercase letter matches case-sensitively,
an all-lowercase pattern ignores case.
"""
from __future__ import annotations

import operator
import re
from typing import Callable

from .errors import FilterError
from .indices import Ref, update

Predicate = Callable[[str, Ref, str], "Ref | None"]

# Metadata keys. Each predicate writes only its own keys; sorters and
# renderers read them by name.
META_FUZZY_SCORE = "fuzzy_score"
META_FUZZY_POSITIONS = "fuzzy_positions"
META_REGEXP_RANGES = "regexp_ranges"

_WORD_SEPARATORS = frozenset(" \t-_./:\\")

_MATCH_BONUS = 16
_BOUNDARY_BONUS = 8
_CONSECUTIVE_BONUS = 12
_MAX_GAP_PENALTY = 8
_MAX_LEADING_PENALTY = 3


def is_case_sensitive(pattern: str) -> bool:
    return any(ch.isupper() for ch in pattern)


def _is_word_boundary(text: str, i: int) -> bool:
    if i == 0:
        return True
    prev = text[i - 1]
    if prev in _WORD_SEPARATORS:
        return True
    # camelCase transition
    return prev.islower() and text[i].isupper()


def _gap_penalty(gap: int) -> float:
    # strictly increasing in gap, never reaching _MAX_GAP_PENALTY
    return _MAX_GAP_PENALTY * gap / (gap + 1)


def _score_positions(text: str, positions: list[int]) -> float:
    score = 0.0
    prev = -1
    for pos in positions:
        score += _MATCH_BONUS
        if _is_word_boundary(text, pos):
            score += _BOUNDARY_BONUS
        if prev >= 0:
            if pos == prev + 1:
                score += _CONSECUTIVE_BONUS
            else:
                score -= _gap_penalty(pos - prev - 1)
        prev = pos
    score -= min(positions[0], _MAX_LEADING_PENALTY)
    return score


def fuzzy_score(pattern: str, text: str) -> tuple[float, list[int]] | None:
    """
    Score pattern as an in-order subsequence of text.

    Returns (score, matched character offsets) or None when pattern is not a
    subsequence of text. Every start offset of the first pattern character
    is tried with a greedy forward scan; the best scoring alignment wins
    (earliest on ties).
    """
    if not pattern:
        return 0, []
    if len(pattern) > len(text):
        return None

    if is_case_sensitive(pattern):
        needle = list(pattern)
        hay = list(text)
    else:
        # per-character lowering keeps offsets aligned with the original text
        needle = [ch.lower() for ch in pattern]
        hay = [ch.lower() for ch in text]

    best: tuple[float, list[int]] | None = None
    n = len(hay)
    for start in range(n):
        if hay[start] != needle[0]:
            continue
        positions = [start]
        cursor = start + 1
        for ch in needle[1:]:
            while cursor < n and hay[cursor] != ch:
                cursor += 1
            if cursor >= n:
                break
            positions.append(cursor)
            cursor += 1
        if len(positions) < len(needle):
            # later starts cannot succeed where an earlier one failed
            break
        score = _score_positions(text, positions)
        if best is None or score > best[0]:
            best = (score, positions)
    return best


def _merge_positions(old: list[int], new: list[int]) -> list[int]:
    return sorted(set(old) | set(new))


def predicate_fuzzy(value: str, ref: Ref, pattern: str) -> Ref | None:
    result = fuzzy_score(pattern, value)
    if result is None:
        return None
    score, positions = result
    return update(
        ref,
        (META_FUZZY_SCORE, score, operator.add),
        (META_FUZZY_POSITIONS, positions, _merge_positions),
    )


def compile_pattern(pattern: str) -> re.Pattern[str]:
    flags = 0 if is_case_sensitive(pattern) else re.IGNORECASE
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise FilterError(pattern, str(e)) from e


def predicate_regexp(value: str, ref: Ref, pattern: str) -> Ref | None:
    if not pattern:
        return ref
    match = compile_pattern(pattern).search(value)
    if match is None:
        return None
    return update(ref, (META_REGEXP_RANGES, [match.span()], operator.add))


def predicate_substring(value: str, ref: Ref, pattern: str) -> Ref | None:
    return predicate_regexp(value, ref, re.escape(pattern))
