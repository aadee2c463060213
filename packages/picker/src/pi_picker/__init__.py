"""
pi_picker — incremental candidate selection over multiple sources.

Candidates are narrowed by composable filters, ranked by sorters and exposed
through a Session with a single selection cursor spanning every source.
"""
from .errors import BackgroundError, FilterError, PickerError, SourceConfigError
from .filters import (
    MATCH_ANY,
    Filter,
    PatternRule,
    compose_filters_by_pattern,
    drop_first_token,
    filter_fuzzy,
    filter_fuzzy_then_substring_tokens,
    filter_fuzzy_tokens,
    filter_regexp,
    filter_regexp_tokens,
    filter_substring,
    filter_substring_tokens,
    fuzzy_then_substring,
    make_filter,
    pipe,
    tokenized,
)
from .indices import Ref, logical_length, make_indices, primary, resolve, update
from .matchers import (
    get_matcher,
    make_matcher,
    matcher_all,
    matcher_fuzzy,
    matcher_regexp,
    matcher_substring,
    sort_by_score,
    sort_identity,
)
from .predicates import (
    META_FUZZY_POSITIONS,
    META_FUZZY_SCORE,
    META_REGEXP_RANGES,
    fuzzy_score,
    predicate_fuzzy,
    predicate_regexp,
    predicate_substring,
)
from .render import render_highlighted, render_plain
from .session import Session, SessionEvent
from .settings import PickerSettings, SettingsManager
from .source import BASE_SOURCE, Source, SourceTemplate, init_source, process_source
from .streaming import (
    BackgroundHandle,
    GrowthBuffer,
    LineBuffer,
    make_executor_generator,
    make_linewise_generator,
)

__all__ = [
    # errors
    "BackgroundError",
    "FilterError",
    "PickerError",
    "SourceConfigError",
    # indices
    "Ref",
    "logical_length",
    "make_indices",
    "primary",
    "resolve",
    "update",
    # predicates
    "META_FUZZY_POSITIONS",
    "META_FUZZY_SCORE",
    "META_REGEXP_RANGES",
    "fuzzy_score",
    "predicate_fuzzy",
    "predicate_regexp",
    "predicate_substring",
    # filters
    "MATCH_ANY",
    "Filter",
    "PatternRule",
    "compose_filters_by_pattern",
    "drop_first_token",
    "filter_fuzzy",
    "filter_fuzzy_then_substring_tokens",
    "filter_fuzzy_tokens",
    "filter_regexp",
    "filter_regexp_tokens",
    "filter_substring",
    "filter_substring_tokens",
    "fuzzy_then_substring",
    "make_filter",
    "pipe",
    "tokenized",
    # matchers / sorters / renderers
    "get_matcher",
    "make_matcher",
    "matcher_all",
    "matcher_fuzzy",
    "matcher_regexp",
    "matcher_substring",
    "sort_by_score",
    "sort_identity",
    "render_highlighted",
    "render_plain",
    # sources
    "BASE_SOURCE",
    "Source",
    "SourceTemplate",
    "init_source",
    "process_source",
    # streaming
    "BackgroundHandle",
    "GrowthBuffer",
    "LineBuffer",
    "make_executor_generator",
    "make_linewise_generator",
    # session / settings
    "PickerSettings",
    "Session",
    "SessionEvent",
    "SettingsManager",
]
