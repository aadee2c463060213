"""
Renderers turn a candidate into something the presentation layer can show.

renderer(candidate, session, ref) -> object

Renderers read the same metadata keys filters write (fuzzy positions,
regexp ranges) and must not mutate the candidate, the session or the ref.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from rich.text import Text

from .indices import Ref, primary
from .predicates import META_FUZZY_POSITIONS, META_REGEXP_RANGES

if TYPE_CHECKING:
    from .session import Session

Renderer = Callable[[Any, "Session", "Ref | None"], Any]

DEFAULT_HIGHLIGHT_STYLE = "bold magenta"


def render_plain(candidate: Any, session: "Session", ref: Ref | None = None) -> str:
    value = primary(candidate)
    return value if isinstance(value, str) else str(value)


def matched_spans(ref: Ref | None) -> list[tuple[int, int]]:
    """Character spans covered by the match metadata on ref."""
    if ref is None:
        return []
    spans = [(pos, pos + 1) for pos in ref.get(META_FUZZY_POSITIONS, [])]
    spans.extend(tuple(span) for span in ref.get(META_REGEXP_RANGES, []))
    return spans


def render_highlighted(candidate: Any, session: "Session", ref: Ref | None = None) -> Text:
    style = DEFAULT_HIGHLIGHT_STYLE
    if session is not None and session.settings is not None:
        style = session.settings.highlight_style
    text = Text(render_plain(candidate, session, ref))
    for start, end in matched_spans(ref):
        if end > start:
            text.stylize(style, start, end)
    return text
