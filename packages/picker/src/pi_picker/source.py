"""
Source templates and live source state.

A SourceTemplate is a declarative record: every recognised field has a
default in BASE_SOURCE, and "inheritance" is derive(), which copies a parent
template and overrides named fields. A Source is the live instance built
from a template at session start; it owns the candidate array, the
processed set and any in-flight background producer.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, Field

from .errors import SourceConfigError
from .indices import Ref, as_array, make_indices
from .matchers import matcher_all, sort_identity
from .render import render_plain
from .streaming import BackgroundHandle

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

# generator(source, session) -> None | candidate collection | BackgroundHandle
Generator = Callable[["Source", "Session"], Any]


def _identity_action(candidate: Any) -> Any:
    return candidate


class SourceTemplate(BaseModel):
    """Declarative source definition."""
    name: str = "source"
    header: str | None = None
    # Matcher / Sorter / Renderer signatures, see matchers.py and render.py
    matcher: Callable[..., Any] | None = matcher_all
    sorter: Callable[..., Any] | None = sort_identity
    renderer: Callable[..., Any] = render_plain
    action: Callable[..., Any] = _identity_action

    # Exactly one of these supplies the initial candidates: a collection,
    # a zero-argument callable returning one, or a per-query generator.
    candidates: Any = None
    generator: Callable[..., Any] | None = None

    # Run generator + matcher + sorter in a worker instead of inline.
    asynchronous: bool = False
    # Plain parameters handed to executor-backed generators.
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = {"arbitrary_types_allowed": True}

    def derive(self, **overrides: Any) -> "SourceTemplate":
        """New template starting from this one's fields."""
        unknown = set(overrides) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown source fields: {', '.join(sorted(unknown))}")
        return self.model_copy(update=overrides)

    @property
    def display_header(self) -> str:
        return self.header or self.name


BASE_SOURCE = SourceTemplate()


@dataclass(eq=False)
class Source:
    """Live state of one source within a session. Hashed by identity."""
    template: SourceTemplate
    candidates: list[Any] = field(default_factory=list)
    processed: list[Ref] = field(default_factory=list)
    handle: BackgroundHandle | None = None
    generation: int = 0

    @property
    def name(self) -> str:
        return self.template.name

    def begin_background(self) -> int:
        """
        Cancel any in-flight producer and return the generation token for
        the one about to start. Deliveries carrying an older token are
        dropped by the session.
        """
        if self.handle is not None:
            self.handle.cancel()
            self.handle = None
        self.generation += 1
        return self.generation

    def cancel_background(self) -> bool:
        if self.handle is None:
            return False
        cancelled = self.handle.cancel()
        self.handle = None
        return cancelled

    def candidate_at(self, ref: Ref) -> Any:
        return self.candidates[ref.position]


def init_source(template: SourceTemplate) -> Source:
    """
    Materialize a template's initial candidates.

    Raises SourceConfigError if there are no candidates and no generator.
    """
    supply = template.candidates
    if callable(supply):
        supply = supply()
    if supply is None and template.generator is None:
        raise SourceConfigError(template.name)
    candidates = as_array(supply)
    return Source(template=template, candidates=candidates, processed=make_indices(candidates))


def compute(template: SourceTemplate, candidates: list[Any], session: "Session") -> list[Ref]:
    """Matcher then sorter over candidates. Touches no source state."""
    if template.matcher is not None:
        refs = template.matcher(candidates, session)
    else:
        refs = make_indices(candidates)
    if template.sorter is not None:
        refs = template.sorter(refs, session)
    return refs


def recompute(source: Source, session: "Session", candidates: list[Any] | None = None) -> list[Ref]:
    """
    Recompute the processed set over candidates (default: the current
    array). The candidate array and the processed set are replaced together,
    and only when matcher and sorter both succeed.
    """
    if candidates is None:
        candidates = source.candidates
    started = time.perf_counter()
    refs = compute(source.template, candidates, session)
    source.candidates = candidates
    source.processed = refs
    logger.debug(
        "Recomputed %s: %d/%d in %.1fms",
        source.name, len(refs), len(candidates), (time.perf_counter() - started) * 1000,
    )
    return refs


def process_source(source: Source, session: "Session") -> list[Ref]:
    """One query cycle: generator (if any), then matcher and sorter."""
    generator = source.template.generator
    candidates = None
    if generator is not None:
        result = generator(source, session)
        if isinstance(result, BackgroundHandle):
            session.register_handle(source, result)
        elif result is not None:
            candidates = as_array(result)
    return recompute(source, session, candidates)
