"""
Session — the state machine for one interactive invocation.

Owns the live sources, the query, the global selection offset (one integer
over all processed sets concatenated in source order) and the in-flight
background computations. Every query edit is a full recompute; background
producers deliver into the session asynchronously and stale deliveries
(older generation than the source's current one) are dropped.

Lifecycle: open() → set_query()/navigation → accept() | cancel() | close().
Use it as a context manager (sync or async) so background work is always
cancelled, including when the interaction fails.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from .errors import BackgroundError, PickerError, SourceConfigError
from .indices import Ref, as_array
from .settings import PickerSettings
from .source import Source, SourceTemplate, compute, init_source, process_source, recompute
from .streaming import BackgroundHandle

logger = logging.getLogger(__name__)


@dataclass
class SessionEvent:
    type: str  # "update" | "select" | "error" | "close"
    source: Source | None = None
    error: BaseException | None = None


SessionListener = Callable[[SessionEvent], None]


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class Session:
    """
    Candidate-selection session over one or more sources.
    """

    def __init__(
        self,
        templates: Sequence[SourceTemplate],
        context: Any = None,
        settings: PickerSettings | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._templates = list(templates)
        self.context = context
        self.settings = settings or PickerSettings()
        self.query = ""
        self.selected = 0
        self.sources: list[Source] = []
        self.errors: list[PickerError] = []
        self.accepted = False
        self.result: Any = None

        self._executor = executor
        self._pending: dict[Source, BackgroundHandle] = {}
        self._listeners: set[SessionListener] = set()
        self._opened = False
        self._closed = False

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> dict[Source, BackgroundHandle]:
        return dict(self._pending)

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def subscribe(self, fn: SessionListener) -> Callable[[], None]:
        """Subscribe to session events. Returns unsubscribe function."""
        self._listeners.add(fn)
        return lambda: self._listeners.discard(fn)

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def open(self) -> "Session":
        """Initialize sources and compute the initial processed sets."""
        if self._opened:
            return self
        self._opened = True
        for template in self._templates:
            try:
                self.sources.append(init_source(template))
            except SourceConfigError as e:
                logger.warning("Excluding source %s: %s", template.name, e)
                self.errors.append(e)
        self.refresh()
        return self

    def close(self) -> None:
        """Cancel every live background computation. Idempotent."""
        if self._closed:
            return
        self._closed = True
        for source, handle in list(self._pending.items()):
            handle.cancel()
            source.handle = None
        self._pending.clear()
        self._emit(SessionEvent("close"))

    def cancel(self) -> None:
        """End the session without a selection. No action runs."""
        self.close()

    def accept(self) -> Any:
        """
        Run the selected candidate's action exactly once and close the
        session. Returns the action's result (None if nothing is selected).
        """
        if self._closed:
            raise RuntimeError("Session is closed")
        try:
            located = self.locate(self.selected)
            if located is None:
                return None
            source, ref = located
            candidate = source.candidate_at(ref)
            self.accepted = True
            self.result = source.template.action(candidate)
            return self.result
        finally:
            self.close()

    def __enter__(self) -> "Session":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    async def __aenter__(self) -> "Session":
        return self.open()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    # ── Query / recomputation ─────────────────────────────────────────────────

    def set_query(self, query: str) -> None:
        """New query: reset the selection, then recompute every source."""
        if self._closed:
            raise RuntimeError("Session is closed")
        self.query = query
        self.selected = 0
        self.refresh()

    def refresh(self) -> None:
        """
        Recompute all sources for the current query. A filter error in one
        source propagates; that source keeps its previous processed set.
        """
        async_ok = _loop_running()
        for source in self.sources:
            if source.template.asynchronous and async_ok:
                self._process_async(source)
            else:
                process_source(source, self)
        self._emit(SessionEvent("update"))

    def _process_async(self, source: Source) -> None:
        """Run generator + matcher + sorter for source in the executor."""
        generation = source.begin_background()
        template = source.template
        snapshot = source.candidates

        def _work() -> tuple[list[Any], list[Ref]]:
            candidates = snapshot
            if template.generator is not None:
                result = template.generator(source, self)
                if isinstance(result, BackgroundHandle):
                    raise TypeError(f"Asynchronous source {source.name!r} must return candidates, not a handle")
                if result is not None:
                    candidates = as_array(result)
            return candidates, compute(template, candidates, self)

        future = asyncio.get_running_loop().run_in_executor(self._executor, _work)

        def _done(fut: asyncio.Future) -> None:
            if fut.cancelled() or fut.exception() is not None:
                return
            candidates, refs = fut.result()
            self.deliver(source, candidates, generation, processed=refs)

        future.add_done_callback(_done)
        self.register_handle(source, BackgroundHandle(future, label=source.name))

    # ── Background integration ────────────────────────────────────────────────

    def register_handle(self, source: Source, handle: BackgroundHandle) -> None:
        """Track handle as source's only in-flight computation."""
        previous = self._pending.get(source)
        if previous is not None and previous is not handle:
            previous.cancel()
        source.handle = handle
        self._pending[source] = handle
        handle.task.add_done_callback(lambda fut: self._on_handle_done(source, handle, fut))

    def _on_handle_done(self, source: Source, handle: BackgroundHandle, fut: asyncio.Future) -> None:
        if self._pending.get(source) is handle:
            del self._pending[source]
        if source.handle is handle:
            source.handle = None
        if fut.cancelled() or handle.cancelled:
            return
        exc = fut.exception()
        if exc is not None:
            self.report_error(source, exc)

    def deliver(
        self,
        source: Source,
        candidates: Any,
        generation: int,
        processed: list[Ref] | None = None,
    ) -> bool:
        """
        Completion path for background producers: replace the candidate
        array, recompute (unless processed is supplied), notify listeners.
        Returns False if the delivery was dropped.
        """
        if self._closed:
            return False
        if generation != source.generation:
            logger.debug("Dropping stale delivery for %s (generation %d < %d)",
                         source.name, generation, source.generation)
            return False
        # Lists are stored as is: a streaming producer's GrowthBuffer array
        # stays shared with the source. Its filled slots are never rewritten,
        # only empty ones filled, so refs into it remain valid.
        candidates = as_array(candidates)
        if processed is not None:
            source.candidates = candidates
            source.processed = processed
        else:
            try:
                recompute(source, self, candidates)
            except Exception as e:
                self.report_error(source, e)
                return False
        self._clamp_selection()
        self._emit(SessionEvent("update", source))
        return True

    def report_error(self, source: Source, exc: BaseException) -> None:
        """Record a non-fatal failure of one source."""
        error = exc if isinstance(exc, PickerError) else BackgroundError(source.name, exc)
        logger.warning("Source %s failed: %s", source.name, exc)
        self.errors.append(error)
        self._emit(SessionEvent("error", source, error))

    async def wait_idle(self) -> None:
        """Wait until no background computation is in flight."""
        while self._pending:
            tasks = [handle.task for handle in self._pending.values()]
            await asyncio.wait(tasks)
            # let done-callbacks run before re-checking
            await asyncio.sleep(0)

    async def run(self, queries: Iterable[str], accept: bool = True) -> Any:
        """
        Drive a scripted interaction: each query is applied and the session
        waits for background producers before the next one. Any failure
        tears the session down before propagating.
        """
        try:
            self.open()
            for query in queries:
                self.set_query(query)
                await self.wait_idle()
            if accept:
                return self.accept()
            return None
        except BaseException:
            self.close()
            raise

    # ── Selection ─────────────────────────────────────────────────────────────

    @property
    def candidate_count(self) -> int:
        return sum(len(source.processed) for source in self.sources)

    def locate(self, offset: int) -> tuple[Source, Ref] | None:
        """Map a global offset to (source, ref)."""
        if offset < 0:
            return None
        for source in self.sources:
            n = len(source.processed)
            if offset < n:
                return source, source.processed[offset]
            offset -= n
        return None

    def selected_candidate(self) -> Any:
        located = self.locate(self.selected)
        if located is None:
            return None
        source, ref = located
        return source.candidate_at(ref)

    def selected_source(self) -> Source | None:
        located = self.locate(self.selected)
        return located[0] if located else None

    def _clamp_selection(self) -> None:
        count = self.candidate_count
        self.selected = max(0, min(self.selected, count - 1)) if count else 0

    def select(self, offset: int) -> int:
        self.selected = offset
        self._clamp_selection()
        self._emit(SessionEvent("select", self.selected_source()))
        return self.selected

    def select_next(self, n: int = 1) -> int:
        return self.select(self.selected + n)

    def select_previous(self, n: int = 1) -> int:
        return self.select(self.selected - n)

    def select_first(self) -> int:
        return self.select(0)

    def select_last(self) -> int:
        return self.select(self.candidate_count - 1)

    def _source_starts(self) -> list[int]:
        starts: list[int] = []
        offset = 0
        for source in self.sources:
            if source.processed:
                starts.append(offset)
            offset += len(source.processed)
        return starts

    def select_next_source(self) -> int:
        """Jump to the first row of the next non-empty source."""
        for start in self._source_starts():
            if start > self.selected:
                return self.select(start)
        return self.selected

    def select_previous_source(self) -> int:
        """Jump to the first row of the previous non-empty source."""
        starts = self._source_starts()
        current = [s for s in starts if s <= self.selected]
        if len(current) >= 2:
            return self.select(current[-2])
        return self.selected

    # ── Rendering ─────────────────────────────────────────────────────────────

    def render(self) -> list[tuple[str, list[Any]]]:
        """(header, rendered rows) for every source with candidates."""
        blocks: list[tuple[str, list[Any]]] = []
        for source in self.sources:
            if not source.processed:
                continue
            renderer = source.template.renderer
            rows = [renderer(source.candidate_at(ref), self, ref) for ref in source.processed]
            blocks.append((source.template.display_header, rows))
        return blocks
