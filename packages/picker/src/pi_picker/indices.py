"""
Candidate references — the index model shared by every stage of the pipeline.

A source owns an immutable candidate array. Everything downstream (filters,
sorters, renderers) works on Refs: a position into that array plus the match
metadata accumulated so far. Filters never copy candidates, they only narrow
and annotate the Ref sequence.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

Combine = Callable[[Any, Any], Any]


@dataclass(frozen=True)
class Ref:
    """Position into a candidate array plus accumulated match metadata."""
    position: int
    metadata: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def has(self, key: str) -> bool:
        return key in self.metadata


def logical_length(candidates: Sequence[Any] | None) -> int:
    """Count contiguous non-empty slots from the start of the array."""
    if not candidates:
        return 0
    n = 0
    for item in candidates:
        if item is None:
            break
        n += 1
    return n


def make_indices(candidates: Sequence[Any] | None) -> list[Ref]:
    """Fresh, metadata-free refs for every live slot, ascending."""
    return [Ref(i) for i in range(logical_length(candidates))]


def primary(candidate: Any) -> Any:
    """Unwrap a composite candidate (tuple/list) to its matchable value."""
    if isinstance(candidate, (tuple, list)):
        return candidate[0] if candidate else ""
    return candidate


def resolve(candidates: Sequence[Any], ref: Ref) -> Any:
    """Return the primary matchable value at ref's position."""
    return primary(candidates[ref.position])


def resolve_text(candidates: Sequence[Any], ref: Ref) -> str:
    value = resolve(candidates, ref)
    return value if isinstance(value, str) else str(value)


def _replace(_old: Any, new: Any) -> Any:
    return new


def update(ref: Ref, *updates: tuple) -> Ref:
    """
    Return a new Ref with the same position and folded metadata.

    Each update is (key, value) or (key, value, combine). combine(old, new)
    is only called when key already has a value; otherwise value is stored
    as is. Keys are independent so the order of updates does not matter.
    """
    metadata = dict(ref.metadata)
    for item in updates:
        if len(item) == 2:
            key, value = item
            combine: Combine = _replace
        else:
            key, value, combine = item
        if key in metadata:
            metadata[key] = combine(metadata[key], value)
        else:
            metadata[key] = value
    return Ref(ref.position, metadata)


def as_array(collection: Any) -> list[Any]:
    """Coerce a candidate collection to a random-access list."""
    if collection is None:
        return []
    if isinstance(collection, list):
        return collection
    return list(collection)
