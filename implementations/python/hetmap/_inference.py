"""hetmap main-type inference.

The main type of a collection is the runtime type with the most
occurrences.  Writing it once in the document header lets every entry of
that type omit its tag.

Ties: the histogram is a plain dict, so it iterates in order of first
occurrence, and the scan only replaces the winner on a strictly greater
count.  A tie therefore goes to the type encountered earliest in the
input's iteration order.  For a dict that is insertion order, which makes
the result deterministic for a given mapping.  `stable=True` instead
breaks ties by smallest tag, independent of order.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from ._registry import TypeRegistry


def type_histogram(values: Iterable[Any], registry: TypeRegistry) -> Dict[str, int]:
    """Count occurrences per tag.  None has no type and is not counted."""
    histogram: Dict[str, int] = {}
    for value in values:
        if value is None:
            continue
        tag = registry.tag_of(value)
        histogram[tag] = histogram.get(tag, 0) + 1
    return histogram


def main_type(
    values: Iterable[Any],
    registry: TypeRegistry,
    *,
    stable: bool = False,
) -> Optional[str]:
    """Return the tag occurring most often among `values`.

    Returns None when there is no non-None value.  Raises UnknownType if a
    value's type is not registered.
    """
    histogram = type_histogram(values, registry)
    if stable:
        candidates = sorted(histogram.items())
    else:
        candidates = list(histogram.items())

    best_tag: Optional[str] = None
    best_count = 0
    for tag, count in candidates:
        if count > best_count:
            best_tag, best_count = tag, count
    return best_tag
