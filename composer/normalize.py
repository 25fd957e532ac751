"""Flatten arbitrary handler sources into a list of stack entries."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Iterable

from .entry import Entry, callable_name
from .protocol import Composable

logger = logging.getLogger(__name__)


def normalize(source: Any) -> Any:
    """Normalize a single source.

    Returns an :class:`Entry` for a callable, a flat ``list`` of entries for
    sequences, mappings and composed pipelines, *None* for *None*, and any
    other value unchanged (it fails later, at dispatch).
    """
    if source is None:
        return None
    if isinstance(source, Entry):
        return source
    if isinstance(source, Composable):
        return normalize(list(source.stack))
    if callable(source):
        return Entry(source, name=callable_name(source))
    if isinstance(source, (list, tuple)):
        flat: list[Any] = []
        for item in source:
            _extend(flat, normalize(item))
        return flat
    if isinstance(source, Mapping):
        return _from_mapping(source)
    return source


def normalize_all(sources: Iterable[Any]) -> list[Any]:
    """Normalize every source in order into one flat list."""
    flat: list[Any] = []
    for source in sources:
        _extend(flat, normalize(source))
    return flat


def _extend(flat: list[Any], normalized: Any) -> None:
    if normalized is None:
        return
    if isinstance(normalized, list):
        flat.extend(normalized)
    else:
        flat.append(normalized)


def _from_mapping(source: Mapping[Any, Any]) -> list[Entry]:
    entries: list[Entry] = []
    for name, value in source.items():
        if isinstance(value, Entry):
            entries.append(value.replace(name=name))
        elif callable(value):
            entries.append(Entry(value, name=name))
        else:
            # nested mappings are not supported
            logger.debug("Dropping non-callable value for key %r", name)
    return entries
