"""Stack entries — a callable tagged with its selector name and dispatch kind."""

from __future__ import annotations

import dataclasses
import enum
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Self

from .protocol import Continuation, ErrorTrap, Handler, StatsHook


class Kind(enum.Enum):
    """How the executor dispatches an entry."""

    HANDLER = "handler"
    ERROR_TRAP = "error_trap"


_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def arity(fn: Callable[..., Any]) -> Optional[int]:
    """Number of declared positional parameters, or *None* if unknown."""
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    return sum(1 for p in sig.parameters.values() if p.kind in _POSITIONAL)


def infer_kind(fn: Callable[..., Any]) -> Kind:
    """Four positional parameters make an error trap; anything else a handler."""
    return Kind.ERROR_TRAP if arity(fn) == 4 else Kind.HANDLER


def callable_name(fn: Callable[..., Any]) -> Optional[str]:
    """Declared identifier of ``fn``, or *None* for lambdas and partials."""
    name = getattr(fn, "__name__", None)
    if isinstance(name, str) and name.isidentifier():
        return name
    return None


@dataclass(frozen=True)
class Entry:
    """One element of a pipeline stack.

    ``name`` is the selector used by the mutation API; anonymous entries
    (``name is None``) are never matched.  ``kind`` is inferred from the
    signature when the entry is created and is never re-inspected during a
    run.  An entry whose ``fn`` is not callable has no kind and fails at
    dispatch with a missing-middleware error.
    """

    fn: Any
    name: Optional[str] = None
    kind: Optional[Kind] = None
    wrapped: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if self.kind is None and callable(self.fn):
            object.__setattr__(self, "kind", infer_kind(self.fn))

    @property
    def is_callable(self) -> bool:
        return callable(self.fn)

    def matches(self, selector: str) -> bool:
        return self.name is not None and self.name == selector

    def replace(self, **changes: Any) -> Self:
        """Return a new entry with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def wrap(self, hook: StatsHook) -> Self:
        """Pass ``fn`` through ``hook`` keeping name and kind."""
        return self.replace(fn=hook(self.fn), wrapped=True)

    def __repr__(self) -> str:
        kind = self.kind.value if self.kind else "missing"
        name = "<anonymous>" if self.name is None else self.name
        return f"Entry({name}, {kind})"


def handler(fn: Handler, name: Optional[str] = None) -> Entry:
    """Register ``fn`` as a handler regardless of its signature."""
    return Entry(fn, name=name, kind=Kind.HANDLER)


def error_trap(fn: ErrorTrap, name: Optional[str] = None) -> Entry:
    """Register ``fn`` as an error trap regardless of its signature."""
    return Entry(fn, name=name, kind=Kind.ERROR_TRAP)


def noop(context: Any, response: Any, next: Optional[Continuation] = None) -> None:
    """Handler that does nothing but continue."""
    if next is not None:
        next()
