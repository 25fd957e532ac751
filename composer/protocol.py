"""Structural interfaces the engine depends on.

Nothing here is required at runtime: plain functions satisfy every protocol.
They document the calling conventions and give type checkers something to
hold on to.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class Continuation(Protocol):
    """Reports an optional error and resumes the run on the next turn."""

    def __call__(self, err: Any = None) -> None: ...


class Done(Protocol):
    """Terminal callback, invoked exactly once per run."""

    def __call__(self, err: Any = None) -> None: ...


class Handler(Protocol):
    """Step invoked while no error is active."""

    def __call__(self, context: Any, response: Any, next: Continuation) -> None: ...


class ErrorTrap(Protocol):
    """Step invoked only while an error is active; may clear it."""

    def __call__(
        self, err: Any, context: Any, response: Any, next: Continuation
    ) -> None: ...


@runtime_checkable
class Scheduler(Protocol):
    """Runs ``fn`` on a later turn, never from inside the caller's frame."""

    def __call__(self, fn: Callable[[], None]) -> None: ...


@runtime_checkable
class StatsHook(Protocol):
    """Instrumentation hook: returns a replacement for ``fn``."""

    def __call__(self, fn: Callable[..., Any]) -> Callable[..., Any]: ...


@runtime_checkable
class Composable(Protocol):
    """Anything carrying a flat entry stack, in practice a ``Pipeline``."""

    stack: list
