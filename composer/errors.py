"""Exception taxonomy for the composer engine."""

from __future__ import annotations

from typing import Any


class ComposerError(Exception):
    """Base class for errors raised by the composer itself."""


class MissingMiddlewareError(ComposerError):
    """A stack entry does not resolve to a callable.

    Synthesized by the executor when a named entry maps to a non-callable
    value, or when an unrecognized source ended up on the stack.  It flows
    through the chain like any application error.
    """

    def __init__(self, entry: Any = None) -> None:
        super().__init__("missing middleware")
        self.entry = entry
