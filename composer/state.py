"""Immutable per-run state — threaded explicitly from one step to the next."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Self


@dataclass(frozen=True)
class RunState:
    """Where a single run stands.

    ``stack`` is the snapshot taken when the run started, so mutating the
    pipeline mid-run never affects it.  Each step produces a new state via
    :meth:`replace` rather than mutating a shared one.
    """

    stack: tuple = ()
    index: int = 0
    error: Any = None

    @property
    def finished(self) -> bool:
        return self.index >= len(self.stack)

    @property
    def current(self) -> Any:
        return self.stack[self.index]

    def replace(self, **changes: Any) -> Self:
        """Return a new state with the given fields replaced."""
        return dataclasses.replace(self, **changes)
