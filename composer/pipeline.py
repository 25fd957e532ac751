"""Pipeline — an editable, flat stack of handlers and error traps.

Running a pipeline walks its stack once against a ``(context, response,
done)`` triple:

* while no error is active, handlers run and error traps are skipped;
* once a step reports an error (through its continuation or by raising),
  handlers are skipped until an error trap claims it;
* an error trap that continues without an error clears it;
* ``done(err)`` is called exactly once at the end of the stack.

Every step after a continuation is deferred through the pipeline's
scheduler, so no step ever runs inside the frame of its predecessor.
"""

from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Any, Iterator, Optional

from .config import ComposerConfig, current_config
from .entry import Entry, Kind
from .errors import MissingMiddlewareError
from .normalize import normalize_all
from .protocol import Continuation, Done, Scheduler, StatsHook
from .state import RunState

logger = logging.getLogger(__name__)


class _Next:
    """Single-use continuation handed to each invoked step."""

    __slots__ = ("pipeline", "state", "context", "response", "done", "called")

    def __init__(
        self,
        pipeline: "Pipeline",
        state: RunState,
        context: Any,
        response: Any,
        done: Optional[Done],
    ) -> None:
        self.pipeline = pipeline
        self.state = state
        self.context = context
        self.response = response
        self.done = done
        self.called = False

    def __call__(self, err: Any = None) -> None:
        if self.called:
            logger.warning(
                "Continuation of step %d called more than once; ignoring",
                self.state.index - 1,
            )
            return
        self.called = True
        self.pipeline._schedule(
            self.state.replace(error=err), self.context, self.response, self.done
        )


class Pipeline:
    """A composed middleware chain.

    Build one with :func:`compose`.  The stack can be edited by selector
    name between runs; every mutator returns the pipeline so calls chain::

        app = compose(parse, {"auth": authenticate}, render)
        app.before("auth", rate_limit).after("auth", audit).remove("render")

    Only *None* means "no error": a step that continues with ``0``, ``""`` or
    ``False`` reports that value as an error.

    Args:
        *sources: Callables, ``{name: callable}`` mappings, lists of either,
            or other pipelines (their stacks are spliced in).
        config: Configuration to capture.  Defaults to
            :func:`~composer.config.current_config` at construction time.
    """

    def __init__(self, *sources: Any, config: Optional[ComposerConfig] = None) -> None:
        self.config = config if config is not None else current_config()
        self.stats: Optional[StatsHook] = self.config.stats
        self.scheduler: Scheduler = self.config.resolved_scheduler()
        self.stack: list[Any] = normalize_all(sources)
        self._wrap_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def names(self) -> list[Optional[str]]:
        """Selector names in stack order, *None* for anonymous entries."""
        return [item.name if isinstance(item, Entry) else None for item in self.stack]

    def __len__(self) -> int:
        return len(self.stack)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.stack)

    def __repr__(self) -> str:
        names = ", ".join(
            "<anonymous>" if name is None else str(name) for name in self.names()
        )
        return f"Pipeline([{names}])"

    # ------------------------------------------------------------------
    # Stack mutation
    # ------------------------------------------------------------------

    def push(self, *sources: Any) -> "Pipeline":
        """Append ``sources`` to the end of the stack."""
        self.stack = self.stack + normalize_all(sources)
        logger.debug("push: stack now has %d entries", len(self.stack))
        return self

    def unshift(self, *sources: Any) -> "Pipeline":
        """Prepend ``sources`` to the start of the stack."""
        self.stack = normalize_all(sources) + self.stack
        logger.debug("unshift: stack now has %d entries", len(self.stack))
        return self

    def before(self, selector: str, *sources: Any) -> "Pipeline":
        """Insert ``sources`` before every entry named ``selector``."""
        return self._rebuild("before", selector, sources)

    def after(self, selector: str, *sources: Any) -> "Pipeline":
        """Insert ``sources`` after every entry named ``selector``."""
        return self._rebuild("after", selector, sources)

    def replace(self, selector: str, *sources: Any) -> "Pipeline":
        """Replace every entry named ``selector`` with ``sources``."""
        return self._rebuild("replace", selector, sources)

    def remove(self, selector: str) -> "Pipeline":
        """Drop every entry named ``selector``."""
        return self._rebuild("remove", selector, ())

    def clone(self) -> "Pipeline":
        """Copy with an independent stack and the same captured config."""
        twin = Pipeline(config=self.config)
        twin.stack = list(self.stack)
        return twin

    def _rebuild(self, op: str, selector: str, sources: tuple) -> "Pipeline":
        if selector is None or selector == "":
            return self
        added = normalize_all(sources)
        rebuilt: list[Any] = []
        hits = 0
        for item in self.stack:
            if not (isinstance(item, Entry) and item.matches(selector)):
                rebuilt.append(item)
                continue
            hits += 1
            if op == "before":
                rebuilt.extend(added)
                rebuilt.append(item)
            elif op == "after":
                rebuilt.append(item)
                rebuilt.extend(added)
            elif op == "replace":
                rebuilt.extend(added)
        self.stack = rebuilt
        logger.debug(
            "%s %r: %d match(es), stack now has %d entries",
            op,
            selector,
            hits,
            len(rebuilt),
        )
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def __call__(self, context: Any, response: Any, done: Optional[Done] = None) -> None:
        self._instrument()
        self._schedule(RunState(stack=tuple(self.stack)), context, response, done)

    def _instrument(self) -> None:
        """Wrap every entry the stats hook has not seen yet, exactly once."""
        if self.stats is None:
            return
        with self._wrap_lock:
            for i, item in enumerate(self.stack):
                if isinstance(item, Entry) and item.is_callable and not item.wrapped:
                    self.stack[i] = item.wrap(self.stats)

    def _schedule(
        self, state: RunState, context: Any, response: Any, done: Optional[Done]
    ) -> None:
        self.scheduler(partial(self._step, state, context, response, done))

    def _step(
        self, state: RunState, context: Any, response: Any, done: Optional[Done]
    ) -> None:
        if state.finished:
            self._finish(state.error, done)
            return

        entry = state.current
        state = state.replace(index=state.index + 1)

        if not (isinstance(entry, Entry) and entry.is_callable):
            # last error wins
            self._schedule(
                state.replace(error=MissingMiddlewareError(entry)), context, response, done
            )
            return

        if state.error is not None:
            if entry.kind is Kind.ERROR_TRAP:
                self._invoke(entry, state, context, response, done)
            else:
                self._schedule(state, context, response, done)
        elif entry.kind is Kind.ERROR_TRAP:
            self._schedule(state, context, response, done)
        else:
            self._invoke(entry, state, context, response, done)

    def _invoke(
        self,
        entry: Entry,
        state: RunState,
        context: Any,
        response: Any,
        done: Optional[Done],
    ) -> None:
        next_: Continuation = _Next(self, state, context, response, done)
        try:
            if entry.kind is Kind.ERROR_TRAP:
                entry.fn(state.error, context, response, next_)
            else:
                entry.fn(context, response, next_)
        except Exception as exc:
            logger.debug("Step %r raised", entry, exc_info=True)
            next_(exc)

    @staticmethod
    def _finish(error: Any, done: Optional[Done]) -> None:
        if done is None:
            if error is not None:
                logger.debug("Run finished with unobserved error: %r", error)
            return
        if error is None:
            done()
        else:
            done(error)


def compose(*sources: Any, config: Optional[ComposerConfig] = None) -> Pipeline:
    """Compose ``sources`` into a single :class:`Pipeline`.

    Sources may be any mix of callables, ``{name: callable}`` mappings,
    lists of those, and other pipelines.  The result's stack is the flat
    normalization of all sources in argument order.
    """
    return Pipeline(*sources, config=config)
