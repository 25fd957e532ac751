"""Composer configuration and the process-wide default registry.

A :class:`~composer.pipeline.Pipeline` captures its effective configuration
once, at construction: either the ``config`` passed to it or whatever
:func:`current_config` returns at that moment.  Later calls to
:func:`configure` never affect pipelines that already exist.

Example::

    from composer import compose, configure

    configure(stats=my_stats.wrap)   # before building pipelines
    app = compose(parse_body, authenticate, render)
"""

from __future__ import annotations

import importlib
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .errors import ComposerError
from .protocol import Scheduler
from .scheduler import default_scheduler, get_scheduler

ENV_SCHEDULER = "COMPOSER_SCHEDULER"
ENV_STATS = "COMPOSER_STATS"


class ComposerConfig(BaseModel):
    """Settings captured by a pipeline at construction time."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    stats: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Instrumentation hook, wraps each entry once: fn -> fn.",
    )
    scheduler: Optional[Callable[..., Any]] = Field(
        default=None,
        description="schedule(fn) primitive; None selects the default trampoline.",
    )

    def resolved_scheduler(self) -> Scheduler:
        return self.scheduler if self.scheduler is not None else default_scheduler()

    @classmethod
    def from_env(cls, env_file: Union[str, Path, None] = None) -> "ComposerConfig":
        """Build a config from ``COMPOSER_*`` environment variables.

        ``env_file`` (or ``./.env`` when it exists) is loaded first without
        overriding variables already set in the environment.

        Recognized variables:
            COMPOSER_SCHEDULER: ``trampoline`` or ``asyncio``.
            COMPOSER_STATS: import path of a stats hook, ``package.module:attr``.
        """
        path = Path(env_file) if env_file is not None else Path.cwd() / ".env"
        if path.exists():
            load_dotenv(path)

        fields: dict[str, Any] = {}
        scheduler_name = os.environ.get(ENV_SCHEDULER, "").strip()
        if scheduler_name:
            fields["scheduler"] = get_scheduler(scheduler_name)
        stats_path = os.environ.get(ENV_STATS, "").strip()
        if stats_path:
            fields["stats"] = _import_object(stats_path)
        return cls(**fields)


def _import_object(path: str) -> Any:
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ComposerError(f"Expected 'module:attribute', got {path!r}")
    try:
        obj: Any = importlib.import_module(module_name)
        for part in attr.split("."):
            obj = getattr(obj, part)
    except (ImportError, AttributeError) as exc:
        raise ComposerError(f"Cannot import {path!r}: {exc}") from exc
    return obj


# ---------------------------------------------------------------------------
# Process-wide registry
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_current = ComposerConfig()


def current_config() -> ComposerConfig:
    """The configuration new pipelines capture by default."""
    return _current


def configure(config: Optional[ComposerConfig] = None, **fields: Any) -> ComposerConfig:
    """Install the process-wide default configuration.

    Pass either a ready :class:`ComposerConfig` or its fields as keyword
    arguments.  Returns the installed config.
    """
    global _current
    if config is not None and fields:
        raise ComposerError("Pass either a ComposerConfig or keyword fields, not both")
    new = config if config is not None else ComposerConfig(**fields)
    with _lock:
        _current = new
    return new


def reset_config() -> None:
    """Restore the empty default configuration."""
    configure(ComposerConfig())


@contextmanager
def configured(
    config: Optional[ComposerConfig] = None, **fields: Any
) -> Iterator[ComposerConfig]:
    """Install a configuration for the duration of a ``with`` block."""
    previous = current_config()
    installed = configure(config, **fields)
    try:
        yield installed
    finally:
        configure(previous)
