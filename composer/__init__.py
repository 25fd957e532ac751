"""Middleware composer — flat, editable handler chains with error traps.

Public surface::

    from composer import (
        compose,
        Pipeline,
        Entry,
        Kind,
        handler,
        error_trap,
        noop,
        ComposerConfig,
        configure,
        configured,
        current_config,
        reset_config,
        Trampoline,
        AsyncioScheduler,
        ComposerError,
        MissingMiddlewareError,
    )
"""

from .config import ComposerConfig, configure, configured, current_config, reset_config
from .entry import Entry, Kind, error_trap, handler, noop
from .errors import ComposerError, MissingMiddlewareError
from .normalize import normalize, normalize_all
from .pipeline import Pipeline, compose
from .scheduler import AsyncioScheduler, Trampoline, default_scheduler

__all__ = [
    "compose",
    "Pipeline",
    "Entry",
    "Kind",
    "handler",
    "error_trap",
    "noop",
    "normalize",
    "normalize_all",
    "ComposerConfig",
    "configure",
    "configured",
    "current_config",
    "reset_config",
    "Trampoline",
    "AsyncioScheduler",
    "default_scheduler",
    "ComposerError",
    "MissingMiddlewareError",
]
