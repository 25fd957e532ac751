"""Shared fixtures and handler factories for composer tests."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from composer import reset_config


@pytest.fixture(autouse=True)
def _clean_config():
    """Every test starts and ends with the empty default configuration."""
    reset_config()
    yield
    reset_config()


class DoneRecorder:
    """``done`` callback that records every call it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)

    @property
    def called(self) -> bool:
        return bool(self.calls)

    @property
    def error(self) -> Any:
        assert len(self.calls) == 1, f"done called {len(self.calls)} times"
        return self.calls[0][0] if self.calls[0] else None


@pytest.fixture
def done() -> DoneRecorder:
    return DoneRecorder()


@pytest.fixture
def ctx() -> dict:
    return {"log": []}


def mw(name: Any) -> Callable[..., None]:
    """Anonymous handler that appends ``name`` to ``context['log']``."""

    def step(context, response, next):
        context["log"].append(name)
        next()

    step.__name__ = "<anonymous>"
    return step


def failing(err: Any) -> Callable[..., None]:
    """Handler that reports ``err`` through its continuation."""

    def step(context, response, next):
        next(err)

    return step
