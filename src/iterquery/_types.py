"""Shared type variables, aliases and context variables."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from iterquery._tracing import TraceConfig, TraceHook

T = TypeVar("T")

Stage = Callable[[Iterable[Any]], Iterator[Any]]
"""A lazy sequence transformer: takes an iterable, returns an iterator."""

# Context variables for scoped tracing
_trace_hook: ContextVar[TraceHook | None] = ContextVar("trace_hook", default=None)
_trace_config: ContextVar[TraceConfig | None] = ContextVar(
    "trace_config", default=None
)
