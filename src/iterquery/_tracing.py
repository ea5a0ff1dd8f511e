"""Tracing hooks for observing pipeline execution."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from iterquery._types import _trace_config, _trace_hook


@runtime_checkable
class TraceHook(Protocol):
    """
    Protocol for trace hooks.

    A span covers the lifetime of one stage's output (or of the whole
    pipeline at depth 0): it opens on the first pull and closes when the
    stage is exhausted, closed early, or fails.

    Example:
        class MyHook:
            def on_enter(self, name, depth):
                print(f"{'  ' * depth}-> {name}")
                return None  # span token

            def on_exit(self, span, name, produced, duration_ms, depth):
                print(f"{'  ' * depth}<- {name} x{produced}")

            def on_error(self, span, name, error, duration_ms, depth):
                print(f"{'  ' * depth}<- {name} ERROR: {error}")
    """

    def on_enter(self, name: str, depth: int) -> Any:
        """
        Called when a stage is first pulled.

        Args:
            name: Name of the stage (or ``Query[n]`` for the pipeline)
            depth: 0 for the whole pipeline, i + 1 for the i-th stage

        Returns:
            Span token to pass to on_exit / on_error (can be None)
        """
        ...

    def on_exit(
        self, span: Any, name: str, produced: int, duration_ms: float, depth: int
    ) -> None:
        """
        Called when a stage is exhausted or closed.

        Args:
            span: Token returned from on_enter
            name: Name of the stage
            produced: Number of values the stage yielded
            duration_ms: Time since on_enter in milliseconds
            depth: Stage depth
        """
        ...

    def on_error(
        self, span: Any, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        """Called if pulling from a stage raised. The error is re-raised after."""
        ...


@dataclass
class TraceConfig:
    """
    Configuration for tracing behavior.

    Attributes:
        per_stage: If True, trace every stage; otherwise only the pipeline
        max_depth: Trace only stages up to this depth (None = unlimited)
    """

    per_stage: bool = True
    max_depth: int | None = None

    def traces_stage(self, depth: int) -> bool:
        if not self.per_stage:
            return False
        return self.max_depth is None or depth <= self.max_depth


@contextmanager
def use_tracing(hook: TraceHook, config: TraceConfig | None = None) -> Iterator[None]:
    """
    Context manager to trace every pipeline started in scope.

    A pipeline is traced if its first value is pulled inside the scope.

    Args:
        hook: TraceHook implementation to receive trace events
        config: Optional TraceConfig to customize tracing behavior

    Example:
        with use_tracing(LoggingHook(logger)):
            query().where(is_recent).take(5).on(commits).collect()

        with use_tracing(PrintHook(), TraceConfig(per_stage=False)):
            executor.collect()
    """
    hook_token = _trace_hook.set(hook)
    config_token = _trace_config.set(config or TraceConfig())
    try:
        yield
    finally:
        _trace_hook.reset(hook_token)
        _trace_config.reset(config_token)


# =============================================================================
# Built-in Trace Hooks
# =============================================================================


class PrintHook:
    """
    Simple trace hook that prints to stdout.

    Example:
        with use_tracing(PrintHook()):
            query().select("a").take(1).on(rows).collect()

        # Output:
        # -> Query[2]
        #     -> take(1)
        #   -> select('a')
        #   <- select('a') x1 (0.01ms)
        #     <- take(1) x1 (0.03ms)
        # <- Query[2] x1 (0.05ms)
    """

    def __init__(self, indent: str = "  "):
        self.indent = indent

    def on_enter(self, name: str, depth: int) -> float:
        print(f"{self.indent * depth}-> {name}")
        return time.perf_counter()

    def on_exit(
        self, span: float, name: str, produced: int, duration_ms: float, depth: int
    ) -> None:
        print(f"{self.indent * depth}<- {name} x{produced} ({duration_ms:.2f}ms)")

    def on_error(
        self, span: float, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        print(f"{self.indent * depth}<- {name} ERROR: {error} ({duration_ms:.2f}ms)")


class LoggingHook:
    """
    Trace hook that logs to a Python logger.

    Example:
        import logging
        logger = logging.getLogger("iterquery")

        with use_tracing(LoggingHook(logger)):
            executor.foreach(handle)
    """

    def __init__(self, logger: logging.Logger, level: int = logging.DEBUG):
        self.logger = logger
        self.level = level

    def on_enter(self, name: str, depth: int) -> dict:
        span = {"name": name, "depth": depth, "start": time.perf_counter()}
        self.logger.log(self.level, "[ENTER] %s (depth=%d)", name, depth)
        return span

    def on_exit(
        self, span: dict, name: str, produced: int, duration_ms: float, depth: int
    ) -> None:
        self.logger.log(
            self.level,
            "[EXIT] %s -> %d value(s) (%.2fms)",
            name,
            produced,
            duration_ms,
        )

    def on_error(
        self, span: dict, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        self.logger.error("[ERROR] %s -> %s (%.2fms)", name, error, duration_ms)
