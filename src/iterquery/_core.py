"""Rule base class, rule composition and lazy chain execution."""

from __future__ import annotations

import inspect
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from iterquery._tracing import TraceConfig, TraceHook
from iterquery._types import T, Stage, _trace_config, _trace_hook


@contextmanager
def pulling(iterable: Iterable[T]) -> Iterator[Iterator[T]]:
    """
    Context manager yielding an iterator over `iterable`.

    If the block is left by an exception, or by the enclosing generator
    being closed, the iterator is closed too, so closing the last stage
    finalizes every generator feeding it. An iterator that ran to the end
    is left open: a file or cursor owned by the caller stays usable.
    Code that stops pulling on its own calls close_iterator() first.

    Example:
        with pulling(source) as it:
            for value in it:
                if done(value):
                    close_iterator(it)
                    break
    """
    it = iter(iterable)
    try:
        yield it
    except BaseException:
        close_iterator(it)
        raise


def close_iterator(it: Iterator[Any]) -> None:
    """Close `it` if it supports closing (generators, files)."""
    close = getattr(it, "close", None)
    if close is not None:
        close()


class Rule:
    """
    A lazy sequence transformer (one pipeline stage).

    A rule wraps a function taking an iterable and returning an iterator,
    usually a generator function. Calling the rule does not pull anything.

    Rules compose with ``>>``:
        first_two_names = select_rule("name") >> take_rule(2)
        list(first_two_names(users))

    Example:
        def evens(it):
            for x in it:
                if x % 2 == 0:
                    yield x

        only_evens = Rule(evens)
        list(only_evens([1, 2, 3, 4]))  # [2, 4]
    """

    def __init__(self, fn: Stage, name: str | None = None):
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "rule")

    @property
    def stages(self) -> tuple[Rule, ...]:
        """The leaf rules this rule applies, in order."""
        return (self,)

    def __call__(self, it: Iterable[Any]) -> Iterator[Any]:
        return self.fn(it)

    def __rshift__(self, other: Rule | Stage) -> Rule:
        """a >> b = feed the output of a into b."""
        return _Chain((self, as_rule(other)))

    def __rrshift__(self, other: Stage) -> Rule:
        return _Chain((as_rule(other), self))

    def __repr__(self) -> str:
        return f"Rule({self.name})"


def as_rule(stage: Rule | Stage) -> Rule:
    """Wrap a plain stage function in a Rule (rules pass through)."""
    if isinstance(stage, Rule):
        return stage
    if not callable(stage):
        raise TypeError(f"expected a rule or callable stage, got {stage!r}")
    return Rule(stage)


class _Chain(Rule):
    """
    A compiled rule: applies a fixed tuple of rules in order.

    Nested chains are flattened on construction, so compiling a query that
    already holds compiled rules does not deepen the call chain.
    An empty chain is the identity rule.
    """

    def __init__(self, rules: Iterable[Rule | Stage]):
        flat: list[Rule] = []
        for rule in rules:
            flat.extend(as_rule(rule).stages)
        self.rules: tuple[Rule, ...] = tuple(flat)
        self.name = " >> ".join(r.name for r in self.rules) or "identity"

    @property
    def stages(self) -> tuple[Rule, ...]:
        return self.rules

    def __call__(self, it: Iterable[Any]) -> Iterator[Any]:
        hook = _trace_hook.get()
        if hook is not None:
            return _traced_chain(self.rules, it, hook, _trace_config.get())

        if not self.rules:
            return _identity(it)
        out: Iterable[Any] = it
        for rule in self.rules:
            out = rule(out)
        return iter(out)

    def __repr__(self) -> str:
        return f"Chain({self.name})"


def _identity(it: Iterable[T]) -> Iterator[T]:
    with pulling(it) as src:
        yield from src


def identity() -> Rule:
    """The rule that passes its input through unchanged."""
    return _Chain(())


def compile_rules(rules: Iterable[Rule | Stage]) -> Rule:
    """Compose rules into one rule applying them in order."""
    return _Chain(rules)


# =============================================================================
# Traced execution
# =============================================================================


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _traced(it: Iterable[T], hook: TraceHook, name: str, depth: int) -> Iterator[T]:
    """Report a span around the lifetime of `it` to `hook`."""
    span = hook.on_enter(name, depth)
    start = time.perf_counter()
    produced = 0
    failed = False
    try:
        with pulling(it) as src:
            for value in src:
                produced += 1
                yield value
    except Exception as e:
        failed = True
        hook.on_error(span, name, e, _elapsed_ms(start), depth)
        raise
    finally:
        if not failed:
            hook.on_exit(span, name, produced, _elapsed_ms(start), depth)


def _traced_chain(
    rules: tuple[Rule, ...],
    it: Iterable[Any],
    hook: TraceHook,
    config: TraceConfig | None,
) -> Iterator[Any]:
    config = config or TraceConfig()
    out: Iterable[Any] = it if rules else _identity(it)
    for depth, rule in enumerate(rules, start=1):
        out = rule(out)
        if config.traces_stage(depth):
            out = _traced(out, hook, rule.name, depth)

    label = f"Query[{len(rules)}]"
    return _traced(out, hook, label, 0)


def indexed(fn: Callable[..., T]) -> Callable[[Any, int], T]:
    """
    Adapt `fn` to be called as ``fn(value, index)``.

    Functions with a single required positional argument are called with
    the value only, so both ``lambda x: x > 2`` and ``lambda x, i: i > 0``
    work where an index is offered. Optional parameters never receive the
    index: ``round`` and ``str.strip`` get the value alone.
    """
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return lambda value, _i: fn(value)

    required = 0
    for p in params:
        if p.kind is p.VAR_POSITIONAL:
            return fn
        if (
            p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
            and p.default is p.empty
        ):
            required += 1

    if required >= 2:
        return fn
    return lambda value, _i: fn(value)
