"""Rule factories: build individual pipeline stages from parameters."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from iterquery._core import Rule, close_iterator, indexed, pulling


def _describe(fn: Any) -> str:
    return getattr(fn, "__name__", None) or repr(fn)


def field_of(value: Any, name: str) -> Any:
    """
    Read field `name` from `value`.

    Mappings are read by key, other objects by attribute. A missing field
    reads as None.
    """
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def select_rule(fields: str | Iterable[str] | Callable[[Any], Any]) -> Rule:
    """
    Build a rule projecting each value.

    - A single field name unwraps that field: ``select_rule("a")`` turns
      ``{"a": 1, "b": 2}`` into ``1``.
    - A sequence of names builds a new dict with exactly those keys. Values
      are shared with the source (shallow copy): ``select_rule(["a"])``
      turns ``{"a": [1], "b": 2}`` into ``{"a": [1]}`` holding the same list.
    - A callable is applied to each value, for records that are better
      projected with typed code than by name.
    """
    if isinstance(fields, str):
        name = fields

        def select_one(it: Iterable[Any]) -> Iterator[Any]:
            with pulling(it) as src:
                for value in src:
                    yield field_of(value, name)

        return Rule(select_one, f"select({name!r})")

    if callable(fields):
        project = fields

        def select_with(it: Iterable[Any]) -> Iterator[Any]:
            with pulling(it) as src:
                for value in src:
                    yield project(value)

        return Rule(select_with, f"select({_describe(project)})")

    names = tuple(fields)

    def select_many(it: Iterable[Any]) -> Iterator[dict[str, Any]]:
        with pulling(it) as src:
            for value in src:
                yield {name: field_of(value, name) for name in names}

    return Rule(select_many, f"select({list(names)!r})")


def where_rule(fn: Callable[..., Any]) -> Rule:
    """
    Build a rule keeping values for which ``fn(value, index)`` is truthy.

    `index` counts every value pulled from upstream, kept or not.
    """
    keep = indexed(fn)

    def where(it: Iterable[Any]) -> Iterator[Any]:
        with pulling(it) as src:
            for i, value in enumerate(src):
                if keep(value, i):
                    yield value

    return Rule(where, f"where({_describe(fn)})")


def flat_rule(n: int = -1) -> Rule:
    """
    Build a rule expanding each value, itself an iterable, into its members.

    With ``n >= 0`` iteration stops after `n` groups were expanded: the
    groups after them are dropped, not passed through. ``n < 0`` expands
    every group.
    """

    def flat(it: Iterable[Any]) -> Iterator[Any]:
        flattened = 0
        with pulling(it) as src:
            for group in src:
                if n >= 0 and flattened >= n:
                    close_iterator(src)
                    break
                yield from group
                flattened += 1

    return Rule(flat, "flat()" if n < 0 else f"flat({n})")


def take_rule(n: int) -> Rule:
    """Build a rule yielding the first `n` values, then closing upstream."""

    def take(it: Iterable[Any]) -> Iterator[Any]:
        if n <= 0:
            # Upstream is still closed, without pulling from it
            close_iterator(iter(it))
            return
        taken = 0
        with pulling(it) as src:
            for value in src:
                yield value
                taken += 1
                if taken >= n:
                    close_iterator(src)
                    break

    return Rule(take, f"take({n})")


def skip_rule(n: int) -> Rule:
    """Build a rule dropping the first `n` values."""

    def skip(it: Iterable[Any]) -> Iterator[Any]:
        with pulling(it) as src:
            for i, value in enumerate(src):
                if i >= n:
                    yield value

    return Rule(skip, f"skip({n})")


def map_rule(fn: Callable[..., Any]) -> Rule:
    """Build a rule yielding ``fn(value, index)`` for each value."""
    apply = indexed(fn)

    def map_(it: Iterable[Any]) -> Iterator[Any]:
        with pulling(it) as src:
            for i, value in enumerate(src):
                yield apply(value, i)

    return Rule(map_, f"map({_describe(fn)})")
