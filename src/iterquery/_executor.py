"""Query executor: binds a compiled rule to a source and consumes it."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Coroutine, Iterable, Iterator
from typing import TYPE_CHECKING, Any

from iterquery._core import Rule, as_rule, indexed, pulling
from iterquery._types import Stage

if TYPE_CHECKING:
    from iterquery._query import Query


def _resolved(value: Any) -> asyncio.Future[Any]:
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


async def _gather_in_order(results: list[Any]) -> list[Any]:
    pending = [
        asyncio.ensure_future(r) if inspect.isawaitable(r) else _resolved(r)
        for r in results
    ]
    return list(await asyncio.gather(*pending))


class QueryExecutor:
    """
    A compiled rule bound to a (rebindable) source.

    Iterating the executor runs the rule over the source lazily, from
    scratch each time. A single-pass source (a generator, a file) is
    therefore consumed by the first run; later runs yield nothing.

    Example:
        names = query().select("name").build()
        names.on(users).collect()    # ["ada", "alan"]
        names.on(admins).collect()   # same rule, new source

    Attributes:
        source: The iterable the rule runs over (None until bound).
    """

    def __init__(self, rule: Rule | Stage, source: Iterable[Any] | None = None):
        self._rule = as_rule(rule)
        self.source = source

    @property
    def rule(self) -> Rule:
        """The compiled rule. Fixed for the lifetime of the executor."""
        return self._rule

    def __iter__(self) -> Iterator[Any]:
        with pulling(self._rule(self.source)) as values:
            yield from values

    def foreach(self, fn: Callable[[Any], Any]) -> None:
        """Call ``fn(value)`` for each value."""
        with pulling(self) as values:
            for value in values:
                fn(value)

    def iforeach(self, fn: Callable[..., Any]) -> None:
        """Call ``fn(value, index)`` for each value."""
        call = indexed(fn)
        with pulling(self) as values:
            for i, value in enumerate(values):
                call(value, i)

    def collect(self) -> list[Any]:
        """Run the query and return all values in order."""
        return list(self)

    def acollect(
        self, fn: Callable[..., Any] | None = None
    ) -> Coroutine[Any, Any, list[Any]]:
        """
        Call ``fn(value, index)`` for each value and gather the results.

        The query runs, and `fn` is called, when acollect() is called, so
        rebinding the source before awaiting does not change the result.
        `fn` may return a plain value or an awaitable. Awaiting the returned
        coroutine schedules every awaitable at once, so they all run
        concurrently, and then awaits them together. Results keep the order
        in which values were produced. The first failure is raised; the
        other tasks are left running. Without `fn` the values themselves
        are gathered.

        Example:
            async def enrich(user):
                user["events"] = await fetch_events(user["events_url"])
                return user

            users = await (
                query().select(["login", "events_url"]).on(raw).acollect(enrich)
            )
        """
        call = indexed(fn) if fn is not None else (lambda value, _i: value)
        with pulling(self) as values:
            results = [call(value, i) for i, value in enumerate(values)]
        return _gather_in_order(results)

    def on(self, source: Iterable[Any]) -> QueryExecutor:
        """Bind `source` in place and return this executor."""
        self.source = source
        return self

    def extend(self) -> Query:
        """Create a new query whose first rule is this executor's rule."""
        from iterquery._query import Query

        return Query([self._rule])

    def __repr__(self) -> str:
        source = type(self.source).__name__
        return f"QueryExecutor({self._rule.name}, source={source})"
