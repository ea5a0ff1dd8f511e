"""Query builder: accumulates rules and compiles them into one."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from iterquery._core import Rule, compile_rules
from iterquery._executor import QueryExecutor
from iterquery._rules import (
    flat_rule,
    map_rule,
    select_rule,
    skip_rule,
    take_rule,
    where_rule,
)
from iterquery._types import Stage


class Query:
    """
    A fluent builder of lazy pipelines.

    Every stage method appends a rule and returns the same query, so calls
    chain. Rules apply in the order they were added.

    Example:
        recent = (
            query()
            .select("commit")
            .select(["author", "message"])
            .where(lambda c: c["author"]["date"] > "2024-01-12")
            .take(5)
            .build()
        )
        recent.on(commits).foreach(print)

    Pass `rules` only to seed a query with already built rules (see
    extend()); the list is copied.
    """

    def __init__(self, rules: Iterable[Rule | Stage] | None = None):
        self.rules: list[Rule | Stage] = list(rules) if rules is not None else []

    def _push(self, rule: Rule) -> Query:
        self.rules.append(rule)
        return self

    def select(self, fields: str | Iterable[str] | Callable[[Any], Any]) -> Query:
        """Project each value: one field, a dict of fields, or a callable."""
        return self._push(select_rule(fields))

    def where(self, fn: Callable[..., Any]) -> Query:
        """Keep values for which ``fn(value[, index])`` is truthy."""
        return self._push(where_rule(fn))

    def flat(self, n: int = -1) -> Query:
        """Expand nested iterables; stop after `n` groups when ``n >= 0``."""
        return self._push(flat_rule(n))

    def take(self, n: int) -> Query:
        return self._push(take_rule(n))

    def skip(self, n: int) -> Query:
        return self._push(skip_rule(n))

    def map(self, fn: Callable[..., Any]) -> Query:
        """Replace each value with ``fn(value[, index])``."""
        return self._push(map_rule(fn))

    def compile(self) -> Rule:
        """
        Compile the current rules into a single rule.

        The result is a snapshot: adding rules later does not change it.
        With no rules the result is the identity rule.
        """
        return compile_rules(self.rules)

    def build(self) -> QueryExecutor:
        """Same as on() with no source."""
        return self.on()

    def on(self, source: Iterable[Any] | None = None) -> QueryExecutor:
        """Create an executor running the compiled query over `source`."""
        return QueryExecutor(self.compile(), source)

    def extend(self) -> Query:
        """
        Create a new query seeded with this query's compiled rules.

        Rules added to either query afterwards do not affect the other.

        Example:
            first = query().take(1)
            first.extend().select("val").on(rows).collect()  # first unchanged
        """
        return Query([self.compile()])

    def pack(self) -> Query:
        """Replace the rules with their compiled form, in place."""
        if self.rules:
            self.rules = [self.compile()]
        return self

    def __len__(self) -> int:
        return len(self.rules)

    def __repr__(self) -> str:
        names = ", ".join(getattr(r, "name", repr(r)) for r in self.rules)
        return f"Query([{names}])"


def query() -> Query:
    """Create an empty query."""
    return Query()
