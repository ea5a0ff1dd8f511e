"""
iterquery - Lazy, Composable Queries over Iterables

Build a pipeline of stages with a fluent builder, compile it into a single
lazy rule, and run it over any iterable. Values are pulled one at a time
through the whole chain; stopping early closes every upstream generator.

Stages:
    select(fields)  = project one field, several fields, or with a callable
    where(fn)       = keep values matching fn(value[, index])
    flat(n=-1)      = expand nested iterables (only the first n groups)
    take(n)         = first n values
    skip(n)         = all but the first n values
    map(fn)         = fn(value[, index])

Example:
    from iterquery import query

    recent = (
        query()
        .select("commit")
        .select(["author", "message"])
        .where(lambda c: c["author"]["date"] > "2024-01-12")
        .take(5)
        .build()
    )

    # Reuse the compiled query, adding stages without changing it
    recent.extend().select("message").on(commits).iforeach(print)

    # Rebind the same query to another source
    recent.on(other_commits).foreach(print)
"""

from __future__ import annotations

__version__ = "0.1.0"
__all__ = [
    # Core
    "Rule",
    "Query",
    "QueryExecutor",
    "query",
    "identity",
    "compile_rules",
    "pulling",
    "close_iterator",
    # Rule factories
    "select_rule",
    "where_rule",
    "flat_rule",
    "take_rule",
    "skip_rule",
    "map_rule",
    "field_of",
    # Tracing
    "TraceHook",
    "TraceConfig",
    "use_tracing",
    "PrintHook",
    "LoggingHook",
    # Explanation
    "explain",
]

from iterquery._core import Rule, close_iterator, compile_rules, identity, pulling
from iterquery._executor import QueryExecutor
from iterquery._explain import explain
from iterquery._query import Query, query
from iterquery._rules import (
    field_of,
    flat_rule,
    map_rule,
    select_rule,
    skip_rule,
    take_rule,
    where_rule,
)
from iterquery._tracing import (
    LoggingHook,
    PrintHook,
    TraceConfig,
    TraceHook,
    use_tracing,
)
