"""Plain-text description of a pipeline."""

from __future__ import annotations

from iterquery._core import Rule, as_rule
from iterquery._executor import QueryExecutor
from iterquery._query import Query
from iterquery._types import Stage


def _stages(target: Query | QueryExecutor | Rule | Stage) -> list[Rule]:
    if isinstance(target, Query):
        rules = target.rules
    elif isinstance(target, QueryExecutor):
        rules = [target.rule]
    else:
        rules = [target]

    stages: list[Rule] = []
    for rule in rules:
        stages.extend(as_rule(rule).stages)
    return stages


def explain(target: Query | QueryExecutor | Rule | Stage) -> str:
    """
    Describe the stages a query, executor or rule applies, in order.

    Compiled and packed rules are expanded into the stages they were built
    from.

    Example:
        print(explain(query().select("commit").take(5)))

        # Output:
        # Query of 2 stages:
        #   1. select('commit')
        #   2. take(5)
    """
    stages = _stages(target)
    if not stages:
        return "Query of 0 stages (identity)"

    noun = "stage" if len(stages) == 1 else "stages"
    lines = [f"Query of {len(stages)} {noun}:"]
    for i, stage in enumerate(stages, start=1):
        lines.append(f"  {i}. {stage.name}")
    return "\n".join(lines)
