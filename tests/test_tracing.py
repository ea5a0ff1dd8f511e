"""Tests for tracing hooks and use_tracing()."""

import logging

import pytest

from iterquery import (
    LoggingHook,
    PrintHook,
    TraceConfig,
    TraceHook,
    query,
    use_tracing,
)


class RecordingHook:
    def __init__(self):
        self.events = []

    def on_enter(self, name, depth):
        self.events.append(("enter", name, depth))
        return name

    def on_exit(self, span, name, produced, duration_ms, depth):
        assert span == name
        assert duration_ms >= 0
        self.events.append(("exit", name, produced, depth))

    def on_error(self, span, name, error, duration_ms, depth):
        self.events.append(("error", name, type(error).__name__, depth))


class TestUseTracing:
    def test_recording_hook_matches_protocol(self):
        assert isinstance(RecordingHook(), TraceHook)
        assert isinstance(PrintHook(), TraceHook)
        assert isinstance(LoggingHook(logging.getLogger("test")), TraceHook)

    def test_traces_each_stage(self):
        hook = RecordingHook()
        executor = query().select("a").take(1).on([{"a": 1}, {"a": 2}])

        with use_tracing(hook):
            assert executor.collect() == [1]

        assert hook.events == [
            ("enter", "Query[2]", 0),
            ("enter", "take(1)", 2),
            ("enter", "select('a')", 1),
            ("exit", "select('a')", 1, 1),
            ("exit", "take(1)", 1, 2),
            ("exit", "Query[2]", 1, 0),
        ]

    def test_not_traced_outside_scope(self):
        hook = RecordingHook()
        executor = query().take(1).on([1])
        with use_tracing(hook):
            pass
        executor.collect()
        assert hook.events == []

    def test_empty_query_traced(self):
        hook = RecordingHook()
        with use_tracing(hook):
            query().on([1, 2]).collect()
        assert hook.events == [("enter", "Query[0]", 0), ("exit", "Query[0]", 2, 0)]

    def test_errors_reported_and_raised(self):
        hook = RecordingHook()
        executor = query().map(lambda x: 1 / x).on([1, 0])

        with use_tracing(hook), pytest.raises(ZeroDivisionError):
            executor.collect()

        assert ("error", "map(<lambda>)", "ZeroDivisionError", 1) in hook.events
        assert hook.events[-1] == ("error", "Query[1]", "ZeroDivisionError", 0)

    def test_pipeline_only(self):
        hook = RecordingHook()
        with use_tracing(hook, TraceConfig(per_stage=False)):
            query().skip(1).take(5).on(range(4)).collect()
        assert hook.events == [("enter", "Query[2]", 0), ("exit", "Query[2]", 3, 0)]

    def test_max_depth(self):
        hook = RecordingHook()
        with use_tracing(hook, TraceConfig(max_depth=1)):
            query().skip(1).take(5).on(range(4)).collect()
        assert {event[1] for event in hook.events} == {"Query[2]", "skip(1)"}

    def test_nested_scopes_restore_hook(self):
        outer, inner = RecordingHook(), RecordingHook()
        executor = query().on([1])
        with use_tracing(outer):
            with use_tracing(inner):
                executor.collect()
            executor.collect()
        assert len(inner.events) == 2
        assert len(outer.events) == 2


class TestBuiltinHooks:
    def test_print_hook(self, capsys):
        with use_tracing(PrintHook()):
            query().take(1).on([1, 2]).collect()
        out = capsys.readouterr().out
        assert "-> Query[1]" in out
        assert "  -> take(1)" in out
        assert "<- Query[1] x1" in out

    def test_print_hook_error(self, capsys):
        with use_tracing(PrintHook()), pytest.raises(KeyError):
            query().map(lambda d: d["x"]).on([{}]).collect()
        assert "ERROR" in capsys.readouterr().out

    def test_logging_hook(self, caplog):
        logger = logging.getLogger("iterquery.test")
        caplog.set_level(logging.DEBUG, logger="iterquery.test")

        with use_tracing(LoggingHook(logger)):
            query().where(lambda x: x > 1).on([1, 2, 3]).collect()

        assert "[ENTER] Query[1] (depth=0)" in caplog.text
        assert "[EXIT] where(<lambda>) -> 2 value(s)" in caplog.text

    def test_logging_hook_error_level(self, caplog):
        logger = logging.getLogger("iterquery.test")
        caplog.set_level(logging.DEBUG, logger="iterquery.test")

        with use_tracing(LoggingHook(logger)), pytest.raises(ZeroDivisionError):
            query().map(lambda x: x / 0).on([1]).collect()

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors
        assert "[ERROR] map(<lambda>)" in errors[0].getMessage()
