"""Tests for concurrent tool-call execution."""

from __future__ import annotations

import asyncio
import json

import pytest

from responseloop.llm.types import PendingToolCall
from responseloop.tools.executor import execute_all, parse_arguments
from responseloop.tools.tracing import TraceDispatcher
from responseloop.types import ErrorCode
from tests.mock_tools import SlowTool, echo, explode


def _call(name, arguments="{}", n=1):
    return PendingToolCall(id=f"call_{n}", item_id=f"fc_{n}", name=name, arguments=arguments)


class TestParseArguments:
    @pytest.mark.parametrize("raw", ["", "not json", "[1, 2]", '"str"', "null", "{"])
    def test_non_objects_become_empty(self, raw):
        assert parse_arguments(raw) == {}

    def test_object(self):
        assert parse_arguments('{"a": 1}') == {"a": 1}


class TestExecuteAll:
    async def test_success_content_is_json(self):
        results = await execute_all([_call("echo", '{"message": "hi"}')], {"echo": echo})
        assert len(results) == 1
        assert results[0].success
        assert results[0].correlation_id == "call_1"
        assert json.loads(results[0].content) == {"echo": "hi"}

    async def test_tool_not_found(self):
        results = await execute_all([_call("missing")], {})
        assert json.loads(results[0].content) == {"error": "Tool not found"}
        assert not results[0].success
        assert results[0].error_code == ErrorCode.TOOL_NOT_FOUND

    async def test_exception_becomes_error_result(self):
        results = await execute_all([_call("explode")], {"explode": explode})
        assert json.loads(results[0].content) == {"error": "boom"}
        assert results[0].error_code == ErrorCode.TOOL_EXCEPTION

    async def test_malformed_arguments_run_with_empty_args(self):
        seen = []

        async def capture(args):
            seen.append(args)
            return "ok"

        results = await execute_all([_call("capture", "{not json")], {"capture": capture})
        assert seen == [{}]
        assert results[0].success
        assert json.loads(results[0].content) == "ok"

    async def test_non_json_return_values_are_stringified(self):
        class Thing:
            def __str__(self):
                return "thing"

        async def weird(args):
            return {"value": Thing()}

        results = await execute_all([_call("weird")], {"weird": weird})
        assert json.loads(results[0].content) == {"value": "thing"}

    @pytest.mark.parametrize("kind", ["tuple_keys", "circular"])
    async def test_unencodable_return_value_fails_only_its_call(self, kind):
        async def unencodable(args):
            if kind == "tuple_keys":
                return {(1, 2): "x"}
            loop: dict = {}
            loop["self"] = loop
            return loop

        calls = [_call("echo", '{"message": "hi"}', n=1), _call("bad", n=2)]
        results = await execute_all(calls, {"echo": echo, "bad": unencodable})

        assert len(results) == 2
        assert results[0].success
        assert results[1].correlation_id == "call_2"
        assert not results[1].success
        assert results[1].error_code == ErrorCode.TOOL_EXCEPTION
        assert "error" in json.loads(results[1].content)

    async def test_order_matches_calls_not_completion(self):
        log: list[str] = []
        registry = {
            "slow": SlowTool("slow", 0.05, log),
            "fast": SlowTool("fast", 0.0, log),
        }
        calls = [_call("slow", n=1), _call("fast", n=2)]
        results = await execute_all(calls, registry)
        assert [r.correlation_id for r in results] == ["call_1", "call_2"]
        assert json.loads(results[0].content)["tool"] == "slow"
        assert log.index("end:fast") < log.index("end:slow")

    async def test_calls_run_concurrently(self):
        log: list[str] = []
        registry = {f"t{i}": SlowTool(f"t{i}", 0.02, log) for i in range(3)}
        calls = [_call(f"t{i}", n=i) for i in range(3)]
        await execute_all(calls, registry)
        # Every call starts before any finishes.
        assert all(entry.startswith("start:") for entry in log[:3])

    async def test_failure_is_isolated(self):
        log: list[str] = []
        registry = {
            "a": SlowTool("a", 0.01, log),
            "explode": explode,
            "c": SlowTool("c", 0.02, log),
        }
        calls = [_call("a", n=1), _call("explode", n=2), _call("c", n=3)]
        results = await execute_all(calls, registry)
        assert len(results) == 3
        assert results[0].success and results[2].success
        assert not results[1].success
        assert json.loads(results[2].content)["tool"] == "c"

    async def test_empty_batch(self):
        assert await execute_all([], {}) == []


class TestExecuteAllTracing:
    async def test_reports_each_executed_call(self):
        records = []
        trace = TraceDispatcher(records.append, execution_id="exec-1")
        calls = [_call("echo", '{"message": "x"}', n=1), _call("explode", n=2)]
        await execute_all(calls, {"echo": echo, "explode": explode}, trace=trace)
        await trace.drain()

        by_name = {r.tool_name: r for r in records}
        assert by_name["echo"].success
        assert by_name["echo"].result == {"echo": "x"}
        assert by_name["echo"].arguments == {"message": "x"}
        assert not by_name["explode"].success
        assert by_name["explode"].error == "boom"
        assert all(r.execution_id == "exec-1" for r in records)
        assert all(r.duration_ms >= 0 for r in records)

    async def test_failing_sink_does_not_affect_results(self):
        def broken(record):
            raise OSError("disk full")

        trace = TraceDispatcher(broken)
        results = await execute_all([_call("echo", '{"message": "x"}')], {"echo": echo}, trace=trace)
        await trace.drain()
        assert results[0].success
        assert trace.pending == 0

    async def test_slow_sink_does_not_block(self):
        release = asyncio.Event()

        async def slow_sink(record):
            await release.wait()

        trace = TraceDispatcher(slow_sink)
        results = await execute_all([_call("echo", "{}")], {"echo": echo}, trace=trace)
        assert results[0].success
        assert trace.pending == 1
        release.set()
        await trace.drain()
        assert trace.pending == 0
