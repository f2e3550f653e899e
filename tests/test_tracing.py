"""Tests for trace dispatch and the JSONL trace sink."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from responseloop.tools.tracing import JsonlTraceSink, TraceDispatcher, TraceRecord


def _record(name="echo", **kwargs):
    now = datetime.now(timezone.utc)
    defaults = dict(
        tool_name=name,
        arguments={"a": 1},
        start_time=now,
        end_time=now,
        duration_ms=3,
        success=True,
        result={"ok": True},
    )
    defaults.update(kwargs)
    return TraceRecord(**defaults)


@pytest.fixture
def trace_path(tmp_path):
    return tmp_path / "traces.jsonl"


class TestTraceRecord:
    def test_to_dict_uses_iso_timestamps(self):
        d = _record().to_dict()
        assert isinstance(d["start_time"], str)
        datetime.fromisoformat(d["start_time"])
        assert d["tool_name"] == "echo"


class TestTraceDispatcher:
    async def test_stamps_context(self):
        seen = []
        trace = TraceDispatcher(seen.append, execution_id="e1", parent_node_id="n1")
        trace.report(_record())
        await trace.drain()
        assert seen[0].execution_id == "e1"
        assert seen[0].parent_node_id == "n1"

    async def test_keeps_existing_context(self):
        seen = []
        trace = TraceDispatcher(seen.append, execution_id="e1")
        trace.report(_record(execution_id="mine"))
        await trace.drain()
        assert seen[0].execution_id == "mine"

    async def test_async_sink(self):
        seen = []

        async def sink(record):
            seen.append(record.tool_name)

        trace = TraceDispatcher(sink)
        trace.report(_record("a"))
        trace.report(_record("b"))
        await trace.drain()
        assert sorted(seen) == ["a", "b"]

    async def test_sink_failure_is_logged(self, caplog):
        async def sink(record):
            raise RuntimeError("sink down")

        trace = TraceDispatcher(sink)
        trace.report(_record())
        await trace.drain()
        assert "Trace sink failed" in caplog.text


class TestJsonlTraceSink:
    async def test_writes_one_line_per_record(self, trace_path):
        sink = JsonlTraceSink(str(trace_path))
        await sink(_record("a"))
        await sink(_record("b"))
        lines = trace_path.read_text().strip().split("\n")
        assert [json.loads(line)["tool_name"] for line in lines] == ["a", "b"]
        assert "ts" in json.loads(lines[0])

    async def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "t.jsonl"
        sink = JsonlTraceSink(str(path))
        await sink(_record())
        assert path.exists()

    async def test_rotation(self, trace_path):
        sink = JsonlTraceSink(str(trace_path), max_size_mb=0, keep_files=3)
        for i in range(4):
            await sink(_record(f"t{i}"))

        rotated_1 = trace_path.with_suffix(".jsonl.1")
        rotated_2 = trace_path.with_suffix(".jsonl.2")
        assert rotated_1.exists()
        assert rotated_2.exists()
        assert json.loads(trace_path.read_text())["tool_name"] == "t3"
        assert json.loads(rotated_1.read_text())["tool_name"] == "t2"

    async def test_rotation_keeps_bounded_files(self, trace_path):
        sink = JsonlTraceSink(str(trace_path), max_size_mb=0, keep_files=2)
        for i in range(5):
            await sink(_record(f"t{i}"))
        assert not trace_path.with_suffix(".jsonl.3").exists()
        assert json.loads(trace_path.with_suffix(".jsonl.2").read_text())["tool_name"] == "t2"
