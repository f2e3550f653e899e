"""
Tool-call trace reporting.

Reports are fire-and-forget: ``TraceDispatcher.report`` schedules the sink
call as a detached task and returns immediately.  A failing sink is logged
and otherwise ignored; it never reaches the conversation loop.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

logger = logging.getLogger(__name__)


@dataclass
class TraceRecord:
    tool_name: str
    arguments: dict
    start_time: datetime
    end_time: datetime
    duration_ms: int
    success: bool
    result: Any = None
    error: str | None = None
    execution_id: str | None = None
    parent_node_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["start_time"] = self.start_time.isoformat()
        d["end_time"] = self.end_time.isoformat()
        return d


TraceSink = Callable[[TraceRecord], Union[Awaitable[None], None]]


class TraceDispatcher:
    """
    Hands ``TraceRecord`` objects to a sink without blocking the caller.

    Parameters
    ----------
    sink:
        Sync or async callable receiving each record.
    execution_id, parent_node_id:
        Context stamped on every record that does not already carry it.
    """

    def __init__(
        self,
        sink: TraceSink,
        *,
        execution_id: str | None = None,
        parent_node_id: str | None = None,
    ) -> None:
        self.sink = sink
        self.execution_id = execution_id
        self.parent_node_id = parent_node_id
        self._pending: set[asyncio.Task] = set()

    def report(self, record: TraceRecord) -> None:
        if record.execution_id is None:
            record.execution_id = self.execution_id
        if record.parent_node_id is None:
            record.parent_node_id = self.parent_node_id
        task = asyncio.get_running_loop().create_task(self._deliver(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, record: TraceRecord) -> None:
        try:
            outcome = self.sink(record)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Trace sink failed for tool %s", record.tool_name)

    async def drain(self) -> None:
        """Wait for every outstanding report to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._pending)


class JsonlTraceSink:
    """Appends one JSON line per record, rotating ``path.1 .. path.N``."""

    def __init__(
        self,
        path: str,
        *,
        max_size_mb: int = 10,
        keep_files: int = 5,
    ):
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.max_bytes = max_size_mb * 1024 * 1024
        self.keep_files = keep_files
        self._lock = asyncio.Lock()

    async def __call__(self, record: TraceRecord) -> None:
        async with self._lock:
            await self._rotate_if_needed()
            record_dict = record.to_dict()
            record_dict["ts"] = datetime.now(timezone.utc).isoformat()
            line = json.dumps(record_dict, sort_keys=True, default=str) + "\n"
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.flush()

    async def _rotate_if_needed(self) -> None:
        if not self.path.exists() or self.path.stat().st_size < self.max_bytes:
            return

        for i in range(self.keep_files - 1, 0, -1):
            src = self.path.with_suffix(self.path.suffix + f".{i}")
            dst = self.path.with_suffix(self.path.suffix + f".{i + 1}")
            if src.exists():
                src.replace(dst)

        self.path.replace(self.path.with_suffix(self.path.suffix + ".1"))
