"""
Trace events for auto-setup runs.

Usage:
    from mirrorbast.tracing import JsonlTraceSink, Tracer

    sink = JsonlTraceSink("autosetup.jsonl")
    tracer = Tracer(run_id="setup-1", sink=sink)
    orchestrator = AutoSetupOrchestrator(host, guest, views, tracer=tracer)
"""

from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class TraceSink(ABC):
    @abstractmethod
    def emit(self, event: dict[str, Any]) -> None:
        """Persist one event."""

    @abstractmethod
    def close(self) -> None:
        """Flush and release resources."""


class NoopTraceSink(TraceSink):
    def emit(self, event: dict[str, Any]) -> None:
        return

    def close(self) -> None:
        return


class JsonlTraceSink(TraceSink):
    """Append events to a JSON Lines file, one object per line."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._fh = open(self.path, "a", encoding="utf-8")

    def emit(self, event: dict[str, Any]) -> None:
        line = json.dumps(event, default=str)
        with self._lock:
            if self._fh.closed:
                logger.debug("Dropping trace event after close: %s", event.get("type"))
                return
            self._fh.write(line + "\n")
            self._fh.flush()

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.close()


class Tracer:
    """Stamps events with run id, sequence number and timestamp before sinking them."""

    def __init__(self, run_id: str, sink: TraceSink | None = None) -> None:
        self.run_id = run_id
        self.sink = sink or NoopTraceSink()
        self._seq = 0

    def emit(self, event_type: str, data: dict[str, Any], step_id: str | None = None) -> None:
        self._seq += 1
        event = {
            "v": 1,
            "type": event_type,
            "ts": int(time.time() * 1000),
            "run_id": self.run_id,
            "seq": self._seq,
            "step_id": step_id,
            "data": data,
        }
        try:
            self.sink.emit(event)
        except Exception:
            # Tracing must never break a run.
            logger.exception("Trace sink failed for event %s", event_type)

    def close(self) -> None:
        self.sink.close()
