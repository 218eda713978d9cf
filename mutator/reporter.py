"""Console output and JSONL trace logging for mutation runs."""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, TextIO

from tqdm import tqdm

_BOLD = "\x1b[1m"
_NORMAL = "\x1b[22m"


class ConsoleReporter:
    """Writes progress lines and, optionally, a structured JSONL trace.

    Console lines go through ``tqdm.write`` so they do not tear an active
    progress bar. Trace events land in ``<trace_dir>/search_trace.jsonl``.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        style: bool = True,
        trace_dir: str | Path | None = None,
        run_id: Optional[str] = None,
    ) -> None:
        self.stream = stream
        self.style = style
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.trace_path: Optional[Path] = None
        if trace_dir:
            self.trace_path = Path(trace_dir) / "search_trace.jsonl"

    def info(self, message: str) -> None:
        text = f"{_BOLD}{message}{_NORMAL}" if self.style else message
        tqdm.write(text, file=self.stream or sys.stdout)

    def warn(self, message: str) -> None:
        tqdm.write(f"[Warn] {message}", file=self.stream or sys.stderr)

    def event(self, name: str, **payload: Any) -> None:
        """Append one trace event; no-op without a trace directory."""

        if self.trace_path is None:
            return
        record = {"run_id": self.run_id, "event": name, "time": self._now_iso(), **payload}
        self.trace_path.parent.mkdir(parents=True, exist_ok=True)
        with self.trace_path.open("a", encoding="utf-8") as file_obj:
            file_obj.write(json.dumps(record, ensure_ascii=False) + "\n")

    @staticmethod
    def _now_iso() -> str:
        return datetime.now().isoformat(timespec="seconds")


class NullReporter(ConsoleReporter):
    """Discards console output; trace events still honour ``trace_dir``."""

    def info(self, message: str) -> None:
        return None

    def warn(self, message: str) -> None:
        return None
