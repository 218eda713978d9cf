"""Pytest runner using verbose per-test result lines."""

from __future__ import annotations

import re
import sys
from pathlib import Path

from runners.base import PASS_TOKEN, BaseTestRunner, register_runner

# Node ids may contain spaces (parametrize ids), so take the last status word.
_RESULT_LINE = re.compile(r"^\S+::.*\s(PASSED|FAILED|ERROR|SKIPPED|XFAIL|XPASS)(?:\s|$)")


@register_runner("pytest", suffixes=(".py",))
class PytestRunner(BaseTestRunner):
    """Runs ``python -m pytest -v`` on a single file."""

    def __init__(self, python: str | None = None, extra_args: list[str] | None = None) -> None:
        self.python = python or sys.executable
        self.extra_args = list(extra_args or [])

    def command(self, path: Path) -> list[str]:
        return [
            self.python,
            "-m",
            "pytest",
            "-v",
            "-p",
            "no:cacheprovider",
            "--color=no",
            *self.extra_args,
            str(path),
        ]

    def parse(self, output: str) -> list[str]:
        tokens: list[str] = []
        for line in output.splitlines():
            match = _RESULT_LINE.search(line)
            if match is None:
                continue
            status = match.group(1)
            tokens.append(PASS_TOKEN if status == "PASSED" else status)
        return tokens
