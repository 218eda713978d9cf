"""Ruby minitest runner (minitest-reporters spec-style output)."""

from __future__ import annotations

import re
from pathlib import Path

from runners.base import BaseTestRunner, register_runner

# minitest-reporters pads each test line with six spaces before the status.
_RESULT_SEPARATOR = " " * 6
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


@register_runner("ruby", suffixes=(".rb",))
class RubyTestRunner(BaseTestRunner):
    """Runs ``ruby -I<include_dir> <file>`` and reads the status word after each padding run."""

    def __init__(self, ruby: str = "ruby", include_dir: str = "test") -> None:
        self.ruby = ruby
        self.include_dir = include_dir

    def command(self, path: Path) -> list[str]:
        return [self.ruby, f"-I{self.include_dir}", str(path)]

    def parse(self, output: str) -> list[str]:
        chunks = output.split(_RESULT_SEPARATOR)
        tokens: list[str] = []
        # First chunk is the run header.
        for chunk in chunks[1:]:
            words = _ANSI_ESCAPE.sub("", chunk).split()
            if words:
                tokens.append(words[0])
        return tokens
