"""Scratch candidate files and in-place source writes."""

from __future__ import annotations

import random
import string
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

SCRATCH_PREFIX = "tc-"
_NAME_LENGTH = 16


def scratch_name(suffix: str, rng: Optional[random.Random] = None) -> str:
    """Return ``tc-<16 distinct lowercase letters><suffix>``."""

    picker = rng or random.SystemRandom()
    letters = picker.sample(string.ascii_lowercase, _NAME_LENGTH)
    return f"{SCRATCH_PREFIX}{''.join(letters)}{suffix}"


@contextmanager
def scratch_file(source: str, suffix: str = "", directory: str | Path | None = None) -> Iterator[Path]:
    """Write ``source`` to a uniquely-named file and remove it on exit."""

    base = Path(directory) if directory else Path(tempfile.gettempdir())
    base.mkdir(parents=True, exist_ok=True)
    while True:
        path = base / scratch_name(suffix)
        try:
            path.touch(exist_ok=False)
            break
        except FileExistsError:
            continue

    try:
        path.write_text(source, encoding="utf-8")
        yield path
    finally:
        path.unlink(missing_ok=True)


def read_source(path: str | Path) -> str:
    return Path(path).read_text(encoding="utf-8")


def write_source(path: str | Path, source: str) -> None:
    """Overwrite ``path`` with ``source``."""

    Path(path).write_text(source, encoding="utf-8")
