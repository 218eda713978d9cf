"""Helpers for .env files and ``MUTATOR_*`` environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from mutator.errors import UsageError

ENV_PREFIX = "MUTATOR_"


def load_env_file(path: str | None, override: bool = False) -> int:
    """Load ``KEY=value`` / ``export KEY=value`` lines into ``os.environ``.

    Values may be wrapped in single or double quotes. Returns how many keys
    were set; a missing file sets none.
    """

    if not path:
        return 0

    env_path = Path(path)
    if not env_path.is_file():
        return 0

    loaded = 0
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = (part.strip() for part in line.split("=", 1))
        if not key:
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        if override or key not in os.environ:
            os.environ[key] = value
            loaded += 1
    return loaded


def env_value(name: str) -> Optional[str]:
    """Return ``MUTATOR_<NAME>`` if set and non-empty."""

    value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
    return value if value else None


def parse_float(label: str, raw: object, minimum: Optional[float] = None) -> float:
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise UsageError(f"{label} must be a number, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise UsageError(f"{label} must be >= {minimum}, got {value}")
    return value


def parse_int(label: str, raw: object, minimum: Optional[int] = None) -> int:
    if isinstance(raw, bool):
        raise UsageError(f"{label} must be an integer, got {raw!r}")
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError) as exc:
        raise UsageError(f"{label} must be an integer, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise UsageError(f"{label} must be >= {minimum}, got {value}")
    return value


def parse_bool(label: str, raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise UsageError(f"{label} must be a boolean, got {raw!r}")
