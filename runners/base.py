"""Test runner abstractions: invoke a test file and extract per-test status tokens."""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from mutator.errors import ExecutionError
from mutator.fitness import PASS_TOKEN


@dataclass
class RunReport:
    """Ordered status tokens extracted from one test run, plus the raw report."""

    tokens: list[str] = field(default_factory=list)
    raw_output: str = ""
    returncode: int = 0


class BaseTestRunner(ABC):
    """Pluggable runner interface used by the fitness evaluator."""

    name: str = "base"

    @abstractmethod
    def command(self, path: Path) -> list[str]:
        """Return the argv that executes the tests in ``path``."""

    @abstractmethod
    def parse(self, output: str) -> list[str]:
        """Extract the ordered per-test status tokens from a raw report."""

    def run(self, path: str | Path, timeout: Optional[float] = None) -> RunReport:
        """Execute the tests in ``path`` and return the parsed report.

        Raises ExecutionError if the process cannot be spawned, exceeds
        ``timeout`` seconds, or its report contains no per-test tokens.
        """

        argv = self.command(Path(path))
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise ExecutionError(f"{self.name} runner timed out after {timeout}s on {path}") from exc
        except OSError as exc:
            raise ExecutionError(f"Could not invoke {argv[0]!r}: {exc}") from exc

        output = result.stdout or ""
        tokens = self.parse(output)
        if not tokens:
            detail = (result.stderr or output).strip()[-500:]
            raise ExecutionError(
                f"No per-test results found in {self.name} output for {path} (exit code {result.returncode})",
                output=detail,
            )
        return RunReport(tokens=tokens, raw_output=output, returncode=result.returncode)


RUNNER_REGISTRY: dict[str, type[BaseTestRunner]] = {}
SUFFIX_RUNNERS: dict[str, str] = {}


def register_runner(name: str, suffixes: tuple[str, ...] = ()):
    """Register a runner class by name, optionally as the default for file suffixes."""

    def decorator(cls: type[BaseTestRunner]) -> type[BaseTestRunner]:
        RUNNER_REGISTRY[name] = cls
        cls.name = name
        for suffix in suffixes:
            SUFFIX_RUNNERS[suffix.lower()] = name
        return cls

    return decorator


def get_runner(name: str, **kwargs) -> BaseTestRunner:
    """Instantiate a registered runner implementation."""

    if name not in RUNNER_REGISTRY:
        available = ", ".join(sorted(RUNNER_REGISTRY)) or "<none>"
        raise ValueError(f"Unknown runner {name}. Available: {available}")
    return RUNNER_REGISTRY[name](**kwargs)


def runner_for_path(path: str | Path, **kwargs) -> BaseTestRunner:
    """Pick a runner from the test file's suffix."""

    suffix = Path(path).suffix.lower()
    if suffix not in SUFFIX_RUNNERS:
        known = ", ".join(sorted(SUFFIX_RUNNERS)) or "<none>"
        raise ValueError(f"No runner registered for '{suffix or Path(path).name}' files. Known suffixes: {known}")
    return get_runner(SUFFIX_RUNNERS[suffix], **kwargs)
