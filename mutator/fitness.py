"""Fitness evaluation: one timed test run reduced to a lower-is-better scalar."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from time import perf_counter
from typing import TYPE_CHECKING, Callable, Optional

from mutator.errors import ExecutionError
from mutator.workspace import scratch_file

if TYPE_CHECKING:
    from runners.base import BaseTestRunner

PASS_TOKEN = "PASS"

# One failing test must outweigh any realistic speedup among passing candidates.
PENALTY = 1_000_000.0
WORST_FITNESS = math.inf


class TestOutcome(str, Enum):
    __test__ = False  # not a pytest test class

    PASS = "pass"
    NOT_PASS = "not_pass"

    @classmethod
    def from_token(cls, token: str) -> "TestOutcome":
        return cls.PASS if token == PASS_TOKEN else cls.NOT_PASS


def compute_fitness(duration: float, outcomes: tuple[TestOutcome, ...] | list[TestOutcome]) -> float:
    """``duration`` scaled by PENALTY when any outcome is not a pass."""

    passing = all(outcome is TestOutcome.PASS for outcome in outcomes)
    return float(duration) * (1.0 if passing else PENALTY)


@dataclass
class Evaluation:
    """Result of evaluating one source text."""

    fitness: float
    duration: float
    outcomes: tuple[TestOutcome, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def all_passing(self) -> bool:
        return self.error is None and bool(self.outcomes) and all(
            outcome is TestOutcome.PASS for outcome in self.outcomes
        )

    @property
    def num_failing(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome is not TestOutcome.PASS)

    @classmethod
    def failed(cls, error: str, duration: float = 0.0) -> "Evaluation":
        """Worst-possible evaluation for a run that could not execute or be parsed."""

        return cls(fitness=WORST_FITNESS, duration=float(duration), outcomes=(), error=error)

    def to_dict(self) -> dict:
        return {
            "fitness": self.fitness if math.isfinite(self.fitness) else None,
            "duration": self.duration,
            "num_tests": len(self.outcomes),
            "num_failing": self.num_failing,
            "all_passing": self.all_passing,
            "error": self.error,
        }


class FitnessEvaluator:
    """Runs a test target once per call and converts the outcome into fitness.

    Every call is a fresh execution; nothing is cached. The measured duration
    covers the whole runner invocation including process startup.
    """

    def __init__(
        self,
        runner: "BaseTestRunner",
        suffix: str = "",
        scratch_dir: str | Path | None = None,
        timeout_seconds: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.runner = runner
        self.suffix = suffix
        self.scratch_dir = scratch_dir
        self.timeout_seconds = timeout_seconds
        self.clock = clock or perf_counter

    def evaluate(self, source: str, directory: str | Path | None = None) -> Evaluation:
        """Evaluate ``source`` from a scratch copy that is removed afterwards.

        The copy is placed in ``directory`` when given, else in ``scratch_dir``
        (system temp dir when both are unset).
        """

        with scratch_file(source, suffix=self.suffix, directory=directory or self.scratch_dir) as path:
            return self.evaluate_path(path)

    def evaluate_path(self, path: str | Path) -> Evaluation:
        """Evaluate the test file at ``path`` in place.

        Raises ExecutionError when the runner cannot run or parse the file.
        """

        started = self.clock()
        report = self.runner.run(path, timeout=self.timeout_seconds)
        duration = self.clock() - started

        if not report.tokens:
            raise ExecutionError(f"No per-test results found for {path}", output=report.raw_output)

        outcomes = tuple(TestOutcome.from_token(token) for token in report.tokens)
        return Evaluation(
            fitness=compute_fitness(duration, outcomes),
            duration=duration,
            outcomes=outcomes,
        )
