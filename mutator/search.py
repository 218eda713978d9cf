"""Hill-climbing mutation search (mutate -> evaluate -> compare) over a test file."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from tqdm import tqdm

from mutator.archive import CandidateArchive, compute_sha
from mutator.catalog import MutationCatalog
from mutator.errors import ExecutionError, PreconditionError
from mutator.fitness import Evaluation, FitnessEvaluator
from mutator.reporter import ConsoleReporter
from mutator.workspace import read_source, write_source

TERMINATED_SPEEDUP = "target_speedup"
TERMINATED_GENERATION_CAP = "generation_cap"


@dataclass
class SearchConfig:
    """Config for the mutation search."""

    max_generations: int = 5
    acceptance_factor: float = 0.95
    target_speedup_ratio: float = 0.9
    chain_stop_probability: float = 0.5
    seed: Optional[int] = None
    timeout_seconds: Optional[float] = None
    remeasure_target: bool = True
    scratch_dir: Optional[str] = None


@dataclass
class Candidate:
    """One mutated version of the best source, produced in a generation."""

    source: str
    generation: int
    applied_rules: list[str] = field(default_factory=list)
    evaluation: Optional[Evaluation] = None
    accepted: bool = False

    @property
    def sha(self) -> str:
        return compute_sha(self.source)


@dataclass
class SearchState:
    """Best-known source and fitness, carried across generations."""

    best_source: str
    best_evaluation: Evaluation
    baseline_duration: float
    latest_duration: float
    generation: int = 0
    accepted_count: int = 0

    @property
    def best_fitness(self) -> float:
        return self.best_evaluation.fitness


@dataclass
class SearchSummary:
    target: str
    baseline_duration: float
    final_duration: float
    best_fitness: float
    generations: int
    accepted: int
    termination: str
    history: list[dict[str, Any]] = field(default_factory=list)

    @property
    def improved(self) -> bool:
        return self.accepted > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "baseline_duration": self.baseline_duration,
            "final_duration": self.final_duration,
            "best_fitness": self.best_fitness,
            "generations": self.generations,
            "accepted": self.accepted,
            "termination": self.termination,
            "history": list(self.history),
        }


class MutationSearch:
    """Greedy randomized search for a faster, still-green version of a test file.

    The best source is written back to ``target_path`` every time a candidate
    is accepted, so the file on disk always holds the current best.
    """

    def __init__(
        self,
        target_path: str | Path,
        catalog: MutationCatalog,
        evaluator: FitnessEvaluator,
        config: SearchConfig | None = None,
        reporter: ConsoleReporter | None = None,
        rng: random.Random | None = None,
        archive: CandidateArchive | None = None,
        progress: bool = False,
    ) -> None:
        self.target_path = Path(target_path)
        self.catalog = catalog
        self.evaluator = evaluator
        self.config = config or SearchConfig()
        self.reporter = reporter or ConsoleReporter()
        self.rng = rng or random.Random(self.config.seed)
        # Candidates sit beside the target so conftest.py, sibling imports and
        # rootdir config still apply.
        self.scratch_dir = Path(evaluator.scratch_dir) if evaluator.scratch_dir else self.target_path.parent
        self.archive = archive
        self.progress = progress
        self.state: Optional[SearchState] = None
        self.history: list[dict[str, Any]] = []

    def run(self) -> SearchSummary:
        """Run baseline plus generations until a stop condition holds."""

        state = self.initialize()
        termination = TERMINATED_GENERATION_CAP
        with tqdm(
            total=self.config.max_generations + 1,
            desc="generations",
            disable=not self.progress,
            leave=False,
        ) as bar:
            while True:
                state.generation += 1
                self.step(state)
                bar.update(1)

                reason = self.termination_reason(state)
                if reason is not None:
                    termination = reason
                    break

        summary = SearchSummary(
            target=str(self.target_path),
            baseline_duration=state.baseline_duration,
            final_duration=state.latest_duration,
            best_fitness=state.best_fitness,
            generations=state.generation,
            accepted=state.accepted_count,
            termination=termination,
            history=list(self.history),
        )
        self.reporter.event("run_end", **{key: value for key, value in summary.to_dict().items() if key != "history"})
        return summary

    def initialize(self) -> SearchState:
        """Evaluate the unmodified target as baseline.

        Raises PreconditionError if the target is missing, no rules are
        registered, or any baseline test is not passing. ExecutionError from
        the baseline run propagates.
        """

        if not self.target_path.is_file():
            raise PreconditionError(f"File {self.target_path} doesn't exist")
        if len(self.catalog) == 0:
            raise PreconditionError("No mutation rules registered")

        source = read_source(self.target_path)
        self.reporter.event(
            "run_start",
            target=str(self.target_path),
            rules=self.catalog.names(),
            max_generations=self.config.max_generations,
            acceptance_factor=self.config.acceptance_factor,
            target_speedup_ratio=self.config.target_speedup_ratio,
            seed=self.config.seed,
        )

        baseline = self.evaluator.evaluate_path(self.target_path)
        self.reporter.event("baseline", **baseline.to_dict())
        if not baseline.all_passing:
            raise PreconditionError(
                f"Not all tests are passing ({baseline.num_failing}/{len(baseline.outcomes)} failing)! "
                "Make them green before trying this."
            )
        self.reporter.info(f"[Baseline] duration={baseline.duration:.3f}s tests={len(baseline.outcomes)}")

        if self.archive is not None:
            self.archive.save(source, generation=0, extra={"accepted": True, **baseline.to_dict()})

        self.state = SearchState(
            best_source=source,
            best_evaluation=baseline,
            baseline_duration=baseline.duration,
            latest_duration=baseline.duration,
        )
        return self.state

    def mutate(self, source: str) -> tuple[str, list[str]]:
        """Apply a geometric-length chain of random rules to ``source``."""

        applied: list[str] = []
        while True:
            rule = self.catalog.choose(self.rng)
            self.reporter.info(f"Mutating {rule.description or rule.name}...")
            source = rule.apply(source)
            applied.append(rule.name)
            if self.rng.random() < self.config.chain_stop_probability:
                break
        return source, applied

    def evaluate_candidate(self, candidate: Candidate) -> Evaluation:
        """Evaluate a candidate, scoring runner failures as worst fitness."""

        try:
            evaluation = self.evaluator.evaluate(candidate.source, directory=self.scratch_dir)
        except ExecutionError as exc:
            self.reporter.warn(f"[Gen {candidate.generation}] candidate could not be evaluated: {exc}")
            evaluation = Evaluation.failed(str(exc))
        candidate.evaluation = evaluation
        return evaluation

    def accepts(self, candidate_fitness: float, best_fitness: float) -> bool:
        """True when ``candidate * acceptance_factor < best`` (factor 0.95 by default)."""

        return candidate_fitness * self.config.acceptance_factor < best_fitness

    def step(self, state: SearchState) -> Candidate:
        """Run one generation: mutate, evaluate, compare, and re-measure."""

        generation = state.generation
        parent_sha = compute_sha(state.best_source)
        mutated, applied = self.mutate(state.best_source)
        candidate = Candidate(source=mutated, generation=generation, applied_rules=applied)
        if mutated == state.best_source:
            self.reporter.info(f"[Gen {generation}] mutation left the source unchanged")

        evaluation = self.evaluate_candidate(candidate)
        previous_best = state.best_fitness
        if self.accepts(evaluation.fitness, previous_best):
            candidate.accepted = True
            state.best_source = candidate.source
            state.best_evaluation = evaluation
            state.accepted_count += 1
            self.reporter.info(f"[Gen {generation}] Better source code found! Tests fitness: {evaluation.fitness:.4f}")
            self.reporter.info(f"[Gen {generation}] Writing file {self.target_path}")
            write_source(self.target_path, candidate.source)
        else:
            self.reporter.info(f"[Gen {generation}] Failed mutation. Tests fitness: {evaluation.fitness:.4f}")

        if self.archive is not None:
            self.archive.save(
                candidate.source,
                generation=generation,
                parent_sha=parent_sha,
                extra={
                    "accepted": candidate.accepted,
                    "applied_rules": list(applied),
                    **evaluation.to_dict(),
                },
            )

        state.latest_duration = self._measure_latest(state)
        record = {
            "generation": generation,
            "sha": candidate.sha,
            "parent_sha": parent_sha,
            "applied_rules": list(applied),
            "candidate_fitness": evaluation.fitness if math.isfinite(evaluation.fitness) else None,
            "previous_best_fitness": previous_best,
            "accepted": candidate.accepted,
            "error": evaluation.error,
            "latest_duration": state.latest_duration,
        }
        self.history.append(record)
        self.reporter.event("generation_end", **record)
        return candidate

    def termination_reason(self, state: SearchState) -> Optional[str]:
        if state.latest_duration <= state.baseline_duration * self.config.target_speedup_ratio:
            return TERMINATED_SPEEDUP
        if state.generation > self.config.max_generations:
            return TERMINATED_GENERATION_CAP
        return None

    def _measure_latest(self, state: SearchState) -> float:
        if not self.config.remeasure_target:
            return state.best_evaluation.duration
        return self.evaluator.evaluate_path(self.target_path).duration
