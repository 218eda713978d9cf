"""Mutation-search runtime exports."""

from mutator.archive import CandidateArchive
from mutator.catalog import MutationCatalog, MutationRule, default_catalog, register_rule, regex_rule
from mutator.errors import ExecutionError, MutatorError, PreconditionError, UsageError
from mutator.fitness import PENALTY, Evaluation, FitnessEvaluator, TestOutcome, compute_fitness
from mutator.reporter import ConsoleReporter, NullReporter
from mutator.search import Candidate, MutationSearch, SearchConfig, SearchState, SearchSummary

__all__ = [
    "CandidateArchive",
    "MutationCatalog",
    "MutationRule",
    "default_catalog",
    "register_rule",
    "regex_rule",
    "ExecutionError",
    "MutatorError",
    "PreconditionError",
    "UsageError",
    "PENALTY",
    "Evaluation",
    "FitnessEvaluator",
    "TestOutcome",
    "compute_fitness",
    "ConsoleReporter",
    "NullReporter",
    "Candidate",
    "MutationSearch",
    "SearchConfig",
    "SearchState",
    "SearchSummary",
]
