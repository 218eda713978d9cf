"""Error taxonomy shared by the search engine, runners, and CLI."""

from __future__ import annotations


class MutatorError(Exception):
    """Base class for errors that terminate a mutation run."""

    exit_code: int = 1


class UsageError(MutatorError):
    """Missing or invalid command-line / configuration value."""

    exit_code = 2


class PreconditionError(MutatorError):
    """Target file absent, no rules available, or baseline tests not all passing."""


class ExecutionError(MutatorError):
    """The test runner could not be invoked or its output could not be parsed."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output
