"""Test runner registry exports."""

from runners.base import (
    PASS_TOKEN,
    BaseTestRunner,
    RunReport,
    get_runner,
    register_runner,
    runner_for_path,
)
from runners.pytest_runner import PytestRunner
from runners.ruby import RubyTestRunner

__all__ = [
    "PASS_TOKEN",
    "BaseTestRunner",
    "RunReport",
    "get_runner",
    "register_runner",
    "runner_for_path",
    "PytestRunner",
    "RubyTestRunner",
]
