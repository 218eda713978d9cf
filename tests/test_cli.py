from __future__ import annotations

import io
import json
import os
import subprocess
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

import run_mutation
from mutator.env_utils import load_env_file
from mutator.errors import UsageError

SOURCE = "class UserTest\n  user = create :user\nend\n"
PASSING_REPORT = "Started\n  test_a      PASS (0.00s)\n  test_b      PASS (0.00s)\n"
FAILING_REPORT = "Started\n  test_a      PASS (0.00s)\n  test_b      FAIL (0.00s)\n"


def _completed(stdout: str) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr="")


def _main(argv: list[str]) -> tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = run_mutation.main(argv)
    return code, out.getvalue(), err.getvalue()


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._td = TemporaryDirectory()
        self.tmp = Path(self._td.name)
        self.target = self.tmp / "user_test.rb"
        self.target.write_text(SOURCE, encoding="utf-8")
        self.common = [
            "--env-file",
            str(self.tmp / "missing.env"),
            "--config",
            str(self.tmp / "mutator.json"),
            "--scratch-dir",
            str(self.tmp / "scratch"),
            "--no-progress",
            "--no-style",
        ]
        (self.tmp / "mutator.json").write_text("{}", encoding="utf-8")

    def tearDown(self) -> None:
        self._td.cleanup()

    def test_missing_argument_prints_usage_and_fails(self) -> None:
        code, _, err = _main(self.common)
        self.assertEqual(code, 2)
        self.assertIn("usage:", err)

    def test_missing_file_aborts_before_search(self) -> None:
        with patch("runners.base.subprocess.run") as run_mock:
            code, _, err = _main([str(self.tmp / "nope_test.rb"), *self.common])
        self.assertEqual(code, 1)
        self.assertIn("doesn't exist", err)
        run_mock.assert_not_called()

    def test_failing_baseline_leaves_file_unchanged(self) -> None:
        with patch("runners.base.subprocess.run", return_value=_completed(FAILING_REPORT)) as run_mock:
            code, _, err = _main([str(self.target), *self.common])
        self.assertEqual(code, 1)
        self.assertIn("Not all tests are passing", err)
        self.assertEqual(run_mock.call_count, 1)
        self.assertEqual(self.target.read_text(encoding="utf-8"), SOURCE)

    def test_successful_run_rewrites_file_and_reports_times(self) -> None:
        output_path = self.tmp / "out" / "summary.json"
        clock = [0.0, 2.0, 10.0, 11.5, 20.0, 21.5]
        with patch("runners.base.subprocess.run", return_value=_completed(PASSING_REPORT)), patch(
            "mutator.fitness.perf_counter", side_effect=clock
        ):
            code, out, _ = _main(
                [
                    str(self.target),
                    *self.common,
                    "--rules",
                    "create_to_build",
                    "--seed",
                    "1",
                    "--output",
                    str(output_path),
                ]
            )

        self.assertEqual(code, 0)
        self.assertEqual(self.target.read_text(encoding="utf-8"), SOURCE.replace("create :user", "build :user"))
        self.assertIn("Improved test execution time from 2.000 s to 1.500 s", out)
        self.assertIn("see git diff", out)
        summary = json.loads(output_path.read_text(encoding="utf-8"))
        self.assertEqual(summary["accepted"], 1)
        self.assertEqual(summary["termination"], "target_speedup")
        self.assertEqual(list((self.tmp / "scratch").iterdir()), [])

    def test_candidates_are_written_beside_the_target_by_default(self) -> None:
        argv = [arg for arg in self.common if arg not in ("--scratch-dir", str(self.tmp / "scratch"))]
        clock = [0.0, 2.0, 10.0, 11.5, 20.0, 21.5]
        with patch("runners.base.subprocess.run", return_value=_completed(PASSING_REPORT)) as run_mock, patch(
            "mutator.fitness.perf_counter", side_effect=clock
        ):
            code, _, _ = _main([str(self.target), *argv, "--rules", "create_to_build", "--seed", "1"])

        self.assertEqual(code, 0)
        commands = [call.args[0] for call in run_mock.call_args_list]
        self.assertEqual(commands[0][-1], str(self.target))
        candidate = Path(commands[1][-1])
        self.assertEqual(candidate.parent, self.target.parent)
        self.assertTrue(candidate.name.startswith("tc-"))
        self.assertEqual(candidate.suffix, ".rb")
        self.assertFalse(candidate.exists())
        self.assertFalse(any(path.name.startswith("tc-") for path in self.tmp.iterdir()))

    def test_baseline_execution_error_is_fatal(self) -> None:
        with patch("runners.base.subprocess.run", side_effect=FileNotFoundError("ruby")):
            code, _, err = _main([str(self.target), *self.common])
        self.assertEqual(code, 1)
        self.assertIn("Could not invoke", err)
        self.assertEqual(self.target.read_text(encoding="utf-8"), SOURCE)

    def test_list_rules(self) -> None:
        code, out, _ = _main(["--list-rules", *self.common])
        self.assertEqual(code, 0)
        self.assertIn("create_to_build", out)

    def test_unknown_rule_is_a_usage_error(self) -> None:
        code, _, err = _main([str(self.target), *self.common, "--rules", "bogus"])
        self.assertEqual(code, 2)
        self.assertIn("bogus", err)

    def test_unknown_runner_is_a_usage_error(self) -> None:
        code, _, _ = _main([str(self.target), *self.common, "--runner", "jest"])
        self.assertEqual(code, 2)


class ConfigResolutionTests(unittest.TestCase):
    def _args(self, argv: list[str]):
        return run_mutation.build_parser().parse_args(argv)

    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = run_mutation.build_search_config(self._args(["t.rb"]), {})
        self.assertEqual(config.max_generations, 5)
        self.assertEqual(config.acceptance_factor, 0.95)
        self.assertEqual(config.target_speedup_ratio, 0.9)
        self.assertIsNone(config.timeout_seconds)

    def test_cli_beats_config_beats_env(self) -> None:
        env = {"MUTATOR_MAX_GENERATIONS": "9", "MUTATOR_SEED": "4", "MUTATOR_TIMEOUT_SECONDS": "60"}
        with patch.dict(os.environ, env, clear=True):
            config = run_mutation.build_search_config(
                self._args(["t.rb", "--generations", "2"]),
                {"max_generations": 7, "seed": 11},
            )
        self.assertEqual(config.max_generations, 2)
        self.assertEqual(config.seed, 11)
        self.assertEqual(config.timeout_seconds, 60.0)

    def test_invalid_values_are_usage_errors(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(UsageError):
                run_mutation.build_search_config(self._args(["t.rb"]), {"max_generations": "many"})
            with self.assertRaises(UsageError):
                run_mutation.build_search_config(self._args(["t.rb"]), {"acceptance_factor": 1.5})
            with self.assertRaises(UsageError):
                run_mutation.build_search_config(self._args(["t.rb"]), {"chain_stop_probability": 0})

    def test_yaml_config_file(self) -> None:
        with TemporaryDirectory() as td:
            path = Path(td) / "mutator.yaml"
            path.write_text("search:\n  max_generations: 3\n  runner: ruby\n", encoding="utf-8")
            payload = run_mutation.load_config_file(str(path))
        self.assertEqual(payload["search"]["max_generations"], 3)

    def test_missing_explicit_config_is_a_usage_error(self) -> None:
        with self.assertRaises(UsageError):
            run_mutation.load_config_file("/nonexistent/mutator.yaml")

    def test_env_file_loading(self) -> None:
        with TemporaryDirectory() as td:
            path = Path(td) / ".env"
            path.write_text("# comment\nexport MUTATOR_SEED='5'\nMUTATOR_RUNNER=ruby\nbroken line\n", encoding="utf-8")
            with patch.dict(os.environ, {"MUTATOR_RUNNER": "pytest"}, clear=True):
                loaded = load_env_file(str(path))
                self.assertEqual(loaded, 1)
                self.assertEqual(os.environ["MUTATOR_SEED"], "5")
                self.assertEqual(os.environ["MUTATOR_RUNNER"], "pytest")


if __name__ == "__main__":
    unittest.main()
