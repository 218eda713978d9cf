"""CLI entrypoint: speed up a test file by mutation search, rewriting it in place."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from mutator.archive import CandidateArchive
from mutator.catalog import default_catalog
from mutator.env_utils import env_value, load_env_file, parse_bool, parse_float, parse_int
from mutator.errors import MutatorError, PreconditionError, UsageError
from mutator.fitness import FitnessEvaluator
from mutator.reporter import ConsoleReporter
from mutator.search import MutationSearch, SearchConfig
from runners import get_runner, runner_for_path

_MISSING = object()


def load_config_file(path: str | None, allow_missing: bool = False) -> dict[str, Any]:
    """Load a JSON/YAML config document."""

    if not path:
        return {}

    config_path = Path(path)
    if not config_path.exists():
        if allow_missing:
            return {}
        raise UsageError(f"Config file not found: {path}")

    text = config_path.read_text(encoding="utf-8")
    try:
        if config_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise UsageError(f"Could not parse config file {path}: {exc}") from exc
    return payload if isinstance(payload, dict) else {}


def _resolve(
    cli_value: Any,
    section: dict[str, Any],
    key: str,
    parse: Callable[[str, Any], Any],
    default: Any,
) -> Any:
    """CLI flag, then config file, then ``MUTATOR_<KEY>``, then the default."""

    if cli_value is not None:
        return parse(f"--{key.replace('_', '-')}", cli_value)
    if section.get(key) is not None:
        return parse(f"config '{key}'", section[key])
    raw = env_value(key)
    if raw is not None:
        return parse(f"MUTATOR_{key.upper()}", raw)
    return default


def build_search_config(args: argparse.Namespace, section: dict[str, Any]) -> SearchConfig:
    defaults = SearchConfig()

    def optional_float(label: str, raw: Any) -> Optional[float]:
        value = parse_float(label, raw, minimum=0.0)
        return value if value > 0 else None

    def ratio(label: str, raw: Any) -> float:
        value = parse_float(label, raw, minimum=0.0)
        if value > 1.0:
            raise UsageError(f"{label} must be within [0, 1], got {value}")
        return value

    def probability(label: str, raw: Any) -> float:
        value = ratio(label, raw)
        if value == 0.0:
            raise UsageError(f"{label} must be > 0 so mutation chains terminate")
        return value

    return SearchConfig(
        max_generations=_resolve(
            args.generations, section, "max_generations",
            lambda label, raw: parse_int(label, raw, minimum=0), defaults.max_generations,
        ),
        acceptance_factor=_resolve(
            None, section, "acceptance_factor", ratio, defaults.acceptance_factor,
        ),
        target_speedup_ratio=_resolve(
            None, section, "target_speedup_ratio", ratio, defaults.target_speedup_ratio,
        ),
        chain_stop_probability=_resolve(
            None, section, "chain_stop_probability", probability, defaults.chain_stop_probability,
        ),
        seed=_resolve(args.seed, section, "seed", parse_int, defaults.seed),
        timeout_seconds=_resolve(args.timeout, section, "timeout_seconds", optional_float, defaults.timeout_seconds),
        remeasure_target=_resolve(None, section, "remeasure_target", parse_bool, defaults.remeasure_target),
        scratch_dir=_resolve(args.scratch_dir, section, "scratch_dir", lambda _label, raw: str(raw), defaults.scratch_dir),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Speed up a test file by mutation search. The file is rewritten in place; review with git diff.",
    )
    default_config_path = "mutator.yaml"
    parser.add_argument("target", nargs="?", help="Path to the test file to optimize")
    parser.add_argument(
        "--config",
        default=default_config_path,
        help=f"Path to YAML/JSON config (default: {default_config_path}, skipped when absent)",
    )
    parser.add_argument("--env-file", default=".env", help="Path to env file (default: .env)")
    parser.add_argument("--runner", default=None, help="Test runner name (default: chosen by file suffix)")
    parser.add_argument("--rules", default=None, help="Comma-separated mutation rule names (default: all built-in)")
    parser.add_argument("--list-rules", action="store_true", help="List built-in mutation rules and exit")
    parser.add_argument("--generations", type=int, default=None, help="Generation cap (default: 5)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for rule selection and chaining")
    parser.add_argument("--timeout", type=float, default=None, help="Per-run timeout in seconds (default: none)")
    parser.add_argument("--scratch-dir", default=None, help="Directory for candidate files (default: the target's directory)")
    parser.add_argument("--archive-dir", default=None, help="Archive every evaluated candidate here")
    parser.add_argument("--trace-dir", default=None, help="Append JSONL trace events to <dir>/search_trace.jsonl")
    parser.add_argument("--output", default=None, help="Write the run summary as JSON to this path")
    parser.add_argument("--no-progress", action="store_true", help="Disable the generation progress bar")
    parser.add_argument("--no-style", action="store_true", help="Disable bold console output")
    return parser


def run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    load_env_file(args.env_file)
    config_doc = load_config_file(args.config, allow_missing=(args.config == parser.get_default("config")))
    section = config_doc.get("search", {})
    if not isinstance(section, dict):
        raise UsageError("config 'search' section must be a mapping")

    rules_arg = args.rules if args.rules is not None else section.get("rules", _MISSING)
    if rules_arg is _MISSING:
        rules_arg = env_value("rules")
    rule_names = None
    if rules_arg:
        rule_names = rules_arg if isinstance(rules_arg, list) else [name.strip() for name in str(rules_arg).split(",")]
        rule_names = [str(name) for name in rule_names if str(name)]
    try:
        catalog = default_catalog(rule_names)
    except KeyError as exc:
        raise UsageError(str(exc.args[0])) from exc

    if args.list_rules:
        for rule in catalog:
            print(f"{rule.name}: {rule.description}")
        return 0

    if not args.target:
        parser.print_usage(sys.stderr)
        raise UsageError("missing path/to/test/file")

    target = Path(args.target)
    if not target.is_file():
        raise PreconditionError(f"File {target} doesn't exist")

    config = build_search_config(args, section)
    runner_name = args.runner or section.get("runner") or env_value("runner")
    try:
        runner = get_runner(str(runner_name)) if runner_name else runner_for_path(target)
    except ValueError as exc:
        raise UsageError(str(exc)) from exc

    reporter = ConsoleReporter(style=not args.no_style, trace_dir=args.trace_dir or section.get("trace_dir"))
    archive_dir = args.archive_dir or section.get("archive_dir")
    archive = CandidateArchive(str(archive_dir), suffix=target.suffix) if archive_dir else None
    evaluator = FitnessEvaluator(
        runner,
        suffix=target.suffix,
        scratch_dir=config.scratch_dir,
        timeout_seconds=config.timeout_seconds,
    )

    reporter.info("Running tests first to compute original test execution time. This may take a minute.")
    search = MutationSearch(
        target,
        catalog=catalog,
        evaluator=evaluator,
        config=config,
        reporter=reporter,
        archive=archive,
        progress=not args.no_progress,
    )
    summary = search.run()

    reporter.info(
        f"[Done] Improved test execution time from {summary.baseline_duration:.3f} s "
        f"to {summary.final_duration:.3f} s ({summary.generations} generations, {summary.termination})"
    )
    if summary.improved:
        reporter.info(f"[Done] New source code has been written to {target}; see git diff for changes.")
    else:
        reporter.info(f"[Done] No faster variant was accepted; {target} is unchanged.")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return run(args, parser)
    except MutatorError as exc:
        print(f"[Error] {exc}", file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":
    sys.exit(main())
