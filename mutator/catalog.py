"""Registry of named, pure text-rewrite mutation rules."""

from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

Transform = Callable[[str], str]


@dataclass(frozen=True)
class MutationRule:
    """A named, deterministic text-to-text rewrite.

    Transforms must be total and idempotent-safe: once applied, the pattern no
    longer matches, so re-applying leaves the text unchanged.
    """

    name: str
    transform: Transform
    description: str = ""

    def apply(self, source: str) -> str:
        return self.transform(source)


class MutationCatalog:
    """Ordered collection of mutation rules keyed by unique name."""

    def __init__(self, rules: Optional[Iterable[MutationRule]] = None) -> None:
        self._rules: dict[str, MutationRule] = {}
        for rule in rules or ():
            self.register(rule)

    def register(self, rule: MutationRule) -> MutationRule:
        if rule.name in self._rules:
            raise ValueError(f"Mutation rule already registered: {rule.name}")
        self._rules[rule.name] = rule
        return rule

    def get(self, name: str) -> MutationRule:
        if name not in self._rules:
            available = ", ".join(self._rules) or "<none>"
            raise KeyError(f"Unknown mutation rule {name}. Available: {available}")
        return self._rules[name]

    def names(self) -> list[str]:
        return list(self._rules)

    def choose(self, rng: random.Random) -> MutationRule:
        """Uniform-random rule selection."""

        if not self._rules:
            raise IndexError("Cannot choose from an empty mutation catalog")
        return rng.choice(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[MutationRule]:
        return iter(list(self._rules.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._rules


def regex_rule(name: str, pattern: str, replacement: str, description: str = "") -> MutationRule:
    """Build a rule that substitutes every match of ``pattern``."""

    compiled = re.compile(pattern)

    def transform(source: str) -> str:
        return compiled.sub(replacement, source)

    return MutationRule(name=name, transform=transform, description=description or f"{pattern} -> {replacement}")


BUILTIN_RULE_FACTORIES: dict[str, Callable[[], MutationRule]] = {}


def register_rule(name: str):
    """Register a rule factory in the built-in set used by ``default_catalog``."""

    def decorator(factory: Callable[[], MutationRule]) -> Callable[[], MutationRule]:
        BUILTIN_RULE_FACTORIES[name] = factory
        return factory

    return decorator


@register_rule("create_to_build")
def _create_to_build() -> MutationRule:
    # FactoryBot: persisted `create :user` / `create! :user` -> in-memory `build :user`.
    return regex_rule(
        "create_to_build",
        r"\bcreate!? (:[^\s]+)",
        r"build \1",
        description="replace `create :sym` with `build :sym`",
    )


@register_rule("create_list_to_build_list")
def _create_list_to_build_list() -> MutationRule:
    return regex_rule(
        "create_list_to_build_list",
        r"\bcreate_list!? (:[^\s]+)",
        r"build_list \1",
        description="replace `create_list :sym` with `build_list :sym`",
    )


@register_rule("build_to_build_stubbed")
def _build_to_build_stubbed() -> MutationRule:
    return regex_rule(
        "build_to_build_stubbed",
        r"\bbuild (:[^\s]+)",
        r"build_stubbed \1",
        description="replace `build :sym` with `build_stubbed :sym`",
    )


def default_catalog(names: Optional[Iterable[str]] = None) -> MutationCatalog:
    """Catalog of the built-in rules, optionally restricted to ``names``."""

    selected = list(BUILTIN_RULE_FACTORIES) if names is None else list(names)
    unknown = [name for name in selected if name not in BUILTIN_RULE_FACTORIES]
    if unknown:
        available = ", ".join(BUILTIN_RULE_FACTORIES)
        raise KeyError(f"Unknown mutation rule(s) {', '.join(unknown)}. Available: {available}")
    return MutationCatalog(BUILTIN_RULE_FACTORIES[name]() for name in selected)
