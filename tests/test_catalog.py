from __future__ import annotations

import random
import unittest

from mutator.catalog import (
    BUILTIN_RULE_FACTORIES,
    MutationCatalog,
    MutationRule,
    default_catalog,
    regex_rule,
)

FACTORY_SOURCE = (
    "user = create :user\n"
    "admin = create! :admin, role: 'owner'\n"
    "posts = create_list :post, 3\n"
    "draft = build :draft\n"
    "recreate :thing\n"
)


class BuiltinRuleTests(unittest.TestCase):
    def test_create_is_rewritten_to_build(self) -> None:
        rule = default_catalog(["create_to_build"]).get("create_to_build")

        rewritten = rule.apply(FACTORY_SOURCE)

        self.assertIn("user = build :user\n", rewritten)
        self.assertIn("admin = build :admin, role: 'owner'\n", rewritten)
        self.assertIn("posts = create_list :post, 3\n", rewritten)
        self.assertIn("recreate :thing\n", rewritten)

    def test_builtin_rules_are_idempotent(self) -> None:
        for rule in default_catalog():
            once = rule.apply(FACTORY_SOURCE)
            self.assertEqual(rule.apply(once), once, rule.name)

    def test_create_list_is_rewritten_to_build_list(self) -> None:
        rule = default_catalog(["create_list_to_build_list"]).get("create_list_to_build_list")
        self.assertIn("posts = build_list :post, 3\n", rule.apply(FACTORY_SOURCE))

    def test_build_is_rewritten_to_build_stubbed(self) -> None:
        rule = default_catalog(["build_to_build_stubbed"]).get("build_to_build_stubbed")
        rewritten = rule.apply(FACTORY_SOURCE)
        self.assertIn("draft = build_stubbed :draft\n", rewritten)
        self.assertIn("posts = create_list :post, 3\n", rewritten)

    def test_rules_are_total_on_unrelated_text(self) -> None:
        text = "nothing to see here\n"
        for rule in default_catalog():
            self.assertEqual(rule.apply(text), text)
        for rule in default_catalog():
            self.assertEqual(rule.apply(""), "")

    def test_default_catalog_contains_all_builtins_in_order(self) -> None:
        self.assertEqual(default_catalog().names(), list(BUILTIN_RULE_FACTORIES))
        self.assertEqual(default_catalog().names()[0], "create_to_build")

    def test_unknown_builtin_name_is_rejected(self) -> None:
        with self.assertRaises(KeyError):
            default_catalog(["no_such_rule"])


class CatalogTests(unittest.TestCase):
    def test_register_rejects_duplicate_names(self) -> None:
        catalog = MutationCatalog([regex_rule("a", "x", "y")])
        with self.assertRaises(ValueError):
            catalog.register(regex_rule("a", "p", "q"))

    def test_new_rules_extend_the_catalog(self) -> None:
        catalog = default_catalog()
        catalog.register(MutationRule(name="strip_sleep", transform=lambda source: source.replace("sleep 1\n", "")))

        self.assertIn("strip_sleep", catalog)
        self.assertEqual(catalog.get("strip_sleep").apply("a\nsleep 1\nb\n"), "a\nb\n")
        self.assertEqual(len(catalog), len(BUILTIN_RULE_FACTORIES) + 1)

    def test_choose_is_reproducible_with_seed(self) -> None:
        catalog = default_catalog()
        first = [catalog.choose(random.Random(3)).name for _ in range(5)]
        second = [catalog.choose(random.Random(3)).name for _ in range(5)]
        self.assertEqual(first, second)

    def test_choose_from_empty_catalog_raises(self) -> None:
        with self.assertRaises(IndexError):
            MutationCatalog().choose(random.Random(0))

    def test_get_unknown_rule_raises(self) -> None:
        with self.assertRaises(KeyError):
            MutationCatalog().get("missing")


if __name__ == "__main__":
    unittest.main()
