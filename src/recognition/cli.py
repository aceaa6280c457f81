"""Command-line tools for checking and trying out recognition rules."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

import yaml

from recognition.classification.cache import RuleCache
from recognition.classification.classifier import RoleClassifier
from recognition.core.config import Settings
from recognition.core.logging import configure_logging
from recognition.formula.evaluator import evaluate
from recognition.formula.parser import compile_formula
from recognition.formula.validator import validate_formula
from recognition.rules.conflicts import detect_conflicts
from recognition.rules.loader import YamlRuleStore, load_rules


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recognition",
        description="Validate, test and apply family role recognition rules.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (defaults to RECOGNITION_LOG_LEVEL or INFO).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("validate", help="Check the syntax of a formula.")
    p.add_argument("formula")

    p = sub.add_parser("test", help="Evaluate a formula against family names.")
    p.add_argument("formula")
    p.add_argument("names", nargs="+", metavar="NAME")

    p = sub.add_parser("conflicts", help="List rules in a YAML file that may overlap.")
    p.add_argument("rules", metavar="RULES.yml")

    p = sub.add_parser("classify", help="Assign family names to roles using a YAML rule file.")
    p.add_argument("rules", metavar="RULES.yml")
    p.add_argument("names", nargs="+", metavar="NAME")
    return parser


def _cmd_validate(args: argparse.Namespace) -> int:
    result = validate_formula(args.formula)
    if result.valid:
        print("valid")
        return 0
    print(f"invalid: {result.reason}")
    return 1


def _cmd_test(args: argparse.Namespace) -> int:
    result = validate_formula(args.formula)
    if not result.valid:
        print(f"invalid: {result.reason}", file=sys.stderr)
        return 1
    root = compile_formula(args.formula)
    for name in args.names:
        print(f"{name}: {'match' if evaluate(root, name) else 'no match'}")
    return 0


def _cmd_conflicts(args: argparse.Namespace) -> int:
    conflicts = detect_conflicts(load_rules(args.rules))
    if not conflicts:
        print("No potential conflicts.")
        return 0
    for c in conflicts:
        print(f"{c.role_name_1} <-> {c.role_name_2}: {c.description}")
    return 0


async def _classify(store: YamlRuleStore, names: Sequence[str], settings: Settings) -> dict[str, str | None]:
    classifier = RoleClassifier(RuleCache.from_source(store, settings.cache))
    return await classifier.classify_many(names)


def _cmd_classify(args: argparse.Namespace, settings: Settings) -> int:
    # Surface a broken rule file here; the cache would only log it.
    load_rules(args.rules)
    results = asyncio.run(_classify(YamlRuleStore(args.rules), args.names, settings))
    for name, role in results.items():
        print(f"{name}: {role or '-'}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "validate":
            return _cmd_validate(args)
        if args.command == "test":
            return _cmd_test(args)
        if args.command == "conflicts":
            return _cmd_conflicts(args)
        return _cmd_classify(args, settings)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
