"""
Match classifier.

Assigns severity, tier and category to raw matches. Two declarative
policies adjust the rule's base severity:

- escalation: a file with at least `cluster` matches has every match raised
  one level (info -> warning -> critical);
- location: matches in test, mock or fixture files are forced to info,
  after escalation.

Classification is a pure function of (matches, catalog, thresholds).
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable

from .config import Thresholds
from .models import SEVERITY_ORDER, Classification, Match, Severity
from .rules.schema import RuleCatalog

TEST_DIR_MARKERS = frozenset(
    {
        "test",
        "tests",
        "__tests__",
        "spec",
        "specs",
        "__mocks__",
        "mocks",
        "fixtures",
        "__fixtures__",
        "e2e",
        "cypress",
        "playwright",
        "stories",
    }
)

_TEST_FILE_RE = re.compile(r"\.(?:test|spec|mock|fixture|stories)\.[^/]+$", re.IGNORECASE)

ESCALATE: dict[str, Severity] = {"info": "warning", "warning": "critical", "critical": "critical"}


def is_test_location(relpath: str) -> bool:
    """True for paths under a test/fixture directory or named like a test file."""
    parts = relpath.split("/")
    if any(part.lower() in TEST_DIR_MARKERS for part in parts[:-1]):
        return True
    return _TEST_FILE_RE.search(parts[-1]) is not None


def classify_file(matches: list[Match], catalog: RuleCatalog, thresholds: Thresholds) -> list[Classification]:
    """Classify the matches of a single file."""
    if not matches:
        return []
    relpath = matches[0].file
    in_tests = is_test_location(relpath)
    count = len(matches)
    clustered = count >= thresholds.cluster

    out: list[Classification] = []
    for match in matches:
        rule = catalog.get(match.rule_id)
        if rule is None:
            raise KeyError(f"match references unknown rule {match.rule_id!r}")

        severity: Severity = rule.severity
        note = None
        if clustered:
            severity = ESCALATE[severity]
            note = f"escalated: {count} findings in this file (threshold {thresholds.cluster})"
        if in_tests:
            severity = "info"
            note = "test or fixture file" if note is None else f"{note}; test or fixture file"

        out.append(
            Classification(
                match=match,
                severity=severity,
                tier=rule.tier,
                category=rule.category,
                location="test" if in_tests else "source",
                clustered=clustered,
                cluster_size=count if clustered else 0,
                note=note,
            )
        )
    return out


def classify_matches(
    matches: Iterable[Match],
    catalog: RuleCatalog,
    thresholds: Thresholds | None = None,
) -> list[Classification]:
    """
    Classify matches from any number of files.

    Returns:
        Classifications sorted by (path, line, column, rule id)
    """
    thresholds = thresholds or Thresholds()
    by_file: dict[str, list[Match]] = {}
    for match in matches:
        by_file.setdefault(match.file, []).append(match)

    out: list[Classification] = []
    for relpath in sorted(by_file):
        out.extend(classify_file(by_file[relpath], catalog, thresholds))
    out.sort(key=lambda c: c.sort_key())
    return out


def severity_counts(classifications: Iterable[Classification]) -> dict[str, int]:
    counts = Counter(c.severity for c in classifications)
    return {level: counts.get(level, 0) for level in SEVERITY_ORDER}
