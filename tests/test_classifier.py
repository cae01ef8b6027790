from __future__ import annotations

import pytest

from shamscan.classify import classify_matches, is_test_location, severity_counts
from shamscan.config import Thresholds
from shamscan.models import Match


def _match(file: str, line: int, rule_id: str = "lex.placeholder-name") -> Match:
    return Match(rule_id=rule_id, file=file, line=line, column=1, end_line=line, end_column=5, snippet="mockX")


def test_rule_severity_applies_below_cluster_threshold(catalog) -> None:
    matches = [_match("src/a.ts", n) for n in range(1, 5)]
    classified = classify_matches(matches, catalog)
    assert {c.severity for c in classified} == {"warning"}
    assert not any(c.clustered for c in classified)
    assert all(c.note is None for c in classified)


def test_cluster_escalates_every_match_one_level(catalog) -> None:
    matches = [_match("src/a.ts", n) for n in range(1, 6)]
    matches.append(_match("src/a.ts", 6, "lex.todo-marker"))
    classified = classify_matches(matches, catalog)

    by_rule = {c.match.rule_id: c.severity for c in classified}
    assert by_rule == {"lex.placeholder-name": "critical", "lex.todo-marker": "warning"}
    assert all(c.clustered and c.cluster_size == 6 for c in classified)
    assert classified[0].note == "escalated: 6 findings in this file (threshold 5)"


def test_cluster_threshold_is_configurable(catalog) -> None:
    matches = [_match("src/a.ts", 1), _match("src/a.ts", 2)]
    classified = classify_matches(matches, catalog, Thresholds(cluster=2))
    assert [c.severity for c in classified] == ["critical", "critical"]


def test_clusters_are_counted_per_file(catalog) -> None:
    matches = [_match(f"src/f{n}.ts", 1) for n in range(6)]
    classified = classify_matches(matches, catalog)
    assert {c.severity for c in classified} == {"warning"}


def test_test_files_are_never_critical(catalog) -> None:
    matches = [_match("src/__tests__/a.ts", n, "lex.not-implemented") for n in range(1, 8)]
    classified = classify_matches(matches, catalog)
    assert {c.severity for c in classified} == {"info"}
    assert all(c.location == "test" for c in classified)
    assert classified[0].note.endswith("test or fixture file")


def test_output_is_sorted(catalog) -> None:
    matches = [_match("src/b.ts", 3), _match("src/a.ts", 9), _match("src/a.ts", 2)]
    classified = classify_matches(matches, catalog)
    assert [(c.match.file, c.match.line) for c in classified] == [
        ("src/a.ts", 2),
        ("src/a.ts", 9),
        ("src/b.ts", 3),
    ]


def test_unknown_rule_is_an_error(catalog) -> None:
    with pytest.raises(KeyError):
        classify_matches([_match("src/a.ts", 1, "nope.rule")], catalog)


def test_severity_counts_lists_every_level(catalog) -> None:
    classified = classify_matches([_match("src/a.ts", 1)], catalog)
    assert severity_counts(classified) == {"critical": 0, "warning": 1, "info": 0}


@pytest.mark.parametrize(
    "relpath, expected",
    [
        ("src/foo.spec.ts", True),
        ("src/foo.test.tsx", True),
        ("e2e/login.ts", True),
        ("packages/a/__mocks__/api.ts", True),
        ("src/Button.stories.tsx", True),
        ("src/testing/util.ts", False),
        ("src/latest.ts", False),
        ("src/contest/entry.ts", False),
    ],
)
def test_is_test_location(relpath: str, expected: bool) -> None:
    assert is_test_location(relpath) is expected
