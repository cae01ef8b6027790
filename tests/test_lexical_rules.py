from __future__ import annotations

import re

from shamscan.scanner import scan_text


def _scan(text: str, compiled, relpath: str = "src/app.ts"):
    matches, warnings, downgraded = scan_text(text, relpath, compiled)
    return matches, warnings, downgraded


def test_not_implemented_throw(compiled) -> None:
    matches, _, _ = _scan('export function pay() {\n  throw new Error("Not implemented");\n}\n', compiled)
    hits = [m for m in matches if m.rule_id == "lex.not-implemented"]
    assert len(hits) == 1
    assert hits[0].line == 2
    assert hits[0].snippet == 'throw new Error("Not implemented");'


def test_todo_marker_in_comment(compiled) -> None:
    matches, _, _ = _scan("// TODO: wire the real API\nconst x = 1;\n", compiled)
    assert [(m.rule_id, m.line) for m in matches] == [("lex.todo-marker", 1)]


def test_placeholder_identifier_in_code_only(compiled) -> None:
    matches, _, _ = _scan('const label = "mockUsers";\n', compiled)
    assert "lex.placeholder-name" not in [m.rule_id for m in matches]

    matches, _, _ = _scan("const mockUsers = [];\n", compiled)
    assert "lex.placeholder-name" in [m.rule_id for m in matches]


def test_type_escapes(compiled) -> None:
    source = "let value: any = load();\nconst u = data as unknown as User;\n// @ts-ignore\nrun();\n"
    matches, _, _ = _scan(source, compiled)
    ids = {m.rule_id for m in matches}
    assert {"lex.type-any", "lex.double-cast", "lex.ts-suppression"} <= ids


def test_simulation_comment(compiled) -> None:
    matches, _, _ = _scan("// Simulate the payment gateway for now\nconst ok = 1;\n", compiled)
    assert "lex.simulation-comment" in [m.rule_id for m in matches]


def test_parse_failure_downgrades_to_lexical(compiled) -> None:
    source = "const s = 'unterminated\nconst mockData = 1;\nfunction f(x) { return x }\n"
    matches, warnings, downgraded = _scan(source, compiled)

    assert downgraded
    assert [w.kind for w in warnings] == ["parse-downgrade"]
    assert re.search(r" at \d+:\d+; scanned with lexical rules only$", warnings[0].message)
    ids = [m.rule_id for m in matches]
    # code-target rules fall back to the raw text; structural rules do not run
    assert "lex.placeholder-name" in ids
    assert "struct.identity-function" not in ids


def test_matches_are_sorted_and_deduplicated(compiled) -> None:
    source = "// TODO TODO\nconst a = 1; // FIXME\n"
    matches, _, _ = _scan(source, compiled)
    keys = [(m.line, m.column, m.rule_id) for m in matches]
    assert keys == sorted(keys)
    assert len(keys) == len(set(keys))
    assert [(m.line, m.column) for m in matches] == [(1, 4), (1, 9), (2, 17)]
