from __future__ import annotations

import pytest

from shamscan.classify import classify_matches
from shamscan.models import SEVERITY_RANK
from shamscan.scanner import compile_rules, scan_text


def _rule_ids(text: str, compiled, relpath: str = "src/app.ts") -> list[str]:
    matches, _, _ = scan_text(text, relpath, compiled)
    return [m.rule_id for m in matches]


def test_identity_function_yields_exactly_one_structural_finding(catalog, compiled) -> None:
    matches, warnings, downgraded = scan_text("function f(x) { return x }\n", "src/app.ts", compiled)
    assert not warnings
    assert not downgraded

    classified = classify_matches(matches, catalog)
    structural = [c for c in classified if c.tier == "structural"]
    assert len(structural) == 1
    assert structural[0].category == "identity function"
    assert SEVERITY_RANK[structural[0].severity] >= SEVERITY_RANK["warning"]
    assert structural[0].match.line == 1
    assert structural[0].match.column == 1


def test_named_identity_arrow_is_flagged(compiled) -> None:
    ids = _rule_ids("export const passthrough = (value: string) => value;\n", compiled)
    assert "struct.identity-function" in ids


def test_anonymous_identity_callback_is_not_flagged(compiled) -> None:
    ids = _rule_ids("const ys = xs.map(x => x);\n", compiled)
    assert "struct.identity-function" not in ids


def test_empty_body(compiled) -> None:
    ids = _rule_ids("export function handleSubmit(event) {}\n", compiled)
    assert ids == ["struct.empty-body"]


def test_noop_is_not_an_empty_body(compiled) -> None:
    assert _rule_ids("function noop() {}\n", compiled) == []


@pytest.mark.parametrize(
    "source",
    [
        "function getPrice(productId) {\n  return 42;\n}\n",
        "function getName(id) { return 'Alice'; }\n",
        "const isEnabled = (flag) => false;\n",
    ],
)
def test_constant_return(compiled, source: str) -> None:
    assert "struct.constant-return" in _rule_ids(source, compiled)


def test_function_using_its_parameters_is_not_constant(compiled) -> None:
    assert _rule_ids("function double(n) {\n  return n * 2;\n}\n", compiled) == []


def test_braces_inside_strings_do_not_confuse_spans(compiled) -> None:
    source = 'function label(x) {\n  const s = "}";\n  return x;\n}\n'
    # Not an identity function: the body has a statement before the return
    assert "struct.identity-function" not in _rule_ids(source, compiled)


def test_structural_tier_only(catalog) -> None:
    compiled = compile_rules(catalog, ["structural"])
    matches, _, _ = scan_text("// TODO\nfunction f(x) { return x }\n", "src/a.ts", compiled)
    assert [m.rule_id for m in matches] == ["struct.identity-function"]
