"""Named matchers for the structural, semantic and behavioral tiers.

Every matcher takes a ParsedSource and the rule being evaluated and returns
`(start, end)` offsets into the file. Offsets in the masked text and the raw
text are interchangeable.
"""

from __future__ import annotations

import re
from typing import Callable

from tree_sitter import Node

from ..rules.schema import RuleDef
from .source import FunctionSpan, ParsedSource

MatcherFn = Callable[[ParsedSource, RuleDef], list[tuple[int, int]]]


_NOOP_NAME_RE = re.compile(r"^(?:_+|noop|noOp|constructor)$")

_VALIDATOR_NAME_RE = re.compile(
    r"^(?:validate|verify|check|authenticate|authorize|assert)(?:[A-Z_]|$)|^(?:is|has|can)[A-Z]"
)

# Masked text keeps quote characters, so an empty-looking string is '   '
_LITERAL_RE = re.compile(
    r"true|false|null|undefined|NaN|-?\d[\d_]*(?:\.\d+)?(?:[eE][+-]?\d+)?"
    r"|'\s*'|\"\s*\"|`\s*`|\[\s*\]|\{\s*\}"
)

_SUCCESS_VALUE_RE = re.compile(r"true|\[\s*\]|\{\s*\}|Promise\s*\.\s*resolve\s*\(\s*(?:true)?\s*\)")
_SUCCESS_FIELD_RE = re.compile(
    r"\b(?:success|succeeded|ok|valid|isValid|authenticated|authorized|passed)\s*:\s*true\b"
    r"|\bstatus\s*:\s*(?:200|['\"](?:ok|success|healthy)['\"])",
    re.IGNORECASE,
)
_SUCCESS_RESPONSE_RE = re.compile(
    r"\.\s*status\s*\(\s*200\s*\)|\bjson\s*\(\s*\{\s*(?:success|ok)\s*:\s*true",
    re.IGNORECASE,
)

_PROPAGATES_RE = re.compile(
    r"\bthrow\b|\breject\s*\(|\bPromise\s*\.\s*reject\b|\bnext\s*\(\s*[A-Za-z_$]|\bprocess\s*\.\s*exit\b"
)

_STORE_CONSTRUCTORS = frozenset({"Map", "Set", "WeakMap", "WeakSet"})
_STORE_MUTATORS = r"push|unshift|splice|pop|shift|set|add|delete|clear"
_BENIGN_STORE_RE = re.compile(
    r"cache|memo|registry|listener|handler|subscriber|callback|observer|pending|seen|visited",
    re.IGNORECASE,
)
_PERSISTENCE_RE = re.compile(
    r"(?:\bfrom\s*|\brequire\s*\(\s*|\bimport\s*\(\s*)['\"](?:"
    r"@prisma/client|mongoose|sequelize|typeorm|knex|drizzle-orm[^'\"]*|redis|ioredis|pg|postgres"
    r"|mysql2?|sqlite3?|better-sqlite3|mongodb|@aws-sdk/[^'\"]*dynamodb[^'\"]*|firebase[^'\"]*"
    r"|firebase-admin[^'\"]*|@supabase/[^'\"]*|(?:node:)?fs(?:/promises)?|lowdb|keyv|level)['\"]"
    r"|\b(?:localStorage|sessionStorage|indexedDB)\b"
)

_TIMER_RE = re.compile(r"\bset(?:Timeout|Interval)\s*\(|\bawait\s+(?:sleep|delay|wait|pause)\s*\(")
_ASYNC_WAIT_RE = re.compile(r"\bnew\s+Promise\b|\bawait\b")
_DELAY_HELPER_RE = re.compile(r"^(?:sleep|delay|wait|pause|timeout|backoff|debounce|throttle)", re.IGNORECASE)
_IO_RE = re.compile(
    r"\b(?:fetch|axios|got|ky|superagent|XMLHttpRequest|WebSocket|EventSource)\b"
    r"|\b(?:http|https|fs|db|prisma|knex|redis|client|supabase|firebase|sql)\s*\."
    r"|\.\s*(?:query|execute|findMany|findOne|findUnique|findFirst|insert|update|upsert|save|request"
    r"|readFile|writeFile|send|emit)\s*\("
)


def _strip_expr(expr: str) -> str:
    """Strip whitespace, a trailing semicolon and redundant outer parentheses."""
    expr = expr.strip().rstrip(";").strip()
    while expr.startswith("(") and expr.endswith(")") and _balanced(expr[1:-1]):
        expr = expr[1:-1].strip()
    return expr


def _balanced(text: str) -> bool:
    depth = 0
    for ch in text:
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def _references(text: str, name: str) -> bool:
    return re.search(rf"(?<![\w$.]){re.escape(name)}(?![\w$])", text) is not None


def _body(source: ParsedSource, span: FunctionSpan) -> str:
    return source.masked[span.body_start : span.body_end]


def _raw(source: ParsedSource, start: int, end: int) -> str:
    return source.text[start:end]


def _is_success_value(raw_expr: str) -> bool:
    expr = _strip_expr(raw_expr)
    if not expr:
        return False
    if _SUCCESS_VALUE_RE.fullmatch(expr):
        return True
    return _SUCCESS_FIELD_RE.search(expr) is not None


def _span_extent(span: FunctionSpan) -> tuple[int, int]:
    return span.start, span.body_end if span.expression else span.body_end + 1


def _is_empty_container(source: ParsedSource, value: Node) -> bool:
    """True for an empty array or object literal, or `new Map()` and friends."""
    while value.type in ("as_expression", "satisfies_expression") and value.named_children:
        value = value.named_children[0]
    if value.type in ("array", "object"):
        return not [c for c in value.named_children if c.type != "comment"]
    if value.type == "new_expression":
        ctor = value.child_by_field_name("constructor")
        args = value.child_by_field_name("arguments")
        if ctor is None or source.node_text(ctor) not in _STORE_CONSTRUCTORS:
            return False
        return args is None or not args.named_children
    return False


# =============================================================================
# Structural
# =============================================================================


def matcher_empty_body(source: ParsedSource, rule: RuleDef) -> list[tuple[int, int]]:
    hits: list[tuple[int, int]] = []
    for span in source.functions:
        if span.expression or span.catch_handler or not span.name:
            continue
        if _NOOP_NAME_RE.match(span.name):
            continue
        if _body(source, span).strip():
            continue
        hits.append(_span_extent(span))
    return hits


def matcher_identity(source: ParsedSource, rule: RuleDef) -> list[tuple[int, int]]:
    hits: list[tuple[int, int]] = []
    for span in source.functions:
        # Anonymous `x => x` callbacks are idiomatic; only named functions count
        if not span.name or len(span.params) != 1 or span.params[0] is None:
            continue
        if not span.expression:
            statements = source.statements(span)
            if len(statements) != 1 or statements[0].type != "return_statement":
                continue
        returns = source.function_returns(span)
        if len(returns) != 1:
            continue
        start, end = returns[0]
        if _strip_expr(source.masked[start:end]) == span.params[0]:
            hits.append(_span_extent(span))
    return hits


def matcher_constant_return(source: ParsedSource, rule: RuleDef) -> list[tuple[int, int]]:
    hits: list[tuple[int, int]] = []
    for span in source.functions:
        if not span.param_identifiers:
            continue
        body = _body(source, span)
        if any(_references(body, name) for name in span.param_identifiers):
            continue
        returns = source.function_returns(span)
        if not returns:
            continue
        exprs = [_strip_expr(source.masked[s:e]) for s, e in returns]
        if all(expr and _LITERAL_RE.fullmatch(expr) for expr in exprs):
            hits.append(_span_extent(span))
    return hits


# =============================================================================
# Semantic
# =============================================================================


def matcher_module_store(source: ParsedSource, rule: RuleDef) -> list[tuple[int, int]]:
    if _PERSISTENCE_RE.search(source.text):
        return []
    functions = source.outermost()
    hits: list[tuple[int, int]] = []
    for name_node, value in source.module_bindings():
        name = source.node_text(name_node)
        if not _is_empty_container(source, value) or _BENIGN_STORE_RE.search(name):
            continue
        escaped = re.escape(name)
        mutation = re.compile(
            rf"(?<![\w$.]){escaped}\s*(?:\.\s*(?:{_STORE_MUTATORS})\s*\("
            rf"|\[[^\]\n]*\]\s*=(?!=)|\.\s*[A-Za-z_$][\w$]*\s*=(?!=))"
            rf"|\bdelete\s+{escaped}\b"
        )
        if any(mutation.search(source.masked, f.body_start, f.body_end) for f in functions):
            hits.append((source.start(name_node), source.end(value)))
    return hits


def matcher_canned_responses(source: ParsedSource, rule: RuleDef) -> list[tuple[int, int]]:
    hits: list[tuple[int, int]] = []
    masked = source.masked
    for declarator in source.nodes("variable_declarator"):
        name_node = declarator.child_by_field_name("name")
        value = declarator.child_by_field_name("value")
        if name_node is None or value is None or name_node.type != "identifier" or value.type != "array":
            continue
        if not [c for c in value.named_children if c.type != "comment"]:
            continue
        name = re.escape(source.node_text(name_node))
        index = re.compile(
            rf"(?<![\w$.]){name}\s*\[\s*(?:"
            rf"[A-Za-z_$][\w$.]*\s*\+\+|\+\+\s*[A-Za-z_$][\w$.]*"
            rf"|[^\]\n]*%\s*{name}\s*\.\s*length"
            rf")\s*\]"
        )
        use = index.search(masked, source.end(value))
        if use is not None:
            hits.append((use.start(), use.end()))
    return hits


def matcher_timer_without_io(source: ParsedSource, rule: RuleDef) -> list[tuple[int, int]]:
    hits: list[tuple[int, int]] = []
    for span in source.outermost():
        if span.name and _DELAY_HELPER_RE.match(span.name):
            continue
        body = _body(source, span)
        timer = _TIMER_RE.search(body)
        if timer is None or not _ASYNC_WAIT_RE.search(body) or _IO_RE.search(body):
            continue
        start = span.body_start + timer.start()
        hits.append((start, span.body_start + timer.end()))
    return hits


# =============================================================================
# Behavioral
# =============================================================================


def matcher_swallowed_error(source: ParsedSource, rule: RuleDef) -> list[tuple[int, int]]:
    hits: list[tuple[int, int]] = []

    for block in source.catch_blocks:
        body = source.masked[block.body_start : block.body_end]
        if _PROPAGATES_RE.search(body):
            continue
        returns = source.returns_in(block.body) if block.body is not None else []
        if any(_is_success_value(_raw(source, s, e)) for s, e in returns) or _SUCCESS_RESPONSE_RE.search(
            _raw(source, block.body_start, block.body_end)
        ):
            hits.append((block.start, block.body_end + 1))

    for span in source.functions:
        if not span.catch_handler:
            continue
        if _PROPAGATES_RE.search(_body(source, span)):
            continue
        returns = source.function_returns(span)
        if any(_is_success_value(_raw(source, s, e)) for s, e in returns) or _SUCCESS_RESPONSE_RE.search(
            _raw(source, span.body_start, span.body_end)
        ):
            hits.append(_span_extent(span))

    return hits


def matcher_unconditional_success(source: ParsedSource, rule: RuleDef) -> list[tuple[int, int]]:
    hits: list[tuple[int, int]] = []
    for span in source.functions:
        if not span.name or not _VALIDATOR_NAME_RE.match(span.name) or not span.param_identifiers:
            continue
        body = _body(source, span)
        if not any(_references(body, name) for name in span.param_identifiers):
            continue
        if _PROPAGATES_RE.search(body):
            continue
        returns = source.function_returns(span)
        if not returns or not source.ends_with_return(span):
            continue
        if all(_is_success_value(_raw(source, s, e)) for s, e in returns):
            hits.append(_span_extent(span))
    return hits


MATCHERS: dict[str, MatcherFn] = {
    "empty_body": matcher_empty_body,
    "identity": matcher_identity,
    "constant_return": matcher_constant_return,
    "module_store": matcher_module_store,
    "canned_responses": matcher_canned_responses,
    "timer_without_io": matcher_timer_without_io,
    "swallowed_error": matcher_swallowed_error,
    "unconditional_success": matcher_unconditional_success,
}


def regex_line_matches(text: str, pattern: re.Pattern[str]) -> list[tuple[int, int]]:
    """Match `pattern` line by line; offsets are into `text`."""
    hits: list[tuple[int, int]] = []
    offset = 0
    for line in text.split("\n"):
        for m in pattern.finditer(line):
            if m.end() > m.start():
                hits.append((offset + m.start(), offset + m.end()))
        offset += len(line) + 1
    return hits
