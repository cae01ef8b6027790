"""JS/TS parsing and span extraction on top of tree-sitter.

Each file is parsed with the JavaScript, TypeScript or TSX grammar picked
from its extension. Function, catch and return spans come straight from the
syntax tree. A masked copy of the text (comments, string contents, regex
literals and JSX text blanked, every offset and newline kept) backs the
regex checks the matchers run inside those spans and the code-target
lexical rules, so a position found in it is the same line/column in the
raw file.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import PurePosixPath
from typing import Iterator, Literal

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

LANGUAGES: dict[str, Language] = {
    "javascript": Language(tree_sitter_javascript.language()),
    "typescript": Language(tree_sitter_typescript.language_typescript()),
    "tsx": Language(tree_sitter_typescript.language_tsx()),
}

_DIALECT_BY_SUFFIX = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "tsx",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}


def dialect_for(path: str) -> str:
    """Grammar name for a file path; unknown extensions parse as TypeScript."""
    return _DIALECT_BY_SUFFIX.get(PurePosixPath(path).suffix.lower(), "typescript")


class SourceParseError(ValueError):
    """The syntax tree for a file contains errors."""

    def __init__(self, message: str, offset: int):
        self.offset = offset
        super().__init__(message)


class LineIndex:
    """Offset to 1-based line/column lookup."""

    def __init__(self, text: str):
        self.text = text
        self._starts = [0] + [m.end() for m in re.finditer(r"\n", text)]

    def line_col(self, offset: int) -> tuple[int, int]:
        idx = bisect.bisect_right(self._starts, offset) - 1
        return idx + 1, offset - self._starts[idx] + 1

    def line_text(self, line: int) -> str:
        start = self._starts[line - 1]
        end = self._starts[line] - 1 if line < len(self._starts) else len(self.text)
        return self.text[start:end].rstrip("\r")


@dataclass(frozen=True)
class FunctionSpan:
    """A function, method or arrow function and the offsets of its body."""

    name: str | None
    kind: Literal["function", "method", "arrow"]
    params: tuple[str | None, ...]  # None for destructured parameters
    param_identifiers: frozenset[str]
    start: int
    body_start: int
    body_end: int
    expression: bool = False
    catch_handler: bool = False
    body: Node | None = field(default=None, compare=False, repr=False)

    @property
    def named_params(self) -> tuple[str, ...]:
        return tuple(p for p in self.params if p)


@dataclass(frozen=True)
class CatchBlock:
    """A `catch (e) { ... }` clause."""

    start: int
    body_start: int
    body_end: int
    param: str | None
    body: Node | None = field(default=None, compare=False, repr=False)


FUNCTION_KINDS: dict[str, Literal["function", "method", "arrow"]] = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "function_expression": "function",
    "function": "function",
    "generator_function": "function",
    "arrow_function": "arrow",
    "method_definition": "method",
}

_NAME_TYPES = frozenset({"identifier", "property_identifier", "private_property_identifier"})
_PATTERN_NAME_TYPES = frozenset({"identifier", "shorthand_property_identifier_pattern"})
_BLANKED_TYPES = frozenset({"comment", "html_comment", "jsx_text", "regex_pattern"})


def walk_named(node: Node) -> Iterator[Node]:
    """Yield `node` and its named descendants in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.named_children))


def _first_error(root: Node) -> Node:
    stack = [root]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current
        stack.extend(reversed([c for c in current.children if c.has_error]))
    return root


def _byte_starts(text: str) -> list[int]:
    starts: list[int] = []
    pos = 0
    for ch in text:
        starts.append(pos)
        code = ord(ch)
        pos += 1 if code < 0x80 else 2 if code < 0x800 else 3 if code < 0x10000 else 4
    starts.append(pos)
    return starts


def _is_catch_handler(node: Node) -> bool:
    """True for a function passed to `promise.catch(...)`."""
    args = node.parent
    if args is None or args.type != "arguments":
        return False
    call = args.parent
    if call is None or call.type != "call_expression":
        return False
    callee = call.child_by_field_name("function")
    if callee is None or callee.type != "member_expression":
        return False
    prop = callee.child_by_field_name("property")
    return prop is not None and prop.text == b"catch"


class ParsedSource:
    """
    A parsed JS/TS file.

    Offsets handed out by this class (spans, returns, node positions) are
    character offsets into `text`; tree-sitter's byte offsets are converted
    on the way out.

    Raises:
        SourceParseError: when the syntax tree has errors, with the offset of
            the first ERROR or MISSING node.
    """

    def __init__(self, text: str, dialect: str = "typescript"):
        self.text = text
        self.dialect = dialect
        self.lines = LineIndex(text)
        data = text.encode("utf-8")
        self._starts = None if len(data) == len(text) else _byte_starts(text)
        self.tree = Parser(LANGUAGES[dialect]).parse(data)
        self.root = self.tree.root_node
        if self.root.has_error:
            node = _first_error(self.root)
            message = f"missing {node.type!r}" if node.is_missing else "syntax error"
            raise SourceParseError(message, self.start(node))
        self.masked = self._mask()

    # -------------------------------------------------------------------------
    # Offsets
    # -------------------------------------------------------------------------

    def _offset(self, byte: int) -> int:
        if self._starts is None:
            return byte
        return bisect.bisect_right(self._starts, byte) - 1

    def start(self, node: Node) -> int:
        return self._offset(node.start_byte)

    def end(self, node: Node) -> int:
        return self._offset(node.end_byte)

    def node_text(self, node: Node) -> str:
        return self.text[self.start(node) : self.end(node)]

    def line_col(self, offset: int) -> tuple[int, int]:
        return self.lines.line_col(offset)

    # -------------------------------------------------------------------------
    # Masking
    # -------------------------------------------------------------------------

    def _mask(self) -> str:
        out = list(self.text)

        def blank(start: int, end: int) -> None:
            for k in range(start, end):
                if out[k] != "\n":
                    out[k] = " "

        for node in walk_named(self.root):
            if node.type in _BLANKED_TYPES:
                blank(self.start(node), self.end(node))
            elif node.type == "string":
                # Quote characters stay so string literals remain recognizable
                blank(self.start(node) + 1, self.end(node) - 1)
            elif node.type == "template_string":
                pos = self.start(node) + 1
                for child in node.named_children:
                    if child.type == "template_substitution":
                        blank(pos, self.start(child))
                        pos = self.end(child)
                blank(pos, self.end(node) - 1)
        return "".join(out)

    # -------------------------------------------------------------------------
    # Nodes and spans
    # -------------------------------------------------------------------------

    def nodes(self, *types: str) -> Iterator[Node]:
        """Named nodes of the given types, in document order."""
        wanted = set(types)
        return (n for n in walk_named(self.root) if n.type in wanted)

    def module_bindings(self) -> Iterator[tuple[Node, Node]]:
        """Yield (name, value) for each top-level `const`/`let`/`var` declarator."""
        for statement in self.root.named_children:
            if statement.type == "export_statement":
                statement = statement.child_by_field_name("declaration") or statement
            if statement.type not in ("lexical_declaration", "variable_declaration"):
                continue
            for declarator in statement.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name = declarator.child_by_field_name("name")
                value = declarator.child_by_field_name("value")
                if name is not None and value is not None and name.type == "identifier":
                    yield name, value

    def _param(self, node: Node) -> tuple[str | None, set[str]]:
        if node.type in ("required_parameter", "optional_parameter"):
            node = node.child_by_field_name("pattern") or node
        if node.type == "assignment_pattern":
            node = node.child_by_field_name("left") or node
        if node.type == "rest_pattern" and node.named_children:
            node = node.named_children[0]
        if node.type == "identifier":
            name = self.node_text(node)
            return name, {name}
        if node.type == "this":
            return "this", set()
        return None, {self.node_text(n) for n in walk_named(node) if n.type in _PATTERN_NAME_TYPES}

    def _params(self, node: Node) -> tuple[tuple[str | None, ...], frozenset[str]]:
        single = node.child_by_field_name("parameter")
        if single is not None:
            nodes = [single]
        else:
            params = node.child_by_field_name("parameters")
            nodes = [c for c in params.named_children if c.type != "comment"] if params is not None else []
        names: list[str | None] = []
        identifiers: set[str] = set()
        for param in nodes:
            name, found = self._param(param)
            if name == "this":
                # TypeScript `this` annotation, not a real parameter
                continue
            names.append(name)
            identifiers |= found
        return tuple(names), frozenset(identifiers)

    def _function_name(self, node: Node) -> str | None:
        name = node.child_by_field_name("name")
        if name is not None:
            return self.node_text(name) if name.type in _NAME_TYPES else None
        parent = node.parent
        if parent is None:
            return None
        if parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
        elif parent.type == "assignment_expression":
            target = parent.child_by_field_name("left")
            if target is not None and target.type == "member_expression":
                target = target.child_by_field_name("property")
        elif parent.type == "pair":
            target = parent.child_by_field_name("key")
        elif parent.type in ("field_definition", "public_field_definition"):
            target = parent.child_by_field_name("property") or parent.child_by_field_name("name")
        else:
            return None
        if target is None or target.type not in _NAME_TYPES:
            return None
        return self.node_text(target)

    @cached_property
    def functions(self) -> list[FunctionSpan]:
        """Every function with a body, in source order."""
        spans: list[FunctionSpan] = []
        for node in self.nodes(*FUNCTION_KINDS):
            body = node.child_by_field_name("body")
            if body is None:
                continue
            params, identifiers = self._params(node)
            expression = body.type != "statement_block"
            if expression:
                body_start, body_end = self.start(body), self.end(body)
            else:
                # body_end is the offset of the closing brace
                body_start, body_end = self.start(body) + 1, self.end(body) - 1
            spans.append(
                FunctionSpan(
                    name=self._function_name(node),
                    kind=FUNCTION_KINDS[node.type],
                    params=params,
                    param_identifiers=identifiers,
                    start=self.start(node),
                    body_start=body_start,
                    body_end=body_end,
                    expression=expression,
                    catch_handler=_is_catch_handler(node),
                    body=body,
                )
            )
        return spans

    @cached_property
    def catch_blocks(self) -> list[CatchBlock]:
        blocks: list[CatchBlock] = []
        for node in self.nodes("catch_clause"):
            body = node.child_by_field_name("body")
            if body is None:
                continue
            param = node.child_by_field_name("parameter")
            blocks.append(
                CatchBlock(
                    start=self.start(node),
                    body_start=self.start(body) + 1,
                    body_end=self.end(body) - 1,
                    param=self.node_text(param) if param is not None else None,
                    body=body,
                )
            )
        return blocks

    def outermost(self) -> list[FunctionSpan]:
        """Functions not nested inside another function."""
        result: list[FunctionSpan] = []
        end = -1
        for span in self.functions:
            if span.start >= end:
                result.append(span)
                end = span.body_end if span.expression else span.body_end + 1
        return result

    def returns_in(self, node: Node) -> list[tuple[int, int]]:
        """
        Offsets of the returned expressions under `node`.

        Returns inside nested functions belong to those functions and are
        skipped. A bare `return;` yields an empty range.
        """
        found: list[tuple[int, int]] = []
        stack = list(reversed(node.named_children))
        while stack:
            current = stack.pop()
            if current.type in FUNCTION_KINDS:
                continue
            if current.type == "return_statement":
                expr = next((c for c in current.named_children if c.type != "comment"), None)
                if expr is None:
                    found.append((self.end(current), self.end(current)))
                else:
                    found.append((self.start(expr), self.end(expr)))
                continue
            stack.extend(reversed(current.named_children))
        return found

    def function_returns(self, span: FunctionSpan) -> list[tuple[int, int]]:
        if span.expression:
            return [(span.body_start, span.body_end)]
        if span.body is None:
            return []
        return self.returns_in(span.body)

    def statements(self, span: FunctionSpan) -> list[Node]:
        """Top-level statements of a block body; empty for expression bodies."""
        if span.expression or span.body is None:
            return []
        return [c for c in span.body.named_children if c.type != "comment"]

    def ends_with_return(self, span: FunctionSpan) -> bool:
        """True when the function body cannot fall through past its last statement."""
        if span.expression:
            return True
        statements = self.statements(span)
        return bool(statements) and statements[-1].type == "return_statement"
