from __future__ import annotations

import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

from ..errors import RuleLoadError
from ..models import SEVERITY_RANK, TIER_ORDER
from .schema import RuleCatalog, RuleDef

logger = logging.getLogger(__name__)

_FLAG_BITS = {"i": re.IGNORECASE, "s": re.DOTALL, "x": re.VERBOSE}
_DIAGNOSTIC_KINDS = ("quick-fix", "design-issue")


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _opt_str(value: Any) -> str | None:
    return str(value) if isinstance(value, str) else None


def compile_pattern(rule: RuleDef) -> re.Pattern[str]:
    """Compile a regex rule's pattern with its flags."""
    bits = 0
    for flag in rule.flags:
        if flag not in _FLAG_BITS:
            raise RuleLoadError(f"rule {rule.id}: unknown regex flag {flag!r}")
        bits |= _FLAG_BITS[flag]
    try:
        return re.compile(rule.pattern or "", bits)
    except re.error as e:
        raise RuleLoadError(f"rule {rule.id}: invalid pattern: {e}") from e


def validate_rule(rule: RuleDef, path: Path | None = None) -> RuleDef:
    from ..scanner.matchers import MATCHERS

    if rule.tier not in TIER_ORDER:
        raise RuleLoadError(f"rule {rule.id}: unknown tier {rule.tier!r}", path)
    if rule.severity not in SEVERITY_RANK:
        raise RuleLoadError(f"rule {rule.id}: unknown severity {rule.severity!r}", path)
    if rule.target not in ("text", "code"):
        raise RuleLoadError(f"rule {rule.id}: unknown target {rule.target!r}", path)
    if rule.matcher == "regex":
        if not rule.pattern:
            raise RuleLoadError(f"rule {rule.id}: regex rules need a pattern", path)
        compile_pattern(rule)
    elif rule.matcher not in MATCHERS:
        raise RuleLoadError(f"rule {rule.id}: unknown matcher {rule.matcher!r}", path)
    return rule


def _rule_from_mapping(raw: dict[str, Any], defaults: dict[str, Any], source: str, path: Path) -> RuleDef:
    rule_id = str(raw.get("id", "")).strip()
    if not rule_id:
        raise RuleLoadError("rule without an id", path)

    tier = str(raw.get("tier", defaults.get("tier", "lexical"))).strip()
    severity = str(raw.get("severity", defaults.get("severity", "warning"))).strip()
    target = str(raw.get("target", defaults.get("target", "text"))).strip()
    matcher = str(raw.get("matcher", "regex")).strip() or "regex"

    rule = RuleDef(
        id=rule_id,
        name=_opt_str(raw.get("name")) or rule_id,
        tier=tier,  # type: ignore[arg-type]
        category=_opt_str(raw.get("category")) or _opt_str(defaults.get("category")) or rule_id,
        severity=severity,  # type: ignore[arg-type]
        matcher=matcher,
        pattern=_opt_str(raw.get("pattern")),
        flags=_opt_str(raw.get("flags")) or "",
        target=target,  # type: ignore[arg-type]
        remediation=(_opt_str(raw.get("remediation")) or "").strip(),
        description=_opt_str(raw.get("description")),
        source=source,
    )
    return validate_rule(rule, path)


def load_toml_rules(path: Path) -> list[RuleDef]:
    """
    Load a rule pack from TOML.

    The format mirrors the built-in catalog: a `[defaults]` table and one
    `[[rules]]` table per rule.
    """
    import tomllib

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise RuleLoadError(str(e), path) from e

    defaults = _coerce_dict(data.get("defaults"))
    rules: list[RuleDef] = []
    for raw in data.get("rules", []):
        if not isinstance(raw, dict):
            continue
        rules.append(_rule_from_mapping(raw, defaults, str(path), path))
    return rules


def load_markdown_rule(path: Path) -> RuleDef:
    """Load a single rule from a Markdown file with YAML frontmatter.

    The frontmatter carries the rule fields; the document body becomes the
    remediation hint.
    """
    import frontmatter

    try:
        post = frontmatter.load(path)
    except Exception as e:
        raise RuleLoadError(f"unreadable frontmatter: {e}", path) from e

    raw = dict(post.metadata)
    if not raw.get("remediation"):
        raw["remediation"] = post.content
    return _rule_from_mapping(raw, {}, str(path), path)


def load_rule_file(path: Path) -> list[RuleDef]:
    suffix = path.suffix.lower()
    if suffix == ".toml":
        return load_toml_rules(path)
    if suffix in (".md", ".markdown"):
        return [load_markdown_rule(path)]
    raise RuleLoadError(f"unsupported rule file type {suffix!r}", path)


def resolve_rule_paths(base: Path, patterns: Iterable[str]) -> list[Path]:
    """Expand rule file globs relative to `base`, sorted and deduplicated."""
    found: set[Path] = set()
    for pattern in patterns:
        candidate = Path(pattern)
        if candidate.is_absolute():
            if candidate.exists():
                found.add(candidate)
            continue
        matches = list(base.glob(pattern))
        if not matches:
            logger.warning("Rule pattern %r matched no files under %s", pattern, base)
        found.update(p for p in matches if p.is_file())
    return sorted(found)


def build_catalog(
    base: RuleCatalog,
    *,
    extra_files: Iterable[Path] = (),
    disable: Iterable[str] = (),
    severity_overrides: dict[str, str] | None = None,
    diagnostic_overrides: dict[str, str] | None = None,
) -> RuleCatalog:
    """Combine the base catalog with rule packs and configuration overrides."""
    rules: dict[str, RuleDef] = {r.id: r for r in base.rules}

    for path in extra_files:
        for rule in load_rule_file(path):
            if rule.id in rules:
                raise RuleLoadError(f"duplicate rule id {rule.id!r}", path)
            rules[rule.id] = rule

    for rule_id in disable:
        if rules.pop(rule_id, None) is None:
            logger.warning("Cannot disable unknown rule %s", rule_id)

    for rule_id, severity in (severity_overrides or {}).items():
        rule = rules.get(rule_id)
        if rule is None:
            logger.warning("Severity override for unknown rule %s", rule_id)
            continue
        if severity not in SEVERITY_RANK:
            raise RuleLoadError(f"rule {rule_id}: unknown severity {severity!r}")
        rules[rule_id] = replace(rule, severity=severity)  # type: ignore[arg-type]

    codes = dict(base.diagnostic_codes)
    for code, kind in (diagnostic_overrides or {}).items():
        if kind not in _DIAGNOSTIC_KINDS:
            raise RuleLoadError(f"diagnostic {code}: unknown kind {kind!r}")
        codes[code.upper()] = kind  # type: ignore[assignment]

    return RuleCatalog(
        version=base.version,
        rules=tuple(sorted(rules.values(), key=lambda r: (TIER_ORDER.index(r.tier), r.id))),
        diagnostic_codes=codes,
    )
