from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ..models import TIER_ORDER, Severity, Tier

Target = Literal["text", "code"]
DiagnosticKind = Literal["quick-fix", "design-issue"]


@dataclass(frozen=True)
class RuleDef:
    id: str
    name: str
    tier: Tier
    category: str
    severity: Severity = "warning"
    matcher: str = "regex"
    pattern: str | None = None
    flags: str = ""
    target: Target = "text"
    remediation: str = ""
    description: str | None = None
    source: str = "builtin"


@dataclass(frozen=True)
class RuleCatalog:
    version: str
    rules: tuple[RuleDef, ...] = ()
    diagnostic_codes: dict[str, DiagnosticKind] = field(default_factory=dict)

    def get(self, rule_id: str) -> RuleDef | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def by_tier(self, tier: str) -> list[RuleDef]:
        return [r for r in self.rules if r.tier == tier]

    def ordered(self) -> list[RuleDef]:
        """Rules in tier order, then by id."""
        return sorted(self.rules, key=lambda r: (TIER_ORDER.index(r.tier), r.id))
