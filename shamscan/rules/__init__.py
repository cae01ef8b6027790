"""Rule catalog: detection rules as data, evaluation in scanner.matchers."""

from .catalog import BUILT_IN_RULES, CATALOG_VERSION, default_catalog
from .load import build_catalog, load_rule_file, resolve_rule_paths
from .schema import RuleCatalog, RuleDef

__all__ = [
    "BUILT_IN_RULES",
    "CATALOG_VERSION",
    "RuleCatalog",
    "RuleDef",
    "build_catalog",
    "default_catalog",
    "load_rule_file",
    "resolve_rule_paths",
]
