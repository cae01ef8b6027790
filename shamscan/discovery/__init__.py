"""Monorepo-aware source root discovery."""

from .discover import discover_source_roots, member_source_dir
from .manifests import expand_members, list_adapters, read_manifests, register_adapter, unregister_adapter

__all__ = [
    "discover_source_roots",
    "expand_members",
    "list_adapters",
    "member_source_dir",
    "read_manifests",
    "register_adapter",
    "unregister_adapter",
]
