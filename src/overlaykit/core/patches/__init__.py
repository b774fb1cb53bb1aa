"""Targeted mutations: JSON patch, strategic merge and patch targets."""
from __future__ import annotations

from .engine import PatchEngine
from .json6902 import apply_json_patch, parse_pointer
from .strategic_merge import is_delete_patch, merge_keys, strategic_merge
from .target import PatchTarget, TargetMatcher

__all__ = [
    "PatchEngine",
    "PatchTarget",
    "TargetMatcher",
    "apply_json_patch",
    "is_delete_patch",
    "merge_keys",
    "parse_pointer",
    "strategic_merge",
]
