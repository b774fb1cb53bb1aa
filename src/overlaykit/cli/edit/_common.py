"""Shared helpers for ``overlaykit edit`` commands.

Every edit loads the descriptor of the target directory, changes the raw
mapping, re-validates it and writes it back atomically with key order
preserved.
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

from overlaykit.cli import (
    OutputFormatter,
    add_json_flag,
    add_repo_root_flag,
    get_config,
    kustomization_filenames,
)
from overlaykit.core.exceptions import KustomizationError, OverlayKitError
from overlaykit.core.kustomization import read_kustomization_mapping, write_kustomization_mapping
from overlaykit.core.loader import find_kustomization_file

Mutation = Callable[[Dict[str, Any]], str]


def register_common(parser: argparse.ArgumentParser) -> None:
    """``--dir`` plus the standard flags."""
    parser.add_argument(
        "--dir",
        default=".",
        help="Kustomization directory to edit (default: .)",
    )
    add_json_flag(parser)
    add_repo_root_flag(parser)


def parse_pairs(values: List[str], *, separator: str = ":") -> Dict[str, str]:
    """Parse ``k:v`` items, each item possibly comma separated."""
    pairs: Dict[str, str] = {}
    for value in values:
        for item in value.split(","):
            if not item.strip():
                continue
            key, sep, val = item.partition(separator)
            if not sep or not key.strip():
                raise KustomizationError(f"invalid pair {item!r}; expected key{separator}value")
            pairs[key.strip()] = val.strip()
    return pairs


def merge_pairs(existing: Any, pairs: Dict[str, str], *, field: str, force: bool) -> Dict[str, str]:
    out = dict(existing or {})
    for key, value in pairs.items():
        if key in out and out[key] != value and not force:
            raise KustomizationError(f"{field} already has key {key!r}; use --force to overwrite")
        out[key] = value
    return out


def load_descriptor(args: argparse.Namespace) -> Tuple[Path, Dict[str, Any]]:
    directory = Path(args.dir).resolve()
    path = find_kustomization_file(directory, kustomization_filenames(get_config(args)))
    return path, read_kustomization_mapping(path)


def run_edit(args: argparse.Namespace, mutate: Mutation, *, error_code: str) -> int:
    """Load, mutate, validate and save; ``mutate`` returns a summary line."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        path, data = load_descriptor(args)
        message = mutate(data)
        write_kustomization_mapping(path, data)
    except OverlayKitError as e:
        formatter.error(e, error_code=error_code)
        return 1
    formatter.success({"path": str(path), "message": message}, message)
    return 0


__all__ = ["load_descriptor", "merge_pairs", "parse_pairs", "register_common", "run_edit"]
