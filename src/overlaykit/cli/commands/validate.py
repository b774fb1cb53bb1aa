"""overlaykit validate command.

SUMMARY: Validate every kustomization reachable from a directory.

Descriptors are checked against the bundled kustomization schema; nothing
is built.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from overlaykit.cli import (
    OutputFormatter,
    add_dir_arg,
    add_json_flag,
    add_repo_root_flag,
    build_options,
    get_config,
    get_target_dir,
)
from overlaykit.core.builder import Kustomizer
from overlaykit.core.exceptions import OverlayKitError

SUMMARY = "Validate every kustomization reachable from a directory"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_dir_arg(parser)
    add_json_flag(parser)
    add_repo_root_flag(parser)


def _display(path: Path, base: Path) -> str:
    try:
        return str(path.relative_to(base))
    except ValueError:
        return str(path)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    target = get_target_dir(args)

    try:
        results = Kustomizer(build_options(args, get_config(args))).validate(target)
    except OverlayKitError as e:
        formatter.error(e, error_code="validate_error")
        return 1

    invalid = {path: errors for path, errors in results.items() if errors}
    if formatter.json_mode:
        formatter.json_output(
            {
                "valid": not invalid,
                "files": [
                    {"path": str(path), "valid": not errors, "errors": errors}
                    for path, errors in results.items()
                ],
            }
        )
    else:
        for path, errors in results.items():
            if errors:
                formatter.text(f"✗ {_display(path, target)}")
                for err in errors:
                    formatter.text(f"  - {err}")
            else:
                formatter.text(f"✓ {_display(path, target)}")
    return 1 if invalid else 0
