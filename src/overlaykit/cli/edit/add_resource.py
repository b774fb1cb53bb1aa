"""
overlaykit edit add-resource command.

SUMMARY: Add resource files or directories to the kustomization
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict

from overlaykit.cli.edit._common import register_common, run_edit
from overlaykit.core.exceptions import ResourceLoadError
from overlaykit.core.loader import is_remote

SUMMARY = "Add resource files or directories to the kustomization"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("resources", nargs="+", help="Resource file or directory paths, relative to the kustomization")
    register_common(parser)


def main(args: argparse.Namespace) -> int:
    root = Path(args.dir).resolve()

    def _mutate(data: Dict[str, Any]) -> str:
        resources = list(data.get("resources") or [])
        added = []
        for ref in args.resources:
            if is_remote(ref):
                raise ResourceLoadError(f"remote resources are not supported: {ref}", context={"ref": ref})
            if not (root / ref).exists():
                raise ResourceLoadError(f"resource '{ref}' not found under '{root}'", context={"ref": ref})
            if ref in resources:
                continue
            resources.append(ref)
            added.append(ref)
        data["resources"] = resources
        return f"Added {len(added)} resource(s)" + (f": {', '.join(added)}" if added else "")

    return run_edit(args, _mutate, error_code="add_resource_error")
