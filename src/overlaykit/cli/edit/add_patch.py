"""
overlaykit edit add-patch command.

SUMMARY: Add a patch (file or inline) with an optional target
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

from overlaykit.cli.edit._common import register_common, run_edit
from overlaykit.core.exceptions import KustomizationError

SUMMARY = "Add a patch (file or inline) with an optional target"

_TARGET_FLAGS = (
    ("group", "group"),
    ("version", "version"),
    ("kind", "kind"),
    ("name", "name"),
    ("namespace", "namespace"),
    ("label_selector", "labelSelector"),
    ("annotation_selector", "annotationSelector"),
)


def register_args(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--path", help="Patch file, relative to the kustomization")
    source.add_argument("--patch", help="Inline patch document")
    for attr, key in _TARGET_FLAGS:
        parser.add_argument(f"--{attr.replace('_', '-')}", dest=attr, help=f"Target {key} (regular expression)")
    parser.add_argument("--allow-name-change", action="store_true", help="Allow the patch to rename its targets")
    parser.add_argument("--allow-kind-change", action="store_true", help="Allow the patch to change target kinds")
    register_common(parser)


def main(args: argparse.Namespace) -> int:
    def _mutate(data: Dict[str, Any]) -> str:
        entry: Dict[str, Any] = {"path": args.path} if args.path else {"patch": args.patch}
        target = {key: getattr(args, attr) for attr, key in _TARGET_FLAGS if getattr(args, attr)}
        if target:
            entry["target"] = target
        options = {}
        if args.allow_name_change:
            options["allowNameChange"] = True
        if args.allow_kind_change:
            options["allowKindChange"] = True
        if options:
            entry["options"] = options
        patches = list(data.get("patches") or [])
        if entry in patches:
            raise KustomizationError("patch is already listed", context={"patch": entry})
        patches.append(entry)
        data["patches"] = patches
        return f"Added patch {args.path or '<inline>'}"

    return run_edit(args, _mutate, error_code="add_patch_error")
