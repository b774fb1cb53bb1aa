"""
overlaykit edit add-label command.

SUMMARY: Add labels (key:value) to every resource
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

from overlaykit.cli.edit._common import merge_pairs, parse_pairs, register_common, run_edit

SUMMARY = "Add labels (key:value) to every resource"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("labels", nargs="+", help="Labels as key:value, comma separated or repeated")
    parser.add_argument(
        "--without-selector",
        action="store_true",
        help="Add to 'labels' without touching selectors instead of 'commonLabels'",
    )
    parser.add_argument("--include-templates", action="store_true", help="With --without-selector, also label pod templates")
    parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing keys")
    register_common(parser)


def main(args: argparse.Namespace) -> int:
    def _mutate(data: Dict[str, Any]) -> str:
        pairs = parse_pairs(args.labels)
        if not args.without_selector:
            data["commonLabels"] = merge_pairs(data.get("commonLabels"), pairs, field="commonLabels", force=args.force)
            return f"Added {len(pairs)} common label(s)"

        entries = list(data.get("labels") or [])
        flags = {"includeSelectors": False, "includeTemplates": bool(args.include_templates)}
        for entry in entries:
            if bool(entry.get("includeSelectors", False)) == flags["includeSelectors"] and bool(
                entry.get("includeTemplates", False)
            ) == flags["includeTemplates"]:
                entry["pairs"] = merge_pairs(entry.get("pairs"), pairs, field="labels", force=args.force)
                break
        else:
            entry = {"pairs": pairs, "includeSelectors": False}
            if args.include_templates:
                entry["includeTemplates"] = True
            entries.append(entry)
        data["labels"] = entries
        return f"Added {len(pairs)} label(s)"

    return run_edit(args, _mutate, error_code="add_label_error")
