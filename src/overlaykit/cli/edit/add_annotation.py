"""
overlaykit edit add-annotation command.

SUMMARY: Add annotations (key:value) to every resource
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

from overlaykit.cli.edit._common import merge_pairs, parse_pairs, register_common, run_edit

SUMMARY = "Add annotations (key:value) to every resource"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("annotations", nargs="+", help="Annotations as key:value, comma separated or repeated")
    parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing keys")
    register_common(parser)


def main(args: argparse.Namespace) -> int:
    def _mutate(data: Dict[str, Any]) -> str:
        pairs = parse_pairs(args.annotations)
        data["commonAnnotations"] = merge_pairs(
            data.get("commonAnnotations"), pairs, field="commonAnnotations", force=args.force
        )
        return f"Added {len(pairs)} annotation(s)"

    return run_edit(args, _mutate, error_code="add_annotation_error")
