"""
overlaykit edit set-namespace command.

SUMMARY: Set the namespace applied to every namespaced resource
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

from overlaykit.cli.edit._common import register_common, run_edit

SUMMARY = "Set the namespace applied to every namespaced resource"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("namespace", help="Namespace name")
    register_common(parser)


def main(args: argparse.Namespace) -> int:
    def _mutate(data: Dict[str, Any]) -> str:
        data["namespace"] = args.namespace
        return f"Set namespace to {args.namespace}"

    return run_edit(args, _mutate, error_code="set_namespace_error")
