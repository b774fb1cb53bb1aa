"""
overlaykit edit set-nameprefix command.

SUMMARY: Set the prefix added to resource names

Values that start with a dash must be given as ``--prefix=prod-``, since
argparse would read a bare ``prod-`` as an option.
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

from overlaykit.cli.edit._common import register_common, run_edit

SUMMARY = "Set the prefix added to resource names"


def register_args(parser: argparse.ArgumentParser) -> None:
    value = parser.add_mutually_exclusive_group(required=True)
    value.add_argument("value", nargs="?", metavar="PREFIX", help="Name prefix (empty string removes it)")
    value.add_argument("--prefix", dest="prefix", help="Name prefix, for values starting with '-' (--prefix=prod-)")
    register_common(parser)


def main(args: argparse.Namespace) -> int:
    prefix = args.prefix if args.prefix is not None else args.value

    def _mutate(data: Dict[str, Any]) -> str:
        if prefix:
            data["namePrefix"] = prefix
            return f"Set namePrefix to {prefix}"
        data.pop("namePrefix", None)
        return "Removed namePrefix"

    return run_edit(args, _mutate, error_code="set_nameprefix_error")
