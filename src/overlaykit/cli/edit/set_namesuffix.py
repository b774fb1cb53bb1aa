"""
overlaykit edit set-namesuffix command.

SUMMARY: Set the suffix added to resource names

Values that start with a dash must be given as ``--suffix=-v2``, since
argparse would read a bare ``-v2`` as an option.
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

from overlaykit.cli.edit._common import register_common, run_edit

SUMMARY = "Set the suffix added to resource names"


def register_args(parser: argparse.ArgumentParser) -> None:
    value = parser.add_mutually_exclusive_group(required=True)
    value.add_argument("value", nargs="?", metavar="SUFFIX", help="Name suffix (empty string removes it)")
    value.add_argument("--suffix", dest="suffix", help="Name suffix, for values starting with '-' (--suffix=-v2)")
    register_common(parser)


def main(args: argparse.Namespace) -> int:
    suffix = args.suffix if args.suffix is not None else args.value

    def _mutate(data: Dict[str, Any]) -> str:
        if suffix:
            data["nameSuffix"] = suffix
            return f"Set nameSuffix to {suffix}"
        data.pop("nameSuffix", None)
        return "Removed nameSuffix"

    return run_edit(args, _mutate, error_code="set_namesuffix_error")
