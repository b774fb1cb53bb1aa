"""Common CLI argument registration utilities."""
from __future__ import annotations

import argparse

from overlaykit.core.emitter import ORDERS
from overlaykit.core.loader import LOAD_RESTRICTORS


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_repo_root_flag(parser: argparse.ArgumentParser) -> None:
    """Add --repo-root flag (where project configuration is looked up)."""
    parser.add_argument(
        "--repo-root",
        type=str,
        help="Override project root path (default: auto-detect from the working directory)",
    )


def add_dir_arg(parser: argparse.ArgumentParser, help_text: str = "Kustomization directory (default: .)") -> None:
    """Add the optional positional kustomization directory."""
    parser.add_argument("dir", nargs="?", default=".", help=help_text)


def add_build_flags(parser: argparse.ArgumentParser) -> None:
    """Add --reorder and --load-restrictor.

    Both default to ``None`` so configuration values apply unless the flag is
    given.
    """
    parser.add_argument(
        "--reorder",
        choices=list(ORDERS),
        default=None,
        help="Output order (default: descriptor sortOptions, then build.reorder config)",
    )
    parser.add_argument(
        "--load-restrictor",
        dest="load_restrictor",
        choices=list(LOAD_RESTRICTORS),
        default=None,
        help="Whether files outside a kustomization root may be loaded (default: build.load_restrictor config)",
    )


__all__ = [
    "add_build_flags",
    "add_dir_arg",
    "add_json_flag",
    "add_repo_root_flag",
]
