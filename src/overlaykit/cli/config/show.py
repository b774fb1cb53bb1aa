"""
overlaykit config show command.

SUMMARY: Show current configuration

Displays the merged configuration from bundled defaults, user and project
config files and environment variables. Supports filtering by key.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any

from overlaykit.cli import OutputFormatter, add_json_flag, add_repo_root_flag, get_config
from overlaykit.core.exceptions import OverlayKitError
from overlaykit.core.utils.io import dump_yaml_string

SUMMARY = "Show current configuration"

_MISSING = object()


def _nest_key(key: str, value: Any) -> Any:
    """Nest a dot-notation key into a YAML/JSON-friendly mapping."""
    parts = [p for p in str(key).split(".") if p]
    out = value
    for part in reversed(parts):
        out = {part: out}
    return out


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "key",
        nargs="?",
        help="Specific configuration key to show (e.g., 'build.reorder')",
    )
    parser.add_argument(
        "--format",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format (default: yaml)",
    )
    add_json_flag(parser)
    add_repo_root_flag(parser)


def main(args: argparse.Namespace) -> int:
    """Show configuration - delegates to ConfigManager."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        config_manager = get_config(args)
        if args.key:
            value = config_manager.get(args.key, _MISSING)
            if value is _MISSING:
                formatter.error(f"Key not found: {args.key}", error_code="config_key_not_found")
                return 1
            data = _nest_key(args.key, value)
        else:
            data = config_manager.get_all()
    except OverlayKitError as e:
        formatter.error(e, error_code="config_show_error")
        return 1

    if args.json or args.format == "json":
        formatter.json_output(data)
    else:
        formatter.raw(dump_yaml_string(data, sort_keys=True))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
