"""
Build a kustomization directory.

SUMMARY: Build a kustomization directory into a manifest stream

Prints the rendered resources as a ``---`` separated YAML stream. With
``-o FILE`` the stream is written to a file; with ``-o DIR`` (an existing
directory, or a path ending in ``/``) one file per resource is written.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from overlaykit.cli import (
    OutputFormatter,
    add_build_flags,
    add_dir_arg,
    add_json_flag,
    add_repo_root_flag,
    build_options,
    get_config,
    get_target_dir,
)
from overlaykit.core.builder import Kustomizer
from overlaykit.core.emitter import write_resources
from overlaykit.core.exceptions import OverlayKitError
from overlaykit.core.utils.io import write_text

SUMMARY = "Build a kustomization directory into a manifest stream"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_dir_arg(parser)
    parser.add_argument(
        "-o",
        "--output",
        help="Write to this file, or one file per resource into this directory",
    )
    add_build_flags(parser)
    add_json_flag(parser)
    add_repo_root_flag(parser)


def _is_dir_target(output: str) -> bool:
    return output.endswith(("/", "\\")) or Path(output).is_dir()


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        config = get_config(args)
        options = build_options(args, config)
        sort_keys = bool(config.get("output.sort_keys", True))
        result = Kustomizer(options).run(get_target_dir(args))
    except OverlayKitError as e:
        formatter.error(e, error_code="build_error")
        return 1

    if args.output:
        if _is_dir_target(args.output):
            written = write_resources(result.resmap, Path(args.output), order=result.order, sort_keys=sort_keys)
            formatter.success(
                {"output": str(Path(args.output)), "files": [str(p) for p in written]},
                f"Wrote {len(written)} file(s) to {args.output}",
            )
        else:
            write_text(Path(args.output), result.to_yaml(sort_keys=sort_keys))
            formatter.success(
                {"output": str(Path(args.output)), "resources": len(result.resmap)},
                f"Wrote {len(result.resmap)} resource(s) to {args.output}",
            )
        return 0

    if formatter.json_mode:
        formatter.json_output({"order": result.order, "resources": [r.to_dict() for r in result.ordered()]})
    else:
        formatter.raw(result.to_yaml(sort_keys=sort_keys))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
