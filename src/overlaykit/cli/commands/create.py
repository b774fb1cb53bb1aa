"""
Create a new kustomization descriptor.

SUMMARY: Create a kustomization.yaml in a directory

With ``--autodetect`` every YAML file in the directory that holds resource
documents is listed under ``resources``.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from overlaykit.cli import (
    OutputFormatter,
    add_dir_arg,
    add_json_flag,
    add_repo_root_flag,
    get_config,
    get_target_dir,
    kustomization_filenames,
)
from overlaykit.core.exceptions import KustomizationError, OverlayKitError
from overlaykit.core.kustomization import KUSTOMIZATION_API_VERSION, KUSTOMIZATION_KIND, write_kustomization_mapping
from overlaykit.core.utils.io import iter_yaml_files, parse_yaml_documents, read_text

logger = logging.getLogger(__name__)

SUMMARY = "Create a kustomization.yaml in a directory"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_dir_arg(parser, "Directory to create the kustomization in (default: .)")
    parser.add_argument("--resources", help="Comma separated resource paths")
    parser.add_argument("--namespace", help="Namespace for every resource")
    parser.add_argument("--name-prefix", dest="name_prefix", help="Name prefix")
    parser.add_argument("--name-suffix", dest="name_suffix", help="Name suffix")
    parser.add_argument(
        "--autodetect",
        action="store_true",
        help="List resource files found in the directory",
    )
    add_json_flag(parser)
    add_repo_root_flag(parser)


def _is_resource_file(path: Path) -> bool:
    try:
        docs = parse_yaml_documents(read_text(path))
    except (UnicodeDecodeError, yaml.YAMLError):
        logger.debug("skipping %s: not valid UTF-8 YAML", path)
        return False
    return bool(docs) and all(
        isinstance(d, dict) and d.get("apiVersion") and d.get("kind") for d in docs
    )


def autodetect_resources(directory: Path, descriptor_names: List[str]) -> List[str]:
    return [
        path.name
        for path in iter_yaml_files(directory)
        if path.is_file() and path.name not in descriptor_names and _is_resource_file(path)
    ]


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    directory = get_target_dir(args)

    try:
        names = list(kustomization_filenames(get_config(args)))
        if not directory.is_dir():
            raise KustomizationError(f"not a directory: {directory}", context={"path": str(directory)})
        existing = [n for n in names if (directory / n).exists()]
        if existing:
            raise KustomizationError(
                f"kustomization file already exists: {directory / existing[0]}",
                context={"path": str(directory / existing[0])},
            )

        resources = [r.strip() for r in (args.resources or "").split(",") if r.strip()]
        if args.autodetect:
            resources.extend(r for r in autodetect_resources(directory, names) if r not in resources)

        data: Dict[str, Any] = {"apiVersion": KUSTOMIZATION_API_VERSION, "kind": KUSTOMIZATION_KIND}
        if args.namespace:
            data["namespace"] = args.namespace
        if args.name_prefix:
            data["namePrefix"] = args.name_prefix
        if args.name_suffix:
            data["nameSuffix"] = args.name_suffix
        if resources:
            data["resources"] = resources

        path = directory / names[0]
        write_kustomization_mapping(path, data)
    except OverlayKitError as e:
        formatter.error(e, error_code="create_error")
        return 1

    formatter.success(
        {"path": str(path), "resources": resources},
        f"Created {path} with {len(resources)} resource(s)",
    )
    return 0
