"""
overlaykit edit set-image command.

SUMMARY: Set image name, tag or digest overrides

Accepted forms::

    nginx:1.25                      newTag
    nginx@sha256:...                digest
    nginx=registry.local/nginx      newName
    nginx=registry.local/nginx:1.25 newName and newTag
"""

from __future__ import annotations

import argparse
from typing import Any, Dict, List

from overlaykit.cli.edit._common import register_common, run_edit
from overlaykit.core.exceptions import KustomizationError
from overlaykit.core.transformers import ImageRef

SUMMARY = "Set image name, tag or digest overrides"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("images", nargs="+", help="Image overrides (see command help)")
    register_common(parser)


def parse_image_arg(value: str) -> Dict[str, str]:
    name, sep, replacement = value.partition("=")
    if sep:
        if not name or not replacement:
            raise KustomizationError(f"invalid image override {value!r}")
        ref = ImageRef.parse(replacement)
        entry = {"name": name}
        if ref.name != name:
            entry["newName"] = ref.name
    else:
        ref = ImageRef.parse(value)
        entry = {"name": ref.name}
    if ref.digest:
        entry["digest"] = ref.digest
    elif ref.tag:
        entry["newTag"] = ref.tag
    if len(entry) == 1:
        raise KustomizationError(f"image override {value!r} changes nothing; give a new name, tag or digest")
    return entry


def upsert_image(images: List[Dict[str, Any]], entry: Dict[str, str]) -> None:
    for existing in images:
        if existing.get("name") == entry["name"]:
            if "digest" in entry:
                existing.pop("newTag", None)
            if "newTag" in entry:
                existing.pop("digest", None)
            existing.update(entry)
            return
    images.append(entry)


def main(args: argparse.Namespace) -> int:
    def _mutate(data: Dict[str, Any]) -> str:
        images = list(data.get("images") or [])
        for value in args.images:
            upsert_image(images, parse_image_arg(value))
        data["images"] = images
        return f"Set {len(args.images)} image override(s)"

    return run_edit(args, _mutate, error_code="set_image_error")
