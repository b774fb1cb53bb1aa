"""File loading relative to a kustomization root.

A :class:`FileLoader` is bound to one kustomization directory. File
references are resolved against it and, with the ``root_only`` restrictor,
may not escape it. Directory references (bases, components) are not
restricted: each becomes the root of its own loader.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, List, Sequence

import yaml

from overlaykit.core.exceptions import (
    KustomizationError,
    KustomizationNotFoundError,
    LoadRestrictionError,
    ResourceLoadError,
)
from overlaykit.core.resource import Resource
from overlaykit.core.utils.io import parse_yaml_documents, read_bytes, read_text

logger = logging.getLogger(__name__)

KUSTOMIZATION_FILENAMES = ("kustomization.yaml", "kustomization.yml", "Kustomization")
LOAD_RESTRICTORS = ("root_only", "none")

_REMOTE_RE = re.compile(r"^(https?://|ssh://|git::|git@|github\.com/|gitlab\.com/|bitbucket\.org/)")


def is_remote(ref: str) -> bool:
    return bool(_REMOTE_RE.match(ref.strip()))


def find_kustomization_file(directory: Path, filenames: Sequence[str] = KUSTOMIZATION_FILENAMES) -> Path:
    """Return the single descriptor file in ``directory``.

    Raises:
        KustomizationNotFoundError: No descriptor, or ``directory`` is missing.
        KustomizationError: More than one descriptor name is present.
    """
    d = Path(directory)
    if not d.is_dir():
        raise KustomizationNotFoundError(f"not a directory: {d}", context={"path": str(d)})
    # Listing avoids false matches on case-insensitive filesystems.
    present = {p.name for p in d.iterdir()}
    found = [d / name for name in filenames if name in present]
    if not found:
        raise KustomizationNotFoundError(
            f"unable to find one of {', '.join(repr(n) for n in filenames)} in directory '{d}'",
            context={"path": str(d)},
        )
    if len(found) > 1:
        raise KustomizationError(
            f"found multiple kustomization files under: {d}",
            context={"path": str(d), "files": [p.name for p in found]},
        )
    return found[0]


def _expand_lists(doc: Any) -> List[Any]:
    if isinstance(doc, dict):
        kind = doc.get("kind")
        items = doc.get("items")
        if isinstance(kind, str) and kind.endswith("List") and isinstance(items, list):
            out: List[Any] = []
            for item in items:
                out.extend(_expand_lists(item))
            return out
    return [doc]


class FileLoader:
    """Loads files referenced from one kustomization directory."""

    def __init__(self, root: Path, restrictor: str = "root_only") -> None:
        if restrictor not in LOAD_RESTRICTORS:
            raise ValueError(f"unknown load restrictor {restrictor!r}; expected one of {LOAD_RESTRICTORS}")
        self.root = Path(root).resolve()
        self.restrictor = restrictor

    def resolve(self, ref: str) -> Path:
        """Resolve ``ref`` against the root without applying the restrictor."""
        if is_remote(ref):
            raise ResourceLoadError(
                f"remote resources are not supported: {ref}",
                context={"ref": ref, "root": str(self.root)},
            )
        p = Path(ref).expanduser()
        if not p.is_absolute():
            p = self.root / p
        return p.resolve()

    def resolve_file(self, ref: str) -> Path:
        path = self.resolve(ref)
        if self.restrictor == "root_only" and not path.is_relative_to(self.root):
            raise LoadRestrictionError(
                f"security; file '{path}' is not in or below '{self.root}'",
                context={"ref": ref, "root": str(self.root)},
            )
        if not path.is_file():
            raise ResourceLoadError(
                f"file '{ref}' not found relative to '{self.root}'",
                context={"ref": ref, "root": str(self.root)},
            )
        return path

    def load_bytes(self, ref: str) -> bytes:
        return read_bytes(self.resolve_file(ref))

    def load_text(self, ref: str) -> str:
        path = self.resolve_file(ref)
        try:
            return read_text(path)
        except UnicodeDecodeError as exc:
            raise ResourceLoadError(
                f"file '{path}' is not valid UTF-8: {exc}", context={"path": str(path), "ref": ref}
            ) from exc

    def load_documents(self, ref: str) -> List[Any]:
        """Parse a (multi-document) YAML file; ``*List`` kinds are expanded."""
        path = self.resolve_file(ref)
        text = self.load_text(ref)
        try:
            docs = parse_yaml_documents(text)
        except yaml.YAMLError as exc:
            raise ResourceLoadError(f"invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
        out: List[Any] = []
        for doc in docs:
            out.extend(_expand_lists(doc))
        logger.debug("loaded %d document(s) from %s", len(out), path)
        return out

    def load_resources(self, ref: str) -> List[Resource]:
        origin = str(self.resolve_file(ref))
        return [Resource.from_document(doc, origin=origin) for doc in self.load_documents(ref)]


__all__ = [
    "KUSTOMIZATION_FILENAMES",
    "LOAD_RESTRICTORS",
    "FileLoader",
    "find_kustomization_file",
    "is_remote",
]
