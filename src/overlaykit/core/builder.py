"""Recursive kustomization builds.

A directory build accumulates its resources (building directory entries
recursively), applies its components, then runs generators, transformers
and patches over the accumulated set. The top-level build finally adds
content hashes to generated names and fixes name references.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Set

from overlaykit.core.exceptions import CycleError, KustomizationError, OverlayKitError
from overlaykit.core.emitter import ORDERS, emit_yaml, order_resources
from overlaykit.core.generators import apply_generators
from overlaykit.core.kustomization import (
    COMPONENT_KIND,
    KUSTOMIZATION_KIND,
    Kustomization,
    load_kustomization,
    read_kustomization_mapping,
)
from overlaykit.core.loader import KUSTOMIZATION_FILENAMES, LOAD_RESTRICTORS, FileLoader, find_kustomization_file
from overlaykit.core.patches import PatchEngine
from overlaykit.core.resmap import ResourceMap
from overlaykit.core.resource import Resource
from overlaykit.core.schemas import validate_payload_safe
from overlaykit.core.transformers import TransformContext, finalize_pipeline, pipeline_for

logger = logging.getLogger(__name__)


@dataclass
class BuildOptions:
    """Knobs for one build.

    ``reorder`` set explicitly wins over the descriptor's ``sortOptions``,
    which wins over ``default_order``.
    """

    reorder: Optional[str] = None
    default_order: str = "legacy"
    load_restrictor: str = "root_only"
    filenames: Sequence[str] = KUSTOMIZATION_FILENAMES

    def __post_init__(self) -> None:
        for order in (self.reorder, self.default_order):
            if order is not None and order not in ORDERS:
                raise KustomizationError(f"unknown sort order {order!r}; expected one of {', '.join(ORDERS)}")
        if self.load_restrictor not in LOAD_RESTRICTORS:
            raise KustomizationError(
                f"unknown load restrictor {self.load_restrictor!r}; expected one of {', '.join(LOAD_RESTRICTORS)}"
            )


@dataclass
class BuildResult:
    resmap: ResourceMap
    order: str
    kustomization: Kustomization

    def ordered(self) -> List[Resource]:
        return order_resources(self.resmap, self.order)

    def to_yaml(self, *, sort_keys: bool = True) -> str:
        return emit_yaml(self.resmap, order=self.order, sort_keys=sort_keys)


class Kustomizer:
    """Builds a kustomization directory into a :class:`ResourceMap`."""

    def __init__(self, options: Optional[BuildOptions] = None) -> None:
        self.options = options or BuildOptions()

    # ---- public API ---------------------------------------------------------

    def build(self, path: Path) -> ResourceMap:
        return self.run(path).resmap

    def run(self, path: Path) -> BuildResult:
        root = Path(path).resolve()
        stack: List[Path] = []
        kustomization = self._load(root, expected=KUSTOMIZATION_KIND)
        resmap = self._build_dir(root, stack, kustomization=kustomization)

        finalize_pipeline().execute(resmap, TransformContext(source=kustomization.path))
        resmap.ensure_unique()

        order = self.options.reorder or kustomization.sort_order or self.options.default_order
        logger.info("built %d resource(s) from %s", len(resmap), root)
        return BuildResult(resmap=resmap, order=order, kustomization=kustomization)

    def validate(self, path: Path) -> Dict[Path, List[str]]:
        """Schema-check every descriptor reachable from ``path``.

        Returns descriptor path -> messages, with an entry for every
        descriptor visited (an empty list when it is valid).
        """
        results: Dict[Path, List[str]] = {}
        self._validate_dir(Path(path).resolve(), results, set())
        return results

    # ---- directory builds ---------------------------------------------------

    @contextmanager
    def _visiting(self, directory: Path, stack: List[Path]) -> Iterator[None]:
        if directory in stack:
            chain = stack[stack.index(directory) :] + [directory]
            raise CycleError([str(p) for p in chain])
        stack.append(directory)
        try:
            yield
        finally:
            stack.pop()

    def _load(self, directory: Path, *, expected: str) -> Kustomization:
        kustomization = load_kustomization(directory, self.options.filenames)
        if kustomization.kind != expected:
            if expected == KUSTOMIZATION_KIND:
                message = f"{kustomization.path} is a Component; list it under 'components', not 'resources'"
            else:
                message = f"{kustomization.path} is not a Component (kind: {kustomization.kind})"
            raise KustomizationError(message, context={"path": str(kustomization.path), "kind": kustomization.kind})
        return kustomization

    def _resolve_dir(self, loader: FileLoader, ref: str) -> Path:
        path = loader.resolve(ref)
        if not path.is_dir():
            raise KustomizationError(
                f"component '{ref}' is not a directory under '{loader.root}'",
                context={"ref": ref, "root": str(loader.root)},
            )
        return path

    def _build_dir(
        self,
        directory: Path,
        stack: List[Path],
        *,
        kustomization: Optional[Kustomization] = None,
    ) -> ResourceMap:
        with self._visiting(directory, stack):
            kust = kustomization or self._load(directory, expected=KUSTOMIZATION_KIND)
            logger.debug("building %s", kust.path)
            loader = FileLoader(directory, self.options.load_restrictor)
            resmap = ResourceMap()
            self._accumulate(resmap, kust, loader, stack)
            for ref in kust.components:
                self._apply_component(resmap, self._resolve_dir(loader, ref), stack)
            self._customize(resmap, kust, loader)
            return resmap

    def _apply_component(self, resmap: ResourceMap, directory: Path, stack: List[Path]) -> None:
        with self._visiting(directory, stack):
            kust = self._load(directory, expected=COMPONENT_KIND)
            logger.debug("applying component %s", kust.path)
            loader = FileLoader(directory, self.options.load_restrictor)
            self._accumulate(resmap, kust, loader, stack)
            for ref in kust.components:
                self._apply_component(resmap, self._resolve_dir(loader, ref), stack)
            self._customize(resmap, kust, loader)

    def _accumulate(self, resmap: ResourceMap, kust: Kustomization, loader: FileLoader, stack: List[Path]) -> None:
        for ref in kust.resources:
            path = loader.resolve(ref)
            if path.is_dir():
                resmap.absorb(self._build_dir(path, stack))
                continue
            for res in loader.load_resources(ref):
                resmap.append(res)

    def _customize(self, resmap: ResourceMap, kust: Kustomization, loader: FileLoader) -> None:
        apply_generators(resmap, kust.generators, loader, kust.generator_options)
        context = pipeline_for(kust).execute(resmap, TransformContext(source=kust.path))
        if context.changes:
            logger.debug("%s: transformer changes %s", kust.path, context.changes)
        PatchEngine(loader).apply(resmap, kust.patches)
        resmap.ensure_unique()

    # ---- validation ---------------------------------------------------------

    def _validate_dir(self, directory: Path, results: Dict[Path, List[str]], seen: Set[Path]) -> None:
        if directory in seen:
            return
        seen.add(directory)
        path = find_kustomization_file(directory, self.options.filenames)
        try:
            data = read_kustomization_mapping(path)
        except OverlayKitError as exc:
            results[path] = [str(exc)]
            return
        errors = validate_payload_safe(data, "kustomization")
        results[path] = errors
        if errors:
            return

        loader = FileLoader(directory, self.options.load_restrictor)
        refs = [*(data.get("resources") or []), *(data.get("bases") or []), *(data.get("components") or [])]
        for ref in refs:
            try:
                child = loader.resolve(str(ref))
            except OverlayKitError as exc:
                results[path].append(str(exc))
                continue
            if child.is_dir():
                try:
                    self._validate_dir(child, results, seen)
                except OverlayKitError as exc:
                    results[path].append(f"{ref}: {exc}")


__all__ = ["BuildOptions", "BuildResult", "Kustomizer"]
