"""Apply a kustomization's patches to its accumulated resources.

A patch document that is a list is a JSON patch and needs a ``target``.
A mapping is a strategic merge patch: with a ``target`` it applies to every
matching resource, without one it applies to the resource with its own
kind, name and namespace. Patch files may hold several mapping documents.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List

import yaml

from overlaykit.core.exceptions import OverlayKitError, PatchError, ResourceLoadError
from overlaykit.core.kustomization import PatchEntry
from overlaykit.core.loader import FileLoader
from overlaykit.core.resmap import ResourceMap
from overlaykit.core.resource import Gvk, Resource
from overlaykit.core.utils.io import parse_yaml_documents

from .json6902 import apply_json_patch
from .strategic_merge import is_delete_patch, strategic_merge
from .target import PatchTarget

logger = logging.getLogger(__name__)


class PatchEngine:
    """Applies :class:`PatchEntry` items in declaration order."""

    def __init__(self, loader: FileLoader) -> None:
        self.loader = loader

    # ---- parsing ------------------------------------------------------------

    def load_documents(self, entry: PatchEntry) -> List[Any]:
        if entry.patch is not None:
            text = entry.patch
        else:
            try:
                text = self.loader.load_text(str(entry.path))
            except ResourceLoadError as exc:
                raise PatchError(str(exc), patch=entry.describe(), context=exc.context) from exc
        try:
            docs = parse_yaml_documents(text)
        except yaml.YAMLError as exc:
            raise PatchError(f"invalid YAML in patch {entry.describe()}: {exc}", patch=entry.describe()) from exc
        if not docs:
            raise PatchError(f"patch {entry.describe()} is empty", patch=entry.describe())
        if any(isinstance(d, list) for d in docs) and len(docs) > 1:
            raise PatchError(
                f"patch {entry.describe()} mixes a JSON patch with other documents", patch=entry.describe()
            )
        for doc in docs:
            if not isinstance(doc, (dict, list)):
                raise PatchError(
                    f"patch {entry.describe()} must be a mapping or a list of operations, got {type(doc).__name__}",
                    patch=entry.describe(),
                )
        return docs

    # ---- application --------------------------------------------------------

    def apply(self, resmap: ResourceMap, patches: List[PatchEntry]) -> None:
        for entry in patches:
            for doc in self.load_documents(entry):
                self._apply_document(resmap, entry, doc)

    def _apply_document(self, resmap: ResourceMap, entry: PatchEntry, doc: Any) -> None:
        name = entry.describe()
        if entry.target is not None:
            target = PatchTarget.from_mapping(entry.target)
            matcher = target.matcher()
            matched = resmap.select(matcher.matches)
            if not matched:
                logger.warning("patch %s: target (%s) matched no resources", name, target.describe())
                return
        else:
            if isinstance(doc, list):
                raise PatchError(f"JSON patch {name} requires a target", patch=name)
            matched = [self._find_own_target(resmap, doc, name)]

        for res in matched:
            if isinstance(doc, list):
                result = apply_json_patch(res.data, doc, patch_name=name)
            elif is_delete_patch(doc):
                result = None
            else:
                result = strategic_merge(res.data, self._bind_to(res, doc, entry))
            if result is None:
                logger.debug("patch %s deleted %s", name, res.res_id())
                resmap.remove(res)
                continue
            self._commit(res, result, entry)

    def _find_own_target(self, resmap: ResourceMap, doc: Dict[str, Any], name: str) -> Resource:
        kind = doc.get("kind")
        meta = doc.get("metadata") if isinstance(doc.get("metadata"), dict) else {}
        res_name = meta.get("name")
        if not isinstance(kind, str) or not isinstance(res_name, str):
            raise PatchError(
                f"patch {name} has no target and is missing 'kind' or 'metadata.name'", patch=name
            )
        candidates = resmap.find(kind=kind, name=res_name)
        if isinstance(doc.get("apiVersion"), str):
            group = Gvk.from_api_version(doc["apiVersion"], kind).group
            candidates = [c for c in candidates if c.gvk.group == group]
        namespace = meta.get("namespace")
        candidates = [c for c in candidates if c.matches_namespace(namespace)]
        if not candidates:
            raise PatchError(
                f"patch {name}: no resource matches {kind} '{res_name}'",
                patch=name,
                target=f"{kind}/{res_name}",
            )
        if len(candidates) > 1:
            raise PatchError(
                f"patch {name}: {kind} '{res_name}' matches {len(candidates)} resources; add a namespace or a target",
                patch=name,
                target=f"{kind}/{res_name}",
                context={"candidates": [str(c.res_id()) for c in candidates]},
            )
        return candidates[0]

    @staticmethod
    def _bind_to(res: Resource, doc: Dict[str, Any], entry: PatchEntry) -> Dict[str, Any]:
        """Point a strategic merge patch at ``res`` unless it may rename it."""
        patch = copy.deepcopy(doc)
        meta = patch.get("metadata")
        if not isinstance(meta, dict):
            meta = {}
            patch["metadata"] = meta
        if not entry.allow_name_change or "name" not in meta:
            meta["name"] = res.name
        if res.namespace:
            meta["namespace"] = res.namespace
        else:
            meta.pop("namespace", None)
        if not entry.allow_kind_change or "kind" not in patch:
            patch["kind"] = res.kind
            patch["apiVersion"] = res.api_version
        return patch

    @staticmethod
    def _commit(res: Resource, result: Dict[str, Any], entry: PatchEntry) -> None:
        name = entry.describe()
        try:
            Resource.from_document(result, origin=res.origin)
        except OverlayKitError as exc:
            raise PatchError(
                f"patch {name} left {res.res_id()} invalid: {exc}", patch=name, target=str(res.res_id())
            ) from exc

        new_name = result["metadata"]["name"]
        if new_name != res.name and not entry.allow_name_change:
            raise PatchError(
                f"patch {name} would rename {res.res_id()} to '{new_name}'; set options.allowNameChange",
                patch=name,
                target=str(res.res_id()),
            )
        if result["kind"] != res.kind and not entry.allow_kind_change:
            raise PatchError(
                f"patch {name} would change the kind of {res.res_id()} to '{result['kind']}'; "
                "set options.allowKindChange",
                patch=name,
                target=str(res.res_id()),
            )

        old_name = res.name
        res.data = result
        if new_name != old_name and old_name not in res.previous_names:
            res.previous_names.append(old_name)
        logger.debug("patch %s applied to %s", name, res.res_id())


__all__ = ["PatchEngine"]
