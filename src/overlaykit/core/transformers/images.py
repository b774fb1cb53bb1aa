"""Container image substitution.

Every ``containers``, ``initContainers`` and ``ephemeralContainers`` list
anywhere in a document is searched, so pod templates of any workload kind
(including custom resources) are covered without field specs.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from overlaykit.core.kustomization import ImageEntry
from overlaykit.core.resmap import ResourceMap
from overlaykit.core.transformers.base import ResourceTransformer, TransformContext

CONTAINER_LISTS = ("containers", "initContainers", "ephemeralContainers")


@dataclass(frozen=True)
class ImageRef:
    """``name[:tag][@digest]``.

    >>> ImageRef.parse("registry:5000/app:1.2")
    ImageRef(name='registry:5000/app', tag='1.2', digest=None)
    """

    name: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @classmethod
    def parse(cls, image: str) -> "ImageRef":
        name, digest = image, None
        if "@" in name:
            name, digest = name.split("@", 1)
        tag = None
        # A colon before the last slash is a registry port, not a tag.
        colon = name.rfind(":")
        if colon > name.rfind("/"):
            name, tag = name[:colon], name[colon + 1 :]
        return cls(name=name, tag=tag, digest=digest)

    def __str__(self) -> str:
        out = self.name
        if self.tag:
            out += f":{self.tag}"
        if self.digest:
            out += f"@{self.digest}"
        return out


def apply_image_entry(image: str, entry: ImageEntry) -> Optional[str]:
    """Return the substituted image, or ``None`` when ``entry`` does not apply."""
    ref = ImageRef.parse(image)
    if ref.name != entry.name:
        return None
    name = entry.new_name or ref.name
    if entry.digest:
        return str(ImageRef(name=name, digest=entry.digest))
    if entry.new_tag:
        return str(ImageRef(name=name, tag=entry.new_tag))
    return str(ImageRef(name=name, tag=ref.tag, digest=ref.digest))


class ImageTransformer(ResourceTransformer):
    def __init__(self, images: List[ImageEntry]) -> None:
        self.images = list(images)

    def _visit(self, node: Any, context: TransformContext) -> None:
        if isinstance(node, dict):
            for key, value in node.items():
                if key in CONTAINER_LISTS and isinstance(value, list):
                    for container in value:
                        self._update_container(container, context)
                self._visit(value, context)
        elif isinstance(node, list):
            for item in node:
                self._visit(item, context)

    def _update_container(self, container: Any, context: TransformContext) -> None:
        if not isinstance(container, dict) or not isinstance(container.get("image"), str):
            return
        for entry in self.images:
            updated = apply_image_entry(container["image"], entry)
            if updated is not None:
                container["image"] = updated
                context.record(self.get_name())
                return

    def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
        if not self.images:
            return
        for res in resmap:
            self._visit(res.data, context)


__all__ = ["CONTAINER_LISTS", "ImageRef", "ImageTransformer", "apply_image_entry"]
