"""Patch target selection.

``group``, ``version``, ``kind``, ``name`` and ``namespace`` are regular
expressions anchored at both ends; ``labelSelector`` and
``annotationSelector`` use Kubernetes selector syntax. Names and
namespaces also match the values a resource carried earlier in the build,
so overlays can target resources by the names they have in the base.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Pattern

from overlaykit.core.exceptions import PatchError
from overlaykit.core.resource import DEFAULT_NAMESPACE, Resource
from overlaykit.core.selectors import Selector, SelectorError

_FIELDS = ("group", "version", "kind", "name", "namespace", "labelSelector", "annotationSelector")


def _compile(field: str, value: Optional[str]) -> Optional[Pattern[str]]:
    if value is None:
        return None
    try:
        return re.compile(rf"^(?:{value})$")
    except re.error as exc:
        raise PatchError(f"invalid target {field} pattern {value!r}: {exc}") from exc


def _namespace_matches(pattern: Pattern[str], res: Resource) -> bool:
    for ns in [res.namespace, *res.previous_namespaces]:
        if pattern.match(ns) or (not ns and pattern.match(DEFAULT_NAMESPACE)):
            return True
    return False


@dataclass(frozen=True)
class PatchTarget:
    group: Optional[str] = None
    version: Optional[str] = None
    kind: Optional[str] = None
    name: Optional[str] = None
    namespace: Optional[str] = None
    label_selector: Optional[str] = None
    annotation_selector: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PatchTarget":
        unknown = sorted(set(data) - set(_FIELDS))
        if unknown:
            raise PatchError(f"unknown patch target field(s): {', '.join(unknown)}")

        def _get(key: str) -> Optional[str]:
            value = data.get(key)
            return None if value is None else str(value)

        return cls(
            group=_get("group"),
            version=_get("version"),
            kind=_get("kind"),
            name=_get("name"),
            namespace=_get("namespace"),
            label_selector=_get("labelSelector"),
            annotation_selector=_get("annotationSelector"),
        )

    def describe(self) -> str:
        parts = [
            f"{k}={v}"
            for k, v in (
                ("group", self.group),
                ("version", self.version),
                ("kind", self.kind),
                ("name", self.name),
                ("namespace", self.namespace),
                ("labelSelector", self.label_selector),
                ("annotationSelector", self.annotation_selector),
            )
            if v is not None
        ]
        return ", ".join(parts) or "<any>"

    def matcher(self) -> "TargetMatcher":
        try:
            labels = Selector.parse(self.label_selector or "")
            annotations = Selector.parse(self.annotation_selector or "")
        except SelectorError as exc:
            raise PatchError(f"invalid selector in patch target ({self.describe()}): {exc}") from exc
        return TargetMatcher(
            group=_compile("group", self.group),
            version=_compile("version", self.version),
            kind=_compile("kind", self.kind),
            name=_compile("name", self.name),
            namespace=_compile("namespace", self.namespace),
            labels=labels,
            annotations=annotations,
        )


@dataclass(frozen=True)
class TargetMatcher:
    group: Optional[Pattern[str]]
    version: Optional[Pattern[str]]
    kind: Optional[Pattern[str]]
    name: Optional[Pattern[str]]
    namespace: Optional[Pattern[str]]
    labels: Selector
    annotations: Selector

    def matches(self, res: Resource) -> bool:
        gvk = res.gvk
        if self.group is not None and not self.group.match(gvk.group):
            return False
        if self.version is not None and not self.version.match(gvk.version):
            return False
        if self.kind is not None and not self.kind.match(gvk.kind):
            return False
        if self.name is not None and not any(self.name.match(n) for n in res.all_names()):
            return False
        if self.namespace is not None and not _namespace_matches(self.namespace, res):
            return False
        if not self.labels.empty and not self.labels.matches(res.labels):
            return False
        if not self.annotations.empty and not self.annotations.matches(res.annotations):
            return False
        return True


__all__ = ["PatchTarget", "TargetMatcher"]
