"""Resource documents and their identities.

A :class:`Resource` wraps one Kubernetes-style mapping document and carries
the bookkeeping a build needs: every name and namespace the document held
earlier in the build (so overlays and name references written against base
names still find it) and the generator state used for hash suffixing.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from overlaykit.core.exceptions import ResourceLoadError
from overlaykit.data import read_yaml

DEFAULT_NAMESPACE = "default"


@lru_cache(maxsize=1)
def cluster_scoped_kinds() -> FrozenSet[str]:
    data = read_yaml("builtins", "cluster_scoped.yaml") or {}
    return frozenset(str(k) for k in data.get("clusterScoped", []))


def parse_api_version(api_version: str) -> Tuple[str, str]:
    """Split ``apiVersion`` into ``(group, version)``.

    >>> parse_api_version("apps/v1")
    ('apps', 'v1')
    >>> parse_api_version("v1")
    ('', 'v1')
    """
    if "/" in api_version:
        group, version = api_version.rsplit("/", 1)
        return group, version
    return "", api_version


@dataclass(frozen=True)
class Gvk:
    group: str
    version: str
    kind: str

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> "Gvk":
        group, version = parse_api_version(api_version)
        return cls(group=group, version=version, kind=kind)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def is_cluster_scoped(self) -> bool:
        return self.kind in cluster_scoped_kinds()

    def __str__(self) -> str:
        return "_".join(p for p in (self.group, self.version, self.kind) if p)


def namespaces_equal(a: Optional[str], b: Optional[str]) -> bool:
    """Treat a missing namespace and ``default`` as the same namespace."""
    return (a or DEFAULT_NAMESPACE) == (b or DEFAULT_NAMESPACE)


@dataclass(frozen=True)
class ResId:
    """Identity of a resource: group/version/kind plus namespace and name."""

    gvk: Gvk
    name: str
    namespace: str = ""

    @property
    def effective_namespace(self) -> str:
        if self.gvk.is_cluster_scoped:
            return ""
        return self.namespace or DEFAULT_NAMESPACE

    def key(self) -> Tuple[str, str, str, str, str]:
        return (self.gvk.group, self.gvk.version, self.gvk.kind, self.effective_namespace, self.name)

    def __str__(self) -> str:
        ns = self.namespace or ("" if self.gvk.is_cluster_scoped else DEFAULT_NAMESPACE)
        return f"{self.gvk}|{ns or '~X'}|{self.name}"


class Resource:
    """One resource document plus build bookkeeping."""

    def __init__(self, data: Dict[str, Any], *, origin: Optional[str] = None) -> None:
        self.data = data
        self.origin = origin
        self.previous_names: List[str] = []
        self.previous_namespaces: List[str] = []
        # Prefixes and suffixes applied by name transformers, outermost last
        self.name_prefixes: List[str] = []
        self.name_suffixes: List[str] = []
        # Generator state
        self.generated = False
        self.needs_hash = False
        self.hash_base_name: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Any, *, origin: Optional[str] = None) -> "Resource":
        """Build a resource from a parsed document, checking the required fields."""
        where = f" in {origin}" if origin else ""
        if not isinstance(doc, dict):
            raise ResourceLoadError(
                f"resource document{where} must be a mapping, got {type(doc).__name__}",
                context={"origin": origin},
            )
        kind = doc.get("kind")
        if not isinstance(kind, str) or not kind:
            raise ResourceLoadError(f"resource document{where} is missing 'kind'", context={"origin": origin})
        if not isinstance(doc.get("apiVersion"), str) or not doc.get("apiVersion"):
            raise ResourceLoadError(
                f"{kind} document{where} is missing 'apiVersion'", context={"origin": origin}
            )
        meta = doc.get("metadata")
        if not isinstance(meta, dict) or not isinstance(meta.get("name"), str) or not meta["name"]:
            raise ResourceLoadError(
                f"{kind} document{where} is missing 'metadata.name'", context={"origin": origin}
            )
        return cls(doc, origin=origin)

    # ---- document accessors -------------------------------------------------

    @property
    def kind(self) -> str:
        return str(self.data["kind"])

    @property
    def api_version(self) -> str:
        return str(self.data["apiVersion"])

    @property
    def gvk(self) -> Gvk:
        return Gvk.from_api_version(self.api_version, self.kind)

    @property
    def metadata(self) -> Dict[str, Any]:
        meta = self.data.get("metadata")
        if not isinstance(meta, dict):
            meta = {}
            self.data["metadata"] = meta
        return meta

    @property
    def name(self) -> str:
        return str(self.metadata["name"])

    @property
    def namespace(self) -> str:
        ns = self.metadata.get("namespace")
        return str(ns) if ns else ""

    @property
    def labels(self) -> Dict[str, str]:
        labels = self.metadata.get("labels")
        return dict(labels) if isinstance(labels, dict) else {}

    @property
    def annotations(self) -> Dict[str, str]:
        annotations = self.metadata.get("annotations")
        return dict(annotations) if isinstance(annotations, dict) else {}

    def res_id(self) -> ResId:
        return ResId(gvk=self.gvk, name=self.name, namespace=self.namespace)

    # ---- renames ------------------------------------------------------------

    def rename(self, new_name: str) -> None:
        old = self.name
        if new_name == old:
            return
        if old not in self.previous_names:
            self.previous_names.append(old)
        self.metadata["name"] = new_name

    def set_namespace(self, namespace: str) -> None:
        old = self.namespace
        if old == namespace:
            return
        if old not in self.previous_namespaces:
            self.previous_namespaces.append(old)
        self.metadata["namespace"] = namespace

    def note_renamed_from(self, other: "Resource") -> None:
        """Carry over the name/namespace history of ``other`` (used on replace/merge)."""
        for name in [*other.previous_names, other.name]:
            if name != self.name and name not in self.previous_names:
                self.previous_names.append(name)
        for ns in [*other.previous_namespaces, other.namespace]:
            if ns != self.namespace and ns not in self.previous_namespaces:
                self.previous_namespaces.append(ns)
        self.name_prefixes = list(other.name_prefixes)
        self.name_suffixes = list(other.name_suffixes)

    def matches_name(self, name: str) -> bool:
        return name == self.name or name in self.previous_names

    def matches_namespace(self, namespace: Optional[str]) -> bool:
        if self.gvk.is_cluster_scoped:
            return True
        if namespaces_equal(namespace, self.namespace):
            return True
        return any(namespaces_equal(namespace, ns) for ns in self.previous_namespaces)

    def all_names(self) -> List[str]:
        return [self.name, *self.previous_names]

    # ---- copies -------------------------------------------------------------

    def copy(self) -> "Resource":
        clone = Resource(copy.deepcopy(self.data), origin=self.origin)
        clone.previous_names = list(self.previous_names)
        clone.previous_namespaces = list(self.previous_namespaces)
        clone.name_prefixes = list(self.name_prefixes)
        clone.name_suffixes = list(self.name_suffixes)
        clone.generated = self.generated
        clone.needs_hash = self.needs_hash
        clone.hash_base_name = self.hash_base_name
        return clone

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.data)

    def __repr__(self) -> str:
        return f"Resource({self.res_id()})"


__all__ = [
    "DEFAULT_NAMESPACE",
    "Gvk",
    "ResId",
    "Resource",
    "cluster_scoped_kinds",
    "namespaces_equal",
    "parse_api_version",
]
