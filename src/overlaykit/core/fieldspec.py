"""Field specifications: where in a document a transformer writes.

A field spec is a slash-separated path with an optional group/version/kind
filter. A ``[]`` suffix on a segment iterates a list, e.g.
``spec/template/spec/containers[]/image``. With ``create`` set, missing
(or null) intermediate mappings are created.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from overlaykit.core.resource import Gvk
from overlaykit.data import read_yaml

# fn(current_value, parent_mapping) -> new value
FieldUpdate = Callable[[Any, Dict[str, Any]], Any]


@dataclass(frozen=True)
class FieldSpec:
    path: str
    group: Optional[str] = None
    version: Optional[str] = None
    kind: Optional[str] = None
    create: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FieldSpec":
        return cls(
            path=str(data["path"]),
            group=data.get("group"),
            version=data.get("version"),
            kind=data.get("kind"),
            create=bool(data.get("create", False)),
        )

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(p for p in self.path.split("/") if p)

    def applies_to(self, gvk: Gvk) -> bool:
        if self.kind is not None and self.kind != gvk.kind:
            return False
        if self.group is not None and self.group != gvk.group:
            return False
        if self.version is not None and self.version != gvk.version:
            return False
        return True

    def with_prefix(self, prefix: str) -> "FieldSpec":
        return FieldSpec(
            path=f"{prefix.rstrip('/')}/{self.path}",
            group=self.group,
            version=self.version,
            kind=self.kind,
            create=self.create,
        )


def field_specs_from(entries: Iterable[Mapping[str, Any]]) -> List[FieldSpec]:
    return [FieldSpec.from_mapping(e) for e in entries or ()]


def load_builtin(filename: str) -> Dict[str, Any]:
    data = read_yaml("builtins", filename)
    return data if isinstance(data, dict) else {}


def update_field(node: Any, segments: Tuple[str, ...], fn: FieldUpdate, *, create: bool = False) -> int:
    """Apply ``fn`` to every value found at ``segments`` below ``node``.

    Returns the number of values updated. Paths that cross a non-mapping
    value are skipped.
    """
    if not segments or not isinstance(node, dict):
        return 0

    head, rest = segments[0], segments[1:]
    is_list = head.endswith("[]")
    key = head[:-2] if is_list else head

    if not rest:
        if is_list:
            items = node.get(key)
            if not isinstance(items, list):
                return 0
            for i, item in enumerate(items):
                items[i] = fn(item, node)
            return len(items)
        if key in node and node[key] is not None:
            node[key] = fn(node[key], node)
            return 1
        if create:
            node[key] = fn(None, node)
            return 1
        return 0

    child = node.get(key)
    if is_list:
        if not isinstance(child, list):
            return 0
        return sum(update_field(item, rest, fn, create=create) for item in child)

    if child is None:
        if not create:
            return 0
        child = {}
        node[key] = child
    return update_field(child, rest, fn, create=create)


__all__ = [
    "FieldSpec",
    "FieldUpdate",
    "field_specs_from",
    "load_builtin",
    "update_field",
]
