"""Label and annotation transformers.

Both write a set of key/value pairs into every map a field spec selects,
creating the map when its ``create`` flag is set. Which field specs a label entry
uses depends on its ``includeSelectors``/``includeTemplates`` flags.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Mapping, Tuple

from overlaykit.core.fieldspec import FieldSpec, field_specs_from, load_builtin, update_field
from overlaykit.core.resmap import ResourceMap
from overlaykit.core.transformers.base import ResourceTransformer, TransformContext


@lru_cache(maxsize=None)
def label_field_specs(group: str) -> Tuple[FieldSpec, ...]:
    return tuple(field_specs_from(load_builtin("labels.yaml").get(group) or []))


@lru_cache(maxsize=1)
def annotation_field_specs() -> Tuple[FieldSpec, ...]:
    return tuple(field_specs_from(load_builtin("annotations.yaml").get("annotations") or []))


def label_specs_for(*, include_selectors: bool, include_templates: bool) -> List[FieldSpec]:
    specs = list(label_field_specs("metadata"))
    if include_templates or include_selectors:
        specs.extend(label_field_specs("templates"))
    if include_selectors:
        specs.extend(label_field_specs("selectors"))
    return specs


class MapFieldTransformer(ResourceTransformer):
    """Merge ``pairs`` into the maps selected by ``field_specs``."""

    def __init__(self, pairs: Mapping[str, str], field_specs: List[FieldSpec]) -> None:
        self.pairs: Dict[str, str] = dict(pairs)
        self.field_specs = list(field_specs)

    def _merge(self, value: Any, _parent: Dict[str, Any]) -> Any:
        if value is None:
            return dict(self.pairs)
        if not isinstance(value, dict):
            return value
        value.update(self.pairs)
        return value

    def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
        if not self.pairs:
            return
        for res in resmap:
            gvk = res.gvk
            for spec in self.field_specs:
                if spec.applies_to(gvk):
                    count = update_field(res.data, spec.segments, self._merge, create=spec.create)
                    if count:
                        context.record(self.get_name(), count)


class LabelTransformer(MapFieldTransformer):
    @classmethod
    def common(cls, pairs: Mapping[str, str]) -> "LabelTransformer":
        """``commonLabels``: metadata, pod templates and selectors."""
        return cls(pairs, label_specs_for(include_selectors=True, include_templates=True))

    @classmethod
    def for_entry(cls, pairs: Mapping[str, str], *, include_selectors: bool, include_templates: bool) -> "LabelTransformer":
        return cls(pairs, label_specs_for(include_selectors=include_selectors, include_templates=include_templates))


class AnnotationTransformer(MapFieldTransformer):
    def __init__(self, pairs: Mapping[str, str]) -> None:
        super().__init__(pairs, list(annotation_field_specs()))


__all__ = [
    "AnnotationTransformer",
    "LabelTransformer",
    "MapFieldTransformer",
    "annotation_field_specs",
    "label_field_specs",
    "label_specs_for",
]
