"""Content hash suffixes and name reference fixing.

These run once on the final set of a build: generated ConfigMaps and
Secrets get their hash suffix first, then every field that refers to a
renamed resource is rewritten to the resource's final name.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from overlaykit.core.exceptions import NameReferenceError
from overlaykit.core.fieldspec import FieldSpec, field_specs_from, load_builtin, update_field
from overlaykit.core.generators import content_hash
from overlaykit.core.resmap import ResourceMap
from overlaykit.core.resource import Resource
from overlaykit.core.transformers.base import ResourceTransformer, TransformContext

logger = logging.getLogger(__name__)


class HashSuffixTransformer(ResourceTransformer):
    """Append ``-<content hash>`` to generated resources that want one."""

    def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
        for res in resmap:
            if not res.needs_hash:
                continue
            res.hash_base_name = res.name
            res.rename(f"{res.name}-{content_hash(res.data)}")
            res.needs_hash = False
            context.record(self.get_name())
            logger.debug("hashed %s -> %s", res.hash_base_name, res.name)


@dataclass(frozen=True)
class Referral:
    """A kind that other resources refer to, and where they do it."""

    kind: str
    field_specs: Tuple[FieldSpec, ...]


@lru_cache(maxsize=1)
def referrals() -> Tuple[Referral, ...]:
    config = load_builtin("name_reference.yaml")
    roots = field_specs_from(config.get("podSpecRoots") or [])
    out: List[Referral] = []
    for entry in config.get("nameReference") or []:
        specs: List[FieldSpec] = []
        for rel in entry.get("podSpec") or []:
            specs.extend(FieldSpec(path=rel, kind=root.kind).with_prefix(root.path) for root in roots)
        specs.extend(field_specs_from(entry.get("fieldSpecs") or []))
        out.append(Referral(kind=str(entry["kind"]), field_specs=tuple(specs)))
    return tuple(out)


class NameReferenceTransformer(ResourceTransformer):
    """Point name references at the final names of the resources they mean.

    A reference matches a candidate of the referral kind when its value is
    the candidate's current name or any name it carried earlier. Candidates
    in the referrer's namespace win, then candidates renamed by the same
    prefixes and suffixes as the referrer; any remaining disagreement about
    the final name is an error.
    """

    def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
        by_kind: Dict[str, List[Resource]] = {}
        for res in resmap:
            by_kind.setdefault(res.kind, []).append(res)

        for referral in referrals():
            candidates = by_kind.get(referral.kind)
            if not candidates:
                continue
            for referrer in resmap:
                gvk = referrer.gvk
                for spec in referral.field_specs:
                    if not spec.applies_to(gvk):
                        continue
                    update_field(
                        referrer.data,
                        spec.segments,
                        lambda value, parent: self._resolve(value, parent, referral, candidates, referrer, spec, context),
                    )

    def _resolve(
        self,
        value: Any,
        parent: Dict[str, Any],
        referral: Referral,
        candidates: List[Resource],
        referrer: Resource,
        spec: FieldSpec,
        context: TransformContext,
    ) -> Any:
        if not isinstance(value, str):
            return value
        if "kind" in parent and parent["kind"] != referral.kind:
            return value
        matches = [c for c in candidates if c.matches_name(value)]
        if not matches:
            return value

        namespace: Optional[str] = referrer.namespace
        if isinstance(parent.get("namespace"), str):
            namespace = parent["namespace"]
        local = [c for c in matches if c.matches_namespace(namespace)]
        if local:
            matches = local
        if len({c.name for c in matches}) > 1:
            # Copies of one base renamed by different overlays: follow the
            # copy that went through the same prefixes and suffixes.
            same_affixes = [
                c
                for c in matches
                if c.name_prefixes == referrer.name_prefixes and c.name_suffixes == referrer.name_suffixes
            ]
            if same_affixes:
                matches = same_affixes

        final_names = sorted({c.name for c in matches})
        if len(final_names) > 1:
            raise NameReferenceError(
                f"{referrer.res_id()} refers to {referral.kind} '{value}' at {spec.path}, "
                f"which matches several resources: {', '.join(str(c.res_id()) for c in matches)}",
                context={
                    "referrer": str(referrer.res_id()),
                    "field": spec.path,
                    "value": value,
                    "candidates": [str(c.res_id()) for c in matches],
                },
            )
        if final_names[0] != value:
            context.record(self.get_name())
            logger.debug("%s: %s %s -> %s", referrer.res_id(), spec.path, value, final_names[0])
        return final_names[0]


__all__ = ["HashSuffixTransformer", "NameReferenceTransformer", "Referral", "referrals"]
