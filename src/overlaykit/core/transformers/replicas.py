"""Replica count overrides."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Tuple

from overlaykit.core.fieldspec import FieldSpec, field_specs_from, load_builtin, update_field
from overlaykit.core.kustomization import ReplicaEntry
from overlaykit.core.resmap import ResourceMap
from overlaykit.core.transformers.base import ResourceTransformer, TransformContext

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def replica_field_specs() -> Tuple[FieldSpec, ...]:
    return tuple(field_specs_from(load_builtin("replicas.yaml").get("replicas") or []))


class ReplicaTransformer(ResourceTransformer):
    """Set ``spec.replicas`` on the scalable resources each entry names."""

    def __init__(self, replicas: List[ReplicaEntry]) -> None:
        self.replicas = list(replicas)

    def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
        specs = replica_field_specs()
        for entry in self.replicas:
            matched = 0
            for res in resmap:
                if not res.matches_name(entry.name):
                    continue
                for spec in specs:
                    if spec.applies_to(res.gvk):
                        matched += update_field(
                            res.data, spec.segments, lambda _v, _p, n=entry.count: n, create=spec.create
                        )
            if matched:
                context.record(self.get_name(), matched)
            else:
                logger.debug("%s: replicas entry '%s' matched nothing", context.describe_source(), entry.name)


__all__ = ["ReplicaTransformer", "replica_field_specs"]
