"""Name prefix/suffix and namespace transformers."""
from __future__ import annotations

import logging
from typing import Any, List

from overlaykit.core.resmap import ResourceMap
from overlaykit.core.resource import Resource
from overlaykit.core.transformers.base import ResourceTransformer, TransformContext

logger = logging.getLogger(__name__)

# Kinds whose names are API contracts rather than free choices.
AFFIX_SKIP_KINDS = frozenset({"CustomResourceDefinition", "APIService", "Namespace"})

BINDING_KINDS = frozenset({"RoleBinding", "ClusterRoleBinding"})


class NamePrefixSuffixTransformer(ResourceTransformer):
    def __init__(self, prefix: str = "", suffix: str = "") -> None:
        self.prefix = prefix or ""
        self.suffix = suffix or ""

    def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
        if not self.prefix and not self.suffix:
            return
        for res in resmap:
            if res.kind in AFFIX_SKIP_KINDS:
                continue
            res.rename(f"{self.prefix}{res.name}{self.suffix}")
            if self.prefix:
                res.name_prefixes.append(self.prefix)
            if self.suffix:
                res.name_suffixes.append(self.suffix)
            context.record(self.get_name())


class NamespaceTransformer(ResourceTransformer):
    """Move every namespaced resource into ``namespace``.

    ServiceAccount subjects of role bindings follow when the account they
    name is part of the set.
    """

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
        if not self.namespace:
            return
        for res in resmap:
            if res.gvk.is_cluster_scoped:
                if res.namespace:
                    logger.debug("dropping namespace from cluster-scoped %s", res.res_id())
                    del res.metadata["namespace"]
                continue
            res.set_namespace(self.namespace)
            context.record(self.get_name())

        accounts = resmap.find(kind="ServiceAccount")
        if not accounts:
            return
        for binding in resmap.select(lambda r: r.kind in BINDING_KINDS):
            for subject in binding.data.get("subjects") or []:
                if self._owns_subject(subject, accounts):
                    subject["namespace"] = self.namespace
                    context.record(self.get_name())

    @staticmethod
    def _owns_subject(subject: Any, accounts: List[Resource]) -> bool:
        if not isinstance(subject, dict) or subject.get("kind") != "ServiceAccount":
            return False
        name = subject.get("name")
        if not isinstance(name, str):
            return False
        ns = subject.get("namespace")
        return any(sa.matches_name(name) and sa.matches_namespace(ns) for sa in accounts)


__all__ = ["AFFIX_SKIP_KINDS", "NamePrefixSuffixTransformer", "NamespaceTransformer"]
