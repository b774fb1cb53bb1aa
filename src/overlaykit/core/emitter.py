"""Serialize a built resource set.

Two orders are supported:

``legacy``
    Resources that others depend on first (namespaces, CRDs, RBAC, config)
    and admission webhooks last; ties broken by group, version, kind,
    namespace and name. Output is independent of input order.
``fifo``
    Input order, as accumulated by the build.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from overlaykit.core.resource import Resource
from overlaykit.core.utils.io import dump_yaml_documents, dump_yaml_string, ensure_directory, write_text

logger = logging.getLogger(__name__)

ORDERS = ("legacy", "fifo")

LEGACY_FIRST = (
    "Namespace",
    "ResourceQuota",
    "StorageClass",
    "CustomResourceDefinition",
    "ServiceAccount",
    "PodSecurityPolicy",
    "Role",
    "ClusterRole",
    "RoleBinding",
    "ClusterRoleBinding",
    "ConfigMap",
    "Secret",
    "Endpoints",
    "Service",
    "LimitRange",
    "PriorityClass",
    "PersistentVolume",
    "PersistentVolumeClaim",
    "Deployment",
    "StatefulSet",
    "CronJob",
    "PodDisruptionBudget",
)
LEGACY_LAST = ("MutatingWebhookConfiguration", "ValidatingWebhookConfiguration")


def _legacy_key(res: Resource) -> Tuple[int, int, str, str, str, str, str]:
    gvk = res.gvk
    if gvk.kind in LEGACY_FIRST:
        bucket, rank = 0, LEGACY_FIRST.index(gvk.kind)
    elif gvk.kind in LEGACY_LAST:
        bucket, rank = 2, LEGACY_LAST.index(gvk.kind)
    else:
        bucket, rank = 1, 0
    return (bucket, rank, gvk.group, gvk.version, gvk.kind, res.res_id().effective_namespace, res.name)


def order_resources(resources: Iterable[Resource], order: str = "legacy") -> List[Resource]:
    if order not in ORDERS:
        raise ValueError(f"unknown sort order {order!r}; expected one of {ORDERS}")
    items = list(resources)
    if order == "fifo":
        return items
    return sorted(items, key=_legacy_key)


def emit_yaml(resources: Iterable[Resource], *, order: str = "legacy", sort_keys: bool = True) -> str:
    """Render the resources as one ``---`` separated YAML stream."""
    return dump_yaml_documents((r.to_dict() for r in order_resources(resources, order)), sort_keys=sort_keys)


def resource_filename(res: Resource) -> str:
    """``<group>_<version>_<kind>_<name>.yaml``, lower case, core group omitted."""
    gvk = res.gvk
    parts = [p for p in (gvk.group, gvk.version, gvk.kind, res.name) if p]
    return ("_".join(parts) + ".yaml").lower()


def write_resources(
    resources: Iterable[Resource],
    directory: Path,
    *,
    order: str = "legacy",
    sort_keys: bool = True,
) -> List[Path]:
    """Write one file per resource into ``directory`` and return the paths.

    Resources whose file names collide (same kind and name in different
    namespaces) share one multi-document file.
    """
    out_dir = ensure_directory(Path(directory))
    grouped: Dict[str, List[Resource]] = {}
    for res in order_resources(resources, order):
        grouped.setdefault(resource_filename(res), []).append(res)

    written: List[Path] = []
    for filename, group in grouped.items():
        path = out_dir / filename
        if len(group) == 1:
            content = dump_yaml_string(group[0].to_dict(), sort_keys=sort_keys)
        else:
            content = dump_yaml_documents((r.to_dict() for r in group), sort_keys=sort_keys)
        write_text(path, content)
        written.append(path)
    logger.debug("wrote %d file(s) to %s", len(written), out_dir)
    return written


__all__ = [
    "LEGACY_FIRST",
    "LEGACY_LAST",
    "ORDERS",
    "emit_yaml",
    "order_resources",
    "resource_filename",
    "write_resources",
]
