"""Small resource document factories for tests."""
from __future__ import annotations

from typing import Any, Dict, Optional


def resource(kind: str, name: str, *, api_version: str = "v1", namespace: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"name": name}
    if namespace:
        meta["namespace"] = namespace
    doc: Dict[str, Any] = {"apiVersion": api_version, "kind": kind, "metadata": meta}
    doc.update(fields)
    return doc


def deployment(
    name: str,
    *,
    image: str = "nginx:1.25",
    namespace: Optional[str] = None,
    replicas: int = 1,
    app: Optional[str] = None,
) -> Dict[str, Any]:
    labels = {"app": app or name}
    return resource(
        "Deployment",
        name,
        api_version="apps/v1",
        namespace=namespace,
        spec={
            "replicas": replicas,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {"containers": [{"name": "app", "image": image}]},
            },
        },
    )


def service(name: str, *, namespace: Optional[str] = None, app: Optional[str] = None) -> Dict[str, Any]:
    return resource(
        "Service",
        name,
        namespace=namespace,
        spec={"selector": {"app": app or name}, "ports": [{"port": 80, "targetPort": 8080}]},
    )


def config_map(name: str, data: Optional[Dict[str, str]] = None, *, namespace: Optional[str] = None) -> Dict[str, Any]:
    return resource("ConfigMap", name, namespace=namespace, data=dict(data or {"key": "value"}))


def service_account(name: str, *, namespace: Optional[str] = None) -> Dict[str, Any]:
    return resource("ServiceAccount", name, namespace=namespace)


__all__ = ["config_map", "deployment", "resource", "service", "service_account"]
