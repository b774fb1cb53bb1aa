from __future__ import annotations

import pytest

from overlaykit.core.resmap import ResourceMap
from overlaykit.core.resource import Resource
from overlaykit.core.transformers import (
    NamePrefixSuffixTransformer,
    NamespaceTransformer,
    TransformContext,
    TransformerPipeline,
)

from tests.helpers import config_map, deployment, resource, service_account

pytestmark = pytest.mark.fast


def _map(*docs) -> ResourceMap:
    return ResourceMap(Resource(d) for d in docs)


def test_prefix_and_suffix_rename_and_keep_history() -> None:
    resmap = _map(deployment("web"), config_map("cfg"))
    ctx = TransformContext()
    NamePrefixSuffixTransformer("dev-", "-v2").transform(resmap, ctx)
    assert [r.name for r in resmap] == ["dev-web-v2", "dev-cfg-v2"]
    assert all(r.previous_names for r in resmap)
    assert all(r.name_prefixes == ["dev-"] and r.name_suffixes == ["-v2"] for r in resmap)
    assert ctx.changes["NamePrefixSuffixTransformer"] == 2


@pytest.mark.parametrize(
    "doc",
    [
        resource("CustomResourceDefinition", "widgets.example.com", api_version="apiextensions.k8s.io/v1"),
        resource("APIService", "v1.metrics.k8s.io", api_version="apiregistration.k8s.io/v1"),
        resource("Namespace", "team"),
    ],
)
def test_prefix_skips_kinds_with_fixed_names(doc) -> None:
    resmap = _map(doc)
    NamePrefixSuffixTransformer("dev-").transform(resmap, TransformContext())
    assert next(iter(resmap)).name == doc["metadata"]["name"]


def test_namespace_moves_namespaced_resources_only() -> None:
    resmap = _map(
        deployment("web", namespace="old"),
        resource("ClusterRole", "reader", api_version="rbac.authorization.k8s.io/v1", namespace="bogus"),
    )
    NamespaceTransformer("prod").transform(resmap, TransformContext())
    web, role = resmap.resources()
    assert web.namespace == "prod"
    assert web.matches_namespace("old")
    assert "namespace" not in role.metadata


def test_namespace_updates_service_account_subjects_in_bindings() -> None:
    binding = resource(
        "RoleBinding",
        "read",
        api_version="rbac.authorization.k8s.io/v1",
        subjects=[
            {"kind": "ServiceAccount", "name": "app", "namespace": "default"},
            {"kind": "ServiceAccount", "name": "external", "namespace": "other"},
            {"kind": "User", "name": "alice"},
        ],
    )
    resmap = _map(service_account("app"), binding)
    NamespaceTransformer("prod").transform(resmap, TransformContext())
    subjects = resmap.find(kind="RoleBinding")[0].data["subjects"]
    assert subjects[0]["namespace"] == "prod"
    assert subjects[1]["namespace"] == "other"
    assert "namespace" not in subjects[2]


def test_pipeline_runs_in_order_and_reports_changes() -> None:
    resmap = _map(config_map("cfg"))
    pipeline = TransformerPipeline([NamespaceTransformer("dev")])
    pipeline.insert_transformer(0, NamePrefixSuffixTransformer("a-"))
    pipeline.add_transformer(NamePrefixSuffixTransformer("b-"))
    assert len(pipeline) == 3

    ctx = pipeline.execute(resmap)
    res = next(iter(resmap))
    assert res.name == "b-a-cfg"
    assert res.namespace == "dev"
    assert ctx.changes == {"NamePrefixSuffixTransformer": 2, "NamespaceTransformer": 1}
    assert ctx.describe_source() == "<memory>"
