from __future__ import annotations

import pytest

from overlaykit.core.exceptions import PatchError
from overlaykit.core.patches import PatchTarget
from overlaykit.core.resource import Resource

from tests.helpers import config_map, deployment, resource

pytestmark = pytest.mark.fast


def _matches(target: dict, res: Resource) -> bool:
    return PatchTarget.from_mapping(target).matcher().matches(res)


def test_patterns_are_anchored() -> None:
    res = Resource(deployment("web-frontend"))
    assert _matches({"name": "web-.*"}, res)
    assert not _matches({"name": "web"}, res)
    assert not _matches({"name": "frontend"}, res)
    assert _matches({"kind": "Deployment|StatefulSet"}, res)


def test_group_and_version() -> None:
    res = Resource(deployment("web"))
    assert _matches({"group": "apps", "version": "v1", "kind": "Deployment"}, res)
    assert not _matches({"group": "batch"}, res)
    core = Resource(config_map("cfg"))
    assert _matches({"group": "", "kind": "ConfigMap"}, core)


def test_names_and_namespaces_from_history_match() -> None:
    res = Resource(deployment("web"))
    res.rename("prod-web")
    res.set_namespace("prod")
    assert _matches({"name": "web"}, res)
    assert _matches({"name": "prod-web"}, res)
    assert _matches({"namespace": "default"}, res)
    assert _matches({"namespace": "prod"}, res)
    assert not _matches({"namespace": "staging"}, res)


def test_label_and_annotation_selectors() -> None:
    res = Resource(
        resource(
            "ConfigMap",
            "cfg",
            metadata={"name": "cfg", "labels": {"tier": "db", "env": "prod"}, "annotations": {"owner": "ops"}},
        )
    )
    assert _matches({"labelSelector": "tier=db,env in (prod,staging)"}, res)
    assert not _matches({"labelSelector": "tier!=db"}, res)
    assert _matches({"annotationSelector": "owner"}, res)
    assert not _matches({"annotationSelector": "!owner"}, res)


def test_empty_target_matches_everything() -> None:
    assert _matches({}, Resource(config_map("cfg")))
    assert PatchTarget.from_mapping({}).describe() == "<any>"


def test_describe_lists_given_fields() -> None:
    target = PatchTarget.from_mapping({"kind": "Deployment", "name": "web", "labelSelector": "a=b"})
    assert target.describe() == "kind=Deployment, name=web, labelSelector=a=b"


def test_unknown_field_raises() -> None:
    with pytest.raises(PatchError, match="unknown patch target field"):
        PatchTarget.from_mapping({"kind": "Deployment", "nmae": "web"})


def test_invalid_pattern_raises() -> None:
    with pytest.raises(PatchError, match="invalid target name pattern"):
        PatchTarget.from_mapping({"name": "web("}).matcher()
