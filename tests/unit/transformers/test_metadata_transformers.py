from __future__ import annotations

import pytest

from overlaykit.core.resmap import ResourceMap
from overlaykit.core.resource import Resource
from overlaykit.core.transformers import AnnotationTransformer, LabelTransformer, TransformContext

from tests.helpers import config_map, deployment, resource, service

pytestmark = pytest.mark.fast


def _run(transformer, *docs) -> ResourceMap:
    resmap = ResourceMap(Resource(d) for d in docs)
    transformer.transform(resmap, TransformContext())
    return resmap


def test_common_labels_reach_metadata_templates_and_selectors() -> None:
    resmap = _run(LabelTransformer.common({"team": "a"}), deployment("web"), service("web"), config_map("cfg"))
    web, svc, cfg = resmap.resources()
    assert web.labels == {"team": "a"}
    assert web.data["spec"]["template"]["metadata"]["labels"] == {"app": "web", "team": "a"}
    assert web.data["spec"]["selector"]["matchLabels"] == {"app": "web", "team": "a"}
    assert svc.data["spec"]["selector"] == {"app": "web", "team": "a"}
    assert cfg.labels == {"team": "a"}
    assert "spec" not in cfg.data


def test_label_entry_without_selectors_leaves_selectors_alone() -> None:
    resmap = _run(
        LabelTransformer.for_entry({"env": "dev"}, include_selectors=False, include_templates=False),
        deployment("web"),
    )
    web = next(iter(resmap))
    assert web.labels == {"env": "dev"}
    assert web.data["spec"]["template"]["metadata"]["labels"] == {"app": "web"}
    assert web.data["spec"]["selector"]["matchLabels"] == {"app": "web"}


def test_label_entry_with_templates_only() -> None:
    resmap = _run(
        LabelTransformer.for_entry({"env": "dev"}, include_selectors=False, include_templates=True),
        deployment("web"),
    )
    web = next(iter(resmap))
    assert web.data["spec"]["template"]["metadata"]["labels"] == {"app": "web", "env": "dev"}
    assert web.data["spec"]["selector"]["matchLabels"] == {"app": "web"}


def test_job_selector_is_not_created_when_absent() -> None:
    job = resource(
        "Job",
        "migrate",
        api_version="batch/v1",
        spec={"template": {"spec": {"containers": [{"name": "m", "image": "m"}]}}},
    )
    resmap = _run(LabelTransformer.common({"team": "a"}), job)
    spec = next(iter(resmap)).data["spec"]
    assert spec["template"]["metadata"]["labels"] == {"team": "a"}
    assert "selector" not in spec


def test_existing_label_values_are_overwritten() -> None:
    doc = config_map("cfg")
    doc["metadata"]["labels"] = {"team": "old", "keep": "me"}
    resmap = _run(LabelTransformer.common({"team": "new"}), doc)
    assert next(iter(resmap)).labels == {"team": "new", "keep": "me"}


def test_annotations_reach_metadata_and_pod_templates_only() -> None:
    resmap = _run(AnnotationTransformer({"owner": "team-a"}), deployment("web"), config_map("cfg"))
    web, cfg = resmap.resources()
    assert web.annotations == {"owner": "team-a"}
    assert web.data["spec"]["template"]["metadata"]["annotations"] == {"owner": "team-a"}
    assert cfg.annotations == {"owner": "team-a"}
    assert web.data["spec"]["selector"] == {"matchLabels": {"app": "web"}}
