from __future__ import annotations

from pathlib import Path

import pytest

from overlaykit.core.emitter import emit_yaml, order_resources, resource_filename, write_resources
from overlaykit.core.resource import Resource

from tests.helpers import config_map, deployment, read_docs, resource, service


def _resources():
    return [
        Resource(resource("Ingress", "web", api_version="networking.k8s.io/v1")),
        Resource(deployment("web")),
        Resource(resource("ValidatingWebhookConfiguration", "hook", api_version="admissionregistration.k8s.io/v1")),
        Resource(service("web")),
        Resource(resource("Namespace", "team")),
        Resource(config_map("b-cfg")),
        Resource(config_map("a-cfg")),
    ]


def test_legacy_order_puts_dependencies_first_and_webhooks_last() -> None:
    ordered = order_resources(_resources(), "legacy")
    assert [(r.kind, r.name) for r in ordered] == [
        ("Namespace", "team"),
        ("ConfigMap", "a-cfg"),
        ("ConfigMap", "b-cfg"),
        ("Service", "web"),
        ("Deployment", "web"),
        ("Ingress", "web"),
        ("ValidatingWebhookConfiguration", "hook"),
    ]


def test_legacy_order_is_independent_of_input_order() -> None:
    forward = [r.name for r in order_resources(_resources(), "legacy")]
    backward = [r.name for r in order_resources(list(reversed(_resources())), "legacy")]
    assert forward == backward


def test_fifo_keeps_input_order() -> None:
    items = _resources()
    assert order_resources(items, "fifo") == items


def test_unknown_order_is_rejected() -> None:
    with pytest.raises(ValueError, match="unknown sort order"):
        order_resources([], "random")


def test_emit_yaml_writes_a_document_stream() -> None:
    text = emit_yaml([Resource(service("web")), Resource(config_map("cfg"))], order="legacy")
    docs = read_docs(text)
    assert [d["kind"] for d in docs] == ["ConfigMap", "Service"]
    assert text.count("---\n") == 1


def test_emit_yaml_keeps_multiline_strings_readable() -> None:
    text = emit_yaml([Resource(config_map("cfg", {"app.conf": "a=1\nb=2\n"}))])
    assert "app.conf: |" in text


def test_resource_filename() -> None:
    assert resource_filename(Resource(deployment("Web"))) == "apps_v1_deployment_web.yaml"
    assert resource_filename(Resource(service("web"))) == "v1_service_web.yaml"


def test_write_resources_one_file_per_resource(tmp_path: Path) -> None:
    out = tmp_path / "out"
    written = write_resources([Resource(service("web")), Resource(deployment("web"))], out)
    assert sorted(p.name for p in written) == ["apps_v1_deployment_web.yaml", "v1_service_web.yaml"]
    assert read_docs((out / "v1_service_web.yaml").read_text(encoding="utf-8"))[0]["kind"] == "Service"


def test_write_resources_groups_colliding_names(tmp_path: Path) -> None:
    written = write_resources(
        [Resource(config_map("cfg", namespace="a")), Resource(config_map("cfg", namespace="b"))],
        tmp_path,
    )
    assert [p.name for p in written] == ["v1_configmap_cfg.yaml"]
    docs = read_docs(written[0].read_text(encoding="utf-8"))
    assert [d["metadata"]["namespace"] for d in docs] == ["a", "b"]


def test_legacy_order_treats_missing_namespace_as_default() -> None:
    items = [
        Resource(config_map("b", namespace="default")),
        Resource(config_map("c", namespace="apps")),
        Resource(config_map("a")),
    ]
    # ``apps`` sorts before ``default``; the unnamespaced map sits with ``default``.
    assert [r.name for r in order_resources(items, "legacy")] == ["c", "a", "b"]
