"""End-to-end builds of base/overlay trees written to disk."""
from __future__ import annotations

import re
from pathlib import Path

import pytest

from overlaykit.core.builder import BuildOptions, Kustomizer
from overlaykit.core.emitter import write_resources
from overlaykit.core.exceptions import (
    CycleError,
    GeneratorError,
    KustomizationError,
    KustomizationNotFoundError,
    LoadRestrictionError,
    ResourceConflictError,
)

from tests.helpers import (
    config_map,
    deployment,
    read_docs,
    resource,
    service,
    write_docs,
    write_kustomization,
    write_text,
)


def _by_kind(resmap):
    return {r.kind: r for r in resmap}


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    base = tmp_path / "base"
    web = deployment("web", image="nginx:1.0")
    web["spec"]["template"]["spec"]["containers"][0]["envFrom"] = [{"configMapRef": {"name": "web-config"}}]
    write_docs(base / "deployment.yaml", [web])
    write_docs(base / "service.yaml", [service("web")])
    write_kustomization(
        base,
        {
            "resources": ["deployment.yaml", "service.yaml"],
            "commonLabels": {"app.kubernetes.io/name": "web"},
            "configMapGenerator": [{"name": "web-config", "literals": ["MODE=base", "LEVEL=info"]}],
        },
    )
    return base


def _overlay(tmp_path: Path, data: dict, *, name: str = "overlay") -> Path:
    overlay = tmp_path / name
    write_kustomization(overlay, {"resources": ["../base"], **data})
    return overlay


def _snapshot(directory: Path) -> dict:
    return {p.relative_to(directory): p.read_bytes() for p in sorted(directory.rglob("*")) if p.is_file()}

def test_base_builds_with_generated_config(base_dir: Path) -> None:
    resmap = Kustomizer().build(base_dir)
    kinds = _by_kind(resmap)
    assert set(kinds) == {"Deployment", "Service", "ConfigMap"}

    cm = kinds["ConfigMap"]
    assert re.fullmatch(r"web-config-[a-z0-9]{10}", cm.name)
    assert cm.hash_base_name == "web-config"
    assert cm.data["data"] == {"MODE": "base", "LEVEL": "info"}

    web = kinds["Deployment"]
    env_from = web.data["spec"]["template"]["spec"]["containers"][0]["envFrom"]
    assert env_from == [{"configMapRef": {"name": cm.name}}]
    # commonLabels reach metadata, selectors and pod templates.
    assert web.labels["app.kubernetes.io/name"] == "web"
    assert web.data["spec"]["selector"]["matchLabels"]["app.kubernetes.io/name"] == "web"
    assert web.data["spec"]["template"]["metadata"]["labels"]["app.kubernetes.io/name"] == "web"
    assert kinds["Service"].data["spec"]["selector"]["app.kubernetes.io/name"] == "web"


def test_overlay_customizes_base(tmp_path: Path, base_dir: Path) -> None:
    write_text(
        tmp_path / "overlay" / "replicas-patch.yaml",
        "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: web\nspec:\n"
        "  template:\n    spec:\n      containers:\n      - name: app\n        env:\n"
        "        - name: EXTRA\n          value: '1'\n",
    )
    overlay = _overlay(
        tmp_path,
        {
            "namePrefix": "prod-",
            "namespace": "production",
            "labels": [{"pairs": {"env": "prod"}}],
            "commonAnnotations": {"owner": "platform"},
            "images": [{"name": "nginx", "newTag": "1.25"}],
            "replicas": [{"name": "web", "count": 3}],
            "patches": [{"path": "replicas-patch.yaml"}],
        },
    )
    resmap = Kustomizer().build(overlay)
    kinds = _by_kind(resmap)
    web, svc, cm = kinds["Deployment"], kinds["Service"], kinds["ConfigMap"]

    assert web.name == "prod-web"
    assert svc.name == "prod-web"
    assert re.fullmatch(r"prod-web-config-[a-z0-9]{10}", cm.name)
    assert {r.namespace for r in resmap} == {"production"}
    assert web.labels["env"] == "prod"
    # A plain labels entry leaves selectors alone.
    assert "env" not in web.data["spec"]["selector"]["matchLabels"]
    assert web.annotations == {"owner": "platform"}
    assert web.data["spec"]["replicas"] == 3

    container = web.data["spec"]["template"]["spec"]["containers"][0]
    assert container["image"] == "nginx:1.25"
    assert container["env"] == [{"name": "EXTRA", "value": "1"}]
    assert container["envFrom"] == [{"configMapRef": {"name": cm.name}}]


def test_overlay_generator_merges_into_base_config(tmp_path: Path, base_dir: Path) -> None:
    overlay = _overlay(
        tmp_path,
        {
            "namePrefix": "dev-",
            "configMapGenerator": [{"name": "web-config", "behavior": "merge", "literals": ["MODE=dev"]}],
        },
    )
    resmap = Kustomizer().build(overlay)
    cm = _by_kind(resmap)["ConfigMap"]
    assert cm.data["data"] == {"MODE": "dev", "LEVEL": "info"}
    assert re.fullmatch(r"dev-web-config-[a-z0-9]{10}", cm.name)

    base_cm = _by_kind(Kustomizer().build(base_dir))["ConfigMap"]
    assert cm.name.rsplit("-", 1)[1] != base_cm.name.rsplit("-", 1)[1]


def test_overlay_generator_replace_and_create_conflict(tmp_path: Path, base_dir: Path) -> None:
    overlay = _overlay(
        tmp_path,
        {"configMapGenerator": [{"name": "web-config", "behavior": "replace", "literals": ["ONLY=1"]}]},
    )
    cm = _by_kind(Kustomizer().build(overlay))["ConfigMap"]
    assert cm.data["data"] == {"ONLY": "1"}

    clash = _overlay(tmp_path, {"configMapGenerator": [{"name": "web-config", "literals": ["A=1"]}]}, name="clash")
    with pytest.raises(GeneratorError, match="already exists"):
        Kustomizer().build(clash)


def test_disable_name_suffix_hash(tmp_path: Path) -> None:
    write_kustomization(
        tmp_path / "app",
        {
            "generatorOptions": {"disableNameSuffixHash": True},
            "secretGenerator": [{"name": "creds", "literals": ["password=hunter2"]}],
        },
    )
    secret = next(iter(Kustomizer().build(tmp_path / "app")))
    assert secret.name == "creds"
    assert secret.data["type"] == "Opaque"
    assert secret.data["data"] == {"password": "aHVudGVyMg=="}


def test_components_add_resources_and_patches(tmp_path: Path, base_dir: Path) -> None:
    component = tmp_path / "components" / "monitoring"
    write_docs(component / "monitor.yaml", [config_map("monitor", {"scrape": "true"})])
    write_kustomization(
        component,
        {
            "apiVersion": "kustomize.config.k8s.io/v1alpha1",
            "kind": "Component",
            "resources": ["monitor.yaml"],
            "commonAnnotations": {"monitoring": "enabled"},
        },
    )
    overlay = _overlay(tmp_path, {"components": ["../components/monitoring"], "namePrefix": "x-"})
    resmap = Kustomizer().build(overlay)
    names = sorted(r.name for r in resmap if not r.name.startswith("x-web-config-"))
    assert names == ["x-monitor", "x-web", "x-web"]
    # The component's transformers see the base resources too.
    assert all(r.annotations.get("monitoring") == "enabled" for r in resmap)


def test_component_listed_as_resource_is_an_error(tmp_path: Path) -> None:
    component = tmp_path / "comp"
    write_kustomization(component, {"apiVersion": "kustomize.config.k8s.io/v1alpha1", "kind": "Component"})
    write_kustomization(tmp_path / "app", {"resources": ["../comp"]})
    with pytest.raises(KustomizationError, match="is a Component"):
        Kustomizer().build(tmp_path / "app")


def test_kustomization_listed_as_component_is_an_error(tmp_path: Path) -> None:
    write_kustomization(tmp_path / "plain", {})
    write_kustomization(tmp_path / "app", {"components": ["../plain"]})
    with pytest.raises(KustomizationError, match="is not a Component"):
        Kustomizer().build(tmp_path / "app")


def test_cycle_is_detected(tmp_path: Path) -> None:
    write_kustomization(tmp_path / "a", {"resources": ["../b"]})
    write_kustomization(tmp_path / "b", {"resources": ["../a"]})
    with pytest.raises(CycleError) as exc:
        Kustomizer().build(tmp_path / "a")
    chain = exc.value.chain
    assert chain[0] == chain[-1] == str((tmp_path / "a").resolve())
    assert str((tmp_path / "b").resolve()) in chain


def test_same_base_twice_conflicts(tmp_path: Path, base_dir: Path) -> None:
    write_kustomization(tmp_path / "left", {"resources": ["../base"], "nameSuffix": "-l"})
    write_kustomization(tmp_path / "right", {"resources": ["../base"]})
    write_kustomization(tmp_path / "both", {"resources": ["../base", "../right"]})
    with pytest.raises(ResourceConflictError):
        Kustomizer().build(tmp_path / "both")

    # Renaming one copy makes the ids distinct again.
    write_kustomization(tmp_path / "diamond", {"resources": ["../left", "../right"]})
    resmap = Kustomizer().build(tmp_path / "diamond")
    assert sorted(r.name for r in resmap if r.kind == "Deployment") == ["web", "web-l"]


def test_missing_descriptor(tmp_path: Path) -> None:
    (tmp_path / "empty").mkdir()
    with pytest.raises(KustomizationNotFoundError):
        Kustomizer().build(tmp_path / "empty")


def test_load_restrictor(tmp_path: Path) -> None:
    write_docs(tmp_path / "shared" / "cm.yaml", [config_map("shared")])
    write_kustomization(tmp_path / "app", {"resources": ["../shared/cm.yaml"]})
    with pytest.raises(LoadRestrictionError):
        Kustomizer().build(tmp_path / "app")

    resmap = Kustomizer(BuildOptions(load_restrictor="none")).build(tmp_path / "app")
    assert [r.name for r in resmap] == ["shared"]


def test_build_is_deterministic(tmp_path: Path, base_dir: Path) -> None:
    overlay = _overlay(tmp_path, {"namePrefix": "a-"})
    first = Kustomizer().run(overlay).to_yaml()
    second = Kustomizer().run(overlay).to_yaml()
    assert first == second


def test_legacy_and_fifo_order(tmp_path: Path) -> None:
    app = tmp_path / "app"
    write_docs(
        app / "all.yaml",
        [
            deployment("web"),
            resource("MutatingWebhookConfiguration", "hook", api_version="admissionregistration.k8s.io/v1"),
            resource("Widget", "w", api_version="example.com/v1"),
            config_map("cfg"),
            resource("Namespace", "team"),
        ],
    )
    write_kustomization(app, {"resources": ["all.yaml"]})

    legacy = Kustomizer().run(app)
    assert legacy.order == "legacy"
    assert [r.kind for r in legacy.ordered()] == [
        "Namespace",
        "ConfigMap",
        "Deployment",
        "Widget",
        "MutatingWebhookConfiguration",
    ]

    fifo = Kustomizer(BuildOptions(reorder="fifo")).run(app)
    assert [r.kind for r in fifo.ordered()] == [
        "Deployment",
        "MutatingWebhookConfiguration",
        "Widget",
        "ConfigMap",
        "Namespace",
    ]
    kinds_in_yaml = [d["kind"] for d in read_docs(fifo.to_yaml())]
    assert kinds_in_yaml[0] == "Deployment"


def test_sort_options_and_reorder_precedence(tmp_path: Path) -> None:
    app = tmp_path / "app"
    write_docs(app / "all.yaml", [deployment("web"), config_map("cfg")])
    write_kustomization(app, {"resources": ["all.yaml"], "sortOptions": {"order": "fifo"}})

    assert Kustomizer().run(app).order == "fifo"
    assert Kustomizer(BuildOptions(default_order="legacy")).run(app).order == "fifo"
    assert Kustomizer(BuildOptions(reorder="legacy")).run(app).order == "legacy"


def test_unknown_order_is_rejected() -> None:
    with pytest.raises(KustomizationError, match="unknown sort order"):
        BuildOptions(reorder="alphabetical")


def test_legacy_patch_fields(tmp_path: Path, base_dir: Path) -> None:
    write_text(
        tmp_path / "overlay" / "json.yaml",
        "- op: add\n  path: /metadata/annotations\n  value:\n    patched: json\n",
    )
    overlay = _overlay(
        tmp_path,
        {
            "patchesStrategicMerge": [
                "apiVersion: v1\nkind: Service\nmetadata:\n  name: web\nspec:\n  type: NodePort\n"
            ],
            "patchesJson6902": [
                {"target": {"group": "apps", "version": "v1", "kind": "Deployment", "name": "web"}, "path": "json.yaml"}
            ],
        },
    )
    kinds = _by_kind(Kustomizer().build(overlay))
    assert kinds["Service"].data["spec"]["type"] == "NodePort"
    assert kinds["Deployment"].annotations == {"patched": "json"}


def test_validate_reports_schema_errors(tmp_path: Path, base_dir: Path) -> None:
    overlay = _overlay(tmp_path, {"namePrefix": 5, "bogus": True})
    results = Kustomizer().validate(overlay)
    messages = results[(overlay / "kustomization.yaml").resolve()]
    assert len(messages) == 2
    # An invalid descriptor's references are not followed.
    assert (base_dir / "kustomization.yaml").resolve() not in results


def test_validate_follows_bases(tmp_path: Path, base_dir: Path) -> None:
    write_kustomization(base_dir, {"resources": ["deployment.yaml"], "replicas": [{"name": "web"}]})
    overlay = _overlay(tmp_path, {})
    results = Kustomizer().validate(overlay)
    assert results[(overlay / "kustomization.yaml").resolve()] == []
    assert results[(base_dir / "kustomization.yaml").resolve()]


def test_validate_clean_tree(tmp_path: Path, base_dir: Path) -> None:
    overlay = _overlay(tmp_path, {"namePrefix": "ok-"})
    results = Kustomizer().validate(overlay)
    assert len(results) == 2
    assert all(messages == [] for messages in results.values())


def test_overlay_build_leaves_base_files_untouched(base_dir: Path, tmp_path: Path) -> None:
    before = _snapshot(base_dir)
    overlay = _overlay(
        tmp_path,
        {
            "namePrefix": "prod-",
            "namespace": "prod",
            "commonLabels": {"env": "prod"},
            "images": [{"name": "nginx", "newTag": "2.0"}],
            "configMapGenerator": [{"name": "web-config", "behavior": "merge", "literals": ["LEVEL=warn"]}],
            "patches": [
                {"path": "patch.yaml"},
                {"patch": "- op: add\n  path: /metadata/annotations\n  value: {tier: front}", "target": {"kind": "Service"}},
            ],
        },
    )
    patch = {"apiVersion": "apps/v1", "kind": "Deployment", "metadata": {"name": "web"}, "spec": {"replicas": 3}}
    write_docs(overlay / "patch.yaml", [patch])

    result = Kustomizer().run(overlay)
    out = tmp_path / "rendered"
    out.mkdir()
    written = write_resources(result.resmap, out, order=result.order)

    assert len(written) == 3
    web = _by_kind(result.resmap)["Deployment"]
    assert (web.name, web.namespace, web.data["spec"]["replicas"]) == ("prod-web", "prod", 3)
    assert _by_kind(result.resmap)["ConfigMap"].data["data"]["LEVEL"] == "warn"
    # A second build sees the same base content.
    assert _snapshot(base_dir) == before
    assert Kustomizer().build(base_dir).find(kind="Deployment")[0].name == "web"
