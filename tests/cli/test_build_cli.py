from __future__ import annotations

import json
from pathlib import Path

import pytest

from tests.helpers import read_docs, write_kustomization


def test_build_prints_yaml_stream(run_cli, app_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli("build", str(app_dir)) == 0
    docs = read_docs(capsys.readouterr().out)
    # Legacy order puts the ConfigMap first.
    assert [d["kind"] for d in docs] == ["ConfigMap", "Deployment"]
    assert [d["metadata"]["name"] for d in docs] == ["demo-settings", "demo-web"]
    volume = docs[1]["spec"]["template"]["spec"]["volumes"][0]
    assert volume["configMap"]["name"] == "demo-settings"


def test_build_reorder_flag(run_cli, app_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli("build", str(app_dir), "--reorder", "fifo") == 0
    docs = read_docs(capsys.readouterr().out)
    assert [d["kind"] for d in docs] == ["Deployment", "ConfigMap"]


def test_build_order_from_environment_config(
    run_cli, app_dir: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("OVERLAYKIT_BUILD__REORDER", "fifo")
    assert run_cli("build", str(app_dir)) == 0
    assert [d["kind"] for d in read_docs(capsys.readouterr().out)] == ["Deployment", "ConfigMap"]


def test_build_json(run_cli, app_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli("build", str(app_dir), "--json") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["order"] == "legacy"
    assert [r["metadata"]["name"] for r in payload["resources"]] == ["demo-settings", "demo-web"]


def test_build_to_file(run_cli, app_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    out = tmp_path / "rendered.yaml"
    assert run_cli("build", str(app_dir), "-o", str(out)) == 0
    assert "Wrote 2 resource(s)" in capsys.readouterr().out
    assert len(read_docs(out.read_text(encoding="utf-8"))) == 2


def test_build_to_directory(run_cli, app_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    out = tmp_path / "rendered"
    out.mkdir()
    assert run_cli("build", str(app_dir), "-o", str(out), "--json") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "success"
    assert sorted(Path(p).name for p in payload["files"]) == [
        "apps_v1_deployment_demo-web.yaml",
        "v1_configmap_demo-settings.yaml",
    ]


def test_build_error_exits_one(run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_kustomization(tmp_path / "broken", {"resources": ["missing.yaml"]})
    assert run_cli("build", str(tmp_path / "broken")) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error:" in captured.err
    assert "missing.yaml" in captured.err


def test_build_error_json(run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "empty").mkdir()
    assert run_cli("build", str(tmp_path / "empty"), "--json") == 1
    payload = json.loads(capsys.readouterr().err)
    assert payload["error"] == "build_error"
    assert payload["code"] == "KustomizationNotFoundError"


def test_load_restrictor_flag(run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "shared.yaml").write_text(
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: shared\n", encoding="utf-8"
    )
    write_kustomization(tmp_path / "app", {"resources": ["../shared.yaml"]})
    assert run_cli("build", str(tmp_path / "app")) == 1
    assert "security" in capsys.readouterr().err
    assert run_cli("build", str(tmp_path / "app"), "--load-restrictor", "none") == 0
    assert read_docs(capsys.readouterr().out)[0]["metadata"]["name"] == "shared"


def test_build_error_json_for_non_utf8_resource(run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "cm.yaml").write_bytes(b"apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: x\ndata:\n  k: \xff\n")
    write_kustomization(tmp_path / "app", {"resources": ["cm.yaml"]})
    assert run_cli("build", str(tmp_path / "app"), "--json") == 1
    payload = json.loads(capsys.readouterr().err)
    assert payload["error"] == "build_error"
    assert payload["code"] == "ResourceLoadError"
    assert "not valid UTF-8" in payload["message"]
