from __future__ import annotations

import json
from pathlib import Path

import pytest

from tests.helpers import write_kustomization


def test_valid_tree(run_cli, app_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_kustomization(tmp_path / "overlay", {"resources": ["../app"]})
    assert run_cli("validate", str(tmp_path / "overlay")) == 0
    out = capsys.readouterr().out
    assert "✓ kustomization.yaml" in out
    assert out.count("✓") == 2


def test_invalid_descriptor(run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_kustomization(tmp_path / "bad", {"namePrefix": ["not", "a", "string"]})
    assert run_cli("validate", str(tmp_path / "bad")) == 1
    out = capsys.readouterr().out
    assert "✗ kustomization.yaml" in out
    assert "namePrefix" in out


def test_json_report(run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_kustomization(tmp_path / "bad", {"replicas": [{"name": "web", "count": -1}]})
    assert run_cli("validate", str(tmp_path / "bad"), "--json") == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["valid"] is False
    (entry,) = payload["files"]
    assert entry["valid"] is False
    assert entry["errors"]


def test_missing_descriptor(run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "empty").mkdir()
    assert run_cli("validate", str(tmp_path / "empty")) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "unable to find" in captured.err
