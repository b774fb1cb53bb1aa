from __future__ import annotations

from pathlib import Path
from typing import Callable, List

import pytest

from overlaykit.cli._dispatcher import main

from tests.helpers import config_map, deployment, write_docs, write_kustomization


@pytest.fixture
def run_cli(tmp_path: Path) -> Callable[..., int]:
    """Run the CLI in-process with ``--repo-root`` pinned to ``tmp_path``."""

    def _run(*argv: str) -> int:
        args: List[str] = list(argv)
        if "--repo-root" not in args:
            args += ["--repo-root", str(tmp_path)]
        return main(args)

    return _run


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """A base with a Deployment and a ConfigMap it mounts."""
    base = tmp_path / "app"
    web = deployment("web", image="nginx:1.0")
    web["spec"]["template"]["spec"]["volumes"] = [{"name": "config", "configMap": {"name": "settings"}}]
    write_docs(base / "resources.yaml", [web, config_map("settings")])
    write_kustomization(base, {"resources": ["resources.yaml"], "namePrefix": "demo-"})
    return base
