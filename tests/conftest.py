import os
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'overlaykit' and tests/ importable as 'tests'
for p in (SRC_ROOT, REPO_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from overlaykit.core.stdlib_logging import reset_stdlib_logging_for_tests


@pytest.fixture(autouse=True)
def _isolate_overlaykit_env(tmp_path_factory, monkeypatch):
    """Drop OVERLAYKIT_* variables from the developer shell.

    The user config directory points at an empty temp dir so a real
    ``~/.overlaykit/config.yaml`` never leaks into a test.
    """
    for key in list(os.environ):
        if key.startswith("OVERLAYKIT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OVERLAYKIT_USER_CONFIG_DIR", str(tmp_path_factory.mktemp("user-config")))
    yield
    reset_stdlib_logging_for_tests()


@pytest.fixture
def isolated_project_env(tmp_path, monkeypatch):
    """A project root with an empty ``.overlaykit/`` and the cwd set to it."""
    (tmp_path / ".overlaykit").mkdir()
    monkeypatch.setenv("OVERLAYKIT_PROJECT_ROOT", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    return tmp_path
