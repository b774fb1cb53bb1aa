"""Path resolution for project and user configuration.

Project root precedence (highest to lowest):
1. ``OVERLAYKIT_PROJECT_ROOT`` environment variable
2. Nearest ancestor of the start directory holding ``.overlaykit/`` or ``.git``
3. The start directory itself

User config directory precedence:
1. ``OVERLAYKIT_USER_CONFIG_DIR`` environment variable
2. ``~/.overlaykit``
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

PROJECT_CONFIG_DIRNAME = ".overlaykit"
DEFAULT_USER_CONFIG_PRIMARY = ".overlaykit"

_ROOT_MARKERS = (PROJECT_CONFIG_DIRNAME, ".git")


def resolve_project_root(start: Optional[Path] = None) -> Path:
    """Return the project root for ``start`` (default: the working directory)."""
    env_root = os.environ.get("OVERLAYKIT_PROJECT_ROOT")
    if env_root and env_root.strip():
        return Path(env_root.strip()).expanduser().resolve()

    origin = Path(start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return candidate
    return origin


def get_project_config_dir(repo_root: Path) -> Path:
    return Path(repo_root) / PROJECT_CONFIG_DIRNAME


def get_user_config_dir() -> Path:
    """Return the user config directory; relative values are home-relative."""
    raw = os.environ.get("OVERLAYKIT_USER_CONFIG_DIR") or DEFAULT_USER_CONFIG_PRIMARY
    p = Path(raw.strip()).expanduser()
    if not p.is_absolute():
        p = Path.home() / p
    return p.resolve()


__all__ = [
    "PROJECT_CONFIG_DIRNAME",
    "DEFAULT_USER_CONFIG_PRIMARY",
    "resolve_project_root",
    "get_project_config_dir",
    "get_user_config_dir",
]
