"""Shared CLI utility functions."""
from __future__ import annotations

import argparse
from pathlib import Path

from overlaykit.core.builder import BuildOptions
from overlaykit.core.config import ConfigManager
from overlaykit.core.loader import KUSTOMIZATION_FILENAMES
from overlaykit.core.utils.paths import resolve_project_root


def get_repo_root(args: argparse.Namespace) -> Path:
    """Get project root from args or auto-detect."""
    if getattr(args, "repo_root", None):
        return Path(args.repo_root).resolve()
    return resolve_project_root()


def get_config(args: argparse.Namespace) -> ConfigManager:
    return ConfigManager(get_repo_root(args))


def get_target_dir(args: argparse.Namespace) -> Path:
    """The kustomization directory a command operates on."""
    return Path(getattr(args, "dir", None) or ".").resolve()


def kustomization_filenames(config: ConfigManager) -> tuple[str, ...]:
    names = config.get("kustomization.filenames") or list(KUSTOMIZATION_FILENAMES)
    return tuple(str(n) for n in names)


def build_options(args: argparse.Namespace, config: ConfigManager) -> BuildOptions:
    """Merge build flags over configuration."""
    return BuildOptions(
        reorder=getattr(args, "reorder", None),
        default_order=str(config.get("build.reorder", "legacy")),
        load_restrictor=getattr(args, "load_restrictor", None) or str(config.get("build.load_restrictor", "root_only")),
        filenames=kustomization_filenames(config),
    )


__all__ = [
    "build_options",
    "get_config",
    "get_repo_root",
    "get_target_dir",
    "kustomization_filenames",
]
