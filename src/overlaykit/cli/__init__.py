"""
overlaykit CLI package.

Provides the command-line interface with auto-discovery of commands
from ``commands/`` (top-level) and domain subfolders (``edit/``, ``config/``).

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._output import OutputFormatter
from ._args import (
    add_build_flags,
    add_dir_arg,
    add_json_flag,
    add_repo_root_flag,
)
from ._utils import (
    build_options,
    get_config,
    get_repo_root,
    get_target_dir,
    kustomization_filenames,
)

__all__ = [
    # Output
    "OutputFormatter",
    # Args
    "add_build_flags",
    "add_dir_arg",
    "add_json_flag",
    "add_repo_root_flag",
    # Utils
    "build_options",
    "get_config",
    "get_repo_root",
    "get_target_dir",
    "kustomization_filenames",
]
