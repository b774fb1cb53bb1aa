"""I/O utilities for overlaykit.

- Core: atomic writes, directory management, text I/O
- YAML: single and multi-document read/write
"""
from __future__ import annotations

from .core import (
    PathLike,
    atomic_write,
    ensure_directory,
    ensure_parent_dir,
    read_bytes,
    read_text,
    write_text,
)
from .yaml import (
    dump_yaml_documents,
    dump_yaml_string,
    iter_yaml_files,
    parse_yaml_documents,
    parse_yaml_string,
    read_yaml,
    write_yaml,
)

__all__ = [
    # core
    "PathLike",
    "ensure_parent_dir",
    "ensure_directory",
    "atomic_write",
    "read_bytes",
    "read_text",
    "write_text",
    # yaml
    "read_yaml",
    "write_yaml",
    "parse_yaml_string",
    "parse_yaml_documents",
    "dump_yaml_string",
    "dump_yaml_documents",
    "iter_yaml_files",
]
