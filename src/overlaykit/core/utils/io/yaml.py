"""YAML I/O utilities with atomic writes and advisory locks."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List

import yaml

from .core import atomic_write, read_text


class _OutputDumper(yaml.SafeDumper):
    """Safe dumper that never emits anchors/aliases."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Represent multiline strings with literal block style."""
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_OutputDumper.add_representer(str, _str_representer)


def read_yaml(path: Path, default: Any = None, raise_on_error: bool = False) -> Any:
    """Read a single YAML document.

    Returns ``default`` if the file is missing, empty or invalid, unless
    ``raise_on_error`` is True.

    Examples:
        >>> config = read_yaml(Path("config.yaml"), default={})
    """
    path = Path(path)
    if not path.exists():
        if raise_on_error:
            raise FileNotFoundError(f"File not found: {path}")
        return default

    try:
        data = yaml.safe_load(read_text(path))
        return data if data is not None else default
    except (OSError, yaml.YAMLError):
        if raise_on_error:
            raise
        return default


def parse_yaml_string(content: str, default: Any = None) -> Any:
    """Parse one YAML document from a string; errors propagate."""
    data = yaml.safe_load(content)
    return data if data is not None else default


def parse_yaml_documents(content: str) -> List[Any]:
    """Parse a multi-document YAML stream, dropping empty documents."""
    return [doc for doc in yaml.safe_load_all(content) if doc is not None]


def dump_yaml_string(data: Any, sort_keys: bool = True) -> str:
    """Dump one document to a YAML string."""
    return yaml.dump(
        data,
        Dumper=_OutputDumper,
        default_flow_style=False,
        sort_keys=sort_keys,
        allow_unicode=True,
        width=1 << 16,
    )


def dump_yaml_documents(documents: Iterable[Any], sort_keys: bool = True) -> str:
    """Dump documents as a ``---`` separated YAML stream."""
    return "---\n".join(dump_yaml_string(doc, sort_keys=sort_keys) for doc in documents)


def write_yaml(path: Path, data: Any, sort_keys: bool = True) -> None:
    """Atomically write one YAML document to ``path``."""

    def _writer(f) -> None:
        f.write(dump_yaml_string(data, sort_keys=sort_keys))

    atomic_write(Path(path), _writer)


def iter_yaml_files(dir_path: Path) -> list[Path]:
    """Return YAML files in ``dir_path`` in deterministic order.

    When both ``<name>.yaml`` and ``<name>.yml`` exist only ``.yaml`` is
    returned.
    """
    d = Path(dir_path)
    if not d.exists():
        return []
    yml_files = {p.stem: p for p in d.glob("*.yml")}
    yaml_files = {p.stem: p for p in d.glob("*.yaml")}

    out: list[Path] = []
    for stem in sorted(set(yml_files) | set(yaml_files)):
        out.append(yaml_files.get(stem) or yml_files[stem])
    return out


__all__ = [
    "read_yaml",
    "write_yaml",
    "parse_yaml_string",
    "parse_yaml_documents",
    "dump_yaml_string",
    "dump_yaml_documents",
    "iter_yaml_files",
]
