"""JSON Patch (RFC 6902) over JSON Pointers (RFC 6901).

Operations run in order on a deep copy of the document; the first failing
operation aborts the patch and the original document is left untouched.
"""
from __future__ import annotations

import copy
import re
from typing import Any, List, Mapping, Sequence, Tuple

from overlaykit.core.exceptions import PatchError

OPERATIONS = ("add", "remove", "replace", "move", "copy", "test")

_INDEX_RE = re.compile(r"^(0|[1-9][0-9]*)$")
_MISSING = object()


def parse_pointer(pointer: str) -> List[str]:
    """Split a JSON Pointer into unescaped reference tokens.

    >>> parse_pointer("/metadata/annotations/a~1b")
    ['metadata', 'annotations', 'a/b']
    """
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise ValueError(f"JSON pointer must start with '/': {pointer!r}")
    return [token.replace("~1", "/").replace("~0", "~") for token in pointer[1:].split("/")]


def json_equal(a: Any, b: Any) -> bool:
    """Compare as JSON values: booleans never equal numbers, 1 equals 1.0."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


def _list_index(token: str, size: int, *, for_insert: bool) -> int:
    if for_insert and token == "-":
        return size
    if not _INDEX_RE.match(token):
        raise ValueError(f"invalid array index {token!r}")
    index = int(token)
    limit = size if for_insert else size - 1
    if index > limit:
        raise ValueError(f"array index {index} out of range (size {size})")
    return index


def _resolve(doc: Any, tokens: Sequence[str]) -> Any:
    node = doc
    for token in tokens:
        if isinstance(node, dict):
            if token not in node:
                raise ValueError(f"path segment {token!r} not found")
            node = node[token]
        elif isinstance(node, list):
            node = node[_list_index(token, len(node), for_insert=False)]
        else:
            raise ValueError(f"cannot descend into {type(node).__name__} at {token!r}")
    return node


def _parent(doc: Any, tokens: Sequence[str]) -> Tuple[Any, str]:
    if not tokens:
        raise ValueError("the document root has no parent")
    return _resolve(doc, tokens[:-1]), tokens[-1]


def _add(doc: Any, tokens: Sequence[str], value: Any) -> Any:
    if not tokens:
        return value
    parent, last = _parent(doc, tokens)
    if isinstance(parent, dict):
        parent[last] = value
    elif isinstance(parent, list):
        parent.insert(_list_index(last, len(parent), for_insert=True), value)
    else:
        raise ValueError(f"cannot add to {type(parent).__name__}")
    return doc


def _remove(doc: Any, tokens: Sequence[str]) -> Tuple[Any, Any]:
    if not tokens:
        raise ValueError("cannot remove the document root")
    parent, last = _parent(doc, tokens)
    if isinstance(parent, dict):
        if last not in parent:
            raise ValueError(f"path segment {last!r} not found")
        return doc, parent.pop(last)
    if isinstance(parent, list):
        return doc, parent.pop(_list_index(last, len(parent), for_insert=False))
    raise ValueError(f"cannot remove from {type(parent).__name__}")


def _replace(doc: Any, tokens: Sequence[str], value: Any) -> Any:
    if not tokens:
        return value
    parent, last = _parent(doc, tokens)
    if isinstance(parent, dict):
        if last not in parent:
            raise ValueError(f"path segment {last!r} not found")
        parent[last] = value
    elif isinstance(parent, list):
        parent[_list_index(last, len(parent), for_insert=False)] = value
    else:
        raise ValueError(f"cannot replace in {type(parent).__name__}")
    return doc


def _apply_one(doc: Any, op: Mapping[str, Any]) -> Any:
    name = op.get("op")
    if name not in OPERATIONS:
        raise ValueError(f"unknown operation {name!r}")
    if not isinstance(op.get("path"), str):
        raise ValueError("operation is missing 'path'")
    path = parse_pointer(op["path"])

    if name in ("add", "replace", "test"):
        value = op.get("value", _MISSING)
        if value is _MISSING:
            raise ValueError(f"'{name}' operation is missing 'value'")
        if name == "add":
            return _add(doc, path, copy.deepcopy(value))
        if name == "replace":
            return _replace(doc, path, copy.deepcopy(value))
        actual = _resolve(doc, path)
        if not json_equal(actual, value):
            raise ValueError(f"test failed: {op['path']} is {actual!r}, expected {value!r}")
        return doc

    if name == "remove":
        return _remove(doc, path)[0]

    if not isinstance(op.get("from"), str):
        raise ValueError(f"'{name}' operation is missing 'from'")
    source = parse_pointer(op["from"])
    if name == "copy":
        return _add(doc, path, copy.deepcopy(_resolve(doc, source)))
    if path[: len(source)] == source and len(path) > len(source):
        raise ValueError("cannot move a value into one of its own children")
    if path == source:
        return doc
    doc, value = _remove(doc, source)
    return _add(doc, path, value)


def apply_json_patch(doc: Any, operations: Sequence[Mapping[str, Any]], *, patch_name: str | None = None) -> Any:
    """Apply ``operations`` to a copy of ``doc`` and return the result.

    Raises:
        PatchError: An operation is malformed, refers to a missing path or a
            ``test`` fails. The error context names the operation index.
    """
    result = copy.deepcopy(doc)
    for index, op in enumerate(operations):
        if not isinstance(op, Mapping):
            raise PatchError(
                f"JSON patch operation {index} must be a mapping", patch=patch_name, operation=index
            )
        try:
            result = _apply_one(result, op)
        except (ValueError, IndexError) as exc:
            raise PatchError(
                f"JSON patch operation {index} ({op.get('op')} {op.get('path')}): {exc}",
                patch=patch_name,
                operation=index,
            ) from exc
    return result


__all__ = ["OPERATIONS", "apply_json_patch", "json_equal", "parse_pointer"]
