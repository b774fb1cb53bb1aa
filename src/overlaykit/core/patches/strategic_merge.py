"""Strategic merge of a partial document into a full one.

Maps merge recursively and a ``null`` value deletes its key. Lists of maps
merge element-wise by a merge key (see ``data/builtins/merge_keys.yaml``);
every other list is replaced. Directives:

- ``$patch: replace`` in a map replaces the original map
- ``$patch: delete`` in a map deletes it; in a list element it deletes the
  element with the same merge key
- a ``{$patch: replace}`` list element replaces the whole list with the
  remaining elements
- ``$deleteFromPrimitiveList/<field>: [values]`` removes scalars from a list
- ``$setElementOrder/<field>`` is accepted and ignored
"""
from __future__ import annotations

import copy
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from overlaykit.core.exceptions import PatchError
from overlaykit.core.fieldspec import load_builtin

PATCH_DIRECTIVE = "$patch"
DELETE_FROM_PRIMITIVE_LIST = "$deleteFromPrimitiveList/"
SET_ELEMENT_ORDER = "$setElementOrder/"


@lru_cache(maxsize=1)
def merge_keys() -> Dict[str, Tuple[str, ...]]:
    raw = load_builtin("merge_keys.yaml").get("mergeKeys") or {}
    return {str(field): tuple(str(k) for k in keys) for field, keys in raw.items()}


def _is_directive(item: Any, directive: str) -> bool:
    return isinstance(item, dict) and item.get(PATCH_DIRECTIVE) == directive


def _clean(value: Any) -> Any:
    """Strip directives from a patch subtree that has nothing to merge into.

    Returns ``None`` for a subtree that deletes itself.
    """
    if isinstance(value, dict):
        directive = value.get(PATCH_DIRECTIVE)
        if directive == "delete":
            return None
        out: Dict[str, Any] = {}
        for key, item in value.items():
            if key == PATCH_DIRECTIVE or key.startswith((DELETE_FROM_PRIMITIVE_LIST, SET_ELEMENT_ORDER)):
                continue
            if item is None:
                continue
            cleaned = _clean(item)
            if cleaned is not None:
                out[key] = cleaned
        return out
    if isinstance(value, list):
        out_list: List[Any] = []
        for item in value:
            if _is_directive(item, "replace") and len(item) == 1:
                continue
            cleaned = _clean(item)
            if cleaned is not None:
                out_list.append(cleaned)
        return out_list
    return value


def _merge_key_for(item: Dict[str, Any], candidates: Tuple[str, ...]) -> Optional[str]:
    for key in candidates:
        if key in item:
            return key
    return None


def _merge_list(field: str, original: Optional[List[Any]], patch: List[Any]) -> List[Any]:
    if any(_is_directive(item, "replace") for item in patch):
        return _clean(patch)
    candidates = merge_keys().get(field)
    if original is None or not candidates or not all(isinstance(item, dict) for item in patch):
        return _clean(patch)

    result = list(original)
    for item in patch:
        key = _merge_key_for(item, candidates)
        if key is None:
            if not _is_directive(item, "delete"):
                result.append(_clean(item))
            continue
        index = next(
            (i for i, el in enumerate(result) if isinstance(el, dict) and el.get(key) == item[key]),
            None,
        )
        if _is_directive(item, "delete"):
            if index is not None:
                del result[index]
            continue
        if index is None:
            result.append(_clean(item))
            continue
        merged = _merge_map(result[index], item)
        if merged is None:
            del result[index]
        else:
            result[index] = merged
    return result


def _merge_map(original: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    directive = patch.get(PATCH_DIRECTIVE)
    if directive == "delete":
        return None
    if directive == "replace":
        return _clean({k: v for k, v in patch.items() if k != PATCH_DIRECTIVE})
    if directive not in (None, "merge"):
        raise PatchError(f"unknown {PATCH_DIRECTIVE} directive {directive!r}")

    primitive_deletes: List[Tuple[str, Any]] = []
    for key, value in patch.items():
        if key == PATCH_DIRECTIVE or key.startswith(SET_ELEMENT_ORDER):
            continue
        if key.startswith(DELETE_FROM_PRIMITIVE_LIST):
            primitive_deletes.append((key[len(DELETE_FROM_PRIMITIVE_LIST) :], value))
            continue
        if value is None:
            original.pop(key, None)
            continue
        current = original.get(key)
        if isinstance(value, dict):
            merged = _merge_map(current, value) if isinstance(current, dict) else _clean(value)
            if merged is None:
                original.pop(key, None)
            else:
                original[key] = merged
        elif isinstance(value, list):
            original[key] = _merge_list(key, current if isinstance(current, list) else None, value)
        else:
            original[key] = value

    for field, values in primitive_deletes:
        current = original.get(field)
        if isinstance(current, list):
            drop = values if isinstance(values, list) else [values]
            original[field] = [v for v in current if v not in drop]
    return original


def strategic_merge(original: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Merge ``patch`` into a copy of ``original``.

    Returns ``None`` when the patch deletes the whole document.
    """
    return _merge_map(copy.deepcopy(original), copy.deepcopy(patch))


def is_delete_patch(patch: Any) -> bool:
    return _is_directive(patch, "delete")


__all__ = ["merge_keys", "is_delete_patch", "strategic_merge"]
