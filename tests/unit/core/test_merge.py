from __future__ import annotations

import pytest

from overlaykit.core.utils.merge import deep_merge, merge_arrays

pytestmark = pytest.mark.fast


def test_deep_merge_nested_dicts_without_mutating_inputs() -> None:
    base = {"build": {"reorder": "legacy", "load_restrictor": "root_only"}}
    override = {"build": {"reorder": "fifo"}, "output": {"sort_keys": False}}
    merged = deep_merge(base, override)
    assert merged == {
        "build": {"reorder": "fifo", "load_restrictor": "root_only"},
        "output": {"sort_keys": False},
    }
    assert base["build"]["reorder"] == "legacy"


def test_deep_merge_scalar_replaces_mapping() -> None:
    assert deep_merge({"a": {"b": 1}}, {"a": None}) == {"a": None}


@pytest.mark.parametrize(
    "base, override, expected",
    [
        ([1, 2], [3], [3]),
        ([1, 2], ["+", 3], [1, 2, 3]),
        ([1, 2], ["=", 9], [9]),
        ([1, 2, 3], ["-", 1, 3], [2]),
        ([1, 2], [], []),
    ],
)
def test_merge_arrays_directives(base, override, expected) -> None:
    assert merge_arrays(base, override) == expected


def test_deep_merge_applies_list_directives() -> None:
    base = {"kustomization": {"filenames": ["kustomization.yaml"]}}
    merged = deep_merge(base, {"kustomization": {"filenames": ["+", "kustomize.yaml"]}})
    assert merged["kustomization"]["filenames"] == ["kustomization.yaml", "kustomize.yaml"]
