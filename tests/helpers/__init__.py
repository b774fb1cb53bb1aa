"""Test helper modules for the overlaykit test suite.

- io_utils: writing YAML files and kustomization trees
- manifests: small resource document factories
"""
from __future__ import annotations

from tests.helpers.io_utils import read_docs, write_docs, write_kustomization, write_text, write_yaml
from tests.helpers.manifests import config_map, deployment, resource, service, service_account

__all__ = [
    "config_map",
    "deployment",
    "read_docs",
    "resource",
    "service",
    "service_account",
    "write_docs",
    "write_kustomization",
    "write_text",
    "write_yaml",
]
