"""Shared schema validation utilities.

Descriptors and configuration are validated with JSON Schema. Schemas are
stored as YAML files under ``overlaykit.data/schemas/`` and loaded in a
single, consistent way.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from overlaykit.core.exceptions import SchemaValidationError
from overlaykit.data import get_data_path, read_yaml


def load_schema(schema_name: str) -> Dict[str, Any]:
    """Load a bundled schema dict.

    Appends ``.schema.yaml`` when ``schema_name`` has no extension, so
    ``"kustomization"`` resolves to ``schemas/kustomization.schema.yaml``.

    Raises:
        FileNotFoundError: If the schema file doesn't exist.
        ValueError: If the schema is not a YAML mapping.
    """
    if not schema_name.endswith((".yaml", ".yml")):
        schema_name = f"{schema_name}.schema.yaml"

    if not get_data_path("schemas", schema_name).exists():
        raise FileNotFoundError(f"Schema not found: {schema_name}")

    schema = read_yaml("schemas", schema_name)
    if not isinstance(schema, dict):
        raise ValueError(f"Schema must be a YAML mapping, got {type(schema).__name__}")
    return schema


@lru_cache(maxsize=16)
def _validator(schema_name: str) -> Draft202012Validator:
    return Draft202012Validator(load_schema(schema_name))


def validate_payload_safe(payload: Any, schema_name: str) -> List[str]:
    """Validate a payload and return error messages (empty if valid).

    Messages are prefixed with the dotted path of the offending value and
    sorted by path for stable output.
    """
    errors: List[str] = []
    for error in sorted(_validator(schema_name).iter_errors(payload), key=lambda e: str(list(e.path))):
        if error.path:
            path_str = ".".join(str(p) for p in error.path)
            errors.append(f"{path_str}: {error.message}")
        else:
            errors.append(error.message)
    return errors


def validate_payload(payload: Any, schema_name: str, *, source: str | None = None) -> None:
    """Validate a payload against a bundled schema.

    Raises:
        SchemaValidationError: If validation fails.
    """
    errors = validate_payload_safe(payload, schema_name)
    if errors:
        where = f" ({source})" if source else ""
        raise SchemaValidationError(
            f"Validation failed against schema '{schema_name}'{where}: " + "; ".join(errors),
            context={"schema": schema_name, "source": source, "errors": errors},
        )


__all__ = [
    "load_schema",
    "validate_payload",
    "validate_payload_safe",
]
