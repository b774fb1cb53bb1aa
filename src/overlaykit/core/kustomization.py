"""The manifest descriptor (``kustomization.yaml``) model.

Descriptors are schema-validated before they are turned into a
:class:`Kustomization`; legacy fields are folded into their current
equivalents here so the rest of the build sees one shape:

- ``bases`` entries are appended to ``resources``
- ``patchesStrategicMerge`` and ``patchesJson6902`` become ``patches`` entries
- a generator's singular ``env`` joins its ``envs``
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from overlaykit.core.exceptions import KustomizationError
from overlaykit.core.loader import KUSTOMIZATION_FILENAMES, find_kustomization_file
from overlaykit.core.schemas import validate_payload
from overlaykit.core.utils.io import parse_yaml_string, read_text, write_yaml

logger = logging.getLogger(__name__)

KUSTOMIZATION_KIND = "Kustomization"
COMPONENT_KIND = "Component"
KUSTOMIZATION_API_VERSION = "kustomize.config.k8s.io/v1beta1"
COMPONENT_API_VERSION = "kustomize.config.k8s.io/v1alpha1"


def stringify(value: Any) -> str:
    """Render a label/annotation value the way Kubernetes expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _string_map(data: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    return {str(k): stringify(v) for k, v in (data or {}).items()}


@dataclass(frozen=True)
class PatchEntry:
    """One patch, from ``patches`` or from a legacy patch field."""

    path: Optional[str] = None
    patch: Optional[str] = None
    target: Optional[Dict[str, str]] = None
    allow_name_change: bool = False
    allow_kind_change: bool = False
    source: str = "patches"

    def describe(self) -> str:
        return self.path or "<inline patch>"


@dataclass(frozen=True)
class LabelEntry:
    pairs: Dict[str, str]
    include_selectors: bool = False
    include_templates: bool = False


@dataclass(frozen=True)
class ImageEntry:
    name: str
    new_name: Optional[str] = None
    new_tag: Optional[str] = None
    digest: Optional[str] = None


@dataclass(frozen=True)
class ReplicaEntry:
    name: str
    count: int


@dataclass(frozen=True)
class GeneratorOptions:
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    disable_name_suffix_hash: Optional[bool] = None
    immutable: Optional[bool] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "GeneratorOptions":
        data = data or {}
        return cls(
            labels=_string_map(data.get("labels")),
            annotations=_string_map(data.get("annotations")),
            disable_name_suffix_hash=data.get("disableNameSuffixHash"),
            immutable=data.get("immutable"),
        )

    def merged_with(self, override: "GeneratorOptions") -> "GeneratorOptions":
        """Per-generator options win over kustomization-wide options."""
        return GeneratorOptions(
            labels={**self.labels, **override.labels},
            annotations={**self.annotations, **override.annotations},
            disable_name_suffix_hash=(
                override.disable_name_suffix_hash
                if override.disable_name_suffix_hash is not None
                else self.disable_name_suffix_hash
            ),
            immutable=override.immutable if override.immutable is not None else self.immutable,
        )


@dataclass(frozen=True)
class GeneratorArgs:
    kind: str  # "ConfigMap" or "Secret"
    name: str
    namespace: Optional[str] = None
    behavior: str = "create"
    literals: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    envs: List[str] = field(default_factory=list)
    type: Optional[str] = None
    options: GeneratorOptions = field(default_factory=GeneratorOptions)

    @classmethod
    def from_mapping(cls, kind: str, data: Mapping[str, Any]) -> "GeneratorArgs":
        envs = list(data.get("envs") or [])
        if data.get("env"):
            envs.append(str(data["env"]))
        return cls(
            kind=kind,
            name=str(data["name"]),
            namespace=data.get("namespace"),
            behavior=str(data.get("behavior") or "create"),
            literals=[str(x) for x in data.get("literals") or []],
            files=[str(x) for x in data.get("files") or []],
            envs=envs,
            type=data.get("type"),
            options=GeneratorOptions.from_mapping(data.get("options")),
        )


def _looks_inline(entry: str) -> bool:
    return "\n" in entry or entry.lstrip().startswith("{")


@dataclass
class Kustomization:
    """A parsed and normalized descriptor."""

    path: Path
    kind: str = KUSTOMIZATION_KIND
    api_version: str = KUSTOMIZATION_API_VERSION
    resources: List[str] = field(default_factory=list)
    components: List[str] = field(default_factory=list)
    namespace: Optional[str] = None
    name_prefix: str = ""
    name_suffix: str = ""
    common_labels: Dict[str, str] = field(default_factory=dict)
    labels: List[LabelEntry] = field(default_factory=list)
    common_annotations: Dict[str, str] = field(default_factory=dict)
    images: List[ImageEntry] = field(default_factory=list)
    replicas: List[ReplicaEntry] = field(default_factory=list)
    patches: List[PatchEntry] = field(default_factory=list)
    config_map_generator: List[GeneratorArgs] = field(default_factory=list)
    secret_generator: List[GeneratorArgs] = field(default_factory=list)
    generator_options: GeneratorOptions = field(default_factory=GeneratorOptions)
    sort_order: Optional[str] = None

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def is_component(self) -> bool:
        return self.kind == COMPONENT_KIND

    @property
    def generators(self) -> List[GeneratorArgs]:
        return [*self.config_map_generator, *self.secret_generator]

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], path: Path) -> "Kustomization":
        """Validate ``data`` against the descriptor schema and normalize it.

        Raises:
            SchemaValidationError: Unknown fields or wrongly typed values.
        """
        data = dict(data or {})
        validate_payload(data, "kustomization", source=str(path))

        kind = str(data.get("kind") or KUSTOMIZATION_KIND)
        api_version = str(
            data.get("apiVersion") or (COMPONENT_API_VERSION if kind == COMPONENT_KIND else KUSTOMIZATION_API_VERSION)
        )

        resources = [str(r) for r in data.get("resources") or []]
        bases = [str(b) for b in data.get("bases") or []]
        if bases:
            logger.warning("%s: 'bases' is deprecated; list bases under 'resources'", path)
            resources.extend(bases)

        patches: List[PatchEntry] = []
        for entry in data.get("patches") or []:
            options = entry.get("options") or {}
            patches.append(
                PatchEntry(
                    path=entry.get("path"),
                    patch=entry.get("patch"),
                    target=dict(entry["target"]) if entry.get("target") else None,
                    allow_name_change=bool(options.get("allowNameChange", False)),
                    allow_kind_change=bool(options.get("allowKindChange", False)),
                )
            )
        for entry in data.get("patchesStrategicMerge") or []:
            if _looks_inline(entry):
                patches.append(PatchEntry(patch=entry, source="patchesStrategicMerge"))
            else:
                patches.append(PatchEntry(path=entry, source="patchesStrategicMerge"))
        for entry in data.get("patchesJson6902") or []:
            patches.append(
                PatchEntry(
                    path=entry.get("path"),
                    patch=entry.get("patch"),
                    target=dict(entry["target"]),
                    source="patchesJson6902",
                )
            )
        for p in patches:
            if bool(p.path) == bool(p.patch):
                raise KustomizationError(
                    f"{path}: each patch needs exactly one of 'path' or 'patch'",
                    context={"path": str(path), "source": p.source},
                )

        images: List[ImageEntry] = []
        for entry in data.get("images") or []:
            new_tag = entry.get("newTag")
            images.append(
                ImageEntry(
                    name=str(entry["name"]),
                    new_name=entry.get("newName"),
                    new_tag=str(new_tag) if new_tag is not None else None,
                    digest=entry.get("digest"),
                )
            )

        return cls(
            path=Path(path),
            kind=kind,
            api_version=api_version,
            resources=resources,
            components=[str(c) for c in data.get("components") or []],
            namespace=data.get("namespace") or None,
            name_prefix=str(data.get("namePrefix") or ""),
            name_suffix=str(data.get("nameSuffix") or ""),
            common_labels=_string_map(data.get("commonLabels")),
            labels=[
                LabelEntry(
                    pairs=_string_map(e.get("pairs")),
                    include_selectors=bool(e.get("includeSelectors", False)),
                    include_templates=bool(e.get("includeTemplates", False)),
                )
                for e in data.get("labels") or []
            ],
            common_annotations=_string_map(data.get("commonAnnotations")),
            images=images,
            replicas=[ReplicaEntry(name=str(e["name"]), count=int(e["count"])) for e in data.get("replicas") or []],
            patches=patches,
            config_map_generator=[
                GeneratorArgs.from_mapping("ConfigMap", e) for e in data.get("configMapGenerator") or []
            ],
            secret_generator=[GeneratorArgs.from_mapping("Secret", e) for e in data.get("secretGenerator") or []],
            generator_options=GeneratorOptions.from_mapping(data.get("generatorOptions")),
            sort_order=(data.get("sortOptions") or {}).get("order"),
        )


def read_kustomization_mapping(path: Path) -> Dict[str, Any]:
    """Parse a descriptor file into a mapping without validating it."""
    try:
        data = parse_yaml_string(read_text(path), default={})
    except UnicodeDecodeError as exc:
        raise KustomizationError(f"{path} is not valid UTF-8: {exc}", context={"path": str(path)}) from exc
    except yaml.YAMLError as exc:
        raise KustomizationError(f"invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
    if not isinstance(data, dict):
        raise KustomizationError(
            f"{path} must hold a mapping, got {type(data).__name__}", context={"path": str(path)}
        )
    return data


def write_kustomization_mapping(path: Path, data: Mapping[str, Any]) -> None:
    """Validate ``data`` and write it to ``path``, keeping key order."""
    validate_payload(dict(data), "kustomization", source=str(path))
    write_yaml(path, dict(data), sort_keys=False)


def load_kustomization(directory: Path, filenames: Sequence[str] = KUSTOMIZATION_FILENAMES) -> Kustomization:
    path = find_kustomization_file(directory, filenames)
    return Kustomization.from_mapping(read_kustomization_mapping(path), path)


__all__ = [
    "COMPONENT_API_VERSION",
    "COMPONENT_KIND",
    "KUSTOMIZATION_API_VERSION",
    "KUSTOMIZATION_KIND",
    "GeneratorArgs",
    "GeneratorOptions",
    "ImageEntry",
    "Kustomization",
    "LabelEntry",
    "PatchEntry",
    "ReplicaEntry",
    "load_kustomization",
    "read_kustomization_mapping",
    "stringify",
    "write_kustomization_mapping",
]
