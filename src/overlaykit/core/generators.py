"""ConfigMap and Secret generators.

Generated resources are marked so the builder can give them a content hash
name suffix once every transformer and patch has run.
"""
from __future__ import annotations

import base64
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from overlaykit.core.exceptions import GeneratorError, OverlayKitError
from overlaykit.core.kustomization import GeneratorArgs, GeneratorOptions
from overlaykit.core.loader import FileLoader
from overlaykit.core.resmap import ResourceMap
from overlaykit.core.resource import Resource

logger = logging.getLogger(__name__)

BEHAVIORS = ("create", "merge", "replace")
DEFAULT_SECRET_TYPE = "Opaque"


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def parse_literal(literal: str) -> Tuple[str, str]:
    """Split ``KEY=VALUE``; surrounding quotes on the value are removed."""
    key, sep, value = literal.partition("=")
    if not sep or not key.strip():
        raise GeneratorError(f"invalid literal source {literal!r}, expected key=value", context={"literal": literal})
    return key.strip(), _strip_quotes(value)


def parse_env_text(text: str, *, source: str) -> List[Tuple[str, str]]:
    """Parse ``KEY=VALUE`` lines, ignoring blanks and ``#`` comments."""
    pairs: List[Tuple[str, str]] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            raise GeneratorError(
                f"{source}:{lineno}: invalid env line {raw!r}, expected KEY=VALUE",
                context={"source": source, "line": lineno},
            )
        pairs.append((key.strip(), _strip_quotes(value.strip())))
    return pairs


def _b64(value: Union[str, bytes]) -> str:
    raw = value.encode("utf-8") if isinstance(value, str) else value
    return base64.b64encode(raw).decode("ascii")


def encode_hash(hex_digest: str) -> str:
    """Shorten a hex digest into a name-safe suffix.

    Ten characters, with the vowel-like ``0 1 3 a e`` replaced so the suffix
    never spells words.
    """
    mapping = {"0": "g", "1": "h", "3": "k", "a": "m", "e": "t"}
    return "".join(mapping.get(ch, ch) for ch in hex_digest[:10])


def content_hash(doc: Dict[str, Any]) -> str:
    """Hash the fields that define a ConfigMap/Secret's content."""
    kind = doc.get("kind")
    name = (doc.get("metadata") or {}).get("name", "")
    payload: Dict[str, Any]
    if kind == "Secret":
        payload = {"kind": kind, "type": doc.get("type", DEFAULT_SECRET_TYPE), "name": name, "data": doc.get("data") or {}}
    else:
        payload = {"kind": kind, "name": name, "data": doc.get("data") or {}}
        if doc.get("binaryData"):
            payload["binaryData"] = doc["binaryData"]
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return encode_hash(hashlib.sha256(encoded.encode("utf-8")).hexdigest())


class Generator:
    """Produces the ConfigMap/Secret described by one generator entry."""

    def __init__(self, args: GeneratorArgs, loader: FileLoader, defaults: GeneratorOptions) -> None:
        if args.behavior not in BEHAVIORS:
            raise GeneratorError(
                f"{args.kind} generator '{args.name}': unknown behavior {args.behavior!r}",
                context={"name": args.name, "behavior": args.behavior},
            )
        self.args = args
        self.loader = loader
        self.options = defaults.merged_with(args.options)

    def _collect(self) -> Dict[str, Union[str, bytes]]:
        """Gather key/value pairs; file contents that are not UTF-8 stay as bytes."""
        data: Dict[str, Union[str, bytes]] = {}

        def _put(key: str, value: Union[str, bytes], source: str) -> None:
            if key in data:
                raise GeneratorError(
                    f"{self.args.kind} generator '{self.args.name}': duplicate key {key!r} (from {source})",
                    context={"name": self.args.name, "key": key},
                )
            data[key] = value

        for env_ref in self.args.envs:
            for key, value in parse_env_text(self.loader.load_text(env_ref), source=env_ref):
                _put(key, value, env_ref)
        for literal in self.args.literals:
            key, value = parse_literal(literal)
            _put(key, value, "literals")
        for file_ref in self.args.files:
            key, sep, ref = file_ref.partition("=")
            if not sep:
                key, ref = Path(file_ref).name, file_ref
            if not key.strip() or not ref.strip():
                raise GeneratorError(
                    f"{self.args.kind} generator '{self.args.name}': invalid file source {file_ref!r}",
                    context={"name": self.args.name, "file": file_ref},
                )
            raw = self.loader.load_bytes(ref.strip())
            try:
                _put(key.strip(), raw.decode("utf-8"), ref)
            except UnicodeDecodeError:
                _put(key.strip(), raw, ref)
        return data

    def generate(self) -> Resource:
        data = self._collect()
        metadata: Dict[str, Any] = {"name": self.args.name}
        if self.args.namespace:
            metadata["namespace"] = self.args.namespace
        if self.options.labels:
            metadata["labels"] = dict(self.options.labels)
        if self.options.annotations:
            metadata["annotations"] = dict(self.options.annotations)

        doc: Dict[str, Any] = {"apiVersion": "v1", "kind": self.args.kind, "metadata": metadata}
        if self.args.kind == "Secret":
            doc["type"] = self.args.type or DEFAULT_SECRET_TYPE
            encoded = {k: _b64(v) for k, v in data.items()}
            if encoded:
                doc["data"] = encoded
        else:
            text = {k: v for k, v in data.items() if isinstance(v, str)}
            binary = {k: _b64(v) for k, v in data.items() if isinstance(v, bytes)}
            if text:
                doc["data"] = text
            if binary:
                doc["binaryData"] = binary
        if self.options.immutable:
            doc["immutable"] = True

        res = Resource(doc, origin=f"{self.loader.root} ({self.args.kind.lower()}Generator {self.args.name})")
        res.generated = True
        res.needs_hash = not bool(self.options.disable_name_suffix_hash)
        return res


def _find_existing(resmap: ResourceMap, generated: Resource) -> Optional[Resource]:
    candidates = resmap.find(kind=generated.kind, name=generated.name)
    if generated.namespace:
        candidates = [c for c in candidates if c.matches_namespace(generated.namespace)]
    if len(candidates) > 1:
        raise GeneratorError(
            f"{generated.kind} '{generated.name}' matches {len(candidates)} existing resources",
            context={"name": generated.name, "candidates": [str(c.res_id()) for c in candidates]},
        )
    return candidates[0] if candidates else None


def _merge_into(existing: Resource, generated: Resource) -> Resource:
    """``behavior: merge``: generated data and metadata win over existing."""
    merged = existing.copy()
    for field_name in ("data", "binaryData"):
        if generated.data.get(field_name):
            combined = dict(merged.data.get(field_name) or {})
            combined.update(generated.data[field_name])
            merged.data[field_name] = combined
    for meta_key in ("labels", "annotations"):
        extra = generated.metadata.get(meta_key)
        if extra:
            combined = dict(merged.metadata.get(meta_key) or {})
            combined.update(extra)
            merged.metadata[meta_key] = combined
    if generated.data.get("immutable"):
        merged.data["immutable"] = True
    return merged


def _replace(existing: Resource, generated: Resource) -> Resource:
    """``behavior: replace``: the new content keeps the existing identity."""
    generated.metadata["name"] = existing.name
    if existing.namespace:
        generated.metadata["namespace"] = existing.namespace
    generated.note_renamed_from(existing)
    return generated


def apply_generators(
    resmap: ResourceMap,
    generators: List[GeneratorArgs],
    loader: FileLoader,
    defaults: GeneratorOptions,
) -> None:
    """Run generator entries against ``resmap`` honoring their behavior."""
    for args in generators:
        try:
            generated = Generator(args, loader, defaults).generate()
        except OverlayKitError:
            raise
        except OSError as exc:
            raise GeneratorError(
                f"{args.kind} generator '{args.name}': {exc}", context={"name": args.name}
            ) from exc

        existing = _find_existing(resmap, generated)
        if args.behavior == "create":
            if existing is not None:
                raise GeneratorError(
                    f"{args.kind} '{args.name}' already exists; use behavior merge or replace",
                    context={"name": args.name, "existing": str(existing.res_id())},
                )
            resmap.append(generated)
            logger.debug("generated %s", generated.res_id())
            continue

        if existing is None:
            raise GeneratorError(
                f"{args.kind} '{args.name}' with behavior {args.behavior} has no existing resource to act on",
                context={"name": args.name, "behavior": args.behavior},
            )

        if args.behavior == "merge":
            result = _merge_into(existing, generated)
        else:
            result = _replace(existing, generated)
        result.generated = True
        # An overlay may opt out of hashing; it never opts a plain resource in.
        result.needs_hash = existing.needs_hash and generated.needs_hash
        resmap.replace(existing, result)
        logger.debug("%s %s into %s", args.behavior, args.name, existing.res_id())


__all__ = [
    "BEHAVIORS",
    "Generator",
    "apply_generators",
    "content_hash",
    "encode_hash",
    "parse_env_text",
    "parse_literal",
]
