from __future__ import annotations

from typing import Any, Dict, Mapping


class OverlayKitError(Exception):
    """Base exception for overlaykit."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ConfigError(OverlayKitError, ValueError):
    """Raised when tool configuration is malformed."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        OverlayKitError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class SchemaValidationError(OverlayKitError, ValueError):
    """Raised when a document fails JSON Schema validation."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        OverlayKitError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class KustomizationError(OverlayKitError):
    """Raised when a manifest descriptor is invalid or cannot be used."""


class KustomizationNotFoundError(KustomizationError, FileNotFoundError):
    """Raised when a directory holds no manifest descriptor."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        KustomizationError.__init__(self, message, context=context)
        FileNotFoundError.__init__(self, message)


class ResourceLoadError(OverlayKitError):
    """Raised when a resource document cannot be read or parsed."""


class LoadRestrictionError(ResourceLoadError):
    """Raised when a file reference escapes the kustomization root."""


class CycleError(OverlayKitError):
    """Raised when kustomization directories reference each other in a loop."""

    def __init__(self, chain: list[str]) -> None:
        super().__init__(
            "cycle detected: " + " -> ".join(chain),
            context={"chain": list(chain)},
        )
        self.chain = list(chain)


class ResourceConflictError(OverlayKitError):
    """Raised when two resources share the same id."""


class GeneratorError(OverlayKitError):
    """Raised when a ConfigMap/Secret generator cannot produce its resource."""


class TransformError(OverlayKitError):
    """Raised when a whole-set transformer cannot be applied."""


class NameReferenceError(TransformError):
    """Raised when a name reference resolves to more than one resource."""


class PatchError(OverlayKitError):
    """Raised when a patch is malformed or cannot be applied."""

    def __init__(
        self,
        message: str,
        *,
        patch: str | None = None,
        target: str | None = None,
        operation: int | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if patch:
            ctx["patch"] = patch
        if target:
            ctx["target"] = target
        if operation is not None:
            ctx["operation"] = operation
        super().__init__(message, context=ctx)


__all__ = [
    "OverlayKitError",
    "ConfigError",
    "SchemaValidationError",
    "KustomizationError",
    "KustomizationNotFoundError",
    "ResourceLoadError",
    "LoadRestrictionError",
    "CycleError",
    "ResourceConflictError",
    "GeneratorError",
    "TransformError",
    "NameReferenceError",
    "PatchError",
]
