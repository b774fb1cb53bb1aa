"""overlaykit core library: loading, resolving, transforming, patching, emitting."""

from . import exceptions  # noqa: F401

__all__ = ["exceptions"]
