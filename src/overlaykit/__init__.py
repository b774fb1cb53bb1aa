"""
overlaykit - declarative base/overlay composition for Kubernetes manifests

Builds a directory of resource documents plus layered overlay directives
into a single, deterministic output stream.
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
