"""Resource transformers for the overlaykit build.

- base: abstract base class and pipeline infrastructure
- names: name prefix/suffix and namespace
- metadata: labels and annotations
- images: container image substitution
- replicas: replica counts
- references: content hash suffixes and name reference fixing
"""
from __future__ import annotations

from overlaykit.core.kustomization import Kustomization

from .base import ResourceTransformer, TransformContext, TransformerPipeline
from .images import ImageRef, ImageTransformer, apply_image_entry
from .metadata import AnnotationTransformer, LabelTransformer, MapFieldTransformer
from .names import NamePrefixSuffixTransformer, NamespaceTransformer
from .references import HashSuffixTransformer, NameReferenceTransformer
from .replicas import ReplicaTransformer


def pipeline_for(kustomization: Kustomization) -> TransformerPipeline:
    """Build the transformer pipeline a descriptor asks for, in build order."""
    pipeline = TransformerPipeline()
    k = kustomization
    if k.name_prefix or k.name_suffix:
        pipeline.add_transformer(NamePrefixSuffixTransformer(k.name_prefix, k.name_suffix))
    if k.namespace:
        pipeline.add_transformer(NamespaceTransformer(k.namespace))
    if k.common_labels:
        pipeline.add_transformer(LabelTransformer.common(k.common_labels))
    for entry in k.labels:
        pipeline.add_transformer(
            LabelTransformer.for_entry(
                entry.pairs,
                include_selectors=entry.include_selectors,
                include_templates=entry.include_templates,
            )
        )
    if k.common_annotations:
        pipeline.add_transformer(AnnotationTransformer(k.common_annotations))
    if k.images:
        pipeline.add_transformer(ImageTransformer(k.images))
    if k.replicas:
        pipeline.add_transformer(ReplicaTransformer(k.replicas))
    return pipeline


def finalize_pipeline() -> TransformerPipeline:
    """Transformers that run once on the final set of a build."""
    return TransformerPipeline([HashSuffixTransformer(), NameReferenceTransformer()])


__all__ = [
    # Base classes
    "ResourceTransformer",
    "TransformContext",
    "TransformerPipeline",
    # Transformers
    "AnnotationTransformer",
    "HashSuffixTransformer",
    "ImageTransformer",
    "LabelTransformer",
    "MapFieldTransformer",
    "NamePrefixSuffixTransformer",
    "NameReferenceTransformer",
    "NamespaceTransformer",
    "ReplicaTransformer",
    # Helpers
    "ImageRef",
    "apply_image_entry",
    "finalize_pipeline",
    "pipeline_for",
]
