"""Base class for resource transformers in the build.

A kustomization's whole-set mutations run as a pipeline of transformers,
each handling one descriptor field.

Transformation Order:
1. NAME AFFIXES  - namePrefix, nameSuffix
2. NAMESPACE     - namespace
3. LABELS        - commonLabels, labels
4. ANNOTATIONS   - commonAnnotations
5. IMAGES        - images
6. REPLICAS      - replicas

Hash suffixing and name reference fixing run once, after patches, on the
final set of the top-level build.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from overlaykit.core.resmap import ResourceMap

logger = logging.getLogger(__name__)


@dataclass
class TransformContext:
    """Context provided to transformers during processing.

    Carries the kustomization being applied (for messages) and counts of
    the fields each transformer touched, for debug reporting.
    """

    source: Optional[Path] = None
    changes: Dict[str, int] = field(default_factory=dict)

    def record(self, transformer: str, count: int = 1) -> None:
        """Record that ``transformer`` updated ``count`` fields."""
        self.changes[transformer] = self.changes.get(transformer, 0) + count

    def describe_source(self) -> str:
        return str(self.source) if self.source else "<memory>"


class ResourceTransformer(ABC):
    """Abstract base class for resource transformers.

    Transformers mutate the resources of a :class:`ResourceMap` in place.

    Example:
        class DropStatusTransformer(ResourceTransformer):
            def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
                for res in resmap:
                    res.data.pop("status", None)
    """

    @abstractmethod
    def transform(self, resmap: ResourceMap, context: TransformContext) -> None:
        """Apply this transformer's rules to every resource in ``resmap``."""
        ...

    def get_name(self) -> str:
        """Get transformer name for logging/debugging."""
        return self.__class__.__name__


class TransformerPipeline:
    """Execute a sequence of transformers on a resource map.

    Example:
        pipeline = TransformerPipeline([
            NamePrefixSuffixTransformer(prefix="dev-"),
            NamespaceTransformer("dev"),
        ])
        pipeline.execute(resmap, context)
    """

    def __init__(self, transformers: Optional[List[ResourceTransformer]] = None) -> None:
        self.transformers: List[ResourceTransformer] = list(transformers or [])

    def __len__(self) -> int:
        return len(self.transformers)

    def execute(self, resmap: ResourceMap, context: Optional[TransformContext] = None) -> TransformContext:
        """Run all transformers in order and return the (updated) context."""
        ctx = context or TransformContext()
        for transformer in self.transformers:
            logger.debug("%s: running %s", ctx.describe_source(), transformer.get_name())
            transformer.transform(resmap, ctx)
        return ctx

    def add_transformer(self, transformer: ResourceTransformer) -> None:
        """Add a transformer to the end of the pipeline."""
        self.transformers.append(transformer)

    def insert_transformer(self, index: int, transformer: ResourceTransformer) -> None:
        """Insert a transformer at a specific position."""
        self.transformers.insert(index, transformer)


__all__ = ["ResourceTransformer", "TransformContext", "TransformerPipeline"]
