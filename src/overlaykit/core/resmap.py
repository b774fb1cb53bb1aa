"""Ordered collection of resources with unique ids."""
from __future__ import annotations

from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from overlaykit.core.exceptions import ResourceConflictError
from overlaykit.core.resource import Resource, ResId


class ResourceMap:
    """Resources in insertion order; no two share a :class:`ResId`.

    Ids are derived from the documents on demand, so transformers may mutate
    names and namespaces in place. ``ensure_unique`` re-checks the invariant
    after such mutations.
    """

    def __init__(self, resources: Optional[Iterable[Resource]] = None) -> None:
        self._resources: List[Resource] = []
        for res in resources or ():
            self.append(res)

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources))

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, res: object) -> bool:
        return any(r is res for r in self._resources)

    def resources(self) -> List[Resource]:
        return list(self._resources)

    def _index(self) -> Dict[Tuple[str, ...], Resource]:
        return {r.res_id().key(): r for r in self._resources}

    def get(self, res_id: ResId) -> Optional[Resource]:
        return self._index().get(res_id.key())

    def append(self, res: Resource) -> None:
        existing = self.get(res.res_id())
        if existing is not None:
            raise ResourceConflictError(
                f"may not add resource with an already registered id: {res.res_id()}"
                + (f" (from {res.origin}; first seen in {existing.origin})" if res.origin else ""),
                context={"id": str(res.res_id()), "origin": res.origin, "existing_origin": existing.origin},
            )
        self._resources.append(res)

    def absorb(self, other: "ResourceMap") -> None:
        for res in other:
            self.append(res)

    def remove(self, res: Resource) -> None:
        for i, r in enumerate(self._resources):
            if r is res:
                del self._resources[i]
                return
        raise KeyError(f"resource not in map: {res.res_id()}")

    def replace(self, old: Resource, new: Resource) -> None:
        """Put ``new`` where ``old`` was, keeping the output position."""
        for i, r in enumerate(self._resources):
            if r is old:
                self._resources[i] = new
                return
        raise KeyError(f"resource not in map: {old.res_id()}")

    def select(self, predicate: Callable[[Resource], bool]) -> List[Resource]:
        return [r for r in self._resources if predicate(r)]

    def find(
        self,
        *,
        kind: Optional[str] = None,
        name: Optional[str] = None,
        namespace: Optional[str] = None,
        group: Optional[str] = None,
        version: Optional[str] = None,
    ) -> List[Resource]:
        """Return resources matching every given field.

        Names and namespaces also match values the resource carried earlier
        in the build.
        """

        def _match(r: Resource) -> bool:
            gvk = r.gvk
            if kind is not None and gvk.kind != kind:
                return False
            if group is not None and gvk.group != group:
                return False
            if version is not None and gvk.version != version:
                return False
            if name is not None and not r.matches_name(name):
                return False
            if namespace is not None and not r.matches_namespace(namespace):
                return False
            return True

        return self.select(_match)

    def ensure_unique(self) -> None:
        seen: Dict[Tuple[str, ...], Resource] = {}
        for r in self._resources:
            key = r.res_id().key()
            if key in seen:
                raise ResourceConflictError(
                    f"two resources share the id {r.res_id()} after transformation",
                    context={"id": str(r.res_id())},
                )
            seen[key] = r

    def copy(self) -> "ResourceMap":
        out = ResourceMap()
        out._resources = [r.copy() for r in self._resources]
        return out


__all__ = ["ResourceMap"]
