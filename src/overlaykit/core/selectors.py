"""Kubernetes label/annotation selector parsing and matching.

Supported requirement forms (comma separated):
``k=v``, ``k==v``, ``k!=v``, ``k in (a,b)``, ``k notin (a,b)``, ``k``, ``!k``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Mapping, Tuple

from overlaykit.core.exceptions import OverlayKitError

_KEY = r"[A-Za-z0-9]([-A-Za-z0-9_./]*[A-Za-z0-9])?"
_SET_RE = re.compile(rf"^(?P<key>{_KEY})\s+(?P<op>in|notin)\s*\((?P<values>[^()]*)\)$")
_EQ_RE = re.compile(rf"^(?P<key>{_KEY})\s*(?P<op>==|!=|=)\s*(?P<value>[-A-Za-z0-9_.]*)$")
_EXISTS_RE = re.compile(rf"^(?P<neg>!?)\s*(?P<key>{_KEY})$")


class SelectorError(OverlayKitError, ValueError):
    """Raised for a selector string that does not parse."""

    def __init__(self, message: str) -> None:
        OverlayKitError.__init__(self, message)
        ValueError.__init__(self, message)


@dataclass(frozen=True)
class Requirement:
    key: str
    operator: str  # "in", "notin", "exists", "!exists"
    values: Tuple[str, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        present = self.key in labels
        if self.operator == "exists":
            return present
        if self.operator == "!exists":
            return not present
        value = str(labels[self.key]) if present else None
        if self.operator == "in":
            return present and value in self.values
        # notin matches when the key is absent too.
        return value not in self.values


def _split_top_level(text: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def _parse_requirement(raw: str) -> Requirement:
    text = raw.strip()
    m = _SET_RE.match(text)
    if m:
        values = tuple(v.strip() for v in m.group("values").split(",") if v.strip())
        return Requirement(m.group("key"), m.group("op"), values)
    m = _EQ_RE.match(text)
    if m:
        op = "notin" if m.group("op") == "!=" else "in"
        return Requirement(m.group("key"), op, (m.group("value"),))
    m = _EXISTS_RE.match(text)
    if m:
        return Requirement(m.group("key"), "!exists" if m.group("neg") else "exists")
    raise SelectorError(f"unable to parse selector requirement: {raw!r}")


@dataclass(frozen=True)
class Selector:
    requirements: Tuple[Requirement, ...]

    @classmethod
    def parse(cls, text: str) -> "Selector":
        if not text or not text.strip():
            return cls(())
        return cls(tuple(_parse_requirement(part) for part in _split_top_level(text)))

    def matches(self, labels: Mapping[str, str]) -> bool:
        return all(req.matches(labels) for req in self.requirements)

    @property
    def empty(self) -> bool:
        return not self.requirements


def parse_selector(text: str) -> Selector:
    return Selector.parse(text)


__all__ = ["Requirement", "Selector", "SelectorError", "parse_selector"]
