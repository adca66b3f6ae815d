"""Response-envelope probes for registries with inconsistent payload shapes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class NamedField:
    """Item list found at a dotted field path, e.g. ``response.docs``."""

    path: str

    @property
    def label(self) -> str:
        return self.path

    def resolve(self, payload: Any) -> Optional[List[Any]]:
        node = payload
        for key in self.path.split("."):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        if isinstance(node, (list, tuple)):
            return list(node)
        return None


@dataclass(frozen=True)
class Empty:
    """Terminal probe: nothing matched, the upstream reported no items."""

    @property
    def label(self) -> str:
        return "empty"

    def resolve(self, payload: Any) -> Optional[List[Any]]:
        return []


ResponseShape = Union[NamedField, Empty]


def probes(*paths: str) -> Tuple[ResponseShape, ...]:
    """Build an ordered probe tuple terminated by :class:`Empty`."""

    return (*(NamedField(path) for path in paths), Empty())


def probe_items(payload: Any, shapes: Sequence[ResponseShape]) -> Tuple[ResponseShape, List[Any]]:
    """Return the first probe that resolves to a list, plus the items it found."""

    for shape in shapes:
        items = shape.resolve(payload)
        if items is not None:
            return shape, items
    return Empty(), []
