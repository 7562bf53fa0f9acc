from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterator

PathPart = str | int
DocPath = tuple[PathPart, ...]


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_scalar(value: Any) -> bool:
    return not is_mapping(value) and not is_sequence(value)


def render_path(path: DocPath) -> str:
    """Render a document path JSON-pointer style, e.g. ``/Resources/Bucket/Properties``."""
    if not path:
        return "/"
    return "".join("/" + str(p).replace("~", "~0").replace("/", "~1") for p in path)


@dataclass(frozen=True)
class SelectedValue:
    value: Any
    path: DocPath = ()

    @property
    def location(self) -> str:
        return render_path(self.path)


@dataclass(frozen=True)
class Selection:
    """Ordered multiset of selected values with their originating paths."""

    items: tuple[SelectedValue, ...] = ()

    @classmethod
    def root(cls, document: Any) -> "Selection":
        return cls((SelectedValue(document, ()),))

    @classmethod
    def literal(cls, value: Any) -> "Selection":
        """Selection for a literal binding; list literals contribute one item per element."""
        if isinstance(value, tuple):
            return cls(tuple(SelectedValue(v, ()) for v in value))
        return cls((SelectedValue(value, ()),))

    def __iter__(self) -> Iterator[SelectedValue]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)

    @property
    def values(self) -> list[Any]:
        return [item.value for item in self.items]

    @property
    def locations(self) -> list[str]:
        return [item.location for item in self.items]


EMPTY = Selection()
