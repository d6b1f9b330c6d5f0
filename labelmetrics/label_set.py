"""Immutable label sets used as composite keys for stored values."""
from collections.abc import Mapping
from typing import Iterable, Iterator, Tuple, Union


class LabelSet(Mapping):
    """An ordered, hashable mapping of label name to string value.

    Equality ignores order and works against plain dicts, so
    ``metric.values[LabelSet({"code": "200"})]`` and
    ``LabelSet(...) == {"code": "200"}`` both behave as expected.
    """

    __slots__ = ("_items", "_lookup")

    def __init__(self, items: Union[Mapping, Iterable[Tuple[str, str]]] = ()):
        if isinstance(items, Mapping):
            items = items.items()
        self._items = tuple(items)
        self._lookup = dict(self._items)

    def __getitem__(self, name: str) -> str:
        return self._lookup[name]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(frozenset(self._items))

    def __repr__(self) -> str:
        return f"LabelSet({self._lookup!r})"

    def merge(self, other: Mapping) -> "LabelSet":
        """Return a new label set with ``other`` layered on top."""
        merged = dict(self._items)
        merged.update(other)
        return LabelSet(merged)

    def without(self, name: str) -> "LabelSet":
        """Return a copy with ``name`` removed."""
        return LabelSet((k, v) for k, v in self._items if k != name)
