"""Maven version ordering.

Versions are split into items on '.', '-' and digit/letter transitions.
Numeric items compare numerically and well-known qualifiers compare in
release order::

    alpha < beta < milestone < rc < snapshot < "" (release) < sp

Unknown qualifiers sort after ``sp``, lexically among themselves. Trailing
"null" items (0, "", "final", "ga", "release") are dropped so ``1.0``,
``1`` and ``1.0.0.ga`` are equal.
"""

from functools import total_ordering
from typing import List, Optional, Tuple, Union

_QUALIFIERS = ["alpha", "beta", "milestone", "rc", "snapshot", "", "sp"]
_ALIASES = {"ga": "", "final": "", "release": "", "cr": "rc"}
_RELEASE_INDEX = (_QUALIFIERS.index(""), "")


def _qualifier_rank(value: str) -> Tuple[int, str]:
    if value in _QUALIFIERS:
        return _QUALIFIERS.index(value), ""
    return len(_QUALIFIERS), value


class _IntItem:
    __slots__ = ("value",)

    def __init__(self, value: int):
        self.value = value

    def is_null(self) -> bool:
        return self.value == 0

    def compare(self, other: Optional["_Item"]) -> int:
        if other is None:
            return 0 if self.value == 0 else 1
        if isinstance(other, _IntItem):
            return (self.value > other.value) - (self.value < other.value)
        return 1  # 1.1 > 1-sp, 1.1 > 1-1

    def __repr__(self) -> str:
        return str(self.value)


class _StringItem:
    __slots__ = ("value",)

    def __init__(self, value: str, followed_by_digit: bool):
        if followed_by_digit and len(value) == 1:
            value = {"a": "alpha", "b": "beta", "m": "milestone"}.get(value, value)
        self.value = _ALIASES.get(value, value)

    def is_null(self) -> bool:
        return _qualifier_rank(self.value) == _RELEASE_INDEX

    def compare(self, other: Optional["_Item"]) -> int:
        mine = _qualifier_rank(self.value)
        if other is None:
            return (mine > _RELEASE_INDEX) - (mine < _RELEASE_INDEX)
        if isinstance(other, _StringItem):
            theirs = _qualifier_rank(other.value)
            return (mine > theirs) - (mine < theirs)
        return -1  # 1.any < 1.1 and 1.any < 1-1

    def __repr__(self) -> str:
        return self.value


class _ListItem(list):

    def is_null(self) -> bool:
        return len(self) == 0

    def normalize(self) -> None:
        for i in range(len(self) - 1, -1, -1):
            item = self[i]
            if item.is_null():
                del self[i]
            elif not isinstance(item, _ListItem):
                break

    def compare(self, other: Optional["_Item"]) -> int:
        if other is None:
            if not self:
                return 0
            return self[0].compare(None)
        if isinstance(other, _IntItem):
            return -1  # 1-1 < 1.0.x
        if isinstance(other, _StringItem):
            return 1  # 1-1 > 1-sp
        for i in range(max(len(self), len(other))):
            left = self[i] if i < len(self) else None
            right = other[i] if i < len(other) else None
            if left is None:
                result = 0 if right is None else -right.compare(None)
            else:
                result = left.compare(right)
            if result:
                return result
        return 0


_Item = Union[_IntItem, _StringItem, _ListItem]


def _parse_item(is_digit: bool, text: str) -> _Item:
    return _IntItem(int(text)) if is_digit else _StringItem(text, False)


def _parse(version: str) -> _ListItem:
    version = version.lower()
    items = current = _ListItem()
    stack: List[_ListItem] = [current]
    is_digit = False
    start = 0

    for i, char in enumerate(version):
        if char == ".":
            current.append(_IntItem(0) if i == start else _parse_item(is_digit, version[start:i]))
            start = i + 1
        elif char == "-":
            current.append(_IntItem(0) if i == start else _parse_item(is_digit, version[start:i]))
            start = i + 1
            nested = _ListItem()
            current.append(nested)
            current = nested
            stack.append(current)
        elif char.isdigit():
            if not is_digit and i > start:
                current.append(_StringItem(version[start:i], True))
                start = i
                nested = _ListItem()
                current.append(nested)
                current = nested
                stack.append(current)
            is_digit = True
        else:
            if is_digit and i > start:
                current.append(_parse_item(True, version[start:i]))
                start = i
                nested = _ListItem()
                current.append(nested)
                current = nested
                stack.append(current)
            is_digit = False

    if len(version) > start:
        current.append(_parse_item(is_digit, version[start:]))

    while stack:
        stack.pop().normalize()
    return items


@total_ordering
class ComparableVersion:
    """A version string with Maven ordering semantics."""

    __slots__ = ("raw", "_items")

    def __init__(self, version: str):
        self.raw = version
        self._items = _parse(version.strip())

    @property
    def is_snapshot(self) -> bool:
        return self.raw.upper().endswith("SNAPSHOT")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComparableVersion):
            return NotImplemented
        return self._items.compare(other._items) == 0

    def __lt__(self, other: "ComparableVersion") -> bool:
        return self._items.compare(other._items) < 0

    def __hash__(self) -> int:
        return hash(repr(self._items))

    def __repr__(self) -> str:
        return f"ComparableVersion({self.raw!r})"

    def __str__(self) -> str:
        return self.raw
