"""In-memory bundle list model.

A bundle list is an ordered collection of :class:`BundleEntry` keyed by
identity ``(group_id, artifact_id, classifier)``. Version, type, start
level and run modes are mutable facets of that identity.

Override semantics are last-write-wins: adding an entry whose identity is
already present replaces the attributes in place, so the entry keeps the
position of its first occurrence. New identities are appended.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from constants import Constants
from errors import EntryNotFoundError
from versioning.models import Coordinate

EntryIdentity = Tuple[str, str, Optional[str]]


def _normalize_run_modes(value: Any) -> FrozenSet[str]:
    if not value:
        return frozenset()
    if isinstance(value, str):
        value = value.split(",")
    return frozenset(m.strip() for m in value if m and m.strip())


@dataclass
class BundleEntry:
    """One deployable bundle reference."""
    group_id: str
    artifact_id: str
    version: str
    type: str = "jar"
    classifier: Optional[str] = None
    start_level: int = Constants.DEFAULT_START_LEVEL
    run_modes: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.classifier is not None and not self.classifier.strip():
            self.classifier = None
        self.run_modes = _normalize_run_modes(self.run_modes)
        self.start_level = int(self.start_level)

    @property
    def identity(self) -> EntryIdentity:
        return (self.group_id, self.artifact_id, self.classifier)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.group_id, self.artifact_id, self.version, self.type, self.classifier)

    @classmethod
    def from_coordinate(
        cls,
        coordinate: Coordinate,
        start_level: int = Constants.DEFAULT_START_LEVEL,
        run_modes: Iterable[str] = (),
    ) -> "BundleEntry":
        return cls(
            group_id=coordinate.group_id,
            artifact_id=coordinate.artifact_id,
            version=coordinate.version,
            type=coordinate.type,
            classifier=coordinate.classifier,
            start_level=start_level,
            run_modes=frozenset(run_modes),
        )

    def copy(self) -> "BundleEntry":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "artifact_id": self.artifact_id,
            "version": self.version,
            "type": self.type,
            "classifier": self.classifier,
            "start_level": self.start_level,
            "run_modes": sorted(self.run_modes),
        }

    def __str__(self) -> str:
        return str(self.coordinate)


class BundleList:
    """Ordered, identity-unique collection of bundle entries."""

    def __init__(self, entries: Iterable[BundleEntry] = ()):
        self._entries: "OrderedDict[EntryIdentity, BundleEntry]" = OrderedDict()
        for entry in entries:
            self.add(entry)

    @classmethod
    def initialize_from(cls, entries: Iterable[BundleEntry]) -> "BundleList":
        """Build a fresh list applying ``add`` in sequence order."""
        return cls(entries)

    def add(self, entry: BundleEntry) -> None:
        """Insert ``entry`` or overwrite the attributes of its identity in place."""
        # OrderedDict assignment to an existing key keeps its position
        self._entries[entry.identity] = entry.copy()

    def remove(self, entry: BundleEntry, fail_if_absent: bool = False) -> Optional[BundleEntry]:
        """Remove the entry sharing ``entry``'s identity.

        Returns:
            The removed entry, or None when nothing matched.

        Raises:
            EntryNotFoundError: If absent and ``fail_if_absent`` is set.
        """
        removed = self._entries.pop(entry.identity, None)
        if removed is None and fail_if_absent:
            raise EntryNotFoundError(f"Bundle {entry.group_id}:{entry.artifact_id} is not in the bundle list")
        return removed

    def update(self, identity: EntryIdentity, **changes: Any) -> BundleEntry:
        """Change attributes of the entry with ``identity`` in place.

        When the change renames the identity, the entry keeps its position
        and any other entry already holding the new identity is dropped.

        Raises:
            EntryNotFoundError: If no entry has ``identity``.
        """
        current = self._entries.get(identity)
        if current is None:
            raise EntryNotFoundError(f"Bundle {identity} is not in the bundle list")
        updated = replace(current, **changes)
        if updated.identity == identity:
            self._entries[identity] = updated
            return updated

        rebuilt: "OrderedDict[EntryIdentity, BundleEntry]" = OrderedDict()
        for key, entry in self._entries.items():
            if key == identity:
                rebuilt[updated.identity] = updated
            elif key != updated.identity:
                rebuilt[key] = entry
        self._entries = rebuilt
        return updated

    def merge(self, other: "BundleList") -> None:
        """Apply ``add`` for every entry of ``other``, in ``other``'s order."""
        for entry in other:
            self.add(entry)

    def get(self, identity: EntryIdentity) -> Optional[BundleEntry]:
        return self._entries.get(identity)

    def find(self, group_id: str, artifact_id: str, classifier: Optional[str] = None) -> Optional[BundleEntry]:
        return self._entries.get((group_id, artifact_id, classifier or None))

    def entries(self) -> List[BundleEntry]:
        return list(self._entries.values())

    def start_levels(self) -> List[Tuple[int, List[BundleEntry]]]:
        """Entries grouped by start level, levels ascending, list order kept."""
        grouped: Dict[int, List[BundleEntry]] = {}
        for entry in self._entries.values():
            grouped.setdefault(entry.start_level, []).append(entry)
        return sorted(grouped.items())

    def copy(self) -> "BundleList":
        return BundleList(self._entries.values())

    def to_dict(self) -> Dict[str, Any]:
        return {"bundles": [e.to_dict() for e in self._entries.values()]}

    def __iter__(self) -> Iterator[BundleEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, BundleEntry):
            return item.identity in self._entries
        return item in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BundleList):
            return NotImplemented
        return list(self._entries.items()) == list(other._entries.items())

    def __repr__(self) -> str:
        return f"BundleList({len(self._entries)} entries)"
