"""Data models for coordinates and artifact resolution."""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional


class ResolutionMode(Enum):
    """Resolution strategy derived from the version constraint."""
    EXACT = "exact"
    RANGE = "range"
    RELEASE = "release"
    LATEST = "latest"


@dataclass(frozen=True)
class Coordinate:
    """A partially specified package coordinate.

    ``version`` may be an exact version, a Maven range or one of the meta
    versions RELEASE / LATEST.
    """
    group_id: str
    artifact_id: str
    version: str
    type: str = "jar"
    classifier: Optional[str] = None

    def __post_init__(self):
        # Blank classifiers mean "no classifier"
        if self.classifier is not None and not self.classifier.strip():
            object.__setattr__(self, "classifier", None)

    def with_version(self, version: str) -> "Coordinate":
        return replace(self, version=version)

    def __str__(self) -> str:
        parts = [self.group_id, self.artifact_id, self.version, self.type]
        if self.classifier:
            parts.append(self.classifier)
        return ":".join(parts)


@dataclass(frozen=True)
class ResolvedArtifact:
    """A coordinate pinned to a concrete version and fetched to disk."""
    coordinate: Coordinate
    version: str
    path: Path

    @property
    def group_id(self) -> str:
        return self.coordinate.group_id

    @property
    def artifact_id(self) -> str:
        return self.coordinate.artifact_id

    @property
    def type(self) -> str:
        return self.coordinate.type

    @property
    def classifier(self) -> Optional[str]:
        return self.coordinate.classifier

    @property
    def pinned(self) -> Coordinate:
        """The requested coordinate with the resolved version filled in."""
        return self.coordinate.with_version(self.version)

