"""Maven version resolver using Maven version range semantics."""

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from ..cache import TTLCache
from ..comparable import ComparableVersion
from ..models import Coordinate, ResolutionMode
from ..parser import determine_resolution_mode
from ..ranges import InvalidVersionSpecification, VersionRange
from .base import VersionResolver

logger = logging.getLogger(__name__)


class VersionSource(Protocol):
    """Anything that can list the versions of an artifact."""

    def available_versions(self, group_id: str, artifact_id: str) -> List[str]:
        ...


class MavenVersionResolver(VersionResolver):
    """Resolver for Maven coordinates using Maven version range semantics."""

    def __init__(self, sources: Sequence[VersionSource], cache: Optional[TTLCache] = None):
        super().__init__(cache)
        self.sources = list(sources)

    def fetch_candidates(self, coordinate: Coordinate) -> List[str]:
        """Collect version candidates from every source.

        Sources are queried in order; duplicates are dropped keeping the
        first occurrence. Errors from a source propagate unchanged.
        """
        cache_key = f"maven:{coordinate.group_id}:{coordinate.artifact_id}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return list(cached)

        versions: List[str] = []
        seen = set()
        for source in self.sources:
            for ver in source.available_versions(coordinate.group_id, coordinate.artifact_id):
                if ver not in seen:
                    seen.add(ver)
                    versions.append(ver)

        if self.cache is not None:
            self.cache.set(cache_key, list(versions))
        return versions

    def pick(
        self, coordinate: Coordinate, candidates: List[str]
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Apply Maven version rules to select a version."""
        mode = determine_resolution_mode(coordinate.version)
        if mode == ResolutionMode.RELEASE:
            return self._pick_latest(candidates, include_snapshots=False)
        if mode == ResolutionMode.LATEST:
            return self._pick_latest(candidates, include_snapshots=True)
        if mode == ResolutionMode.RANGE:
            return self._pick_range(coordinate.version, candidates)
        return self._pick_exact(coordinate.version, candidates)

    def _pick_latest(
        self, candidates: List[str], include_snapshots: bool
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Pick the highest version, optionally ignoring SNAPSHOTs."""
        if not candidates:
            return None, 0, "No versions available"
        parsed = [ComparableVersion(v) for v in candidates]
        if not include_snapshots:
            parsed = [v for v in parsed if not v.is_snapshot]
            if not parsed:
                return None, len(candidates), "No release versions available"
        return str(max(parsed)), len(candidates), None

    def _pick_exact(self, version_str: str, candidates: List[str]) -> Tuple[Optional[str], int, Optional[str]]:
        """Check if exact version exists in candidates."""
        if version_str in candidates:
            return version_str, len(candidates), None
        return None, len(candidates), f"Version {version_str} not found"

    def _pick_range(self, range_spec: str, candidates: List[str]) -> Tuple[Optional[str], int, Optional[str]]:
        """Apply a Maven version range and pick the highest matching version."""
        try:
            version_range = VersionRange.parse(range_spec)
        except InvalidVersionSpecification as exc:
            return None, len(candidates), f"Range parsing error: {exc}"

        if not version_range.is_range:
            return self._pick_exact(version_range.recommended, candidates)

        matched = version_range.match_version(candidates)
        if matched is None:
            return None, len(candidates), f"No versions match range '{range_spec}'"
        logger.debug("Range %s matched %s among %d candidates", range_spec, matched, len(candidates))
        return matched, len(candidates), None
