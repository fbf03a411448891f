"""Folds partial bundle lists contributed by dependencies into the working list.

Dependencies are processed in declaration order. For each partial list the
fragment is merged with override semantics, then the companion
configuration payload ``(group, artifact, version, zip, bundlelistconfig)``
is looked up and, when present, handed to the configuration overlay.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from constants import Constants, PackagingTypes
from common.logging_utils import extra_context
from errors import ResolutionError
from versioning.models import Coordinate
from versioning.service import ArtifactResolver
from .io import read_bundle_list
from .models import BundleList
from .overlay import ConfigOverlay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    """A project dependency, optionally with its already-resolved file."""
    coordinate: Coordinate
    file: Optional[Path] = None

    @property
    def is_partial_list(self) -> bool:
        return self.coordinate.type == PackagingTypes.PARTIAL.value


class PartialListAggregator:
    """Merges partial list dependencies and their configuration companions."""

    def __init__(self, resolver: ArtifactResolver, overlay: Optional[ConfigOverlay] = None):
        self.resolver = resolver
        self.overlay = overlay

    def aggregate(self, bundle_list: BundleList, dependencies: Iterable[Dependency]) -> BundleList:
        """Return ``bundle_list`` with every partial list folded in.

        The input list is not modified; a failure for any dependency aborts
        the whole aggregation.

        Raises:
            MalformedBundleListError: If a partial list cannot be parsed.
            ResolutionError: If a partial list without a file cannot be
                resolved.
            ExtractionFailedError: If a configuration payload is corrupt.
        """
        working = bundle_list.copy()
        for dependency in dependencies:
            if not dependency.is_partial_list:
                continue
            self._merge_partial(working, dependency)
        return working

    def _merge_partial(self, working: BundleList, dependency: Dependency) -> None:
        coordinate = dependency.coordinate
        path = dependency.file
        version = coordinate.version
        if path is None:
            resolved = self.resolver.resolve(coordinate)
            path, version = resolved.path, resolved.version

        logger.info(
            "merging partial bundle list for %s:%s:%s",
            coordinate.group_id,
            coordinate.artifact_id,
            version,
        )
        working.merge(read_bundle_list(path))

        config_path = self._find_config_companion(coordinate.with_version(version))
        if config_path is None:
            return
        if self.overlay is None:
            logger.warning("Ignoring configuration for %s: no overlay configured", coordinate)
            return
        logger.info(
            "merging partial bundle list configuration for %s:%s:%s",
            coordinate.group_id,
            coordinate.artifact_id,
            version,
        )
        self.overlay.apply_overlay(config_path)

    def _find_config_companion(self, coordinate: Coordinate) -> Optional[Path]:
        companion = Coordinate(
            coordinate.group_id,
            coordinate.artifact_id,
            coordinate.version,
            PackagingTypes.CONFIG.value,
            Constants.CONFIG_CLASSIFIER,
        )
        try:
            return self.resolver.resolve(companion).path
        except ResolutionError as exc:
            # Most partial lists ship without configuration
            logger.debug(
                "No configuration companion for %s: %s",
                coordinate,
                exc,
                extra=extra_context(
                    event="companion_missing",
                    component="aggregator",
                    coordinate=str(companion),
                )
            )
            return None
