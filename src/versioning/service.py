"""Coordinate resolution: pin a version, then fetch the artifact.

The local repository is consulted first for every fetch; remote registries
are tried in their configured order only on a cache miss. Failures are not
retried here and surface as :class:`errors.ResolutionError` subclasses.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from common.logging_utils import extra_context, is_debug_enabled, Timer
from errors import ArtifactNotFoundError, VersionNotFoundError
from registry.maven.client import RemoteRepository
from registry.maven.local import LocalRepository
from .cache import TTLCache
from .models import Coordinate, ResolutionMode, ResolvedArtifact
from .parser import determine_resolution_mode
from .ranges import InvalidVersionSpecification, VersionRange
from .resolvers.base import VersionResolver
from .resolvers.maven import MavenVersionResolver

logger = logging.getLogger(__name__)


class _FetchMiss(Exception):
    """A registry did not deliver the artifact; aborts the pending cache write."""

    def __init__(self, status_code: int, error: Optional[str]):
        super().__init__(error or f"HTTP {status_code}")
        self.status_code = status_code


class ArtifactResolver:
    """Resolves coordinates against a local cache and ordered remote registries."""

    def __init__(
        self,
        local: LocalRepository,
        remotes: Sequence[RemoteRepository] = (),
        version_resolver: Optional[VersionResolver] = None,
    ):
        self.local = local
        self.remotes = list(remotes)
        self.version_resolver = version_resolver or MavenVersionResolver(
            [*self.remotes, self.local], cache=TTLCache()
        )

    def resolve(self, coordinate: Coordinate) -> ResolvedArtifact:
        """Resolve ``coordinate`` to a fetched artifact.

        Raises:
            VersionNotFoundError: No available version satisfies the range.
            MetadataUnavailableError: Version metadata could not be read.
            ArtifactNotFoundError: The pinned artifact is in no registry.
        """
        with Timer() as timer:
            version = self.resolve_version(coordinate)
            path = self.fetch(coordinate, version)
        logger.debug(
            "Resolved %s to %s",
            coordinate,
            version,
            extra=extra_context(
                event="resolve",
                component="resolver",
                coordinate=str(coordinate),
                path=str(path),
                duration_ms=timer.duration_ms(),
            )
        )
        return ResolvedArtifact(coordinate=coordinate, version=version, path=path)

    def resolve_version(self, coordinate: Coordinate) -> str:
        """Pin the version constraint of ``coordinate`` to a concrete version."""
        mode = determine_resolution_mode(coordinate.version)
        if mode == ResolutionMode.EXACT:
            return coordinate.version
        if mode == ResolutionMode.RANGE:
            try:
                version_range = VersionRange.parse(coordinate.version)
            except InvalidVersionSpecification:
                # Unparseable specs are taken literally, as a plain version
                return coordinate.version
            if not version_range.is_range:
                return version_range.recommended

        candidates = self.version_resolver.fetch_candidates(coordinate)
        version, count, error = self.version_resolver.pick(coordinate, candidates)
        if version is None:
            raise VersionNotFoundError(
                f"Unable to find version for artifact {coordinate}: {error} ({count} candidates)",
                coordinate=coordinate,
            )
        logger.info("Resolved version %s for %s", version, coordinate)
        return version

    def fetch(self, coordinate: Coordinate, version: str) -> Path:
        """Return the local path of the artifact, downloading it on a miss."""
        cached = self.local.find(coordinate, version)
        if cached is not None:
            if is_debug_enabled(logger):
                logger.debug(
                    "Local repository hit",
                    extra=extra_context(
                        event="cache_hit",
                        component="resolver",
                        coordinate=str(coordinate.with_version(version)),
                        path=str(cached),
                    )
                )
            return cached

        failures = []
        for remote in self.remotes:
            try:
                with self.local.install(coordinate, version) as sink:
                    status_code, error = remote.download(coordinate, version, sink)
                    if status_code != 200 or error:
                        raise _FetchMiss(status_code, error)
            except _FetchMiss as miss:
                failures.append(f"{remote.repo_id}: {miss}")
                continue
            logger.info("Downloaded %s from %s", coordinate.with_version(version), remote.repo_id)
            return self.local.path_for(coordinate, version)

        detail = "; ".join(failures) if failures else "no remote repositories configured"
        raise ArtifactNotFoundError(
            f"Unable to find artifact {coordinate.with_version(version)} ({detail})",
            coordinate=coordinate,
        )
