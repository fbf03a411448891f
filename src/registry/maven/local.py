"""Local artifact repository used as the resolution cache.

Writes are atomic per coordinate: a download lands in a temporary file next
to its final location and is moved into place only once it is complete.
"""
from __future__ import annotations

import logging
import os
import tempfile
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Union

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from errors import MetadataUnavailableError
from versioning.models import Coordinate
from .layout import artifact_path, metadata_path, parse_metadata_versions

logger = logging.getLogger(__name__)


class LocalRepository:
    """A Maven-layout directory holding previously fetched artifacts."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser()

    def path_for(self, coordinate: Coordinate, version: str) -> Path:
        return self.root / artifact_path(coordinate, version)

    def find(self, coordinate: Coordinate, version: str) -> Optional[Path]:
        """Return the cached artifact file, if present."""
        path = self.path_for(coordinate, version)
        return path if path.is_file() else None

    def available_versions(self, group_id: str, artifact_id: str) -> List[str]:
        """Versions known locally from local metadata and version directories."""
        versions: List[str] = []
        meta = self.root / metadata_path(group_id, artifact_id, Constants.LOCAL_METADATA_FILE)
        if meta.is_file():
            try:
                versions.extend(parse_metadata_versions(meta.read_text(encoding=Constants.FILE_ENCODING)))
            except ET.ParseError as exc:
                raise MetadataUnavailableError(f"Corrupt local metadata {meta}: {exc}") from exc

        base = self.root / group_id.replace(".", "/") / artifact_id
        if base.is_dir():
            for child in sorted(base.iterdir()):
                if child.is_dir() and child.name not in versions and any(child.iterdir()):
                    versions.append(child.name)
        return versions

    @contextmanager
    def install(self, coordinate: Coordinate, version: str) -> Iterator[BinaryIO]:
        """Yield a writable file that becomes the cached artifact on success.

        If the block raises, the partial file is removed and nothing lands in
        the repository.
        """
        target = self.path_for(coordinate, version)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as sink:
                yield sink
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        if is_debug_enabled(logger):
            logger.debug(
                "Artifact cached",
                extra=extra_context(
                    event="cache_write",
                    component="local_repository",
                    coordinate=str(coordinate.with_version(version)),
                    path=str(target),
                )
            )
