"""Remote Maven-layout registry client."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import BinaryIO, List, Optional, Tuple

from constants import Constants
from common import http_client
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from errors import MetadataUnavailableError
from versioning.models import Coordinate
from .layout import artifact_path, metadata_path, parse_metadata_versions

logger = logging.getLogger(__name__)


class RemoteRepository:
    """A remote registry serving the Maven repository layout over HTTP."""

    def __init__(self, url: str = Constants.REGISTRY_URL_MAVEN, repo_id: Optional[str] = None):
        self.url = url.rstrip("/")
        self.repo_id = repo_id or safe_url(self.url)

    def __repr__(self) -> str:
        return f"RemoteRepository({self.repo_id!r})"

    def available_versions(self, group_id: str, artifact_id: str) -> List[str]:
        """Fetch version candidates from ``maven-metadata.xml``.

        Returns:
            List of version strings; empty when the registry does not know
            the artifact.

        Raises:
            MetadataUnavailableError: On transport failure, server error or
                an unparseable metadata document.
        """
        url = f"{self.url}/{metadata_path(group_id, artifact_id, Constants.METADATA_FILE)}"
        status_code, _, text = http_client.robust_get(url)

        if status_code == 404:
            return []
        if status_code != 200:
            detail = text if status_code == 0 else f"HTTP {status_code}"
            raise MetadataUnavailableError(
                f"Unable to retrieve versions of {group_id}:{artifact_id} from {self.repo_id}: {detail}"
            )

        try:
            versions = parse_metadata_versions(text)
        except ET.ParseError as exc:
            raise MetadataUnavailableError(
                f"Malformed metadata for {group_id}:{artifact_id} from {self.repo_id}: {exc}"
            ) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Fetched version metadata",
                extra=extra_context(
                    event="metadata",
                    component="remote_repository",
                    target=self.repo_id,
                    coordinate=f"{group_id}:{artifact_id}",
                    outcome=f"{len(versions)} versions",
                )
            )
        return versions

    def download(self, coordinate: Coordinate, version: str, sink: BinaryIO) -> Tuple[int, Optional[str]]:
        """Stream the artifact into ``sink``.

        Returns:
            Tuple of (status_code, error) as reported by the HTTP layer.
        """
        url = f"{self.url}/{artifact_path(coordinate, version)}"
        return http_client.stream_download(url, sink)
