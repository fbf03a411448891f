"""Installable resources handed to a runtime installer.

A resource is either a stream of bytes (bundles) or a dictionary
(configurations), identified by an opaque id.
"""
from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, BinaryIO, Dict, Iterator, List, Mapping, Optional, Union

from constants import Constants
from common import properties as props
from bundles.models import BundleList
from versioning.service import ArtifactResolver

logger = logging.getLogger(__name__)

Stream = Union[BinaryIO, Path]


class InstallableResource:
    """Immutable description of one installable resource."""

    TYPE_BUNDLE = "bundle"
    TYPE_CONFIG = "config"
    # Optional dictionary key carrying the start level of a bundle
    BUNDLE_START_LEVEL = "bundle.startlevel"
    DEFAULT_PRIORITY = Constants.DEFAULT_RESOURCE_PRIORITY

    __slots__ = ("_id", "_stream", "_dictionary", "_digest", "_type", "_priority")

    def __init__(
        self,
        id: str,
        stream: Optional[Stream] = None,
        dictionary: Optional[Mapping[str, Any]] = None,
        digest: Optional[str] = None,
        resource_type: Optional[str] = None,
        priority: Optional[int] = None,
    ):
        """
        Args:
            id: Unique id; an extension such as ``.jar`` or ``.cfg`` lets
                installers detect the type.
            stream: Binary stream, or path of the file holding the data.
            dictionary: Configuration data, required when there is no stream.
            digest: Any string that changes when the data changes.
            resource_type: ``bundle``, ``config`` or None if unknown.
            priority: Defaults to :attr:`DEFAULT_PRIORITY`.

        Raises:
            ValueError: If ``id`` is missing or neither stream nor
                dictionary is given.
        """
        if not id:
            raise ValueError("id must not be empty.")
        if stream is None and dictionary is None:
            raise ValueError("dictionary must not be None (or stream must not be None).")
        object.__setattr__(self, "_id", id)
        object.__setattr__(self, "_stream", stream)
        object.__setattr__(
            self, "_dictionary", MappingProxyType(dict(dictionary)) if dictionary is not None else None
        )
        object.__setattr__(self, "_digest", digest)
        object.__setattr__(self, "_type", resource_type)
        object.__setattr__(self, "_priority", priority if priority is not None else self.DEFAULT_PRIORITY)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def id(self) -> str:
        return self._id

    @property
    def stream(self) -> Optional[Stream]:
        return self._stream

    @property
    def dictionary(self) -> Optional[Mapping[str, Any]]:
        return self._dictionary

    @property
    def digest(self) -> Optional[str]:
        return self._digest

    @property
    def resource_type(self) -> Optional[str]:
        return self._type

    @property
    def priority(self) -> int:
        return self._priority

    def open(self) -> BinaryIO:
        """Open the data stream; the caller closes it."""
        if self._stream is None:
            raise ValueError(f"Resource {self._id} has no stream")
        if isinstance(self._stream, Path):
            return self._stream.open("rb")
        return self._stream

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self._id,
            "type": self._type,
            "priority": self._priority,
            "digest": self._digest,
        }
        if isinstance(self._stream, Path):
            data["location"] = str(self._stream)
        if self._dictionary is not None:
            data["dictionary"] = dict(self._dictionary)
        return data

    def __str__(self) -> str:
        return f"{type(self).__name__}, priority={self._priority}, id={self._id}"


def file_digest(path: Path) -> str:
    sha = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(Constants.DOWNLOAD_CHUNK_SIZE), b""):
            sha.update(chunk)
    return sha.hexdigest()


def resources_for(bundle_list: BundleList, resolver: ArtifactResolver) -> List[InstallableResource]:
    """Resolve every entry of ``bundle_list`` into a bundle resource.

    Raises:
        ResolutionError: If any bundle cannot be resolved.
    """
    resources = []
    for entry in bundle_list:
        resolved = resolver.resolve(entry.coordinate)
        resources.append(InstallableResource(
            id=resolved.path.name,
            stream=resolved.path,
            dictionary={InstallableResource.BUNDLE_START_LEVEL: entry.start_level},
            digest=file_digest(resolved.path),
            resource_type=InstallableResource.TYPE_BUNDLE,
        ))
    return resources


def _config_files(config_dir: Path) -> Iterator[Path]:
    for path in sorted(config_dir.rglob("*.cfg")):
        if path.is_file():
            yield path


def config_resources(config_dir: Optional[Path]) -> List[InstallableResource]:
    """Configuration resources for every ``.cfg`` file under ``config_dir``."""
    if config_dir is None or not config_dir.is_dir():
        return []
    resources = []
    for path in _config_files(config_dir):
        text = path.read_text(encoding=Constants.FILE_ENCODING)
        resources.append(InstallableResource(
            id=path.relative_to(config_dir).as_posix(),
            dictionary=props.loads(text),
            digest=hashlib.sha256(text.encode(Constants.FILE_ENCODING)).hexdigest(),
            resource_type=InstallableResource.TYPE_CONFIG,
        ))
    logger.debug("Found %d configuration resources in %s", len(resources), config_dir)
    return resources
