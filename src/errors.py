"""Exception taxonomy for bundle list resolution, merge and rewrite.

Every error is fatal for the build: it propagates to the caller with enough
context (coordinate, file or rule source) to diagnose the failure.
"""
from __future__ import annotations

from typing import Optional


class BundleListError(Exception):
    """Base class for all engine failures."""


class ConfigurationError(BundleListError):
    """Raised when the build descriptor or CLI input is invalid."""


class ResolutionError(BundleListError):
    """Base class for coordinate resolution failures."""

    def __init__(self, message: str, coordinate: Optional[object] = None):
        super().__init__(message)
        self.coordinate = coordinate


class VersionNotFoundError(ResolutionError):
    """No available version satisfies the requested range."""


class ArtifactNotFoundError(ResolutionError):
    """The pinned artifact could not be fetched from any registry."""


class MetadataUnavailableError(ResolutionError):
    """Version metadata could not be retrieved while resolving a range."""


class MalformedBundleListError(BundleListError):
    """A bundle list document could not be parsed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ExtractionFailedError(BundleListError):
    """A configuration archive could not be extracted."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class RuleDefinitionInvalidError(BundleListError):
    """A rewrite rule source has syntax or reference errors."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class RuleExecutionError(BundleListError):
    """Rules did not reach a fixed point within the cycle limit."""


class EntryNotFoundError(BundleListError):
    """Strict removal of an entry that is not in the bundle list."""
