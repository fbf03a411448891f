"""Maven repository layout helpers shared by local and remote repositories."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import List

from versioning.models import Coordinate

# Packaging types whose file extension differs from the type name
_EXTENSIONS = {
    "bundle": "jar",
    "maven-plugin": "jar",
    "test-jar": "jar",
    "partialbundlelist": "xml",
}


def extension_for(type_: str) -> str:
    return _EXTENSIONS.get(type_, type_)


def artifact_dir(group_id: str, artifact_id: str, version: str) -> str:
    """Relative directory of one version of an artifact."""
    return "/".join([group_id.replace(".", "/"), artifact_id, version])


def artifact_path(coordinate: Coordinate, version: str) -> str:
    """Relative path of the artifact file for ``coordinate`` at ``version``."""
    name = f"{coordinate.artifact_id}-{version}"
    if coordinate.classifier:
        name = f"{name}-{coordinate.classifier}"
    name = f"{name}.{extension_for(coordinate.type)}"
    return f"{artifact_dir(coordinate.group_id, coordinate.artifact_id, version)}/{name}"


def metadata_path(group_id: str, artifact_id: str, filename: str) -> str:
    return "/".join([group_id.replace(".", "/"), artifact_id, filename])


def parse_metadata_versions(text: str) -> List[str]:
    """Return the ``versioning/versions/version`` entries of a metadata document.

    Raises:
        ET.ParseError: If the document is not well-formed XML.
    """
    root = ET.fromstring(text)
    versions: List[str] = []
    versioning = root.find("versioning")
    if versioning is not None:
        versions_elem = versioning.find("versions")
        if versions_elem is not None:
            for version_elem in versions_elem.findall("version"):
                if version_elem.text and version_elem.text.strip():
                    versions.append(version_elem.text.strip())
    # Single-version metadata written by some deployers
    if not versions:
        version_elem = root.find("version")
        if version_elem is not None and version_elem.text and version_elem.text.strip():
            versions.append(version_elem.text.strip())
    return versions
