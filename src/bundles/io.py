"""Reader and writer for bundle list XML documents.

Document format::

    <bundles>
      <startLevel level="5">
        <bundle>
          <groupId>org.example</groupId>
          <artifactId>example.core</artifactId>
          <version>1.0.0</version>
          <type>jar</type>              <!-- optional -->
          <classifier>api</classifier>  <!-- optional -->
          <runModes>author,publish</runModes>  <!-- optional -->
        </bundle>
      </startLevel>
    </bundles>

Entries are read in document order.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Union

from constants import Constants
from errors import MalformedBundleListError
from .models import BundleEntry, BundleList

logger = logging.getLogger(__name__)

_BOOT_LEVEL = "boot"
_BOOT_LEVEL_VALUE = -1


def _child_text(element: ET.Element, tag: str) -> Optional[str]:
    node = element.find(tag)
    if node is None or node.text is None:
        return None
    text = node.text.strip()
    return text or None


def _parse_level(raw: Optional[str], source: str) -> int:
    if raw is None or not raw.strip():
        return Constants.DEFAULT_START_LEVEL
    if raw.strip().lower() == _BOOT_LEVEL:
        return _BOOT_LEVEL_VALUE
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise MalformedBundleListError(f"Invalid start level '{raw}' in {source}", path=source) from exc


def parse_bundle_list(text: Union[str, bytes], source: str = "<string>") -> BundleList:
    """Parse a bundle list document.

    Raises:
        MalformedBundleListError: If the document is not a well-formed
            bundle list.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise MalformedBundleListError(f"Unable to parse bundle list {source}: {exc}", path=source) from exc

    if root.tag != "bundles":
        raise MalformedBundleListError(
            f"Unexpected root element <{root.tag}> in {source}; expected <bundles>", path=source
        )

    bundle_list = BundleList()
    for level_elem in root:
        if level_elem.tag != "startLevel":
            raise MalformedBundleListError(
                f"Unexpected element <{level_elem.tag}> in {source}", path=source
            )
        level = _parse_level(level_elem.get("level"), source)
        for bundle_elem in level_elem.findall("bundle"):
            group_id = _child_text(bundle_elem, "groupId")
            artifact_id = _child_text(bundle_elem, "artifactId")
            version = _child_text(bundle_elem, "version")
            if not (group_id and artifact_id and version):
                raise MalformedBundleListError(
                    f"Bundle in {source} requires groupId, artifactId and version", path=source
                )
            bundle_list.add(BundleEntry(
                group_id=group_id,
                artifact_id=artifact_id,
                version=version,
                type=_child_text(bundle_elem, "type") or "jar",
                classifier=_child_text(bundle_elem, "classifier"),
                start_level=level,
                run_modes=_child_text(bundle_elem, "runModes") or (),
            ))
    return bundle_list


def read_bundle_list(path: Union[str, Path]) -> BundleList:
    """Read a bundle list file."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise MalformedBundleListError(f"Unable to read bundle list {path}: {exc}", path=str(path)) from exc
    bundle_list = parse_bundle_list(data, source=str(path))
    logger.debug("Read %d bundles from %s", len(bundle_list), path)
    return bundle_list


def to_xml(bundle_list: BundleList) -> ET.Element:
    root = ET.Element("bundles")
    for level, entries in bundle_list.start_levels():
        level_elem = ET.SubElement(
            root, "startLevel", level=_BOOT_LEVEL if level == _BOOT_LEVEL_VALUE else str(level)
        )
        for entry in entries:
            bundle_elem = ET.SubElement(level_elem, "bundle")
            ET.SubElement(bundle_elem, "groupId").text = entry.group_id
            ET.SubElement(bundle_elem, "artifactId").text = entry.artifact_id
            ET.SubElement(bundle_elem, "version").text = entry.version
            if entry.type != "jar":
                ET.SubElement(bundle_elem, "type").text = entry.type
            if entry.classifier:
                ET.SubElement(bundle_elem, "classifier").text = entry.classifier
            if entry.run_modes:
                ET.SubElement(bundle_elem, "runModes").text = ",".join(sorted(entry.run_modes))
    return root


def dumps(bundle_list: BundleList) -> str:
    """Serialize a bundle list to an XML string."""
    root = to_xml(bundle_list)
    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def write_bundle_list(bundle_list: BundleList, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(bundle_list), encoding=Constants.FILE_ENCODING)
    return path
