"""Build descriptor loading and CLI overrides.

The descriptor is YAML (``.yaml``/``.yml``) or JSON, validated against
:data:`DESCRIPTOR_SCHEMA`. Relative paths are resolved against the
project's ``base_dir``, which itself defaults to the descriptor's
directory. CLI flags override descriptor values.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from constants import Constants, PackagingTypes
from errors import ConfigurationError
from schema_validate import SchemaError, validate
from bundles.aggregator import Dependency
from bundles.engine import BuildConfig, ProjectInfo
from bundles.models import BundleEntry
from registry.maven.client import RemoteRepository
from registry.maven.local import LocalRepository
from versioning.parser import normalize_keys, parse_coordinate
from versioning.service import ArtifactResolver

logger = logging.getLogger(__name__)

_PATH = {"type": "string", "minLength": 1}
# Unquoted YAML versions load as numbers (1.10 becomes 1.1) and are rejected
_COORDINATE = {
    "anyOf": [
        {"type": "string", "minLength": 1},
        {
            "type": "object",
            "properties": {
                "group_id": {"type": "string"},
                "groupId": {"type": "string"},
                "artifact_id": {"type": "string"},
                "artifactId": {"type": "string"},
                "version": {"type": "string", "minLength": 1},
                "type": {"type": "string"},
                "classifier": {"type": ["string", "null"]},
                "start_level": {"type": "integer"},
                "startLevel": {"type": "integer"},
                "run_modes": {"anyOf": [{"type": "string"}, {"type": "array", "items": {"type": "string"}}]},
                "runModes": {"anyOf": [{"type": "string"}, {"type": "array", "items": {"type": "string"}}]},
                "file": _PATH,
            },
        },
    ]
}
DESCRIPTOR_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "project": {
            "type": "object",
            "properties": {
                "group_id": {"type": "string", "minLength": 1},
                "artifact_id": {"type": "string", "minLength": 1},
                "version": {"type": "string", "minLength": 1},
                "base_dir": _PATH,
            },
            "required": ["group_id", "artifact_id", "version"],
        },
        "default_bundle_list": _COORDINATE,
        "include_default_bundles": {"type": "boolean"},
        "bundle_list_file": _PATH,
        "config_directory": _PATH,
        "additional_properties": _PATH,
        "additional_bootstrap": _PATH,
        "additional_bundles": {"type": "array", "items": _COORDINATE},
        "bundle_exclusions": {"type": "array", "items": _COORDINATE},
        "dependencies": {"type": "array", "items": _COORDINATE},
        "rewrite_rules": {"type": "array", "items": _PATH},
        "repositories": {
            "type": "object",
            "properties": {
                "local": _PATH,
                "remote": {"type": "array", "items": _PATH},
            },
            "additionalProperties": False,
        },
        "work_dir": _PATH,
    },
    "required": ["project"],
    "additionalProperties": False,
}


def load_descriptor(path: str) -> Dict[str, Any]:
    """Read and validate a build descriptor.

    Raises:
        ConfigurationError: If the file cannot be read, parsed or validated.
    """
    try:
        with open(path, "r", encoding=Constants.FILE_ENCODING) as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigurationError(f"Unable to read build descriptor {path}: {exc}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Unable to parse build descriptor {path}: {exc}") from exc

    try:
        validate(DESCRIPTOR_SCHEMA, data, what=f"build descriptor {path}")
    except SchemaError as exc:
        raise ConfigurationError(str(exc)) from exc

    project = data["project"]
    if "base_dir" not in project:
        project["base_dir"] = os.path.dirname(os.path.abspath(path))
    elif not os.path.isabs(project["base_dir"]):
        project["base_dir"] = os.path.join(os.path.dirname(os.path.abspath(path)), project["base_dir"])
    return data


def apply_cli_overrides(args, descriptor: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``descriptor`` with CLI flags applied on top."""
    data = dict(descriptor)
    if getattr(args, "NO_DEFAULT_BUNDLES", False):
        data["include_default_bundles"] = False
    if getattr(args, "RULES", None):
        data["rewrite_rules"] = [os.path.abspath(p) for p in args.RULES]
    repositories = dict(data.get("repositories") or {})
    if getattr(args, "LOCAL_REPO", None):
        repositories["local"] = os.path.abspath(args.LOCAL_REPO)
    if getattr(args, "REMOTES", None):
        repositories["remote"] = list(args.REMOTES)
    if repositories:
        data["repositories"] = repositories
    return data


def _resolve_path(base: Path, value: Optional[str], default: str) -> Path:
    path = Path(os.path.expanduser(value or default))
    return path if path.is_absolute() else base / path


def _bundle_entry(raw: Any) -> BundleEntry:
    coordinate = parse_coordinate(raw)
    extras = normalize_keys(raw) if isinstance(raw, Mapping) else {}
    return BundleEntry.from_coordinate(
        coordinate,
        start_level=extras.get("start_level", Constants.DEFAULT_START_LEVEL),
        run_modes=extras.get("run_modes") or (),
    )


def _exclusion_entry(raw: Any) -> BundleEntry:
    # Exclusions match on identity only, so the version may be left out
    if isinstance(raw, Mapping):
        data = normalize_keys(raw)
        if not data.get("version"):
            data["version"] = "*"
        raw = data
    return _bundle_entry(raw)


def _dependency(raw: Any, base: Path) -> Dependency:
    file = raw.get("file") if isinstance(raw, Mapping) else None
    return Dependency(
        coordinate=parse_coordinate(raw),
        file=_resolve_path(base, file, file) if file else None,
    )


def build_config(descriptor: Mapping[str, Any]) -> BuildConfig:
    """Turn a validated descriptor into a :class:`BuildConfig`.

    Raises:
        ConfigurationError: If a coordinate is malformed.
    """
    raw_project = descriptor["project"]
    base = Path(raw_project.get("base_dir") or os.getcwd())
    project = ProjectInfo(
        group_id=raw_project["group_id"],
        artifact_id=raw_project["artifact_id"],
        version=raw_project["version"],
        base_dir=base,
    )
    default_list = descriptor.get("default_bundle_list") or Constants.DEFAULT_BUNDLE_LIST
    return BuildConfig(
        project=project,
        bundle_list_file=_resolve_path(base, descriptor.get("bundle_list_file"), Constants.BUNDLE_LIST_FILE),
        config_directory=_resolve_path(base, descriptor.get("config_directory"), Constants.CONFIG_DIRECTORY),
        additional_properties=_resolve_path(
            base, descriptor.get("additional_properties"), Constants.ADDITIONAL_PROPERTIES
        ),
        additional_bootstrap=_resolve_path(
            base, descriptor.get("additional_bootstrap"), Constants.ADDITIONAL_BOOTSTRAP
        ),
        work_dir=_resolve_path(base, descriptor.get("work_dir"), Constants.WORK_DIR),
        default_bundle_list=parse_coordinate(default_list, default_type=PackagingTypes.BUNDLE_LIST.value),
        include_default_bundles=bool(descriptor.get("include_default_bundles", True)),
        additional_bundles=[_bundle_entry(b) for b in descriptor.get("additional_bundles") or []],
        bundle_exclusions=[_exclusion_entry(b) for b in descriptor.get("bundle_exclusions") or []],
        dependencies=[_dependency(d, base) for d in descriptor.get("dependencies") or []],
        rewrite_rules=[_resolve_path(base, r, r) for r in descriptor.get("rewrite_rules") or []],
    )


def build_resolver(descriptor: Mapping[str, Any]) -> ArtifactResolver:
    """Create the artifact resolver for the descriptor's repositories."""
    repositories = descriptor.get("repositories") or {}
    local = LocalRepository(os.path.expanduser(repositories.get("local") or Constants.LOCAL_REPOSITORY))
    urls: List[str] = repositories.get("remote")
    if urls is None:
        urls = [Constants.REGISTRY_URL_MAVEN]
    remotes = [RemoteRepository(url) for url in urls]
    logger.debug("Using local repository %s and %d remote repositories", local.root, len(remotes))
    return ArtifactResolver(local, remotes)
