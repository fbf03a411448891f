"""Token parsing utilities for coordinates and version constraints."""

from typing import Any, Dict, Mapping, Optional

from errors import ConfigurationError
from .models import Coordinate, ResolutionMode

_RANGE_CHARS = "[](),"

# camelCase spellings accepted from descriptors written for Maven tooling
_KEY_ALIASES = {
    "groupId": "group_id",
    "artifactId": "artifact_id",
    "startLevel": "start_level",
    "runModes": "run_modes",
}


def determine_resolution_mode(version: str) -> ResolutionMode:
    """Determine resolution mode from a version constraint."""
    spec = version.strip()
    if spec.upper() == "RELEASE":
        return ResolutionMode.RELEASE
    if spec.upper() == "LATEST":
        return ResolutionMode.LATEST
    if any(char in spec for char in _RANGE_CHARS):
        return ResolutionMode.RANGE
    return ResolutionMode.EXACT


def parse_coordinate_token(token: str, default_type: str = "jar") -> Coordinate:
    """Parse ``group:artifact:version[:type[:classifier]]``.

    Range versions contain commas but never colons, so splitting on ':' is
    unambiguous.
    """
    parts = [p.strip() for p in token.strip().split(":")]
    if len(parts) < 3 or not all(parts[:3]):
        raise ConfigurationError(
            f"Invalid coordinate '{token}'. Expected 'groupId:artifactId:version[:type[:classifier]]'."
        )
    if len(parts) > 5:
        raise ConfigurationError(f"Invalid coordinate '{token}': too many segments.")
    type_ = parts[3] if len(parts) > 3 and parts[3] else default_type
    classifier = parts[4] if len(parts) > 4 and parts[4] else None
    return Coordinate(parts[0], parts[1], parts[2], type_, classifier)


def normalize_keys(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase descriptor keys onto snake_case field names."""
    return {_KEY_ALIASES.get(k, k): v for k, v in raw.items()}


def parse_coordinate_mapping(raw: Mapping[str, Any], default_type: str = "jar") -> Coordinate:
    """Build a Coordinate from a descriptor mapping."""
    data = normalize_keys(raw)
    missing = [k for k in ("group_id", "artifact_id", "version") if not data.get(k)]
    if missing:
        raise ConfigurationError(f"Coordinate {dict(raw)} is missing {', '.join(missing)}")
    classifier: Optional[str] = data.get("classifier") or None
    return Coordinate(
        group_id=str(data["group_id"]).strip(),
        artifact_id=str(data["artifact_id"]).strip(),
        version=str(data["version"]).strip(),
        type=str(data.get("type") or default_type).strip(),
        classifier=str(classifier).strip() if classifier else None,
    )


def parse_coordinate(raw: Any, default_type: str = "jar") -> Coordinate:
    """Accept either a token string or a mapping."""
    if isinstance(raw, Coordinate):
        return raw
    if isinstance(raw, str):
        return parse_coordinate_token(raw, default_type)
    if isinstance(raw, Mapping):
        return parse_coordinate_mapping(raw, default_type)
    raise ConfigurationError(f"Unsupported coordinate value: {raw!r}")
