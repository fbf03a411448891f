"""Maven version range specifications.

Supported forms::

    1.0             recommended version, not a range
    [1.0]           exactly 1.0
    [1.0,2.0)       1.0 <= v < 2.0
    (,1.5]          v <= 1.5
    [1.0,1.2],[1.5,)  union of restrictions
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .comparable import ComparableVersion


class InvalidVersionSpecification(ValueError):
    """Raised when a range specification cannot be parsed."""


@dataclass(frozen=True)
class Restriction:
    """One bounded interval of a version range."""
    lower: Optional[ComparableVersion]
    lower_inclusive: bool
    upper: Optional[ComparableVersion]
    upper_inclusive: bool

    def contains(self, version: ComparableVersion) -> bool:
        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.upper_inclusive):
                return False
        return True


def _parse_restriction(spec: str) -> Restriction:
    lower_inclusive = spec.startswith("[")
    upper_inclusive = spec.endswith("]")
    inner = spec[1:-1].strip()

    if "," not in inner:
        if not (lower_inclusive and upper_inclusive):
            raise InvalidVersionSpecification(f"Single version must be surrounded by []: {spec}")
        if not inner:
            raise InvalidVersionSpecification(f"Empty restriction: {spec}")
        exact = ComparableVersion(inner)
        return Restriction(exact, True, exact, True)

    lower_str, upper_str = (p.strip() for p in inner.split(",", 1))
    if "," in upper_str:
        raise InvalidVersionSpecification(f"Too many bounds in restriction: {spec}")
    lower = ComparableVersion(lower_str) if lower_str else None
    upper = ComparableVersion(upper_str) if upper_str else None
    if lower is not None and upper is not None:
        if upper < lower:
            raise InvalidVersionSpecification(f"Range defies version ordering: {spec}")
        if upper == lower and not (lower_inclusive and upper_inclusive):
            raise InvalidVersionSpecification(f"Range cannot have identical boundaries: {spec}")
    return Restriction(lower, lower_inclusive, upper, upper_inclusive)


class VersionRange:
    """A parsed version specification."""

    def __init__(self, restrictions: List[Restriction], recommended: Optional[str] = None):
        self.restrictions = restrictions
        self.recommended = recommended

    @classmethod
    def parse(cls, spec: str) -> "VersionRange":
        """Parse a specification; plain versions become a recommendation.

        Raises:
            InvalidVersionSpecification: On malformed range syntax.
        """
        spec = spec.strip()
        if not spec:
            raise InvalidVersionSpecification("Empty version specification")

        restrictions: List[Restriction] = []
        process = spec
        while process.startswith("[") or process.startswith("("):
            close = min(
                (i for i in (process.find(")"), process.find("]")) if i >= 0),
                default=-1,
            )
            if close < 0:
                raise InvalidVersionSpecification(f"Unbounded range: {spec}")
            restriction = _parse_restriction(process[: close + 1])
            if restrictions:
                previous = restrictions[-1]
                if previous.upper is None or restriction.lower is None or restriction.lower < previous.upper:
                    raise InvalidVersionSpecification(f"Ranges overlap: {spec}")
            restrictions.append(restriction)
            process = process[close + 1:].strip()
            if process.startswith(","):
                process = process[1:].strip()

        if process:
            if restrictions:
                raise InvalidVersionSpecification(
                    f"Only fully-qualified sets allowed in multiple set scenario: {spec}"
                )
            return cls([], recommended=process)
        return cls(restrictions)

    @property
    def is_range(self) -> bool:
        return self.recommended is None

    def contains(self, version: str) -> bool:
        candidate = ComparableVersion(version)
        if not self.is_range:
            return candidate == ComparableVersion(self.recommended)
        return any(r.contains(candidate) for r in self.restrictions)

    def match_version(self, candidates: Iterable[str]) -> Optional[str]:
        """Return the highest candidate inside the range, or None."""
        best: Optional[ComparableVersion] = None
        for raw in candidates:
            candidate = ComparableVersion(raw)
            if not any(r.contains(candidate) for r in self.restrictions):
                continue
            if best is None or candidate > best:
                best = candidate
        return best.raw if best is not None else None

    def __str__(self) -> str:
        if self.recommended is not None:
            return self.recommended
        parts = []
        for r in self.restrictions:
            if r.lower is not None and r.lower == r.upper:
                parts.append(f"[{r.lower}]")
                continue
            parts.append(
                ("[" if r.lower_inclusive else "(")
                + (str(r.lower) if r.lower is not None else "")
                + ","
                + (str(r.upper) if r.upper is not None else "")
                + ("]" if r.upper_inclusive else ")")
            )
        return ",".join(parts)
