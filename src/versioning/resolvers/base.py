"""Base class for version resolvers."""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..cache import TTLCache
from ..models import Coordinate


class VersionResolver(ABC):
    """Turns a version constraint into a concrete version.

    Resolution is split into fetching candidates and picking one so the
    picking rules can be exercised without any registry.
    """

    def __init__(self, cache: Optional[TTLCache] = None):
        self.cache = cache

    @abstractmethod
    def fetch_candidates(self, coordinate: Coordinate) -> List[str]:
        """Return every version available for the coordinate's artifact."""

    @abstractmethod
    def pick(
        self, coordinate: Coordinate, candidates: List[str]
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Select a version.

        Returns:
            Tuple of (resolved_version, candidate_count, error_message)
        """
