"""Version resolvers."""

from .base import VersionResolver
from .maven import MavenVersionResolver

__all__ = [
    "VersionResolver",
    "MavenVersionResolver",
]
