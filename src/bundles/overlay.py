"""Configuration overlay accumulated from partial list config payloads.

Each payload is a zip archive laid out as::

    sling/sling.properties      merged into the properties map (later wins)
    sling/sling_bootstrap.txt   appended to the bootstrap script
    config/...                  copied over the overlay config directory

Archives are extracted into a private temporary directory that is removed
on every exit path.
"""
from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Union

from constants import Constants
from common import properties as props
from common.logging_utils import extra_context, is_debug_enabled
from errors import ExtractionFailedError

logger = logging.getLogger(__name__)

# (text, source file) -> filtered text
TextFilter = Callable[[str, Path], str]

# Version-control and OS metadata never copied into the overlay
DEFAULT_EXCLUDES = (".git", ".gitignore", ".svn", "CVS", ".hg", ".bzr", ".DS_Store", "*~", "#*#", ".#*")


def _identity_filter(text: str, _source: Path) -> str:
    return text


@contextmanager
def extracted_archive(archive: Union[str, Path], work_dir: Optional[Path] = None) -> Iterator[Path]:
    """Extract ``archive`` into a fresh temporary directory for the block.

    Raises:
        ExtractionFailedError: If the archive is unreadable or has entries
            escaping the extraction directory.
    """
    if work_dir is not None:
        work_dir.mkdir(parents=True, exist_ok=True)
    tmp_dir = Path(tempfile.mkdtemp(prefix="bundlelist-config-", dir=work_dir))
    try:
        try:
            with zipfile.ZipFile(archive) as zf:
                root = tmp_dir.resolve()
                for member in zf.namelist():
                    target = (root / member).resolve()
                    if target != root and root not in target.parents:
                        raise ExtractionFailedError(
                            f"Archive entry '{member}' escapes the extraction directory", path=str(archive)
                        )
                zf.extractall(tmp_dir)
        except (zipfile.BadZipFile, OSError) as exc:
            raise ExtractionFailedError(
                f"Unable to extract configuration archive {archive}: {exc}", path=str(archive)
            ) from exc
        yield tmp_dir
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)


class ConfigOverlay:
    """Accumulates properties, bootstrap text and config files across sources."""

    def __init__(
        self,
        overlay_dir: Union[str, Path],
        project_config_dir: Optional[Union[str, Path]] = None,
        text_filter: Optional[TextFilter] = None,
        work_dir: Optional[Union[str, Path]] = None,
    ):
        self.overlay_dir = Path(overlay_dir)
        self.project_config_dir = Path(project_config_dir) if project_config_dir else None
        self.work_dir = Path(work_dir) if work_dir else None
        self._filter = text_filter or _identity_filter
        self._properties: Optional[Dict[str, str]] = None
        self._bootstrap: Optional[str] = None
        self._overlay_active = False

    @property
    def properties(self) -> Optional[Dict[str, str]]:
        """Merged properties, or None when no source contributed any."""
        return dict(self._properties) if self._properties is not None else None

    @property
    def bootstrap(self) -> Optional[str]:
        """Concatenated bootstrap script, or None when no source had one."""
        return self._bootstrap

    @property
    def config_directory(self) -> Optional[Path]:
        """The overlay directory once used, otherwise the project's own."""
        if self._overlay_active:
            return self.overlay_dir
        return self.project_config_dir

    def apply_overlay(self, archive: Union[str, Path]) -> None:
        """Extract a config payload and fold it into the accumulated state."""
        with extracted_archive(archive, self.work_dir) as root:
            sling_dir = root / Constants.CONFIG_ARCHIVE_SLING_DIR
            self.merge_properties_file(sling_dir / Constants.SLING_PROPERTIES)
            self.append_bootstrap_file(sling_dir / Constants.SLING_BOOTSTRAP)

            self._ensure_overlay_dir()
            config_src = root / Constants.CONFIG_ARCHIVE_CONFIG_DIR
            if config_src.is_dir():
                self._copy_tree(config_src, self.overlay_dir)

        if is_debug_enabled(logger):
            logger.debug(
                "Applied configuration overlay",
                extra=extra_context(
                    event="overlay",
                    component="config_overlay",
                    path=str(archive),
                    target=str(self.overlay_dir),
                )
            )

    def read_filtered(self, path: Path) -> str:
        """Read a text file through the configured filter."""
        return self._filter(path.read_text(encoding=Constants.FILE_ENCODING), path)

    def merge_properties_file(self, path: Path) -> None:
        """Merge a properties file over the accumulated map, if it exists."""
        if not path.is_file():
            return
        loaded = props.loads(self.read_filtered(path))
        if self._properties is None:
            self._properties = {}
        self._properties.update(loaded)

    def append_bootstrap_file(self, path: Path) -> None:
        """Append a bootstrap script to the accumulated text, if it exists."""
        if not path.is_file():
            return
        self._bootstrap = (self._bootstrap or "") + self.read_filtered(path)

    def discard(self) -> None:
        """Drop all accumulated state and the overlay directory."""
        if self._overlay_active:
            shutil.rmtree(self.overlay_dir, ignore_errors=True)
        self._overlay_active = False
        self._properties = None
        self._bootstrap = None

    def _ensure_overlay_dir(self) -> None:
        if self._overlay_active:
            return
        if self.overlay_dir.exists():
            shutil.rmtree(self.overlay_dir)
        self.overlay_dir.mkdir(parents=True)
        if self.project_config_dir is not None and self.project_config_dir.is_dir():
            self._copy_tree(self.project_config_dir, self.overlay_dir)
        self._overlay_active = True

    @staticmethod
    def _copy_tree(src: Path, dest: Path) -> None:
        shutil.copytree(src, dest, ignore=shutil.ignore_patterns(*DEFAULT_EXCLUDES), dirs_exist_ok=True)
