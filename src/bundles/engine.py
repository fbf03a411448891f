"""Bundle list assembly pipeline.

Order of operations:

1. If the default list coordinate names the project itself, the project's
   own list file is the base. Otherwise the default list (when enabled)
   is the base and the project's list file, if present, is merged over it.
2. Project additions are added.
3. Project exclusions are removed (leniently).
4. Partial lists from dependencies are folded in; they may re-add entries
   the project excluded.
5. Customizer hooks run.
6. Rewrite rules run.

The assembled list is published only when every step succeeded.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from constants import Constants
from common import properties as props
from common.logging_utils import extra_context, Timer
from analysis.rewrite import RewriteStage
from versioning.models import Coordinate
from versioning.parser import parse_coordinate_token
from versioning.service import ArtifactResolver
from .aggregator import Dependency, PartialListAggregator
from .io import read_bundle_list
from .models import BundleEntry, BundleList
from .overlay import ConfigOverlay, TextFilter

logger = logging.getLogger(__name__)

Customizer = Callable[[BundleList], None]


@dataclass(frozen=True)
class ProjectInfo:
    """Identity of the project whose bundle list is assembled."""
    group_id: str
    artifact_id: str
    version: str
    base_dir: Path = field(default_factory=Path.cwd)


@dataclass
class BuildConfig:
    """Everything the engine needs for one build; paths are absolute."""
    project: ProjectInfo
    bundle_list_file: Path
    config_directory: Path
    additional_properties: Path
    additional_bootstrap: Path
    work_dir: Path
    default_bundle_list: Coordinate = field(
        default_factory=lambda: parse_coordinate_token(Constants.DEFAULT_BUNDLE_LIST)
    )
    include_default_bundles: bool = True
    additional_bundles: List[BundleEntry] = field(default_factory=list)
    bundle_exclusions: List[BundleEntry] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    rewrite_rules: List[Path] = field(default_factory=list)

    @classmethod
    def for_project(cls, project: ProjectInfo, **overrides: Any) -> "BuildConfig":
        """Build a config with the conventional project layout under ``base_dir``."""
        base = Path(project.base_dir)
        defaults: Dict[str, Any] = {
            "bundle_list_file": base / Constants.BUNDLE_LIST_FILE,
            "config_directory": base / Constants.CONFIG_DIRECTORY,
            "additional_properties": base / Constants.ADDITIONAL_PROPERTIES,
            "additional_bootstrap": base / Constants.ADDITIONAL_BOOTSTRAP,
            "work_dir": base / Constants.WORK_DIR,
        }
        defaults.update(overrides)
        return cls(project=project, **defaults)


class BundleListEngine:
    """Assembles the bundle list and the merged launcher configuration."""

    def __init__(
        self,
        config: BuildConfig,
        resolver: ArtifactResolver,
        customizers: Sequence[Customizer] = (),
        rewrite: Optional[RewriteStage] = None,
        text_filter: Optional[TextFilter] = None,
    ):
        self.config = config
        self.resolver = resolver
        self.customizers = list(customizers)
        self.rewrite = rewrite or RewriteStage(config.rewrite_rules)
        self.overlay = ConfigOverlay(
            config.work_dir / Constants.OVERLAY_CONFIG_DIR,
            project_config_dir=config.config_directory,
            text_filter=text_filter,
            work_dir=config.work_dir,
        )
        self._bundle_list: Optional[BundleList] = None

    @property
    def bundle_list(self) -> Optional[BundleList]:
        """The assembled list, or None until :meth:`run` has succeeded."""
        return self._bundle_list

    def is_current_artifact(self, coordinate: Coordinate) -> bool:
        project = self.config.project
        return coordinate.group_id == project.group_id and coordinate.artifact_id == project.artifact_id

    def run(self) -> BundleList:
        """Run the whole pipeline.

        Raises:
            BundleListError: Any failure; accumulated overlay state is
                discarded and nothing is published.
        """
        # A repeated run starts from a clean overlay
        self.overlay.discard()
        self._bundle_list = None
        try:
            with Timer() as timer:
                working = self._initial_list()
                self._apply_project_changes(working)
                working = PartialListAggregator(self.resolver, self.overlay).aggregate(
                    working, self.config.dependencies
                )
                for customizer in self.customizers:
                    customizer(working)
                self.rewrite.rewrite(working, self.context_facts())
        except BaseException:
            self.overlay.discard()
            raise

        self._bundle_list = working
        logger.info(
            "Assembled bundle list with %d bundles",
            len(working),
            extra=extra_context(
                event="assembled",
                component="engine",
                project=f"{self.config.project.group_id}:{self.config.project.artifact_id}",
                count=len(working),
                duration_ms=timer.duration_ms(),
            )
        )
        return working

    def context_facts(self) -> Dict[str, Any]:
        """Named facts visible to rewrite rules."""
        return {
            "project": self.config.project,
            "session": {
                "work_dir": str(self.config.work_dir),
                "default_bundle_list": str(self.config.default_bundle_list),
                "include_default_bundles": self.config.include_default_bundles,
                "dependencies": [str(d.coordinate) for d in self.config.dependencies],
            },
        }

    def _initial_list(self) -> BundleList:
        config = self.config
        if self.is_current_artifact(config.default_bundle_list):
            return read_bundle_list(config.bundle_list_file)

        bundle_list = BundleList()
        if config.include_default_bundles:
            resolved = self.resolver.resolve(config.default_bundle_list)
            logger.info("Using bundle list file from %s", resolved.path.absolute())
            bundle_list = read_bundle_list(resolved.path)
        if config.bundle_list_file.exists():
            bundle_list.merge(read_bundle_list(config.bundle_list_file))
        return bundle_list

    def _apply_project_changes(self, bundle_list: BundleList) -> None:
        for entry in self.config.additional_bundles:
            bundle_list.add(entry)
        for entry in self.config.bundle_exclusions:
            if bundle_list.remove(entry) is not None:
                logger.debug("Excluded %s from the bundle list", entry)

    def get_properties(self) -> Optional[Dict[str, str]]:
        """Overlay properties with the project's additional properties on top."""
        merged = self.overlay.properties
        path = self.config.additional_properties
        if path.is_file():
            merged = merged or {}
            merged.update(props.loads(self.overlay.read_filtered(path)))
        return merged

    def get_bootstrap(self) -> Optional[str]:
        """Overlay bootstrap text with the project's bootstrap appended."""
        text = self.overlay.bootstrap
        path = self.config.additional_bootstrap
        if path.is_file():
            text = (text or "") + self.overlay.read_filtered(path)
        return text

    def get_config_directory(self) -> Optional[Path]:
        """The overlay directory once any overlay applied, else the project's."""
        directory = self.overlay.config_directory
        if directory is not None and directory.is_dir():
            return directory
        return None
