"""End-to-end tests for the bundle list assembly pipeline."""

import pytest
import yaml

from bundles.aggregator import Dependency
from bundles.engine import BuildConfig, BundleListEngine, ProjectInfo
from bundles.models import BundleEntry
from conftest import bundle_xml, install_artifact, write_zip
from errors import ArtifactNotFoundError, MalformedBundleListError, RuleDefinitionInvalidError
from versioning.models import Coordinate
from versioning.service import ArtifactResolver

DEFAULT_LIST = Coordinate("org.apache.sling", "org.apache.sling.launchpad", "7", "xml", "bundlelist")


@pytest.fixture
def project(tmp_path):
    base = tmp_path / "project"
    (base / "src" / "main" / "bundles").mkdir(parents=True)
    (base / "src" / "main" / "sling").mkdir(parents=True)
    (base / "src" / "main" / "config").mkdir(parents=True)
    return ProjectInfo("org.example", "my-launchpad", "1.0", base)


@pytest.fixture
def resolver(local_repo):
    install_artifact(local_repo, DEFAULT_LIST, "7", bundle_xml(
        (1, [("org.apache.felix", "framework", "1.0"), ("org.example", "unwanted", "1.0")]),
        (5, [("commons-io", "commons-io", "1.4")]),
    ).encode())
    return ArtifactResolver(local_repo, [])


def make_config(project, **overrides):
    overrides.setdefault("default_bundle_list", DEFAULT_LIST)
    return BuildConfig.for_project(project, **overrides)


def versions(bundle_list):
    return [(e.artifact_id, e.version) for e in bundle_list]


class TestInitialization:
    """Base list selection and project changes."""

    def test_default_list_then_project_file(self, project, resolver):
        """Test the project list merges over the default list."""
        (project.base_dir / "src/main/bundles/list.xml").write_text(
            bundle_xml((5, [("commons-io", "commons-io", "2.6"), ("org.example", "app", "1.0")]))
        )
        result = BundleListEngine(make_config(project), resolver).run()
        assert versions(result) == [
            ("framework", "1.0"), ("unwanted", "1.0"), ("commons-io", "2.6"), ("app", "1.0"),
        ]

    def test_without_default_bundles(self, project, resolver):
        """Test disabling default bundles starts from an empty list."""
        config = make_config(project, include_default_bundles=False)
        assert len(BundleListEngine(config, resolver).run()) == 0

    def test_project_is_the_default_list(self, project, resolver):
        """Test a project that is the default list uses its own file."""
        (project.base_dir / "src/main/bundles/list.xml").write_text(
            bundle_xml((1, [("org.example", "own", "1.0")]))
        )
        config = make_config(
            project, default_bundle_list=Coordinate("org.example", "my-launchpad", "1.0", "xml", "bundlelist")
        )
        assert versions(BundleListEngine(config, resolver).run()) == [("own", "1.0")]

    def test_additions_then_exclusions(self, project, resolver):
        """Test additions apply before lenient exclusions."""
        config = make_config(
            project,
            additional_bundles=[BundleEntry("org.example", "extra", "1.0", start_level=20)],
            bundle_exclusions=[
                BundleEntry("org.example", "unwanted", "*"),
                BundleEntry("org.example", "never-there", "*"),
            ],
        )
        result = BundleListEngine(config, resolver).run()
        assert versions(result) == [("framework", "1.0"), ("commons-io", "1.4"), ("extra", "1.0")]

    def test_missing_default_list(self, project, local_repo):
        """Test a missing default list fails and publishes nothing."""
        engine = BundleListEngine(make_config(project), ArtifactResolver(local_repo, []))
        with pytest.raises(ArtifactNotFoundError):
            engine.run()
        assert engine.bundle_list is None


class TestPartialLists:
    """Partial lists and their configuration through the engine."""

    def test_partial_reintroduces_exclusion_and_overlays_config(self, tmp_path, project, resolver, local_repo):
        """Test a partial list re-adds an exclusion and contributes configuration."""
        partial = Coordinate("org.example", "feature", "2.0", "partialbundlelist")
        install_artifact(local_repo, partial, "2.0", bundle_xml(
            (10, [("org.example", "unwanted", "2.0")])
        ).encode())
        config_zip = write_zip(tmp_path / "feature-config.zip", {
            "sling/sling.properties": "feature.enabled=true\nshared=feature\n",
            "sling/sling_bootstrap.txt": "uninstall old.bundle\n",
            "config/feature.cfg": "a=1\n",
        })
        install_artifact(
            local_repo,
            Coordinate("org.example", "feature", "2.0", "zip", "bundlelistconfig"),
            "2.0",
            config_zip.read_bytes(),
        )
        (project.base_dir / "src/main/sling/additional.properties").write_text("shared=project\n")
        (project.base_dir / "src/main/sling/bootstrap.txt").write_text("start app\n")
        (project.base_dir / "src/main/config/project.cfg").write_text("p=1\n")

        config = make_config(
            project,
            bundle_exclusions=[BundleEntry("org.example", "unwanted", "*")],
            dependencies=[Dependency(partial)],
        )
        engine = BundleListEngine(config, resolver)
        result = engine.run()

        assert result.find("org.example", "unwanted").version == "2.0"
        assert engine.get_properties() == {"feature.enabled": "true", "shared": "project"}
        assert engine.get_bootstrap() == "uninstall old.bundle\nstart app\n"
        config_dir = engine.get_config_directory()
        assert config_dir == config.work_dir / "tmpConfigDir"
        assert sorted(p.name for p in config_dir.iterdir()) == ["feature.cfg", "project.cfg"]
        assert list(config.work_dir.glob("bundlelist-config-*")) == []

    def test_accessors_are_repeatable(self, project, resolver):
        """Test accessors return the same result on every call."""
        (project.base_dir / "src/main/sling/bootstrap.txt").write_text("start app\n")
        engine = BundleListEngine(make_config(project), resolver)
        engine.run()
        assert engine.get_bootstrap() == "start app\n"
        assert engine.get_bootstrap() == "start app\n"
        assert engine.get_properties() is None
        assert engine.get_config_directory() == project.base_dir / "src/main/config"

    def test_second_run_does_not_accumulate_overlay(self, tmp_path, project, resolver, local_repo):
        """Test a second run yields the same configuration as the first."""
        partial = Coordinate("org.example", "feature", "2.0", "partialbundlelist")
        install_artifact(local_repo, partial, "2.0", bundle_xml((10, [("org.example", "f", "1")])).encode())
        config_zip = write_zip(tmp_path / "c.zip", {
            "sling/sling.properties": "k=v\n",
            "sling/sling_bootstrap.txt": "cmd\n",
        })
        install_artifact(
            local_repo,
            Coordinate("org.example", "feature", "2.0", "zip", "bundlelistconfig"),
            "2.0",
            config_zip.read_bytes(),
        )
        engine = BundleListEngine(make_config(project, dependencies=[Dependency(partial)]), resolver)

        first = engine.run()
        second = engine.run()
        assert first == second
        assert engine.bundle_list is second
        assert engine.get_bootstrap() == "cmd\n"
        assert engine.get_properties() == {"k": "v"}

    def test_malformed_partial_publishes_nothing(self, tmp_path, project, resolver):
        """Test a malformed partial list fails and publishes nothing."""
        bad = tmp_path / "bad.xml"
        bad.write_text("<bundles>")
        config = make_config(
            project,
            dependencies=[Dependency(Coordinate("org.example", "bad", "1.0", "partialbundlelist"), file=bad)],
        )
        engine = BundleListEngine(config, resolver)
        with pytest.raises(MalformedBundleListError):
            engine.run()
        assert engine.bundle_list is None


class TestCustomizersAndRewrite:
    """Hooks and rules run last, in that order."""

    def test_customizer_runs_before_rules(self, tmp_path, project, resolver):
        """Test customizers run after aggregation and before rewrite rules."""
        rules = tmp_path / "rules.yaml"
        rules.write_text(yaml.safe_dump({"rules": [{
            "name": "pin-custom",
            "when": {"artifact_id": "custom", "context": {"project.artifact_id": "my-launchpad"}},
            "then": [{"set": {"version": "9.9"}}],
        }]}))
        seen = []

        def customizer(bundle_list):
            seen.append(len(bundle_list))
            bundle_list.add(BundleEntry("org.example", "custom", "1.0"))

        config = make_config(project, rewrite_rules=[rules])
        engine = BundleListEngine(config, resolver, customizers=[customizer])
        result = engine.run()
        assert seen == [3]
        assert result.find("org.example", "custom").version == "9.9"
        assert engine.bundle_list is result

    def test_invalid_rules_discard_overlay(self, tmp_path, project, resolver, local_repo):
        """Test a rule failure discards overlay state."""
        partial = Coordinate("org.example", "feature", "2.0", "partialbundlelist")
        install_artifact(local_repo, partial, "2.0", bundle_xml((1, [("g", "a", "1")])).encode())
        config_zip = write_zip(tmp_path / "c.zip", {"sling/sling.properties": "k=v\n", "config/x.cfg": "x"})
        install_artifact(
            local_repo,
            Coordinate("org.example", "feature", "2.0", "zip", "bundlelistconfig"),
            "2.0",
            config_zip.read_bytes(),
        )
        rules = tmp_path / "rules.yaml"
        rules.write_text("rules: [")
        config = make_config(project, dependencies=[Dependency(partial)], rewrite_rules=[rules])
        engine = BundleListEngine(config, resolver)

        with pytest.raises(RuleDefinitionInvalidError):
            engine.run()
        assert engine.bundle_list is None
        assert engine.overlay.properties is None
        assert not (config.work_dir / "tmpConfigDir").exists()

    def test_context_facts(self, project, resolver):
        """Test rules see the project and session facts."""
        facts = BundleListEngine(make_config(project), resolver).context_facts()
        assert facts["project"] is project
        assert facts["session"]["include_default_bundles"] is True
