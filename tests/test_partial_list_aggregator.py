"""Tests for folding partial bundle lists into the working list."""

from unittest.mock import Mock

import pytest

from bundles.aggregator import Dependency, PartialListAggregator
from bundles.models import BundleEntry, BundleList
from bundles.overlay import ConfigOverlay
from conftest import bundle_xml, write_zip
from errors import ArtifactNotFoundError, MalformedBundleListError
from versioning.models import Coordinate, ResolvedArtifact


class FakeResolver:
    """Resolver serving artifacts from a ``{(artifact_id, type): path}`` map."""

    def __init__(self, artifacts=None):
        self.artifacts = dict(artifacts or {})
        self.requests = []

    def resolve(self, coordinate):
        self.requests.append(coordinate)
        path = self.artifacts.get((coordinate.artifact_id, coordinate.type))
        if path is None:
            raise ArtifactNotFoundError(f"Unable to find artifact {coordinate}", coordinate=coordinate)
        return ResolvedArtifact(coordinate=coordinate, version=coordinate.version, path=path)


def partial(artifact_id, file=None, version="1.0"):
    return Dependency(Coordinate("org.example", artifact_id, version, "partialbundlelist"), file=file)


@pytest.fixture
def overlay(tmp_path):
    return ConfigOverlay(tmp_path / "target" / "overlay", work_dir=tmp_path / "target")


class TestAggregate:
    """Merging partial lists in declaration order."""

    def test_partial_list_reintroduces_excluded_entry(self, tmp_path):
        """Test a partial list can re-add an excluded entry."""
        working = BundleList([BundleEntry("g", "kept", "1")])
        working.remove(BundleEntry("g", "excluded", "1"))
        part = tmp_path / "p.xml"
        part.write_text(bundle_xml((5, [("g", "excluded", "2")])))

        result = PartialListAggregator(FakeResolver()).aggregate(working, [partial("p", file=part)])
        assert [e.artifact_id for e in result] == ["kept", "excluded"]

    def test_declaration_order_and_override(self, tmp_path):
        """Test partial lists merge in declaration order."""
        first = tmp_path / "first.xml"
        first.write_text(bundle_xml((1, [("g", "a", "1"), ("g", "b", "1")])))
        second = tmp_path / "second.xml"
        second.write_text(bundle_xml((2, [("g", "a", "2")])))
        working = BundleList([BundleEntry("g", "base", "1")])

        result = PartialListAggregator(FakeResolver()).aggregate(
            working, [partial("first", file=first), partial("second", file=second)]
        )
        assert [(e.artifact_id, e.version, e.start_level) for e in result] == [
            ("base", "1", 0), ("a", "2", 2), ("b", "1", 1),
        ]

    def test_other_dependency_types_ignored(self, tmp_path):
        """Test non-partial dependencies are ignored."""
        jar = Dependency(Coordinate("g", "lib", "1.0"), file=tmp_path / "lib.jar")
        resolver = FakeResolver()
        result = PartialListAggregator(resolver).aggregate(BundleList(), [jar])
        assert len(result) == 0
        assert resolver.requests == []

    def test_partial_without_file_is_resolved(self, tmp_path):
        """Test a partial list without a file is resolved."""
        part = tmp_path / "resolved.xml"
        part.write_text(bundle_xml((1, [("g", "a", "1")])))
        resolver = FakeResolver({("p", "partialbundlelist"): part})
        result = PartialListAggregator(resolver).aggregate(BundleList(), [partial("p")])
        assert result.find("g", "a") is not None

    def test_malformed_partial_aborts_without_touching_input(self, tmp_path):
        """Test a malformed partial list leaves the input list unchanged."""
        good = tmp_path / "good.xml"
        good.write_text(bundle_xml((1, [("g", "new", "1")])))
        bad = tmp_path / "bad.xml"
        bad.write_text("<bundles><startLevel level='1'>")
        working = BundleList([BundleEntry("g", "base", "1")])
        snapshot = working.copy()

        with pytest.raises(MalformedBundleListError) as exc_info:
            PartialListAggregator(FakeResolver()).aggregate(
                working, [partial("good", file=good), partial("bad", file=bad)]
            )
        assert "bad.xml" in str(exc_info.value)
        assert working == snapshot


class TestConfigCompanion:
    """Locating and applying configuration companions."""

    def test_missing_companion_is_tolerated(self, tmp_path, overlay):
        """Test a missing config companion is skipped."""
        part = tmp_path / "p.xml"
        part.write_text(bundle_xml((1, [("g", "a", "1")])))
        resolver = FakeResolver()
        result = PartialListAggregator(resolver, overlay).aggregate(BundleList(), [partial("p", file=part)])
        assert len(result) == 1
        companion = resolver.requests[-1]
        assert (companion.type, companion.classifier, companion.version) == ("zip", "bundlelistconfig", "1.0")
        assert overlay.properties is None

    def test_companion_applied_to_overlay(self, tmp_path, overlay):
        """Test a found companion is applied to the overlay."""
        part = tmp_path / "p.xml"
        part.write_text(bundle_xml((1, [("g", "a", "1")])))
        config = write_zip(tmp_path / "p-config.zip", {"sling/sling.properties": "from.partial=true\n"})
        resolver = FakeResolver({("p", "zip"): config})

        PartialListAggregator(resolver, overlay).aggregate(BundleList(), [partial("p", file=part)])
        assert overlay.properties == {"from.partial": "true"}

    def test_companion_uses_resolved_version(self, tmp_path):
        """Test the companion uses the partial list's resolved version."""
        part = tmp_path / "p.xml"
        part.write_text(bundle_xml((1, [("g", "a", "1")])))
        resolver = Mock()
        resolver.resolve.side_effect = [
            ResolvedArtifact(Coordinate("org.example", "p", "[1,2)", "partialbundlelist"), "1.5", part),
            ArtifactNotFoundError("absent"),
        ]
        PartialListAggregator(resolver).aggregate(BundleList(), [partial("p", version="[1,2)")])
        companion = resolver.resolve.call_args_list[1][0][0]
        assert companion.version == "1.5"

    def test_companion_without_overlay_is_skipped(self, tmp_path):
        """Test companions are ignored when no overlay is configured."""
        part = tmp_path / "p.xml"
        part.write_text(bundle_xml((1, [("g", "a", "1")])))
        config = write_zip(tmp_path / "c.zip", {"sling/sling.properties": "k=v\n"})
        resolver = FakeResolver({("p", "zip"): config})
        result = PartialListAggregator(resolver).aggregate(BundleList(), [partial("p", file=part)])
        assert len(result) == 1
