"""Tests for the bundle list model."""

import pytest

from bundles.models import BundleEntry, BundleList
from errors import EntryNotFoundError
from versioning.models import Coordinate


def entry(artifact_id, version="1.0", group_id="org.example", **kwargs):
    return BundleEntry(group_id=group_id, artifact_id=artifact_id, version=version, **kwargs)


class TestBundleEntry:
    """Tests for BundleEntry normalization and identity."""

    def test_identity_ignores_version_and_type(self):
        """Test identity is group, artifact and classifier only."""
        a = entry("core", "1.0", type="jar")
        b = entry("core", "2.0", type="war", start_level=5)
        assert a.identity == b.identity

    def test_classifier_is_part_of_identity(self):
        """Test classified entries are distinct from unclassified ones."""
        assert entry("core").identity != entry("core", classifier="api").identity

    def test_blank_classifier_means_none(self):
        """Test a blank classifier normalises to None."""
        assert entry("core", classifier="  ").classifier is None

    def test_run_modes_from_comma_string(self):
        """Test run modes parse from a comma separated string."""
        e = entry("core", run_modes="author, publish,")
        assert e.run_modes == frozenset({"author", "publish"})

    def test_from_coordinate(self):
        """Test building an entry from a coordinate."""
        coord = Coordinate("org.example", "core", "1.2", "jar", "api")
        e = BundleEntry.from_coordinate(coord, start_level=10, run_modes=["author"])
        assert e.coordinate == coord
        assert e.start_level == 10
        assert e.run_modes == frozenset({"author"})

    def test_to_dict_sorts_run_modes(self):
        """Test to_dict renders run modes sorted."""
        e = entry("core", run_modes=["publish", "author"])
        assert e.to_dict()["run_modes"] == ["author", "publish"]


class TestAdd:
    """Tests for add with last-write-wins."""

    def test_no_duplicate_identities_after_repeated_adds(self):
        """Test repeated adds never create duplicate identities."""
        bl = BundleList()
        for version in ("1.0", "1.1", "1.2"):
            bl.add(entry("core", version))
            bl.add(entry("api", version))
        assert len(bl) == 2
        assert bl.find("org.example", "core").version == "1.2"
        assert bl.find("org.example", "api").version == "1.2"

    def test_override_keeps_position(self):
        """Test an overriding add keeps the original position."""
        bl = BundleList([entry("a"), entry("b"), entry("c")])
        bl.add(entry("a", "9.0", start_level=20))
        assert [e.artifact_id for e in bl] == ["a", "b", "c"]
        assert bl.find("org.example", "a").start_level == 20

    def test_add_stores_a_copy(self):
        """Test the list is isolated from later changes to the added entry."""
        e = entry("core")
        bl = BundleList()
        bl.add(e)
        e.version = "changed"
        assert bl.find("org.example", "core").version == "1.0"

    def test_initialize_from_later_duplicates_win(self):
        """Test initialize_from applies add semantics to duplicates."""
        bl = BundleList.initialize_from([entry("a", "1"), entry("b"), entry("a", "2")])
        assert [(e.artifact_id, e.version) for e in bl] == [("a", "2"), ("b", "1.0")]


class TestMerge:
    """Tests for merge."""

    def test_other_wins_on_shared_identity_and_appends_new(self):
        """Test merge overrides shared identities and appends new ones."""
        a = BundleList([entry("n", "v1")])
        b = BundleList([entry("n", "v2"), entry("m", "v3")])
        a.merge(b)
        assert [(e.artifact_id, e.version) for e in a] == [("n", "v2"), ("m", "v3")]

    def test_merge_is_not_commutative(self):
        """Test merge order decides which attributes win."""
        a1 = BundleList([entry("n", "v1")])
        b1 = BundleList([entry("n", "v2")])
        a2, b2 = a1.copy(), b1.copy()
        a1.merge(b1)
        b2.merge(a2)
        assert a1.find("org.example", "n").version == "v2"
        assert b2.find("org.example", "n").version == "v1"

    def test_receiver_entries_survive(self):
        """Test merge keeps entries only the receiver has."""
        a = BundleList([entry("keep"), entry("n", "v1")])
        a.merge(BundleList([entry("n", "v2")]))
        assert [e.artifact_id for e in a] == ["keep", "n"]


class TestRemove:
    """Tests for strict and lenient removal."""

    def test_strict_remove_on_empty_list_raises(self):
        """Test strict removal of an absent entry raises EntryNotFoundError."""
        with pytest.raises(EntryNotFoundError):
            BundleList().remove(entry("core"), fail_if_absent=True)

    def test_lenient_remove_is_noop(self):
        """Test lenient removal of an absent entry leaves the list unchanged."""
        bl = BundleList([entry("a")])
        assert bl.remove(entry("missing")) is None
        assert bl == BundleList([entry("a")])

    def test_remove_matches_identity_not_version(self):
        """Test removal matches by identity regardless of version."""
        bl = BundleList([entry("a", "1.0"), entry("b")])
        removed = bl.remove(entry("a", "9.9"))
        assert removed.version == "1.0"
        assert "a" not in [e.artifact_id for e in bl]


class TestUpdate:
    """Tests for in-place updates."""

    def test_update_version_in_place(self):
        """Test update changes attributes without moving the entry."""
        bl = BundleList([entry("a"), entry("b")])
        bl.update(("org.example", "a", None), version="2.0")
        assert [(e.artifact_id, e.version) for e in bl] == [("a", "2.0"), ("b", "1.0")]

    def test_rename_keeps_position_and_drops_clash(self):
        """Test an identity change keeps position and replaces a clashing entry."""
        bl = BundleList([entry("a"), entry("b"), entry("c")])
        bl.update(("org.example", "a", None), artifact_id="c")
        assert [e.artifact_id for e in bl] == ["c", "b"]

    def test_update_missing_raises(self):
        """Test updating an absent identity raises EntryNotFoundError."""
        with pytest.raises(EntryNotFoundError):
            BundleList().update(("org.example", "a", None), version="2.0")


class TestViews:
    """Tests for grouping and containment helpers."""

    def test_start_levels_grouped_and_sorted(self):
        """Test start_levels groups entries by ascending level."""
        bl = BundleList([entry("a", start_level=5), entry("b", start_level=1), entry("c", start_level=5)])
        levels = bl.start_levels()
        assert [level for level, _ in levels] == [1, 5]
        assert [e.artifact_id for e in levels[1][1]] == ["a", "c"]

    def test_contains_entry_or_identity(self):
        """Test membership by entry or identity tuple."""
        bl = BundleList([entry("a")])
        assert entry("a", "other") in bl
        assert ("org.example", "a", None) in bl
        assert entry("b") not in bl

    def test_iteration_tolerates_mutation(self):
        """Test the list can be modified while iterating over it."""
        bl = BundleList([entry("a"), entry("b")])
        for e in bl:
            bl.remove(e)
        assert len(bl) == 0
