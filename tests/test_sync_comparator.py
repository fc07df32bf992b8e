"""Tests for congruence and manifest comparison."""

import pytest

from favsync.models import LinkNode, ResourceType, StoreKind
from favsync.sync.comparator import (
    CongruenceIndex,
    CongruenceMatcher,
    ManifestComparator,
    OperationKind,
    SyncOperation,
)


def link(title="site", hierarchy=(), url="http://example.com", store=StoreKind.FAVORITES):
    return LinkNode(ResourceType.LINK, title, hierarchy, url=url, store=store)


def directory(title, hierarchy=(), store=StoreKind.FAVORITES, **kwargs):
    return LinkNode(ResourceType.DIRECTORY, title, hierarchy, store=store, **kwargs)


class TestCongruenceMatcher:
    """Tests for structural equivalence."""

    def test_links_congruent_across_stores(self):
        """A bookmark and a favorite with equal fields are congruent."""
        favorite = link(hierarchy=("Links", "Work"))
        bookmark = link(hierarchy=("Links", "Work"), store=StoreKind.BOOKMARKS)
        bookmark.row_id = 99
        assert CongruenceMatcher.is_congruent(favorite, bookmark)

    @pytest.mark.parametrize(
        "other",
        [
            link(url="http://other.example"),
            link(title="other"),
            link(hierarchy=("Links",)),
        ],
    )
    def test_links_differ(self, other):
        assert not CongruenceMatcher.is_congruent(link(), other)

    def test_directories_ignore_url_rule(self):
        assert CongruenceMatcher.is_congruent(directory("Work"), directory("Work"))
        assert not CongruenceMatcher.is_congruent(
            directory("Work"), directory("Work", ("Links",))
        )

    def test_link_and_directory_never_congruent(self):
        dir_node = directory("site")
        assert not CongruenceMatcher.is_congruent(link(), dir_node)

    def test_toolbar_congruent_to_favorites_bar(self):
        """The root-level toolbar container matches the Links folder."""
        toolbar = directory("Bookmarks Toolbar", store=StoreKind.BOOKMARKS)
        assert CongruenceMatcher.is_congruent(toolbar, directory("Links"))
        nested = directory("Bookmarks Toolbar", ("Work",), store=StoreKind.BOOKMARKS)
        assert not CongruenceMatcher.is_congruent(nested, directory("Links", ("Work",)))

    def test_unresolved_uses_link_rule(self):
        a = LinkNode(ResourceType.UNRESOLVED, "x", url="place:sort=8")
        b = LinkNode(ResourceType.UNRESOLVED, "x", url="place:sort=8")
        c = LinkNode(ResourceType.UNRESOLVED, "x", url="place:sort=9")
        assert CongruenceMatcher.is_congruent(a, b)
        assert not CongruenceMatcher.is_congruent(a, c)

    def test_symmetry(self):
        nodes = [
            link(),
            link(hierarchy=("Links",)),
            directory("Links"),
            directory("Bookmarks Toolbar", store=StoreKind.BOOKMARKS),
            directory("Work", ("Links",)),
        ]
        for a in nodes:
            for b in nodes:
                assert CongruenceMatcher.is_congruent(
                    a, b
                ) == CongruenceMatcher.is_congruent(b, a)

    def test_is_child_of_through_toolbar(self):
        toolbar = directory("Bookmarks Toolbar", store=StoreKind.BOOKMARKS)
        assert CongruenceMatcher.is_child_of(link(hierarchy=("Links", "Work")), toolbar)

    def test_is_child_of_requires_directory(self):
        assert not CongruenceMatcher.is_child_of(link(hierarchy=("site",)), link())

    def test_find_congruent(self):
        target = link(hierarchy=("Links",))
        candidates = [directory("Links"), link(), target]
        assert CongruenceMatcher.find_congruent(link(hierarchy=("Links",)), candidates) is (
            target
        )
        assert CongruenceMatcher.find_congruent(link(title="nope"), candidates) is None


class TestCongruenceIndex:
    """Tests for CongruenceIndex."""

    def test_contains_and_find(self):
        first = link()
        index = CongruenceIndex([first, link(), directory("Work")])
        assert len(index) == 3
        assert link() in index
        assert index.find(link()) is first
        assert link(title="other") not in index
        assert "not a node" not in index


class TestManifestComparator:
    """Tests for ClassifyAdds, ClassifyRemoves and CrossDedup."""

    @pytest.fixture
    def comparator(self):
        return ManifestComparator()

    def test_first_run_adds_everything_live(self, comparator):
        live = [directory("Work"), link(hierarchy=("Work",))]
        operations = comparator.classify_adds(StoreKind.FAVORITES, live, [])
        assert [op.subject for op in operations] == live
        assert all(op.kind == OperationKind.ADD for op in operations)
        assert all(op.target == StoreKind.BOOKMARKS for op in operations)

    def test_adds_skip_known_excluded_and_system(self, comparator):
        known = link(title="known")
        excluded = link(title="excluded")
        excluded.excluded = True
        system = directory("Links", system_entry=True)
        new = link(title="new")

        operations = comparator.classify_adds(
            StoreKind.FAVORITES,
            [known, excluded, system, new],
            [link(title="known")],
        )
        assert [op.subject for op in operations] == [new]

    def test_removes_for_vanished_entries(self, comparator):
        gone = link(title="gone", store=StoreKind.BOOKMARKS)
        kept = link(title="kept", store=StoreKind.BOOKMARKS)
        operations = comparator.classify_removes(
            StoreKind.BOOKMARKS,
            [link(title="kept", store=StoreKind.BOOKMARKS)],
            [gone, kept],
        )
        assert len(operations) == 1
        assert operations[0].subject is gone
        assert operations[0].kind == OperationKind.REMOVE
        assert operations[0].target == StoreKind.FAVORITES

    def test_removes_ignore_system_entries(self, comparator):
        system = directory("Tags", store=StoreKind.BOOKMARKS, system_entry=True)
        assert comparator.classify_removes(StoreKind.BOOKMARKS, [], [system]) == []

    def test_dedup_drops_add_present_on_target(self, comparator):
        """A link live on both sides yields no add in either direction."""
        favorite = link(hierarchy=("Links",))
        bookmark = link(hierarchy=("Links",), store=StoreKind.BOOKMARKS)
        operations = [
            SyncOperation(StoreKind.FAVORITES, OperationKind.ADD, favorite),
            SyncOperation(StoreKind.BOOKMARKS, OperationKind.ADD, bookmark),
        ]
        live = {StoreKind.FAVORITES: [favorite], StoreKind.BOOKMARKS: [bookmark]}
        assert comparator.cross_dedup(operations, live) == []

    def test_dedup_keeps_add_missing_on_target(self, comparator):
        favorite = link()
        operation = SyncOperation(StoreKind.FAVORITES, OperationKind.ADD, favorite)
        live = {StoreKind.FAVORITES: [favorite], StoreKind.BOOKMARKS: []}
        assert comparator.cross_dedup([operation], live) == [operation]

    def test_dedup_keeps_remove_present_on_target(self, comparator):
        gone = link(store=StoreKind.BOOKMARKS)
        counterpart = link()
        operation = SyncOperation(StoreKind.BOOKMARKS, OperationKind.REMOVE, gone)
        live = {StoreKind.FAVORITES: [counterpart], StoreKind.BOOKMARKS: []}
        assert comparator.cross_dedup([operation], live) == [operation]

    def test_dedup_drops_remove_absent_on_target(self, comparator):
        """Nothing to delete when the other side lacks the entry too."""
        gone = link(store=StoreKind.BOOKMARKS)
        operation = SyncOperation(StoreKind.BOOKMARKS, OperationKind.REMOVE, gone)
        live = {StoreKind.FAVORITES: [], StoreKind.BOOKMARKS: []}
        assert comparator.cross_dedup([operation], live) == []

    def test_operation_str(self):
        operation = SyncOperation(
            StoreKind.FAVORITES, OperationKind.ADD, link(hierarchy=("Links",))
        )
        assert str(operation) == (
            "add link /Links/site (Favorites -> Firefox bookmarks)"
        )
