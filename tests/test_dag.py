import pytest
from git_descendants.dag.builder import (
    commits_only, get_graph, graph_from_all, graph_from_refs, lost_commits, root_commits_by_refs,
    traverse_from_roots,
)
from git_descendants.errors import ObjectNotFoundError
from git_descendants.git_objects.models import BLOB, RawObject, TagObject, COMMIT
from git_descendants.store import GitDirStore


@pytest.fixture
def diamond(memory_store):
    #   A
    #  / \
    # B   C
    #  \ /
    #   D  <- main, feature
    memory_store.add_commit("A", [], when=1)
    memory_store.add_commit("B", ["A"], when=2)
    memory_store.add_commit("C", ["A"], when=3)
    memory_store.add_commit("D", ["B", "C"], when=4)
    memory_store.set_ref("refs/heads/main", "D")
    memory_store.set_ref("refs/heads/feature", "D")
    return memory_store


def test_roots_follow_reference_order_without_dedup(diamond):
    diamond.set_ref("refs/heads/old", "B")
    roots = root_commits_by_refs(diamond)
    assert [c.oid for c in roots] == ["D", "D", "B"]


def test_roots_skip_non_commit_references(memory_store):
    memory_store.add_commit("A")
    memory_store.add_object("blob1", RawObject(kind=BLOB, data=b"x"))
    memory_store.add_object("tag1", TagObject(object_oid="A", object_type=COMMIT, tag="v1"))
    memory_store.set_ref("refs/tags/blob", "blob1")
    memory_store.set_ref("refs/tags/v1", "tag1")
    memory_store.set_ref("refs/heads/gone", "missing")

    assert [c.oid for c in root_commits_by_refs(memory_store)] == ["A"]


def test_traversal_visits_each_commit_once(diamond):
    reachable = traverse_from_roots(diamond, root_commits_by_refs(diamond))

    assert set(reachable) == {"A", "B", "C", "D"}
    # reached through B and through C, and from two refs, but fetched once
    assert diamond.lookups["A"] == 1
    assert diamond.lookups["D"] == 1


def test_traversal_is_repeatable(diamond):
    starts = root_commits_by_refs(diamond)
    assert set(traverse_from_roots(diamond, starts)) == set(traverse_from_roots(diamond, starts))


def test_traversal_of_long_history_does_not_recurse(memory_store):
    previous = []
    for i in range(5000):
        memory_store.add_commit(f"c{i}", previous)
        previous = [f"c{i}"]
    memory_store.set_ref("refs/heads/main", "c4999")

    assert len(traverse_from_roots(memory_store, root_commits_by_refs(memory_store))) == 5000


def test_traversal_aborts_on_missing_parent(memory_store):
    memory_store.add_commit("B", ["A"])
    memory_store.set_ref("refs/heads/main", "B")

    with pytest.raises(ObjectNotFoundError):
        traverse_from_roots(memory_store, root_commits_by_refs(memory_store))


def test_graph_from_refs_diamond(diamond):
    graph = graph_from_refs(diamond)
    assert sorted(graph.children_of("A")) == ["B", "C"]
    assert graph.children_of("D") == []
    assert graph.parents_of("D") == ["B", "C"]


def test_graph_from_refs_ignores_unreachable(diamond):
    diamond.add_commit("E", ["A"], when=5)
    graph = graph_from_refs(diamond)
    assert "E" not in graph
    assert "E" not in graph.children_of("A")

    full = graph_from_all(diamond)
    assert sorted(full.children_of("A")) == ["B", "C", "E"]
    assert get_graph(diamond, all_commits=True).nodes == full.nodes


def test_commits_only_filters_kinds(memory_store):
    memory_store.add_commit("A")
    memory_store.add_object("blob1", RawObject(kind=BLOB))
    assert list(commits_only(memory_store)) == ["A"]


def test_lost_commits_sorted_by_time(memory_store):
    memory_store.add_commit("A", when=10)
    memory_store.add_commit("C", when=30)
    memory_store.add_commit("B", when=20)
    memory_store.set_ref("refs/heads/main", "A")

    assert [c.oid for c in lost_commits(memory_store)] == ["B", "C"]


def test_lost_commits_ties_keep_enumeration_order(memory_store):
    memory_store.add_commit("A", when=10)
    memory_store.add_commit("Y", when=20)
    memory_store.add_commit("X", when=20)
    memory_store.set_ref("refs/heads/main", "A")

    assert [c.oid for c in lost_commits(memory_store)] == ["Y", "X"]


def test_lost_excludes_parents_of_referenced_commits(diamond):
    assert lost_commits(diamond) == []


def test_scenario_on_disk(scenario_repo):
    repo, ids = scenario_repo
    a, b, c, d = ids["A"], ids["B"], ids["C"], ids["D"]

    with GitDirStore(repo.git_dir) as store:
        assert [commit.oid for commit in root_commits_by_refs(store)] == [c]

        graph = graph_from_refs(store)
        assert set(graph) == {a, b, c}
        assert graph.children_of(a) == [b]
        assert graph.children_of(b) == [c]
        assert graph.children_of(c) == []

        assert [commit.oid for commit in lost_commits(store)] == [d]

        full = graph_from_all(store)
        assert sorted(full.children_of(a)) == sorted([b, d])
