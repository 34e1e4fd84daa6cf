import logging
from typing import Dict, Iterable, List

from git_descendants.dag.models import Graph
from git_descendants.git_objects.models import COMMIT, CommitObject
from git_descendants.store import CommitStore

logger = logging.getLogger(__name__)


def root_commits_by_refs(store: CommitStore) -> List[CommitObject]:
    """The commit at the tip of every reference, in reference order.

    References that do not peel to a commit are skipped. The same commit
    appears once per reference pointing at it.
    """
    commits = []
    for name, oid in store.references():
        commit = store.peel_to_commit(oid)
        if commit is None:
            logger.debug("Reference %s (%s) does not point at a commit, skipping", name, oid)
            continue
        commits.append(commit)
    return commits


def traverse_from_roots(store: CommitStore, starts: Iterable[CommitObject]) -> Dict[str, CommitObject]:
    """Every commit reachable from ``starts`` by parent edges, keyed by id.

    Iterative depth-first walk: long linear histories must not hit the
    recursion limit. Any unreadable commit aborts the walk.
    """
    visited: Dict[str, CommitObject] = {}
    stack = [commit.oid for commit in starts]
    while stack:
        oid = stack.pop()
        if oid in visited:
            continue
        commit = store.commit_by_id(oid)
        stack.extend(commit.parent_oids)
        visited[oid] = commit
    logger.debug("Traversal reached %d commits", len(visited))
    return visited


def commits_only(store: CommitStore) -> Dict[str, CommitObject]:
    """Every commit object in the store, reachable or not, in enumeration order."""
    commits = {}
    for oid, kind in store.all_object_ids_with_kind():
        if kind == COMMIT:
            commits[oid] = store.commit_by_id(oid)
    logger.debug("Store holds %d commit objects", len(commits))
    return commits


def build_graph(commits: Iterable[CommitObject]) -> Graph:
    graph = Graph()
    for commit in commits:
        graph.add(commit)
    return graph


def graph_from_refs(store: CommitStore) -> Graph:
    roots = root_commits_by_refs(store)
    return build_graph(traverse_from_roots(store, roots).values())


def graph_from_all(store: CommitStore) -> Graph:
    return build_graph(commits_only(store).values())


def get_graph(store: CommitStore, all_commits: bool = False) -> Graph:
    if all_commits:
        return graph_from_all(store)
    return graph_from_refs(store)


def lost_commits(store: CommitStore) -> List[CommitObject]:
    """Commits in the store that no reference can reach, oldest first.

    Commits with equal timestamps keep the store's enumeration order.
    """
    all_commits = commits_only(store)
    reachable = traverse_from_roots(store, root_commits_by_refs(store))
    lost = [commit for oid, commit in all_commits.items() if oid not in reachable]
    lost.sort(key=lambda commit: commit.commit_time)
    logger.debug("%d of %d commits are unreachable from references", len(lost), len(all_commits))
    return lost
