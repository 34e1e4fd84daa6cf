from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from git_descendants.errors import GraphAssemblyError
from git_descendants.git_objects.models import CommitObject


@dataclass
class Node:
    parents: List[str] = field(default_factory=list)
    children: List[str] = field(default_factory=list)


class Graph:
    """Parent and child adjacency for a set of commits.

    Commits are added one at a time; each add records the commit's own
    parents and appends the commit to every parent's children. A parent that
    has not been added yet gets a placeholder node, so edges never depend on
    insertion order.
    """

    def __init__(self):
        self.nodes: Dict[str, Node] = {}
        self._added: Set[str] = set()

    def add(self, commit: CommitObject):
        oid = commit.oid
        if oid is None:
            raise GraphAssemblyError("Cannot add a commit without an object id")
        if oid in self._added:
            # each commit is visited exactly once by traversal; a second add is a bug upstream
            raise GraphAssemblyError(f"Commit {oid} was already added to the graph")
        self._added.add(oid)

        node = self.nodes.setdefault(oid, Node())
        node.parents = list(commit.parent_oids)
        for parent_oid in node.parents:
            self.nodes.setdefault(parent_oid, Node()).children.append(oid)

    def children_of(self, oid: str) -> Optional[List[str]]:
        """Recorded children of ``oid``; None when the graph never saw it."""
        node = self.nodes.get(oid)
        if node is None:
            return None
        return node.children

    def parents_of(self, oid: str) -> Optional[List[str]]:
        node = self.nodes.get(oid)
        if node is None:
            return None
        return node.parents

    def edges(self) -> Iterator[Tuple[str, str]]:
        """Every (parent, child) pair, once per recorded parent edge."""
        for oid in sorted(self.nodes):
            for child in self.nodes[oid].children:
                yield oid, child

    def is_placeholder(self, oid: str) -> bool:
        """True for ids known only because some added commit names them as a parent."""
        return oid in self.nodes and oid not in self._added

    def __contains__(self, oid: object) -> bool:
        return oid in self.nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)
