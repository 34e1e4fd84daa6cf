import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from git_descendants.api.schemas import CommitResponse, GraphEdge, GraphResponse
from git_descendants.dag import builder
from git_descendants.dag.models import Graph
from git_descendants.errors import RevisionError
from git_descendants.store import GitDirStore

logger = logging.getLogger(__name__)


class GitService:
    """Graph queries over one repository, with the built graphs cached.

    Graphs are cached per mode (refs only, or every stored commit) until
    :meth:`refresh` is called. FastAPI runs sync endpoints on a thread pool,
    so builds are serialised behind a lock.
    """

    def __init__(self, git_dir: Path = Path(".")):
        self.git_dir = git_dir.resolve()
        self._graphs: Dict[bool, Graph] = {}
        self._lock = threading.Lock()

    def refresh(self):
        """Drops the cached graphs; the next query rebuilds them."""
        with self._lock:
            self._graphs = {}
        logger.info("Dropped cached graphs for %s", self.git_dir)

    def _store(self) -> GitDirStore:
        return GitDirStore.open(self.git_dir)

    def _graph(self, store: GitDirStore, all_commits: bool) -> Graph:
        with self._lock:
            graph = self._graphs.get(all_commits)
            if graph is None:
                graph = builder.get_graph(store, all_commits)
                self._graphs[all_commits] = graph
                logger.info("Built %s graph with %d nodes", "full" if all_commits else "ref", len(graph))
            return graph

    def get_graph(self, all_commits: bool = False) -> GraphResponse:
        with self._store() as store:
            return GraphResponse.from_graph(self._graph(store, all_commits))

    def get_edges(self, all_commits: bool = False) -> List[GraphEdge]:
        with self._store() as store:
            graph = self._graph(store, all_commits)
        return [GraphEdge(source=parent, target=child) for parent, child in graph.edges()]

    def get_roots(self) -> List[CommitResponse]:
        with self._store() as store:
            return [CommitResponse.from_commit(c) for c in builder.root_commits_by_refs(store)]

    def get_children(self, revision: str, all_commits: bool = False) -> Optional[List[CommitResponse]]:
        """Children of ``revision``; None when it does not resolve."""
        with self._store() as store:
            try:
                oid = store.rev_parse(revision)
            except RevisionError:
                return None
            child_oids = self._graph(store, all_commits).children_of(oid) or []
            return [CommitResponse.from_commit(store.commit_by_id(child)) for child in child_oids]

    def get_lost(self) -> List[CommitResponse]:
        with self._store() as store:
            return [CommitResponse.from_commit(c) for c in builder.lost_commits(store)]
