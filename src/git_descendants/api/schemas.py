from typing import Dict, List, Optional
from pydantic import BaseModel, RootModel

from git_descendants.dag.models import Graph
from git_descendants.git_objects.models import CommitObject


class CommitResponse(BaseModel):
    oid: str
    tree_oid: str
    parent_oids: List[str]
    author: str
    committer: str
    message: str
    summary: Optional[str] = None
    commit_time: int

    @classmethod
    def from_commit(cls, commit: CommitObject) -> "CommitResponse":
        return cls(
            oid=commit.oid or "",
            tree_oid=commit.tree_oid,
            parent_oids=commit.parent_oids,
            author=commit.author,
            committer=commit.committer,
            message=commit.message,
            summary=commit.summary,
            commit_time=commit.commit_time,
        )


class NodeResponse(BaseModel):
    parents: List[str]
    children: List[str]


class GraphResponse(RootModel[Dict[str, NodeResponse]]):
    """``{oid: {"parents": [...], "children": [...]}}`` with ids sorted."""

    @classmethod
    def from_graph(cls, graph: Graph) -> "GraphResponse":
        return cls(
            {
                oid: NodeResponse(parents=graph.nodes[oid].parents, children=graph.nodes[oid].children)
                for oid in sorted(graph.nodes)
            }
        )


class GraphEdge(BaseModel):
    source: str
    target: str


class HealthResponse(BaseModel):
    status: str
    repo: str
