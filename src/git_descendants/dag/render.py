"""Text renderings of graphs and commits for the command line."""
from rich.text import Text

from git_descendants.api.schemas import GraphResponse
from git_descendants.dag.models import Graph
from git_descendants.git_objects.models import CommitObject

NO_SUMMARY = "<no summary>"
DATE_FORMAT = "%a %b %d %H:%M:%S %Y %z"


def graph_to_json(graph: Graph) -> str:
    return GraphResponse.from_graph(graph).model_dump_json(indent=2)


def graph_to_dot(graph: Graph) -> str:
    lines = ["digraph G {"]
    for parent, child in graph.edges():
        lines.append(f"    n{parent} -> n{child};")
    lines.append("}")
    return "\n".join(lines)


def commit_oneline(commit: CommitObject) -> Text:
    text = Text()
    text.append(commit.oid or "", style="yellow")
    text.append(" ")
    text.append(commit.summary or NO_SUMMARY)
    return text


def commit_long(commit: CommitObject) -> Text:
    author = commit.author_signature
    text = Text()
    text.append(f"commit {commit.oid}\n", style="yellow")
    text.append(f"Author: {author}\n")
    text.append(f"Date:   {commit.committer_signature.when.strftime(DATE_FORMAT)}\n")
    text.append("\n")
    text.append(f"     {commit.summary or NO_SUMMARY}\n")
    return text
