"""
git-descendants CLI

Command-line interface for computing the children of commits.
"""
import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterable

import typer
from rich.console import Console

from git_descendants import __version__
from git_descendants.dag import builder
from git_descendants.dag.render import commit_long, commit_oneline, graph_to_dot, graph_to_json
from git_descendants.errors import GitDescendantsError
from git_descendants.git_objects.models import CommitObject
from git_descendants.store import GitDirStore

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

app = typer.Typer(
    name="git-descendants",
    help="Calculates an adjacency list of commits",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(highlight=False, soft_wrap=True)
logger = logging.getLogger(__name__)

repo_path_option = typer.Option(
    ".", "--repo-path", "-p", help="Optionally specify the git repository to use"
)
all_option = typer.Option(
    False, "--all", "-a", help="Include all commits, not just those reachable from references"
)
oneline_option = typer.Option(False, "--oneline", help="Print each commit as '<id> <summary>'")


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


@contextmanager
def open_store(repo_path: str):
    """Opens the repository and turns any failure into ``Error: ...`` and exit 1."""
    try:
        with GitDirStore.open(repo_path) as store:
            yield store
    except GitDescendantsError as e:
        logger.debug("Command failed", exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def print_commits(commits: Iterable[CommitObject], oneline: bool):
    for commit in commits:
        console.print(commit_oneline(commit) if oneline else commit_long(commit))


def version_callback(value: bool):
    if value:
        typer.echo(f"git-descendants {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
    version: bool = typer.Option(
        False, "--version", callback=version_callback, is_eager=True, help="Show the version and exit"
    ),
):
    configure_logging(verbose)


@app.command()
def graph(
    repo_path: str = repo_path_option,
    all_commits: bool = all_option,
    dot: bool = typer.Option(False, "--dot", help="Write a DOT digraph instead of JSON"),
):
    """Calculate and write out the commit graph."""
    with open_store(repo_path) as store:
        result = builder.get_graph(store, all_commits)
        typer.echo(graph_to_dot(result) if dot else graph_to_json(result))


@app.command()
def roots(
    repo_path: str = repo_path_option,
    oneline: bool = oneline_option,
):
    """Prints the roots of the ref-based graph.

    Every ref under refs/ is a root, and so is HEAD when it is detached.
    """
    with open_store(repo_path) as store:
        print_commits(builder.root_commits_by_refs(store), oneline)


@app.command()
def children(
    revision: str = typer.Argument(..., metavar="REVISION", help="The revision you wish to know the children of"),
    repo_path: str = repo_path_option,
    all_commits: bool = all_option,
    oneline: bool = oneline_option,
):
    """Print the child commits of a given revision."""
    with open_store(repo_path) as store:
        oid = store.rev_parse(revision)
        result = builder.get_graph(store, all_commits)
        child_oids = result.children_of(oid)
        if child_oids is None:
            logger.debug("%s is not in the graph", oid)
            return
        print_commits((store.commit_by_id(child) for child in child_oids), oneline)


@app.command()
def lost(
    repo_path: str = repo_path_option,
    oneline: bool = oneline_option,
):
    """Find commits that you can't get to normally.

    A detached HEAD counts as a reference, so commits only it can reach
    are not lost.
    """
    with open_store(repo_path) as store:
        print_commits(builder.lost_commits(store), oneline)


@app.command()
def serve(
    repo_path: str = repo_path_option,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", help="Port to listen on"),
):
    """Serve the graph queries over HTTP."""
    import uvicorn

    with open_store(repo_path) as store:
        os.environ["GIT_DESCENDANTS_REPO"] = str(store.git_dir)
    uvicorn.run("git_descendants.api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
