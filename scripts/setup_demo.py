import zlib
import shutil
from pathlib import Path

from git_descendants.dag.builder import graph_from_all, graph_from_refs, lost_commits
from git_descendants.git_objects.models import CommitObject, RawObject, TREE
from git_descendants.store import GitDirStore

empty_tree_oid = RawObject(kind=TREE).compute_oid()


def write_object(obj, git_dir):
    oid = obj.compute_oid()

    obj_dir = git_dir / "objects" / oid[:2]
    obj_dir.mkdir(parents=True, exist_ok=True)
    obj_file = obj_dir / oid[2:]

    if not obj_file.exists():
        with open(obj_file, "wb") as f:
            f.write(zlib.compress(obj.store_bytes()))

    return oid


def write_commit(git_dir, message, parents, when):
    signature = f"User <user@example.com> {when} +0000"
    commit = CommitObject(
        tree_oid=empty_tree_oid,
        parent_oids=parents,
        author=signature,
        committer=signature,
        message=message + "\n",
    )
    oid = write_object(commit, git_dir)
    print(f"Created {message!r}: {oid}")
    return oid


def main():
    repo_dir = Path("demo_repo")
    if repo_dir.exists():
        shutil.rmtree(repo_dir)

    git_dir = repo_dir / ".git"
    (git_dir / "objects").mkdir(parents=True)
    (git_dir / "refs" / "heads").mkdir(parents=True)
    (git_dir / "HEAD").write_text("ref: refs/heads/main\n")

    print(f"Creating demo repo in {repo_dir}...")
    write_object(RawObject(kind=TREE), git_dir)

    # A <- B <- C (main), and D on top of A that nothing points at,
    # as left behind by `git commit --amend` or a reset.
    a = write_commit(git_dir, "A: initial", [], 1_600_000_000)
    b = write_commit(git_dir, "B: second", [a], 1_600_000_100)
    c = write_commit(git_dir, "C: third", [b], 1_600_000_200)
    write_commit(git_dir, "D: abandoned", [a], 1_600_000_300)
    (git_dir / "refs" / "heads" / "main").write_text(c + "\n")

    with GitDirStore(git_dir) as store:
        refs_graph = graph_from_refs(store)
        all_graph = graph_from_all(store)
        print(f"\nChildren of A from refs: {refs_graph.children_of(a)}")
        print(f"Children of A from all commits: {all_graph.children_of(a)}")
        print("Lost commits:")
        for commit in lost_commits(store):
            print(f"* {commit.oid[:7]} - {commit.summary}")


if __name__ == "__main__":
    main()
