import sys

from git_descendants.dag.builder import graph_from_refs
from git_descendants.errors import GitDescendantsError
from git_descendants.store import GitDirStore


def main():
    repo = sys.argv[1] if len(sys.argv) > 1 else "."
    try:
        store = GitDirStore.open(repo)
    except GitDescendantsError as e:
        print(f"{e}. Run this from the root of a git repo.")
        return

    with store:
        print("Building graph...")
        graph = graph_from_refs(store)
        print(f"Loaded {len(graph)} commits.")

        print("\nCommits with more than one child:")
        for oid in sorted(graph):
            children = graph.children_of(oid) or []
            if len(children) > 1:
                summary = store.commit_by_id(oid).summary or ""
                kids = " ".join(c[:7] for c in children)
                print(f"* {oid[:7]} -> ({kids}) - {summary}")


if __name__ == "__main__":
    main()
