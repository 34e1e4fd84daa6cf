import zlib
from collections import Counter
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from git_descendants.errors import ObjectNotFoundError, RevisionError
from git_descendants.git_objects.models import COMMIT, CommitObject, GitObject, RawObject, TagObject, TREE


def signature(when: int) -> str:
    return f"Me <me@example.com> {when} +0000"


class MemoryStore:
    """A CommitStore over plain dicts, counting commit lookups."""

    def __init__(self):
        self.objects: Dict[str, GitObject] = {}
        self.refs: List[Tuple[str, str]] = []
        self.lookups: Counter = Counter()

    def add_commit(self, oid, parents=(), when=0, message=""):
        commit = CommitObject(
            tree_oid="t" * 40,
            parent_oids=list(parents),
            author=signature(when),
            committer=signature(when),
            message=message or f"commit {oid}\n",
        )
        commit.oid = oid
        self.objects[oid] = commit
        return commit

    def add_object(self, oid, obj):
        obj.oid = oid
        self.objects[oid] = obj
        return obj

    def set_ref(self, name, oid):
        self.refs.append((name, oid))

    def commit_by_id(self, oid):
        self.lookups[oid] += 1
        obj = self.objects.get(oid)
        if not isinstance(obj, CommitObject):
            raise ObjectNotFoundError(oid)
        return obj

    def parent_ids_of(self, oid):
        return list(self.commit_by_id(oid).parent_oids)

    def references(self):
        return list(self.refs)

    def peel_to_commit(self, oid):
        obj = self.objects.get(oid)
        while isinstance(obj, TagObject):
            obj = self.objects.get(obj.object_oid)
        return obj if isinstance(obj, CommitObject) else None

    def all_object_ids_with_kind(self):
        return [(oid, obj.type) for oid, obj in self.objects.items()]

    def rev_parse(self, revision):
        for name, oid in self.refs:
            if name == revision:
                return oid
        if revision in self.objects:
            return revision
        raise RevisionError(f"revspec '{revision}' not found")


class DiskRepo:
    """A repository written object by object, without the git binary."""

    def __init__(self, root: Path):
        self.root = root
        self.git_dir = root / ".git"
        (self.git_dir / "objects").mkdir(parents=True)
        (self.git_dir / "refs" / "heads").mkdir(parents=True)
        (self.git_dir / "refs" / "tags").mkdir(parents=True)
        (self.git_dir / "HEAD").write_text("ref: refs/heads/main\n")
        self.tree = self.write(RawObject(kind=TREE))

    def write(self, obj: GitObject) -> str:
        oid = obj.compute_oid()
        path = self.git_dir / "objects" / oid[:2] / oid[2:]
        path.parent.mkdir(exist_ok=True)
        path.write_bytes(zlib.compress(obj.store_bytes()))
        return oid

    def commit(self, message, parents=(), when=0) -> str:
        return self.write(
            CommitObject(
                tree_oid=self.tree,
                parent_oids=list(parents),
                author=signature(when),
                committer=signature(when),
                message=message + "\n",
            )
        )

    def tag(self, name, target, target_type=COMMIT) -> str:
        return self.write(
            TagObject(object_oid=target, object_type=target_type, tag=name, tagger=signature(0))
        )

    def set_ref(self, name, oid):
        path = self.git_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(oid + "\n")


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def disk_repo(tmp_path):
    return DiskRepo(tmp_path)


@pytest.fixture
def scenario_repo(disk_repo):
    """A <- B <- C on main, plus D on top of A that no ref points at."""
    a = disk_repo.commit("A", when=100)
    b = disk_repo.commit("B", [a], when=200)
    c = disk_repo.commit("C", [b], when=300)
    d = disk_repo.commit("D", [a], when=400)
    disk_repo.set_ref("refs/heads/main", c)
    return disk_repo, {"A": a, "B": b, "C": c, "D": d}
