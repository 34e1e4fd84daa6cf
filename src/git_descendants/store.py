"""Commit store: the only way the graph engine touches a repository.

The engine in :mod:`git_descendants.dag.builder` is written against the
:class:`CommitStore` protocol, so tests can hand it an in-memory store and
the CLI and API hand it a :class:`GitDirStore` reading a ``.git`` directory.
"""
import logging
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Tuple, Union

from git_descendants.dag.refs import candidate_ref_names, iter_references, parse_revision, resolve_ref
from git_descendants.errors import ObjectNotFoundError, RepositoryNotFoundError, RevisionError, StoreError
from git_descendants.git_objects.models import CommitObject, TagObject
from git_descendants.git_objects.parser import (
    CatFileBatch,
    enumerate_loose_objects,
    enumerate_objects_with_kind,
    enumerate_packed_objects,
    has_packs,
    read_object,
)

logger = logging.getLogger(__name__)

_HEX = re.compile(r"^[0-9a-fA-F]+$")

MIN_ABBREV = 4
# annotated tags can point at other tags
MAX_PEEL_DEPTH = 16


class CommitStore(Protocol):
    def commit_by_id(self, oid: str) -> CommitObject:
        ...

    def parent_ids_of(self, oid: str) -> List[str]:
        ...

    def references(self) -> List[Tuple[str, str]]:
        ...

    def peel_to_commit(self, oid: str) -> Optional[CommitObject]:
        ...

    def all_object_ids_with_kind(self) -> Iterable[Tuple[str, bytes]]:
        ...

    def rev_parse(self, revision: str) -> str:
        ...


def find_git_dir(path: Union[str, Path] = ".") -> Path:
    """Locates the git directory for a working tree, a .git dir or a bare repo."""
    root = Path(path)
    candidates = [root / ".git", root]
    for candidate in candidates:
        if (candidate / "objects").is_dir() and (candidate / "HEAD").is_file():
            return candidate.resolve()
    raise RepositoryNotFoundError(f"could not find repository at '{path}'")


class GitDirStore:
    def __init__(self, git_dir: Path):
        self.git_dir = git_dir
        self._batch = CatFileBatch(git_dir)

    @classmethod
    def open(cls, path: Union[str, Path] = ".") -> "GitDirStore":
        return cls(find_git_dir(path))

    def __enter__(self) -> "GitDirStore":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self._batch.close()

    def _read(self, oid: str):
        return read_object(oid, self.git_dir, self._batch)

    def commit_by_id(self, oid: str) -> CommitObject:
        obj = self._read(oid)
        if not isinstance(obj, CommitObject):
            raise StoreError(f"Object {oid} is a {obj.type.decode()}, not a commit")
        return obj

    def parent_ids_of(self, oid: str) -> List[str]:
        return list(self.commit_by_id(oid).parent_oids)

    def references(self) -> List[Tuple[str, str]]:
        return iter_references(self.git_dir)

    def peel_to_commit(self, oid: str) -> Optional[CommitObject]:
        """Follows annotated tags down to a commit; None for anything else."""
        for _ in range(MAX_PEEL_DEPTH):
            try:
                obj = self._read(oid)
            except ObjectNotFoundError:
                return None
            if isinstance(obj, CommitObject):
                return obj
            if not isinstance(obj, TagObject):
                return None
            oid = obj.object_oid
        return None

    def all_object_ids_with_kind(self) -> Iterator[Tuple[str, bytes]]:
        return enumerate_objects_with_kind(self.git_dir)

    def _abbrev_matches(self, prefix: str) -> List[str]:
        prefix = prefix.lower()
        matches = {
            oid for oid in enumerate_loose_objects(self.git_dir) if oid.startswith(prefix)
        }
        if has_packs(self.git_dir):
            matches.update(
                oid for oid, _ in enumerate_packed_objects(self.git_dir) if oid.startswith(prefix)
            )
        return sorted(matches)

    def _resolve_base(self, name: str) -> str:
        if len(name) == 40 and _HEX.match(name):
            return name.lower()

        for ref_name in candidate_ref_names(name):
            oid = resolve_ref(self.git_dir, ref_name)
            if oid is not None:
                logger.debug("Revision %s resolved through %s", name, ref_name)
                return oid

        if len(name) >= MIN_ABBREV and _HEX.match(name):
            matches = self._abbrev_matches(name)
            if len(matches) == 1:
                return matches[0]
            if len(matches) > 1:
                raise RevisionError(f"short object ID {name} is ambiguous")

        raise RevisionError(f"revspec '{name}' not found")

    def rev_parse(self, revision: str) -> str:
        base, steps = parse_revision(revision)
        commit = self.peel_to_commit(self._resolve_base(base))
        if commit is None:
            raise RevisionError(f"revspec '{revision}' does not name a commit")

        for op, count in steps:
            if op == "^":
                if count == 0:
                    continue
                if count > len(commit.parent_oids):
                    raise RevisionError(f"revspec '{revision}' not found")
                commit = self.commit_by_id(commit.parent_oids[count - 1])
            else:
                for _ in range(count):
                    if not commit.parent_oids:
                        raise RevisionError(f"revspec '{revision}' not found")
                    commit = self.commit_by_id(commit.parent_oids[0])
        return commit.oid
