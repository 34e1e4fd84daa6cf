import logging
import os
import subprocess
import zlib
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from git_descendants.errors import ObjectNotFoundError, StoreError
from .models import GitObject, OBJECT_KINDS, parse_object

logger = logging.getLogger(__name__)

GIT_EXECUTABLE = os.getenv("GIT_EXECUTABLE", "git")


def _loose_path(git_dir: Path, oid: str) -> Path:
    return git_dir / "objects" / oid[:2] / oid[2:]


def has_packs(git_dir: Path) -> bool:
    pack_dir = git_dir / "objects" / "pack"
    try:
        return pack_dir.is_dir() and any(pack_dir.glob("*.pack"))
    except OSError as e:
        raise StoreError(f"Cannot list {pack_dir}: {e}") from e


def read_loose(oid: str, git_dir: Path) -> Optional[Tuple[bytes, bytes]]:
    """Returns (kind, content) of a loose object, or None if it is not loose."""
    path = _loose_path(git_dir, oid)
    if not path.exists():
        return None

    try:
        with open(path, "rb") as f:
            raw_data = zlib.decompress(f.read())
    except (OSError, zlib.error) as e:
        raise StoreError(f"Cannot read object {oid}: {e}") from e

    # format: "type size\0content"
    null_idx = raw_data.find(b"\x00")
    if null_idx == -1:
        raise StoreError(f"Invalid object format for {oid} (no null byte)")

    header = raw_data[:null_idx]
    try:
        type_str, _size = header.split(b" ")
    except ValueError:
        raise StoreError(f"Invalid object header for {oid}: {header!r}")
    return type_str, raw_data[null_idx + 1:]


class CatFileBatch:
    """A long-running ``git cat-file --batch`` used for packed objects.

    One process serves every lookup of a command, so walking a packed
    history costs a pipe round trip per commit rather than a fork.
    """

    def __init__(self, git_dir: Path):
        self.git_dir = git_dir
        self._proc: Optional[subprocess.Popen] = None

    def _start(self) -> subprocess.Popen:
        if self._proc is None:
            cmd = [GIT_EXECUTABLE, "--git-dir", str(self.git_dir), "cat-file", "--batch"]
            logger.debug("Starting %s", " ".join(cmd))
            try:
                self._proc = subprocess.Popen(
                    cmd, stdin=subprocess.PIPE, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL
                )
            except OSError as e:
                raise StoreError(f"Cannot run {GIT_EXECUTABLE} to read packed objects: {e}") from e
        return self._proc

    def read(self, oid: str) -> Optional[Tuple[bytes, bytes]]:
        proc = self._start()
        assert proc.stdin is not None and proc.stdout is not None
        try:
            proc.stdin.write(oid.encode() + b"\n")
            proc.stdin.flush()
            header = proc.stdout.readline()
        except OSError as e:
            raise StoreError(f"Lost connection to git cat-file: {e}") from e

        if not header:
            raise StoreError("git cat-file exited unexpectedly")
        parts = header.split()
        if len(parts) == 2 and parts[1] == b"missing":
            return None
        if len(parts) != 3:
            raise StoreError(f"Unexpected git cat-file output: {header!r}")

        size = int(parts[2])
        content = proc.stdout.read(size)
        proc.stdout.read(1)  # trailing newline
        return parts[1], content

    def close(self):
        if self._proc is None:
            return
        if self._proc.stdin is not None:
            self._proc.stdin.close()
        self._proc.wait()
        if self._proc.stdout is not None:
            self._proc.stdout.close()
        self._proc = None


def read_object(
    oid: str, git_dir: Path = Path(".git"), batch: Optional[CatFileBatch] = None
) -> GitObject:
    """Read an object from the git directory by its SHA-1 hash."""
    if len(oid) != 40:
        raise ObjectNotFoundError(oid, "invalid object id")

    found = read_loose(oid, git_dir)
    if found is None and has_packs(git_dir):
        if batch is None:
            batch = CatFileBatch(git_dir)
            try:
                found = batch.read(oid)
            finally:
                batch.close()
        else:
            found = batch.read(oid)
    if found is None:
        raise ObjectNotFoundError(oid, f"not in {git_dir / 'objects'} or its packfiles")

    kind, content = found
    try:
        return parse_object(kind, content, oid)
    except ValueError as e:
        raise StoreError(f"Cannot parse object {oid}: {e}") from e


def enumerate_loose_objects(git_dir: Path = Path(".git")) -> List[str]:
    """Returns all object IDs found in the .git/objects/ fan-out directories."""
    objects_dir = git_dir / "objects"
    if not objects_dir.exists():
        return []

    oids = []
    try:
        subdirs = sorted(objects_dir.iterdir())
    except OSError as e:
        raise StoreError(f"Cannot list {objects_dir}: {e}") from e

    # .git/objects/XX/YYYY...
    for subdir in subdirs:
        if not (subdir.is_dir() and len(subdir.name) == 2):
            continue
        try:
            int(subdir.name, 16)
        except ValueError:
            continue

        try:
            files = sorted(subdir.iterdir())
        except OSError as e:
            raise StoreError(f"Cannot list {subdir}: {e}") from e
        for file in files:
            if file.is_file() and len(file.name) == 38:
                oids.append(subdir.name + file.name)
    return oids


def enumerate_packed_objects(git_dir: Path) -> Iterator[Tuple[str, bytes]]:
    """Yields (oid, kind) for every packed object, using git itself."""
    cmd = [
        GIT_EXECUTABLE, "--git-dir", str(git_dir), "cat-file",
        "--batch-all-objects", "--batch-check", "--unordered",
    ]
    try:
        proc = subprocess.run(cmd, capture_output=True, check=True)
    except OSError as e:
        raise StoreError(f"Cannot run {GIT_EXECUTABLE} to list packed objects: {e}") from e
    except subprocess.CalledProcessError as e:
        stderr_msg = e.stderr.decode(errors="replace").strip() if e.stderr else "No stderr"
        raise StoreError(f"Cannot list objects in {git_dir}: {stderr_msg}") from e

    for line in proc.stdout.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[1] in OBJECT_KINDS:
            yield parts[0].decode(), parts[1]


def enumerate_objects_with_kind(git_dir: Path = Path(".git")) -> Iterator[Tuple[str, bytes]]:
    """Yields (oid, kind) for every object in the store, loose ones first.

    An object stored both loose and packed is reported once.
    """
    seen = set()
    for oid in enumerate_loose_objects(git_dir):
        found = read_loose(oid, git_dir)
        if found is None:
            continue
        seen.add(oid)
        yield oid, found[0]

    if has_packs(git_dir):
        for oid, kind in enumerate_packed_objects(git_dir):
            if oid not in seen:
                seen.add(oid)
                yield oid, kind
