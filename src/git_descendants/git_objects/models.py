from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Type
import hashlib

COMMIT = b"commit"
TREE = b"tree"
BLOB = b"blob"
TAG = b"tag"

OBJECT_KINDS = (COMMIT, TREE, BLOB, TAG)


@dataclass
class GitObject(ABC):
    oid: Optional[str] = field(default=None, init=False)

    @property
    @abstractmethod
    def type(self) -> bytes:
        pass

    @abstractmethod
    def serialize(self) -> bytes:
        pass

    @classmethod
    @abstractmethod
    def deserialize(cls, data: bytes) -> "GitObject":
        pass

    def store_bytes(self) -> bytes:
        """Header plus body, as hashed and zlib-compressed by git."""
        data = self.serialize()
        return f"{self.type.decode()} {len(data)}".encode() + b"\x00" + data

    def compute_oid(self) -> str:
        """Computes and sets the SHA-1 hash of the object."""
        self.oid = hashlib.sha1(self.store_bytes()).hexdigest()
        return self.oid


@dataclass
class RawObject(GitObject):
    """A blob or tree: only its kind matters here, the body is kept opaque."""

    kind: bytes
    data: bytes = b""

    @property
    def type(self) -> bytes:
        return self.kind

    def serialize(self) -> bytes:
        return self.data

    @classmethod
    def deserialize(cls, data: bytes, kind: bytes = BLOB) -> "RawObject":
        return cls(kind=kind, data=data)


@dataclass(frozen=True)
class Signature:
    name: str
    email: str
    time: int
    offset_minutes: int = 0

    @classmethod
    def parse(cls, raw: str) -> "Signature":
        """Parses ``Name <email> 1234567890 +0100``.

        Missing or malformed timestamps are read as the epoch, which is what
        git itself falls back to for broken commits.
        """
        name, _, rest = raw.partition("<")
        email, _, when = rest.partition(">")
        parts = when.split()
        timestamp = 0
        offset = 0
        if parts:
            try:
                timestamp = int(parts[0])
            except ValueError:
                timestamp = 0
        if len(parts) > 1:
            offset = _parse_offset(parts[1])
        return cls(name=name.strip(), email=email.strip(), time=timestamp, offset_minutes=offset)

    @property
    def when(self) -> datetime:
        """Timestamp in the signature's own offset; the epoch if it is out of range."""
        tz = timezone(timedelta(minutes=self.offset_minutes))
        try:
            return datetime.fromtimestamp(self.time, tz=tz)
        except (OverflowError, OSError, ValueError):
            return datetime.fromtimestamp(0, tz=tz)

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


def _parse_offset(raw: str) -> int:
    if len(raw) != 5 or raw[0] not in "+-" or not raw[1:].isdigit():
        return 0
    minutes = int(raw[1:3]) * 60 + int(raw[3:5])
    return -minutes if raw[0] == "-" else minutes


def _split_headers(content: str):
    """Splits a commit or tag body into (headers, message).

    Continuation lines (leading space, as used by ``gpgsig``) are folded into
    the previous header. Repeated keys keep every value in order.
    """
    headers: Dict[str, List[str]] = {}
    lines = content.split("\n")
    last_key = None
    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        if not line:
            break
        if line.startswith(" ") and last_key is not None:
            headers[last_key][-1] += "\n" + line[1:]
            continue
        key, _, value = line.partition(" ")
        headers.setdefault(key, []).append(value)
        last_key = key
    return headers, "\n".join(lines[i:])


@dataclass
class CommitObject(GitObject):
    tree_oid: str
    parent_oids: List[str]
    author: str
    committer: str
    message: str

    @property
    def type(self) -> bytes:
        return COMMIT

    @property
    def author_signature(self) -> Signature:
        return Signature.parse(self.author)

    @property
    def committer_signature(self) -> Signature:
        return Signature.parse(self.committer)

    @property
    def commit_time(self) -> int:
        return self.committer_signature.time

    @property
    def summary(self) -> Optional[str]:
        """First line of the message, or None for an empty message."""
        for line in self.message.splitlines():
            if line.strip():
                return line.strip()
        return None

    def serialize(self) -> bytes:
        lines = [f"tree {self.tree_oid}".encode()]
        for p in self.parent_oids:
            lines.append(f"parent {p}".encode())
        lines.append(f"author {self.author}".encode())
        lines.append(f"committer {self.committer}".encode())
        lines.append(b"")
        lines.append(self.message.encode())
        return b"\n".join(lines)

    @classmethod
    def deserialize(cls, data: bytes) -> "CommitObject":
        headers, message = _split_headers(data.decode("utf-8", errors="replace"))
        return cls(
            tree_oid=headers.get("tree", [""])[0],
            parent_oids=list(headers.get("parent", [])),
            author=headers.get("author", [""])[0],
            committer=headers.get("committer", [""])[0],
            message=message,
        )


@dataclass
class TagObject(GitObject):
    object_oid: str
    object_type: bytes
    tag: str
    tagger: str = ""
    message: str = ""

    @property
    def type(self) -> bytes:
        return TAG

    def serialize(self) -> bytes:
        lines = [
            f"object {self.object_oid}".encode(),
            b"type " + self.object_type,
            f"tag {self.tag}".encode(),
        ]
        if self.tagger:
            lines.append(f"tagger {self.tagger}".encode())
        lines.append(b"")
        lines.append(self.message.encode())
        return b"\n".join(lines)

    @classmethod
    def deserialize(cls, data: bytes) -> "TagObject":
        headers, message = _split_headers(data.decode("utf-8", errors="replace"))
        return cls(
            object_oid=headers.get("object", [""])[0],
            object_type=headers.get("type", [""])[0].encode(),
            tag=headers.get("tag", [""])[0],
            tagger=headers.get("tagger", [""])[0],
            message=message,
        )


PARSED_KINDS: Dict[bytes, Type[GitObject]] = {
    COMMIT: CommitObject,
    TAG: TagObject,
}


def parse_object(kind: bytes, content: bytes, oid: Optional[str] = None) -> GitObject:
    if kind not in OBJECT_KINDS:
        raise ValueError(f"Unknown object type: {kind!r}")
    obj_class = PARSED_KINDS.get(kind)
    if obj_class is None:
        obj: GitObject = RawObject(kind=kind, data=content)
    else:
        obj = obj_class.deserialize(content)
    obj.oid = oid
    return obj
