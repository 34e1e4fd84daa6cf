import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from git_descendants.errors import RevisionError, StoreError

logger = logging.getLogger(__name__)

# git gives up on symbolic refs nested deeper than this
MAX_SYMREF_DEPTH = 5

_SUFFIX = re.compile(r"([~^])(\d*)")
# only these names are looked up directly under $GIT_DIR (HEAD, ORIG_HEAD, FETCH_HEAD...)
_PSEUDO_REF = re.compile(r"^[A-Z_]+$")


def _read_text(path: Path) -> str:
    try:
        return path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise StoreError(f"Cannot read {path}: {e}") from e


def read_packed_refs(git_dir: Path = Path(".git")) -> Dict[str, str]:
    """Returns ref name -> oid from ``packed-refs``, in file order.

    Peeled lines (``^<oid>``) describe the tag above them and are skipped;
    tags are peeled through the object store instead.
    """
    path = git_dir / "packed-refs"
    if not path.exists():
        return {}

    content = _read_text(path)

    refs = {}
    for line in content.splitlines():
        if not line or line.startswith("#") or line.startswith("^"):
            continue
        oid, _, name = line.partition(" ")
        if name:
            refs[name.strip()] = oid.strip()
    return refs


def resolve_ref(
    git_dir: Path,
    ref_path: str,
    packed: Optional[Dict[str, str]] = None,
    depth: int = 0,
) -> Optional[str]:
    """Resolves a reference (e.g., 'refs/heads/main') to an OID."""
    if depth > MAX_SYMREF_DEPTH:
        raise StoreError(f"Symbolic reference loop at {ref_path}")

    full_path = git_dir / ref_path
    if full_path.is_file():
        content = _read_text(full_path).strip()
        if content.startswith("ref:"):
            # e.g. HEAD -> refs/heads/main
            return resolve_ref(git_dir, content[4:].strip(), packed, depth + 1)
        return content or None

    if packed is None:
        packed = read_packed_refs(git_dir)
    return packed.get(ref_path)


def resolve_head(git_dir: Path = Path(".git")) -> Optional[str]:
    """Resolves HEAD to the current commit OID."""
    return resolve_ref(git_dir, "HEAD")


def list_ref_names(git_dir: Path = Path(".git"), packed: Optional[Dict[str, str]] = None) -> List[str]:
    """Names of every ref under refs/, loose or packed, sorted."""
    names = set()
    refs_dir = git_dir / "refs"
    if refs_dir.exists():
        try:
            for path in refs_dir.glob("**/*"):
                if path.is_file():
                    names.add(path.relative_to(git_dir).as_posix())
        except OSError as e:
            raise StoreError(f"Cannot list references in {refs_dir}: {e}") from e
    if packed is None:
        packed = read_packed_refs(git_dir)
    names.update(packed)
    return sorted(names)


def is_detached_head(git_dir: Path = Path(".git")) -> bool:
    head = git_dir / "HEAD"
    content = _read_text(head).strip() if head.is_file() else ""
    return bool(content) and not content.startswith("ref:")


def iter_references(git_dir: Path = Path(".git")) -> List[Tuple[str, str]]:
    """Returns (name, oid) for every ref under refs/, plus a detached HEAD.

    A symbolic HEAD is left out since its target is already listed. A loose
    ref shadows a packed ref of the same name. Refs that do not resolve
    (dangling symbolic refs) are left out.
    """
    packed = read_packed_refs(git_dir)
    names = list_ref_names(git_dir, packed)
    if is_detached_head(git_dir):
        names.insert(0, "HEAD")

    references = []
    for name in names:
        oid = resolve_ref(git_dir, name, packed)
        if oid is None:
            logger.debug("Skipping unresolvable reference %s", name)
            continue
        references.append((name, oid))
    logger.debug("Found %d references in %s", len(references), git_dir)
    return references


def candidate_ref_names(name: str) -> List[str]:
    """The refs git tries, in order, for a short name like ``main``.

    The bare name is only tried for pseudo-refs such as ``HEAD`` or
    ``ORIG_HEAD``, so a branch called ``config`` never reads ``.git/config``.
    """
    candidates = [name] if _PSEUDO_REF.match(name) else []
    return candidates + [
        f"refs/{name}",
        f"refs/tags/{name}",
        f"refs/heads/{name}",
        f"refs/remotes/{name}",
        f"refs/remotes/{name}/HEAD",
    ]


def parse_revision(revision: str) -> Tuple[str, List[Tuple[str, int]]]:
    """Splits ``main~2^2`` into ('main', [('~', 2), ('^', 2)]).

    A bare ``~`` or ``^`` counts as 1. ``^0`` is kept and means the commit
    itself.
    """
    revision = revision.strip()
    if revision.endswith("^{}") or revision.endswith("^{commit}"):
        revision = revision[: revision.rindex("^{")]

    cut = len(revision)
    for i, ch in enumerate(revision):
        if ch in "~^":
            cut = i
            break
    base, suffix = revision[:cut], revision[cut:]
    if not base:
        raise RevisionError(f"Invalid revision: {revision!r}")

    steps = []
    pos = 0
    while pos < len(suffix):
        match = _SUFFIX.match(suffix, pos)
        if match is None:
            raise RevisionError(f"Invalid revision: {revision!r}")
        op, count = match.groups()
        steps.append((op, int(count) if count else 1))
        pos = match.end()
    return base, steps
