class GitDescendantsError(Exception):
    """Base class for every error reported to the user."""


class StoreError(GitDescendantsError):
    """The object store or the refs could not be read."""


class RepositoryNotFoundError(StoreError):
    pass


class ObjectNotFoundError(StoreError, KeyError):
    def __init__(self, oid: str, detail: str = ""):
        self.oid = oid
        message = f"Object {oid} not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class RevisionError(GitDescendantsError):
    """A revision expression did not resolve to a commit."""


class GraphAssemblyError(GitDescendantsError):
    """A commit was added to the same graph twice."""
