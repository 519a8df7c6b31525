"""Exceptions raised by libgitlet.

Every message is a complete, user-facing sentence; the command line prints it verbatim."""


class RepositoryError(Exception):
    """Exception raised for repository-related errors."""


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when a command runs outside an initialized repository."""


class NotFoundError(RepositoryError):
    """Exception raised when a commit, branch or file cannot be found."""


class AmbiguousRefError(NotFoundError):
    """Exception raised when an abbreviated commit id matches more than one commit."""


class PreconditionError(RepositoryError):
    """Exception raised when a command cannot run in the current repository state."""


class UntrackedFileError(PreconditionError):
    """Exception raised when an untracked working file would be overwritten."""

    def __init__(self, msg: str = 'There is an untracked file in the way; '
                                  'delete it, or add and commit it first.') -> None:
        super().__init__(msg)
