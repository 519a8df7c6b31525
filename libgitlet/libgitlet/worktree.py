"""Working-directory access and synchronization with commit snapshots."""

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path, PurePosixPath

from .exceptions import PreconditionError, RepositoryError, UntrackedFileError
from .plumbing import hash_string

logger = logging.getLogger(__name__)


class WorkingTree:
    """The files of a working directory, excluding the repository's metadata directory.

    Paths handed in and out are repository-relative POSIX paths."""

    def __init__(self, root: Path, repo_dir_name: str) -> None:
        self.root = Path(root)
        self.repo_dir_name = repo_dir_name

    def path(self, rel_path: str) -> Path:
        return self.root / PurePosixPath(rel_path)

    def relative(self, file: Path | str) -> str:
        """Convert a path (absolute, or relative to the working directory) to a repository path."""
        file = Path(file)
        if file.is_absolute():
            file = file.relative_to(self.root)
        return file.as_posix()

    def files(self) -> list[str]:
        """List every working file, sorted."""
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            if Path(dirpath) == self.root and self.repo_dir_name in dirnames:
                dirnames.remove(self.repo_dir_name)
            dirnames.sort()
            for name in filenames:
                found.append((Path(dirpath) / name).relative_to(self.root).as_posix())
        return sorted(found)

    def exists(self, rel_path: str) -> bool:
        return self.path(rel_path).is_file()

    def read(self, rel_path: str) -> bytes:
        return self.path(rel_path).read_bytes()

    def content_hash(self, rel_path: str) -> str:
        return hash_string(self.read(rel_path))

    def write(self, rel_path: str, data: bytes) -> None:
        """Write a working file, creating its parent directories.

        :raises RepositoryError: If the file cannot be written."""
        target = self.path(rel_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            msg = f'Cannot write {rel_path}: {e.strerror}'
            raise RepositoryError(msg) from e

    def delete(self, rel_path: str) -> bool:
        """Delete a working file and prune the directories it leaves empty.

        :return: True if a file was deleted.
        :raises RepositoryError: If the file or a pruned directory cannot be removed."""
        target = self.path(rel_path)
        if not target.is_file():
            return False

        try:
            target.unlink()
            parent = target.parent
            while parent != self.root and not any(parent.iterdir()):
                parent.rmdir()
                parent = parent.parent
        except OSError as e:
            msg = f'Cannot delete {rel_path}: {e.strerror}'
            raise RepositoryError(msg) from e
        return True

    def untracked_files(self, tracked: Mapping[str, str], staged: Mapping[str, str]) -> list[str]:
        """List working files that are neither staged nor tracked by the given snapshot."""
        return [f for f in self.files() if f not in staged and f not in tracked]

    def check_untracked(self, tracked: Mapping[str, str], staged: Mapping[str, str]) -> None:
        """Refuse to continue while an untracked file could be overwritten or deleted.

        :raises UntrackedFileError: If any untracked file exists."""
        untracked = self.untracked_files(tracked, staged)
        if untracked:
            logger.debug('Untracked files in the way: %s', ', '.join(untracked))
            raise UntrackedFileError()

    def blocked_paths(self, writes: Iterable[str], deletes: Iterable[str] = ()) -> list[str]:
        """List the paths that could not be written as files once ``deletes`` are gone.

        A path is blocked when a remaining file lives below it, when one of its
        parent directories is a remaining file, or when it is a directory no
        deletion will prune."""
        remaining = set(self.files()) - set(deletes)
        remaining_dirs = {str(parent) for f in remaining for parent in PurePosixPath(f).parents}
        pruned_dirs = {str(parent) for f in deletes for parent in PurePosixPath(f).parents}

        blocked = []
        for rel_path in writes:
            parents = {str(parent) for parent in PurePosixPath(rel_path).parents}
            if (rel_path in remaining_dirs or parents & remaining
                    or self.path(rel_path).is_dir() and rel_path not in pruned_dirs):
                blocked.append(rel_path)
        return sorted(blocked)

    def check_writable(self, writes: Iterable[str], deletes: Iterable[str] = ()) -> None:
        """Refuse to continue while a file or directory stands where a file must be written.

        :raises PreconditionError: If any path is blocked."""
        blocked = self.blocked_paths(writes, deletes)
        if blocked:
            msg = f'A file or directory is in the way of {", ".join(blocked)}.'
            raise PreconditionError(msg)

    def materialize(self, snapshot: Mapping[str, str], read_blob: Callable[[str], bytes]) -> None:
        """Make the working directory match a snapshot.

        Files the snapshot does not define are deleted and every snapshot file is
        written from its blob. Nothing is touched if a snapshot file is blocked.

        :raises PreconditionError: If a file or directory is in the way of a snapshot file."""
        stale = [rel_path for rel_path in self.files() if rel_path not in snapshot]
        self.check_writable(snapshot, stale)

        for rel_path in stale:
            self.delete(rel_path)
        for rel_path, blob_hash in sorted(snapshot.items()):
            self.write(rel_path, read_blob(blob_hash))
        logger.debug('Materialized %d files into %s', len(snapshot), self.root)
