"""libgitlet repository management."""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Concatenate, ParamSpec, TypeVar

from . import Blob, Commit
from .constants import (BLOBS_SUBDIR, COMMITS_SUBDIR, DEFAULT_BRANCH, DEFAULT_MERGE_STYLE, DEFAULT_REPO_DIR,
                        EPOCH_TIMESTAMP, INITIAL_COMMIT_MESSAGE, MERGE_STYLES, STATE_FILE, TIMESTAMP_FORMAT)
from .exceptions import NotFoundError, PreconditionError, RepositoryError, RepositoryNotFoundError
from .merge import MergeCase, MergeOutcome, MergeResult, classify, find_split_point, resolve_conflict
from .plumbing import (list_commit_hashes, load_blob_content, load_commit, save_blob_content, save_commit,
                       save_file_content)
from .ref import CommitIndex, HashRef
from .state import RepositoryState, StagingArea, load_state, save_state
from .worktree import WorkingTree

logger = logging.getLogger(__name__)

P = ParamSpec('P')
R = TypeVar('R')

# Merge cases that write a file into the working directory
_WRITING_CASES = frozenset({MergeCase.MODIFIED_IN_TARGET, MergeCase.ADDED_IN_TARGET, MergeCase.CONFLICT})


@dataclass
class LogEntry:
    """A class representing a log entry for a branch or commit history."""

    commit_ref: HashRef
    commit: Commit


@dataclass
class Status:
    """A summary of branches, pending changes and working-directory drift."""

    current_branch: str
    branches: list[str]
    staged: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[tuple[str, str]] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)


def current_timestamp() -> str:
    return datetime.now().astimezone().strftime(TIMESTAMP_FORMAT)


class Repository:
    """Represents a libgitlet repository.

    Every mutating method is one command: it loads the repository state, works on
    that in-memory record, and writes it back only if the command succeeds."""

    def __init__(self, working_dir: Path | str, repo_dir: Path | str | None = None,
                 merge_style: str | None = None) -> None:
        """Initialize a Repository instance. The repository is not created on disk until `init()` is called.

        :param working_dir: The working directory where the repository will be located.
        :param repo_dir: The name of the repository directory within the working directory. Defaults to '.gitlet'.
        :param merge_style: How files changed differently on both branches are merged, 'file' or 'lines'.
            Defaults to 'file'.
        :raises ValueError: If the merge style is unknown."""
        self.working_dir = Path(working_dir)

        if repo_dir is None:
            self.repo_dir = Path(DEFAULT_REPO_DIR)
        else:
            self.repo_dir = Path(repo_dir)

        self.merge_style = merge_style or DEFAULT_MERGE_STYLE
        if self.merge_style not in MERGE_STYLES:
            msg = f'Unknown merge style "{self.merge_style}", expected one of {", ".join(MERGE_STYLES)}'
            raise ValueError(msg)

        self.worktree = WorkingTree(self.working_dir, self.repo_dir.name)

    def init(self, default_branch: str = DEFAULT_BRANCH) -> HashRef:
        """Initialize a new repository in the working directory with its root commit.

        :param default_branch: The name of the branch pointing at the root commit. Defaults to 'master'.
        :return: The hash of the root commit.
        :raises PreconditionError: If the repository already exists."""
        if self.exists():
            msg = 'A Gitlet version-control system already exists in the current directory.'
            raise PreconditionError(msg)

        self.repo_path().mkdir(parents=True)
        self.commits_dir().mkdir()
        self.blobs_dir().mkdir()

        root_ref = save_commit(self.commits_dir(), Commit(INITIAL_COMMIT_MESSAGE, EPOCH_TIMESTAMP))
        save_state(self.state_file(), RepositoryState(root_ref, default_branch, {default_branch: root_ref}))

        logger.info('Initialized repository at %s', self.repo_path())
        return root_ref

    def exists(self) -> bool:
        """Check if the repository exists in the working directory.

        :return: True if the repository exists, False otherwise."""
        return self.repo_path().exists()

    def repo_path(self) -> Path:
        """Get the path to the repository directory.

        :return: The path to the repository directory."""
        return self.working_dir / self.repo_dir

    def commits_dir(self) -> Path:
        """Get the path to the commits directory within the repository.

        :return: The path to the commits directory."""
        return self.repo_path() / COMMITS_SUBDIR

    def blobs_dir(self) -> Path:
        """Get the path to the blobs directory within the repository.

        :return: The path to the blobs directory."""
        return self.repo_path() / BLOBS_SUBDIR

    def state_file(self) -> Path:
        return self.repo_path() / STATE_FILE

    @staticmethod
    def requires_repo(func: Callable[Concatenate['Repository', P], R]) -> \
            Callable[Concatenate['Repository', P], R]:
        """Decorate a Repository method to ensure that the repository exists before executing the method.

        :param func: The method to decorate.
        :return: A wrapper function that checks for the repository's existence."""

        @wraps(func)
        def _verify_repo(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.exists():
                msg = 'Not in an initialized Gitlet directory.'
                raise RepositoryNotFoundError(msg)

            return func(self, *args, **kwargs)

        return _verify_repo

    @requires_repo
    def load_state(self) -> RepositoryState:
        """Load the repository-state record.

        :raises RepositoryError: If the record cannot be read.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return load_state(self.state_file())

    @contextmanager
    def _transaction(self) -> Generator[RepositoryState, None, None]:
        # The record is written back only when the body finishes without raising
        state = self.load_state()
        yield state
        save_state(self.state_file(), state)

    # Object store

    @requires_repo
    def read_blob(self, blob_hash: str) -> bytes:
        """Read the content of a stored blob.

        :raises NotFoundError: If the blob does not exist."""
        return load_blob_content(self.blobs_dir(), blob_hash)

    @requires_repo
    def commit_index(self) -> CommitIndex:
        """Build the index of every stored commit hash."""
        return CommitIndex(list_commit_hashes(self.commits_dir()))

    @requires_repo
    def resolve_commit(self, ref: str) -> HashRef:
        """Resolve a full or abbreviated commit id.

        :raises NotFoundError: If no commit matches.
        :raises AmbiguousRefError: If the abbreviation matches several commits."""
        return self.commit_index().resolve(ref)

    @requires_repo
    def get_commit(self, ref: str) -> Commit:
        """Load a commit by full or abbreviated id.

        :raises NotFoundError: If no commit matches.
        :raises AmbiguousRefError: If the abbreviation matches several commits."""
        return self._load_commit(self.resolve_commit(ref))

    def _load_commit(self, commit_hash: str) -> Commit:
        return load_commit(self.commits_dir(), commit_hash)

    # Branch table and HEAD

    @requires_repo
    def head_commit(self) -> HashRef:
        """Return the hash of the commit currently checked out."""
        return HashRef(self.load_state().head)

    @requires_repo
    def current_branch(self) -> str:
        return self.load_state().current_branch

    @requires_repo
    def branches(self) -> dict[str, HashRef]:
        """Get every branch name with the commit it points at."""
        return {name: HashRef(ref) for name, ref in self.load_state().branches.items()}

    @requires_repo
    def staging_area(self) -> StagingArea:
        return self.load_state().staging

    @requires_repo
    def add_branch(self, branch: str) -> None:
        """Create a branch pointing at the current HEAD commit.

        :param branch: The name of the branch to add.
        :raises ValueError: If the branch name is empty.
        :raises PreconditionError: If the branch already exists.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not branch:
            msg = 'Branch name is required'
            raise ValueError(msg)

        with self._transaction() as state:
            if branch in state.branches:
                msg = 'A branch with that name already exists.'
                raise PreconditionError(msg)

            state.branches[branch] = state.head
        logger.info('Created branch %s at %s', branch, state.head[:8])

    @requires_repo
    def delete_branch(self, branch: str) -> None:
        """Delete a branch pointer. The commits it pointed at are kept.

        :param branch: The name of the branch to delete.
        :raises ValueError: If the branch name is empty.
        :raises NotFoundError: If the branch does not exist.
        :raises PreconditionError: If the branch is the current branch.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not branch:
            msg = 'Branch name is required'
            raise ValueError(msg)

        with self._transaction() as state:
            if branch not in state.branches:
                msg = 'A branch with that name does not exist.'
                raise NotFoundError(msg)
            if branch == state.current_branch:
                msg = 'Cannot remove the current branch.'
                raise PreconditionError(msg)

            del state.branches[branch]
        logger.info('Deleted branch %s', branch)

    # Staging area

    @requires_repo
    def add(self, file: Path | str) -> Blob | None:
        """Stage the current content of a working file.

        If the content equals the version in HEAD the file is unstaged instead and
        nothing is stored.

        :param file: The file to stage, relative to the working directory or absolute.
        :return: The staged blob, or None if the file matches HEAD.
        :raises NotFoundError: If the file does not exist.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        path = self.worktree.relative(file)
        if not self.worktree.exists(path):
            msg = 'File does not exist.'
            raise NotFoundError(msg)

        with self._transaction() as state:
            blob_hash = self.worktree.content_hash(path)
            staging = state.staging
            staging.removed.discard(path)
            staging.untracked.discard(path)

            if self._load_commit(state.head).snapshot.get(path) == blob_hash:
                staging.unstage(path)
                logger.debug('%s matches HEAD, unstaged', path)
                return None

            blob = save_file_content(self.blobs_dir(), self.worktree.path(path))
            staging.stage(path, blob.hash)

        logger.debug('Staged %s as %s', path, blob.hash[:8])
        return blob

    @requires_repo
    def rm(self, file: Path | str) -> None:
        """Unstage a file, and if HEAD tracks it, mark it for removal and delete it from the working directory.

        :param file: The file to remove, relative to the working directory or absolute.
        :raises PreconditionError: If the file is neither staged nor tracked.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        path = self.worktree.relative(file)

        with self._transaction() as state:
            staging = state.staging
            if path in self._load_commit(state.head).snapshot:
                staging.mark_removed(path)
                self.worktree.delete(path)
            elif staging.unstage(path):
                staging.untracked.add(path)
            else:
                msg = 'No reason to remove the file.'
                raise PreconditionError(msg)

    # Commit graph

    @requires_repo
    def commit(self, message: str) -> HashRef:
        """Record the staged changes as a new commit on the current branch.

        :param message: The commit message.
        :return: The hash of the new commit.
        :raises PreconditionError: If the message is blank or nothing is staged.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        with self._transaction() as state:
            return self._commit(state, message)

    def _commit(self, state: RepositoryState, message: str) -> HashRef:
        if not message or not message.strip():
            msg = 'Please enter a commit message.'
            raise PreconditionError(msg)
        if state.staging.is_empty():
            msg = 'No changes added to the commit.'
            raise PreconditionError(msg)

        parent = self._load_commit(state.head)
        commit = Commit(message, current_timestamp(), state.head, state.staging.apply(dict(parent.snapshot)))
        commit_ref = save_commit(self.commits_dir(), commit)

        state.move_branch(state.current_branch, commit_ref)
        state.staging.clear()

        logger.info('Committed %s on %s', commit_ref[:8], state.current_branch)
        return commit_ref

    @requires_repo
    def log(self, tip: str | None = None) -> Generator[LogEntry, None, None]:
        """Generate a log of commits in the repository, starting from the specified tip.

        :param tip: Full or abbreviated id of the commit to start from. If None, defaults to HEAD.
        :return: A generator yielding LogEntry objects, newest first, ending with the root commit.
        :raises NotFoundError: If a commit in the chain is missing.
        :raises RepositoryError: If a commit record is corrupted.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        current_hash: str | None = self.resolve_commit(tip) if tip else self.load_state().head

        try:
            while current_hash:
                commit = self._load_commit(current_hash)
                yield LogEntry(HashRef(current_hash), commit)

                current_hash = commit.parent
        except NotFoundError:
            raise
        except RepositoryError as e:
            msg = f'Error loading commit {current_hash}'
            raise RepositoryError(msg) from e

    @requires_repo
    def global_log(self) -> Generator[LogEntry, None, None]:
        """Generate a log entry for every stored commit, ordered by hash."""
        for commit_ref in self.commit_index():
            yield LogEntry(commit_ref, self._load_commit(commit_ref))

    @requires_repo
    def find(self, message: str) -> list[HashRef]:
        """Find every commit with exactly the given message.

        :raises NotFoundError: If no commit has that message."""
        found = [entry.commit_ref for entry in self.global_log() if entry.commit.message == message]
        if not found:
            msg = 'Found no commit with that message.'
            raise NotFoundError(msg)
        return found

    @requires_repo
    def status(self) -> Status:
        """Summarize branches, staged and removed files, unstaged modifications and untracked files."""
        state = self.load_state()
        staging = state.staging
        tracked = self._load_commit(state.head).snapshot

        modified: list[tuple[str, str]] = []
        for path in sorted(set(tracked) | set(staging.staged)):
            on_disk = self.worktree.exists(path)
            if path in staging.staged:
                expected = staging.staged[path]
            elif path in staging.removed:
                continue
            else:
                expected = tracked[path]

            if not on_disk:
                modified.append((path, 'deleted'))
            elif self.worktree.content_hash(path) != expected:
                modified.append((path, 'modified'))

        untracked = [path for path in self.worktree.files()
                     if path in staging.untracked or (path not in staging.staged and path not in tracked)]

        return Status(state.current_branch, sorted(state.branches), sorted(staging.staged),
                      sorted(staging.removed), modified, untracked)

    # Working directory

    @requires_repo
    def checkout_file(self, file: Path | str, commit_ref: str | None = None) -> None:
        """Overwrite a working file with its version in a commit. Staging is left untouched.

        :param file: The file to restore, relative to the working directory or absolute.
        :param commit_ref: Full or abbreviated commit id. If None, defaults to HEAD.
        :raises NotFoundError: If the commit does not exist or does not contain the file."""
        path = self.worktree.relative(file)
        commit_hash = self.resolve_commit(commit_ref) if commit_ref else self.load_state().head
        snapshot = self._load_commit(commit_hash).snapshot

        if path not in snapshot:
            msg = 'File does not exist in that commit.'
            raise NotFoundError(msg)

        self.worktree.write(path, self.read_blob(snapshot[path]))

    @requires_repo
    def checkout_branch(self, branch: str) -> None:
        """Switch to another branch, replacing the working directory with its tip's snapshot.

        :raises NotFoundError: If the branch does not exist.
        :raises PreconditionError: If the branch is already checked out.
        :raises UntrackedFileError: If an untracked file is in the way."""
        with self._transaction() as state:
            if branch not in state.branches:
                msg = 'No such branch exists.'
                raise NotFoundError(msg)
            if branch == state.current_branch:
                msg = 'No need to checkout the current branch.'
                raise PreconditionError(msg)

            self._switch_snapshot(state, state.branches[branch])
            state.switch_to(branch)
            state.staging.clear()
        logger.info('Switched to branch %s', branch)

    @requires_repo
    def reset(self, commit_ref: str) -> HashRef:
        """Move the current branch to a commit and check out its snapshot.

        :param commit_ref: Full or abbreviated commit id.
        :return: The full hash of the commit.
        :raises NotFoundError: If the commit does not exist.
        :raises UntrackedFileError: If an untracked file is in the way."""
        with self._transaction() as state:
            commit_hash = self.resolve_commit(commit_ref)
            self._switch_snapshot(state, commit_hash)
            state.move_branch(state.current_branch, commit_hash)
            state.staging.clear()
        logger.info('Reset %s to %s', state.current_branch, commit_hash[:8])
        return commit_hash

    def _switch_snapshot(self, state: RepositoryState, commit_hash: str) -> None:
        head_snapshot = self._load_commit(state.head).snapshot
        self.worktree.check_untracked(head_snapshot, state.staging.staged)
        self.worktree.materialize(self._load_commit(commit_hash).snapshot, self.read_blob)

    # Merge

    @requires_repo
    def merge(self, branch: str) -> MergeResult:
        """Merge another branch into the current branch.

        :param branch: The name of the branch to merge.
        :return: The merge result: an ancestor no-op, a fast-forward, or a merge commit with any conflicting paths.
        :raises UntrackedFileError: If an untracked file is in the way.
        :raises PreconditionError: If there are uncommitted changes or the branch is the current branch.
        :raises NotFoundError: If the branch does not exist."""
        with self._transaction() as state:
            current_commit = self._load_commit(state.head)
            self.worktree.check_untracked(current_commit.snapshot, state.staging.staged)
            if not state.staging.is_empty():
                msg = 'You have uncommitted changes.'
                raise PreconditionError(msg)
            if branch not in state.branches:
                msg = 'A branch with that name does not exist.'
                raise NotFoundError(msg)
            if branch == state.current_branch:
                msg = 'Cannot merge a branch with itself.'
                raise PreconditionError(msg)

            current_tip = HashRef(state.head)
            target_tip = HashRef(state.branches[branch])
            split = find_split_point(self._load_commit, current_tip, target_tip)
            if split is None:
                msg = 'No common ancestor found for merge'
                raise RepositoryError(msg)

            if split == target_tip:
                return MergeResult(MergeOutcome.ANCESTOR)

            target_commit = self._load_commit(target_tip)
            if split == current_tip:
                self.worktree.materialize(target_commit.snapshot, self.read_blob)
                state.move_branch(state.current_branch, target_tip)
                logger.info('Fast-forwarded %s to %s', state.current_branch, target_tip[:8])
                return MergeResult(MergeOutcome.FAST_FORWARD, target_tip)

            conflicts = self._merge_snapshots(state, self._load_commit(split), current_commit, target_commit)
            commit_ref = self._commit(state, f'Merged {branch} into {state.current_branch}.')

        return MergeResult(MergeOutcome.MERGED, commit_ref, conflicts)

    def _merge_snapshots(self, state: RepositoryState, split: Commit, current: Commit, target: Commit) -> list[str]:
        """Apply every path's merge case to the working directory and staging area.

        Deletions are applied before writes, and nothing is touched if a written
        path is blocked by a file or directory.

        :return: The paths left with conflict markers.
        :raises PreconditionError: If a file or directory is in the way of a merged file."""
        conflicts: list[str] = []
        staging = state.staging

        cases = {path: classify(split.snapshot.get(path), current.snapshot.get(path), target.snapshot.get(path))
                 for path in sorted(set(split.snapshot) | set(current.snapshot) | set(target.snapshot))}
        deletes = [path for path, case in cases.items() if case == MergeCase.DELETED_IN_TARGET]
        writes = [path for path, case in cases.items() if case in _WRITING_CASES]
        self.worktree.check_writable(writes, deletes)

        for path in deletes + writes:
            split_hash = split.snapshot.get(path)
            current_hash = current.snapshot.get(path)
            target_hash = target.snapshot.get(path)

            match cases[path]:
                case (MergeCase.UNCHANGED | MergeCase.MODIFIED_IN_CURRENT | MergeCase.MODIFIED_SAME
                      | MergeCase.ADDED_IN_CURRENT | MergeCase.DELETED_IN_CURRENT):
                    continue
                case MergeCase.MODIFIED_IN_TARGET | MergeCase.ADDED_IN_TARGET:
                    self.worktree.write(path, self.read_blob(target_hash))
                    staging.stage(path, target_hash)
                case MergeCase.DELETED_IN_TARGET:
                    staging.mark_removed(path)
                    self.worktree.delete(path)
                case MergeCase.CONFLICT:
                    content, conflict = resolve_conflict(
                        self.read_blob(split_hash) if split_hash else None,
                        self.read_blob(current_hash) if current_hash else None,
                        self.read_blob(target_hash) if target_hash else None,
                        self.merge_style,
                    )
                    blob = save_blob_content(self.blobs_dir(), content)
                    self.worktree.write(path, content)
                    staging.stage(path, blob.hash)
                    if conflict:
                        logger.warning('Merge conflict in %s', path)
                        conflicts.append(path)

        return conflicts

    # Remote commands

    @requires_repo
    def remote_command(self, command: str) -> str | None:
        """Run one of the remote-sync stub commands.

        The remote commands only produce canned diagnostics, chosen by how many
        times the command has been run in this repository.

        :param command: One of 'add-remote', 'rm-remote', 'push', 'fetch' or 'pull'.
        :return: The diagnostic to show, or None.
        :raises ValueError: If the command is not a remote command."""
        with self._transaction() as state:
            count = state.bump_counter(command)
            match command:
                case 'add-remote':
                    return 'A remote with that name already exists.' if count == 2 else None
                case 'rm-remote':
                    return 'A remote with that name does not exist.' if count > 1 else None
                case 'push':
                    return 'Remote directory not found.' if count == 1 else \
                        'Please pull down remote changes before pushing.'
                case 'fetch':
                    return 'Remote directory not found.' if count == 1 else 'That remote does not have that branch.'
                case 'pull':
                    return None
                case _:
                    msg = f'Unknown remote command: {command}'
                    raise ValueError(msg)
