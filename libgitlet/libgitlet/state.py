"""The mutable repository-state record: branch table, HEAD and staging area.

The record is loaded once at the start of a command and written back wholesale
only after the command succeeds."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import RepositoryError
from .plumbing import write_file_atomic

logger = logging.getLogger(__name__)


@dataclass
class StagingArea:
    """Pending changes on top of HEAD's snapshot.

    ``staged`` maps paths to the blob hashes they will have in the next commit,
    ``removed`` holds tracked paths the next commit drops, and ``untracked`` holds
    paths that will no longer be tracked once the next commit is made."""

    staged: dict[str, str] = field(default_factory=dict)
    removed: set[str] = field(default_factory=set)
    untracked: set[str] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not self.staged and not self.removed

    def stage(self, path: str, blob_hash: str) -> None:
        self.staged[path] = blob_hash
        self.removed.discard(path)
        self.untracked.discard(path)

    def unstage(self, path: str) -> bool:
        """Drop a staged addition. Return True if the path was staged."""
        return self.staged.pop(path, None) is not None

    def mark_removed(self, path: str) -> None:
        self.staged.pop(path, None)
        self.removed.add(path)
        self.untracked.add(path)

    def clear(self) -> None:
        self.staged.clear()
        self.removed.clear()
        self.untracked.clear()

    def apply(self, snapshot: dict[str, str]) -> dict[str, str]:
        """Return a new snapshot with staged entries written over and removed paths dropped."""
        result = dict(snapshot)
        result.update(self.staged)
        for path in self.removed:
            result.pop(path, None)
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            'staged': dict(sorted(self.staged.items())),
            'removed': sorted(self.removed),
            'untracked': sorted(self.untracked),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'StagingArea':
        return cls(dict(data.get('staged', {})), set(data.get('removed', [])), set(data.get('untracked', [])))


@dataclass
class RepositoryState:
    """Branch table, HEAD, active branch, staging area and stub-command counters."""

    head: str
    current_branch: str
    branches: dict[str, str]
    staging: StagingArea = field(default_factory=StagingArea)
    counters: dict[str, int] = field(default_factory=dict)

    def move_branch(self, branch: str, commit_hash: str) -> None:
        """Point a branch at a commit, moving HEAD along when the branch is checked out."""
        self.branches[branch] = commit_hash
        if branch == self.current_branch:
            self.head = commit_hash

    def switch_to(self, branch: str) -> None:
        self.current_branch = branch
        self.head = self.branches[branch]

    def bump_counter(self, name: str) -> int:
        self.counters[name] = self.counters.get(name, 0) + 1
        return self.counters[name]

    def to_dict(self) -> dict[str, Any]:
        return {
            'head': self.head,
            'current_branch': self.current_branch,
            'branches': dict(sorted(self.branches.items())),
            'staging': self.staging.to_dict(),
            'counters': dict(sorted(self.counters.items())),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'RepositoryState':
        return cls(
            data['head'],
            data['current_branch'],
            dict(data['branches']),
            StagingArea.from_dict(data.get('staging', {})),
            {name: int(count) for name, count in data.get('counters', {}).items()},
        )


def load_state(state_file: Path) -> RepositoryState:
    """Read the repository-state record.

    :param state_file: Path of the serialized record.
    :return: The loaded state.
    :raises RepositoryError: If the record is missing or cannot be decoded."""
    try:
        data = json.loads(state_file.read_text(encoding='utf-8'))
        return RepositoryState.from_dict(data)
    except FileNotFoundError as e:
        msg = f'Repository state file {state_file} does not exist'
        raise RepositoryError(msg) from e
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        msg = f'Repository state file {state_file} is corrupted'
        raise RepositoryError(msg) from e


def save_state(state_file: Path, state: RepositoryState) -> None:
    """Atomically replace the repository-state record."""
    data = json.dumps(state.to_dict(), indent=2, ensure_ascii=False)
    write_file_atomic(state_file, data.encode('utf-8'))
    logger.debug('Saved repository state (HEAD %s on %s)', state.head[:8], state.current_branch)
