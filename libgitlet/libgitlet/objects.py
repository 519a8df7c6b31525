"""Immutable objects stored in a libgitlet repository."""

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Blob:
    """Raw file content, addressed by the hash of its bytes."""

    hash: str
    size: int = 0


@dataclass(frozen=True)
class Commit:
    """A snapshot of tracked files together with its place in the commit graph.

    The snapshot maps repository-relative paths to blob hashes. A commit without
    a parent is the root of the graph."""

    message: str
    timestamp: str
    parent: str | None = None
    snapshot: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_root(self) -> bool:
        return self.parent is None


def format_snapshot(snapshot: Mapping[str, str]) -> str:
    """Render a snapshot as the string that takes part in a commit's hash.

    Paths are sorted so the result does not depend on insertion order.

    :param snapshot: The path to blob hash mapping.
    :return: ``{path=hash, ...}``, or ``{}`` for an empty snapshot."""
    return '{' + ', '.join(f'{path}={snapshot[path]}' for path in sorted(snapshot)) + '}'
