"""Merge helpers for libgitlet: split-point search, per-file classification and conflict synthesis."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, auto

from merge3 import Merge3

from .constants import (CONFLICT_CURRENT_NAME, CONFLICT_END_MARKER, CONFLICT_MID_MARKER, CONFLICT_START_MARKER,
                        MERGE_STYLE_FILE, MERGE_STYLE_LINES)
from .objects import Commit
from .ref import HashRef

logger = logging.getLogger(__name__)


class MergeCase(Enum):
    """How a single path is resolved, from its blob hash at the split point, the current tip and the target tip."""

    UNCHANGED = auto()
    MODIFIED_IN_TARGET = auto()
    MODIFIED_IN_CURRENT = auto()
    MODIFIED_SAME = auto()
    CONFLICT = auto()
    ADDED_IN_CURRENT = auto()
    ADDED_IN_TARGET = auto()
    DELETED_IN_TARGET = auto()
    DELETED_IN_CURRENT = auto()


class MergeOutcome(Enum):
    ANCESTOR = auto()
    FAST_FORWARD = auto()
    MERGED = auto()


@dataclass
class MergeResult:
    """Represents the output of merging a branch into the current branch."""

    outcome: MergeOutcome
    commit: HashRef | None = None
    conflicts: list[str] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def classify(split: str | None, current: str | None, target: str | None) -> MergeCase:
    """Classify one path by comparing its blob hash in the three commits.

    ``None`` means the path is absent from that commit. Every combination maps to
    exactly one case.

    :param split: Blob hash at the split point.
    :param current: Blob hash at the current branch's tip.
    :param target: Blob hash at the target branch's tip.
    :return: The merge case for the path."""
    if current == target:
        return MergeCase.UNCHANGED if split == current else MergeCase.MODIFIED_SAME

    if split == current:
        if target is None:
            return MergeCase.DELETED_IN_TARGET
        return MergeCase.ADDED_IN_TARGET if split is None else MergeCase.MODIFIED_IN_TARGET

    if split == target:
        if current is None:
            return MergeCase.DELETED_IN_CURRENT
        return MergeCase.ADDED_IN_CURRENT if split is None else MergeCase.MODIFIED_IN_CURRENT

    return MergeCase.CONFLICT


def ancestor_chain(load_commit: Callable[[str], Commit], tip: str) -> list[HashRef]:
    """Walk parent links from a commit to the root.

    :param load_commit: Callable loading a commit by its full hash.
    :param tip: Hash of the commit to start from.
    :return: The chain of hashes, tip first and root last."""
    chain: list[HashRef] = []
    current_hash: str | None = tip
    while current_hash:
        chain.append(HashRef(current_hash))
        current_hash = load_commit(current_hash).parent
    return chain


def find_split_point(load_commit: Callable[[str], Commit], current_tip: str, target_tip: str) -> HashRef | None:
    """Find the nearest common ancestor of two single-parent commit chains.

    :return: The first commit in the target's ancestor chain that is also an
        ancestor of the current tip, or None if the chains share no commit."""
    current_ancestors = set(ancestor_chain(load_commit, current_tip))
    for commit_hash in ancestor_chain(load_commit, target_tip):
        if commit_hash in current_ancestors:
            return commit_hash
    return None


def conflict_content(current: bytes | None, target: bytes | None) -> bytes:
    """Build the whole-file conflict artifact for two versions of a file.

    A missing version contributes no content."""
    return b''.join([
        f'{CONFLICT_START_MARKER} {CONFLICT_CURRENT_NAME}\n'.encode(),
        current or b'',
        f'{CONFLICT_MID_MARKER}\n'.encode(),
        target or b'',
        f'{CONFLICT_END_MARKER}\n'.encode(),
    ])


def merge_blob_text(base: str, ours: str, theirs: str) -> tuple[str, bool]:
    """Merge three versions of a text using merge3.

    Changes to different lines are combined; overlapping changes are wrapped in
    conflict markers.

    :return: Tuple of (merged_text, has_conflict)."""
    base_lines = base.splitlines(keepends=True)
    ours_lines = ours.splitlines(keepends=True)
    theirs_lines = theirs.splitlines(keepends=True)

    merger = Merge3(base_lines, ours_lines, theirs_lines)
    merged_text = ''.join(merger.merge_lines(name_a=CONFLICT_CURRENT_NAME,
                                             start_marker=CONFLICT_START_MARKER,
                                             mid_marker=CONFLICT_MID_MARKER,
                                             end_marker=CONFLICT_END_MARKER))
    conflict = any(group[0] == 'conflict' for group in merger.merge_groups() if group)

    return merged_text, conflict


def resolve_conflict(base: bytes | None, current: bytes | None, target: bytes | None,
                     style: str = MERGE_STYLE_FILE) -> tuple[bytes, bool]:
    """Produce the content for a path both branches changed differently.

    With the ``lines`` style and all three versions present as UTF-8 text, a
    line-level three-way merge is attempted first. Otherwise, or if the texts
    cannot be decoded, the whole-file conflict artifact is produced.

    :return: Tuple of (content, has_conflict)."""
    if style == MERGE_STYLE_LINES and base is not None and current is not None and target is not None:
        try:
            texts = (base.decode('utf-8'), current.decode('utf-8'), target.decode('utf-8'))
        except UnicodeDecodeError:
            logger.debug('Binary content, falling back to whole-file conflict')
        else:
            merged_text, conflict = merge_blob_text(*texts)
            return merged_text.encode('utf-8'), conflict

    return conflict_content(current, target), True
