"""Low-level object storage: hashing, blobs and commit records.

Blobs live in ``<repo>/blobs/<hash>`` as raw bytes and commits in
``<repo>/commits/<hash>`` as JSON. Every write is idempotent: an object whose
hash is already present is never rewritten."""

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO

from .exceptions import NotFoundError, RepositoryError
from .objects import Blob, Commit, format_snapshot
from .ref import HashRef, is_full_hash

logger = logging.getLogger(__name__)


def hash_string(content: str | bytes) -> HashRef:
    """Compute the SHA-1 hex digest of a string or of raw bytes."""
    if isinstance(content, str):
        content = content.encode('utf-8')
    return HashRef(hashlib.sha1(content).hexdigest())


def hash_object(obj: Blob | Commit) -> HashRef:
    """Compute the identity hash of a stored object.

    A commit hashes the concatenation of its message, its parent hash (or an empty
    string for the root), its timestamp and the string form of its snapshot. The
    root commit carries no snapshot and contributes an empty string instead.

    :param obj: The blob or commit to hash.
    :return: The object's hash."""
    match obj:
        case Blob():
            return HashRef(obj.hash)
        case Commit():
            digest = hashlib.sha1()
            snapshot_text = '' if obj.is_root and not obj.snapshot else format_snapshot(obj.snapshot)
            for part in (obj.message, obj.parent or '', obj.timestamp, snapshot_text):
                digest.update(part.encode('utf-8'))
            return HashRef(digest.hexdigest())
        case _:
            msg = f'Cannot hash object of type {type(obj)}'
            raise TypeError(msg)


def write_file_atomic(path: Path, data: bytes) -> None:
    """Write bytes to a file through a temporary sibling and an atomic rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.')
    try:
        with os.fdopen(fd, 'wb') as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def get_content_path(blobs_dir: str | Path, blob_hash: str) -> Path:
    return Path(blobs_dir) / blob_hash


def get_commit_path(commits_dir: str | Path, commit_hash: str) -> Path:
    return Path(commits_dir) / commit_hash


def save_blob_content(blobs_dir: str | Path, data: bytes) -> Blob:
    """Store raw bytes as a blob.

    :param blobs_dir: The blob directory of the repository.
    :param data: The content to store.
    :return: The stored blob."""
    blob = Blob(hash_string(data), len(data))
    path = get_content_path(blobs_dir, blob.hash)
    if path.exists():
        logger.debug('Blob %s already stored, skipped', blob.hash[:8])
        return blob

    write_file_atomic(path, data)
    logger.debug('Stored blob %s (%d bytes)', blob.hash[:8], blob.size)
    return blob


def save_file_content(blobs_dir: str | Path, file: Path) -> Blob:
    """Store the content of a working file as a blob.

    :param blobs_dir: The blob directory of the repository.
    :param file: The file to store.
    :return: The stored blob.
    :raises ValueError: If the file does not exist."""
    if not file.is_file():
        msg = f'File {file} does not exist'
        raise ValueError(msg)

    return save_blob_content(blobs_dir, file.read_bytes())


def open_content_for_reading(blobs_dir: str | Path, blob_hash: str) -> BinaryIO:
    """Open a stored blob for reading in binary mode.

    :raises NotFoundError: If no blob with that hash is stored."""
    try:
        return get_content_path(blobs_dir, blob_hash).open('rb')
    except FileNotFoundError as e:
        msg = f'No blob with id {blob_hash} exists.'
        raise NotFoundError(msg) from e


def load_blob_content(blobs_dir: str | Path, blob_hash: str) -> bytes:
    """Read a stored blob's bytes.

    :raises NotFoundError: If no blob with that hash is stored."""
    with open_content_for_reading(blobs_dir, blob_hash) as handle:
        return handle.read()


def save_commit(commits_dir: str | Path, commit: Commit) -> HashRef:
    """Store a commit record under its own hash.

    :param commits_dir: The commit directory of the repository.
    :param commit: The commit to store.
    :return: The commit's hash."""
    commit_hash = hash_object(commit)
    path = get_commit_path(commits_dir, commit_hash)
    if path.exists():
        logger.debug('Commit %s already stored, skipped', commit_hash[:8])
        return commit_hash

    record = {
        'message': commit.message,
        'timestamp': commit.timestamp,
        'parent': commit.parent,
        'snapshot': dict(sorted(commit.snapshot.items())),
    }
    write_file_atomic(path, json.dumps(record, indent=2, ensure_ascii=False).encode('utf-8'))
    logger.debug('Stored commit %s', commit_hash[:8])
    return commit_hash


def load_commit(commits_dir: str | Path, commit_hash: str) -> Commit:
    """Load a commit record by its full hash.

    :raises NotFoundError: If no commit with that hash is stored.
    :raises RepositoryError: If the stored record cannot be decoded."""
    path = get_commit_path(commits_dir, commit_hash)
    try:
        record = json.loads(path.read_text(encoding='utf-8'))
        return Commit(record['message'], record['timestamp'], record['parent'], dict(record['snapshot']))
    except FileNotFoundError as e:
        msg = 'No commit with that id exists.'
        raise NotFoundError(msg) from e
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        msg = f'Commit {commit_hash} is corrupted'
        raise RepositoryError(msg) from e


def list_commit_hashes(commits_dir: str | Path) -> list[HashRef]:
    """List the hashes of every stored commit, sorted."""
    commits_dir = Path(commits_dir)
    if not commits_dir.is_dir():
        return []
    return sorted(HashRef(p.name) for p in commits_dir.iterdir() if p.is_file() and is_full_hash(p.name))
