"""Commit references and abbreviated-id resolution."""

from bisect import bisect_left
from collections.abc import Iterable, Iterator

from .constants import HASH_CHARSET, HASH_LENGTH
from .exceptions import AmbiguousRefError, NotFoundError


class HashRef(str):
    """A full-length object hash."""

    __slots__ = ()


def is_full_hash(ref: str) -> bool:
    """Check whether a string has the shape of a full object hash.

    :param ref: The string to check.
    :return: True if the string is HASH_LENGTH lowercase hex characters."""
    return len(ref) == HASH_LENGTH and all(c in HASH_CHARSET for c in ref)


class CommitIndex:
    """Sorted index over stored commit hashes, used to resolve abbreviated ids.

    A prefix resolves only when exactly one stored hash starts with it."""

    def __init__(self, hashes: Iterable[str] = ()) -> None:
        self._hashes: list[str] = sorted(set(hashes))

    def __len__(self) -> int:
        return len(self._hashes)

    def __iter__(self) -> Iterator[HashRef]:
        return (HashRef(h) for h in self._hashes)

    def __contains__(self, commit_hash: object) -> bool:
        if not isinstance(commit_hash, str):
            return False
        pos = bisect_left(self._hashes, commit_hash)
        return pos < len(self._hashes) and self._hashes[pos] == commit_hash

    def matches(self, prefix: str) -> list[HashRef]:
        """Return every indexed hash starting with the given prefix."""
        found: list[HashRef] = []
        pos = bisect_left(self._hashes, prefix)
        while pos < len(self._hashes) and self._hashes[pos].startswith(prefix):
            found.append(HashRef(self._hashes[pos]))
            pos += 1
        return found

    def resolve(self, ref: str) -> HashRef:
        """Resolve a full or abbreviated commit id to a full hash.

        :param ref: A full commit hash or a prefix of one.
        :return: The full hash of the matching commit.
        :raises NotFoundError: If no indexed commit matches.
        :raises AmbiguousRefError: If the prefix matches more than one commit."""
        ref = ref.lower()
        if len(ref) == HASH_LENGTH:
            if ref in self:
                return HashRef(ref)
            msg = 'No commit with that id exists.'
            raise NotFoundError(msg)

        found = self.matches(ref) if ref else []
        if not found:
            msg = 'No commit with that id exists.'
            raise NotFoundError(msg)
        if len(found) > 1:
            msg = f'Commit id {ref} is ambiguous; it matches {len(found)} commits.'
            raise AmbiguousRefError(msg)

        return found[0]
