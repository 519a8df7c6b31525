from libgitlet.exceptions import AmbiguousRefError, NotFoundError
from libgitlet.ref import CommitIndex, is_full_hash
from pytest import raises

ALPHA = 'abc1' + '0' * 36
BETA = 'abc2' + '0' * 36
GAMMA = 'def0' + '0' * 36


def test_is_full_hash() -> None:
    assert is_full_hash(ALPHA)
    assert not is_full_hash(ALPHA[:-1])
    assert not is_full_hash(ALPHA.upper())
    assert not is_full_hash('z' * 40)


def test_index_membership_and_order() -> None:
    index = CommitIndex([GAMMA, ALPHA, BETA, ALPHA])

    assert len(index) == 3
    assert list(index) == [ALPHA, BETA, GAMMA]
    assert BETA in index
    assert 'abc' not in index


def test_resolve_unique_prefix() -> None:
    index = CommitIndex([ALPHA, BETA, GAMMA])

    assert index.resolve('abc1') == ALPHA
    assert index.resolve('DEF') == GAMMA
    assert index.resolve(BETA) == BETA


def test_resolve_ambiguous_prefix() -> None:
    index = CommitIndex([ALPHA, BETA, GAMMA])

    assert index.matches('abc') == [ALPHA, BETA]
    with raises(AmbiguousRefError, match='ambiguous'):
        index.resolve('abc')


def test_resolve_unknown_ids() -> None:
    index = CommitIndex([ALPHA, BETA])

    with raises(NotFoundError, match='No commit with that id exists.'):
        index.resolve('fff')

    with raises(NotFoundError):
        index.resolve('')

    # A full-length id must match exactly
    with raises(NotFoundError):
        index.resolve(GAMMA)


def test_ambiguous_ref_is_a_not_found_error() -> None:
    index = CommitIndex([ALPHA, BETA])

    with raises(NotFoundError):
        index.resolve('ab')
