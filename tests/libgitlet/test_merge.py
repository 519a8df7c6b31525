from libgitlet.constants import MERGE_STYLE_LINES
from libgitlet.merge import (MergeCase, ancestor_chain, classify, conflict_content, find_split_point,
                             merge_blob_text, resolve_conflict)
from libgitlet.objects import Commit
from pytest import mark


@mark.parametrize(('split', 'current', 'target', 'expected'), [
    ('s', 's', 's', MergeCase.UNCHANGED),
    ('s', 's', 't', MergeCase.MODIFIED_IN_TARGET),
    ('s', 'c', 's', MergeCase.MODIFIED_IN_CURRENT),
    ('s', 'x', 'x', MergeCase.MODIFIED_SAME),
    ('s', None, None, MergeCase.MODIFIED_SAME),
    (None, 'x', 'x', MergeCase.MODIFIED_SAME),
    ('s', 'c', 't', MergeCase.CONFLICT),
    ('s', 'c', None, MergeCase.CONFLICT),
    ('s', None, 't', MergeCase.CONFLICT),
    (None, 'c', 't', MergeCase.CONFLICT),
    (None, 'c', None, MergeCase.ADDED_IN_CURRENT),
    (None, None, 't', MergeCase.ADDED_IN_TARGET),
    ('s', 's', None, MergeCase.DELETED_IN_TARGET),
    ('s', None, 's', MergeCase.DELETED_IN_CURRENT),
])
def test_classify(split: str | None, current: str | None, target: str | None, expected: MergeCase) -> None:
    assert classify(split, current, target) == expected


def _history() -> dict[str, Commit]:
    # c0 <- c1 <- c2 <- c3 on one branch, c1 <- d1 <- d2 on the other
    return {
        'c0': Commit('root', 'ts'),
        'c1': Commit('c1', 'ts', 'c0'),
        'c2': Commit('c2', 'ts', 'c1'),
        'c3': Commit('c3', 'ts', 'c2'),
        'd1': Commit('d1', 'ts', 'c1'),
        'd2': Commit('d2', 'ts', 'd1'),
    }


def test_ancestor_chain() -> None:
    history = _history()

    assert ancestor_chain(history.__getitem__, 'd2') == ['d2', 'd1', 'c1', 'c0']


def test_find_split_point_of_diverged_branches() -> None:
    history = _history()

    assert find_split_point(history.__getitem__, 'c3', 'd2') == 'c1'
    assert find_split_point(history.__getitem__, 'd2', 'c3') == 'c1'


def test_find_split_point_when_one_tip_is_an_ancestor() -> None:
    history = _history()

    assert find_split_point(history.__getitem__, 'c3', 'c1') == 'c1'
    assert find_split_point(history.__getitem__, 'c1', 'c3') == 'c1'


def test_find_split_point_of_unrelated_histories() -> None:
    history = _history()
    history['x0'] = Commit('other root', 'ts')

    assert find_split_point(history.__getitem__, 'c3', 'x0') is None


def test_conflict_content() -> None:
    assert conflict_content(b'Y', b'Z') == b'<<<<<<< HEAD\nY=======\nZ>>>>>>>\n'


def test_conflict_content_with_missing_side() -> None:
    assert conflict_content(None, b'Z\n') == b'<<<<<<< HEAD\n=======\nZ\n>>>>>>>\n'
    assert conflict_content(b'Y\n', None) == b'<<<<<<< HEAD\nY\n=======\n>>>>>>>\n'


def test_merge_blob_text_clean() -> None:
    base = 'a\nb\nc\n'
    ours = 'A\nb\nc\n'
    theirs = 'a\nb\nC\n'

    merged, conflict = merge_blob_text(base, ours, theirs)

    assert merged == 'A\nb\nC\n'
    assert not conflict


def test_merge_blob_text_conflict() -> None:
    merged, conflict = merge_blob_text('a\n', 'ours\n', 'theirs\n')

    assert conflict
    assert merged.startswith('<<<<<<< HEAD\n')
    assert 'ours\n=======\ntheirs\n' in merged
    assert merged.endswith('>>>>>>>\n')


def test_resolve_conflict_file_style_ignores_line_structure() -> None:
    content, conflict = resolve_conflict(b'a\nb\nc\n', b'A\nb\nc\n', b'a\nb\nC\n')

    assert conflict
    assert content == b'<<<<<<< HEAD\nA\nb\nc\n=======\na\nb\nC\n>>>>>>>\n'


def test_resolve_conflict_lines_style() -> None:
    content, conflict = resolve_conflict(b'a\nb\nc\n', b'A\nb\nc\n', b'a\nb\nC\n', MERGE_STYLE_LINES)

    assert not conflict
    assert content == b'A\nb\nC\n'


def test_resolve_conflict_lines_style_falls_back_for_binary_content() -> None:
    current = b'\xff\xfe\x00'
    target = b'\xfe\xff\x01'

    content, conflict = resolve_conflict(b'\x00', current, target, MERGE_STYLE_LINES)

    assert conflict
    assert content == conflict_content(current, target)


def test_resolve_conflict_lines_style_falls_back_when_a_side_is_missing() -> None:
    content, conflict = resolve_conflict(b'a\n', b'changed\n', None, MERGE_STYLE_LINES)

    assert conflict
    assert content == b'<<<<<<< HEAD\nchanged\n=======\n>>>>>>>\n'
