from pathlib import Path

from libgitlet.exceptions import PreconditionError, RepositoryError, UntrackedFileError
from libgitlet.plumbing import hash_string
from libgitlet.worktree import WorkingTree
from pytest import raises


def _tree(tmp_path: Path) -> WorkingTree:
    (tmp_path / '.gitlet').mkdir()
    (tmp_path / '.gitlet' / 'repo').write_text('{}')
    return WorkingTree(tmp_path, '.gitlet')


def test_files_excludes_repository_directory(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    (tmp_path / 'b.txt').write_text('b')
    (tmp_path / 'sub').mkdir()
    (tmp_path / 'sub' / 'a.txt').write_text('a')

    assert tree.files() == ['b.txt', 'sub/a.txt']


def test_relative(tmp_path: Path) -> None:
    tree = _tree(tmp_path)

    assert tree.relative(tmp_path / 'sub' / 'a.txt') == 'sub/a.txt'
    assert tree.relative('b.txt') == 'b.txt'


def test_write_read_and_hash(tmp_path: Path) -> None:
    tree = _tree(tmp_path)

    tree.write('deep/dir/f.txt', b'content')

    assert tree.exists('deep/dir/f.txt')
    assert tree.read('deep/dir/f.txt') == b'content'
    assert tree.content_hash('deep/dir/f.txt') == hash_string(b'content')


def test_delete_prunes_empty_directories(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    tree.write('a/b/f.txt', b'f')
    tree.write('a/g.txt', b'g')

    assert tree.delete('a/b/f.txt')
    assert not (tmp_path / 'a' / 'b').exists()
    assert (tmp_path / 'a').is_dir()

    assert tree.delete('a/g.txt')
    assert not (tmp_path / 'a').exists()
    assert not tree.delete('a/g.txt')


def test_untracked_files(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    for name in ('tracked.txt', 'staged.txt', 'stray.txt'):
        tree.write(name, name.encode())

    assert tree.untracked_files({'tracked.txt': 'h'}, {'staged.txt': 'h'}) == ['stray.txt']

    with raises(UntrackedFileError):
        tree.check_untracked({'tracked.txt': 'h'}, {'staged.txt': 'h'})

    tree.check_untracked({'tracked.txt': 'h', 'stray.txt': 'h'}, {'staged.txt': 'h'})


def test_materialize(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    tree.write('old/extra.txt', b'extra')
    tree.write('keep.txt', b'stale')
    blobs = {'h1': b'fresh', 'h2': b'nested'}

    tree.materialize({'keep.txt': 'h1', 'new/dir/n.txt': 'h2'}, blobs.__getitem__)

    assert tree.files() == ['keep.txt', 'new/dir/n.txt']
    assert tree.read('keep.txt') == b'fresh'
    assert tree.read('new/dir/n.txt') == b'nested'
    assert (tmp_path / '.gitlet' / 'repo').exists()


def test_blocked_paths(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    tree.write('dir/inner.txt', b'inner')
    tree.write('file', b'file')

    # A file cannot replace a directory that still holds files
    assert tree.blocked_paths(['dir']) == ['dir']
    # A file cannot be written below another file
    assert tree.blocked_paths(['file/child.txt']) == ['file/child.txt']
    assert tree.blocked_paths(['dir/other.txt', 'new.txt']) == []

    # Deleting what is in the way unblocks both
    assert tree.blocked_paths(['dir', 'file/child.txt'], ['dir/inner.txt', 'file']) == []


def test_blocked_paths_reports_empty_directories(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    (tmp_path / 'empty').mkdir()

    assert tree.blocked_paths(['empty']) == ['empty']

    with raises(PreconditionError, match='A file or directory is in the way of empty.'):
        tree.check_writable(['empty'])


def test_materialize_leaves_tree_untouched_when_blocked(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    tree.write('stale.txt', b'stale')
    (tmp_path / 'target').mkdir()

    with raises(PreconditionError):
        tree.materialize({'target': 'h1'}, {'h1': b'data'}.__getitem__)

    assert tree.read('stale.txt') == b'stale'
    assert (tmp_path / 'target').is_dir()


def test_write_error_is_a_repository_error(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    (tmp_path / 'dir').mkdir()

    with raises(RepositoryError, match='Cannot write dir'):
        tree.write('dir', b'data')
