from pathlib import Path

from libgitlet.repository import Repository
from pytest import fixture


@fixture
def temp_repo_dir(tmp_path: Path) -> Path:
    working_dir = tmp_path / 'work'
    working_dir.mkdir()
    return working_dir


@fixture
def temp_repo(temp_repo_dir: Path) -> Repository:
    repo = Repository(temp_repo_dir)
    repo.init()
    return repo
