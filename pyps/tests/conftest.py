"""Fixtures for tests that need a real git repository."""

import os
import logging
from pathlib import Path
from typing import Generator

import pytest

from pyps.tests.utils import RepoContext, run_git

logger = logging.getLogger(__name__)

@pytest.fixture
def repo_ctx(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[RepoContext, None, None]:
    """Repository with one pushed commit and main tracking origin/main.

    HOME points into tmp_path so user level git and pyps config is ignored,
    and the working directory is the repository.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE", "GIT_AUTHOR_DATE", "GIT_COMMITTER_DATE"):
        monkeypatch.delenv(var, raising=False)

    remote_dir = str(tmp_path / "remote.git")
    repo_dir = str(tmp_path / "teststack")
    run_git("init", "--bare", "-b", "main", remote_dir)
    os.mkdir(repo_dir)
    run_git("init", "-b", "main", cwd=repo_dir)

    ctx = RepoContext(repo_dir=repo_dir, remote_dir=remote_dir)
    ctx.git("config", "user.name", "Test User")
    ctx.git("config", "user.email", "test@example.com")
    ctx.git("config", "commit.gpgsign", "false")
    ctx.make_commit("README.md", "# teststack\n\nUsed for automated testing.\n", "Initial commit")
    ctx.git("remote", "add", "origin", remote_dir)
    ctx.git("push", "-u", "origin", "main")

    monkeypatch.chdir(repo_dir)
    logger.info(f"Test repository at {repo_dir}")
    yield ctx

@pytest.fixture
def two_patch_ctx(repo_ctx: RepoContext) -> RepoContext:
    """origin/main at C0, main at C2: C0 -> C1 (Add alpha) -> C2 (Add beta)."""
    repo_ctx.make_commit("a.txt", "alpha\n", "Add alpha")
    repo_ctx.make_commit("b.txt", "beta\n", "Add beta")
    return repo_ctx

