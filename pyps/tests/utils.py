"""Shared utilities for pyps tests."""
import logging
import subprocess
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import git

logger = logging.getLogger(__name__)

def run_cmd(args: Sequence[str], cwd: Optional[str] = None, check: bool = True) -> str:
    """Run a command and return its output.

    Args:
        args: Command and arguments
        cwd: Working directory
        check: Whether to check return code

    Returns:
        str: Command output
    """
    logger.debug(f"Running command: {' '.join(args)}")
    result = subprocess.run(
        list(args), check=check, cwd=cwd,
        capture_output=True, text=True
    )
    logger.debug(f"Command output: {result.stdout.strip()}")
    if result.stderr:
        logger.debug(f"Command stderr: {result.stderr.strip()}")
    return result.stdout.strip()

def run_git(*args: str, cwd: Optional[str] = None) -> str:
    """Run a git command and return its output."""
    return run_cmd(["git", *args], cwd=cwd)

def list_refs(repo_dir: str) -> List[Tuple[str, str]]:
    """All refs in a repository with the shas they point at."""
    output = run_git("for-each-ref", "--format=%(refname) %(objectname)", cwd=repo_dir)
    refs: List[Tuple[str, str]] = []
    for line in output.splitlines():
        name, _, sha = line.partition(" ")
        refs.append((name, sha))
    return sorted(refs)

@dataclass
class RepoContext:
    """A clone of a local bare origin, on main, tracking origin/main."""
    repo_dir: str
    remote_dir: str

    @property
    def repo(self) -> git.Repo:
        return git.Repo(self.repo_dir)

    def git(self, *args: str) -> str:
        """Run git in the repository."""
        return run_git(*args, cwd=self.repo_dir)

    def rev_parse(self, rev: str) -> str:
        return self.git("rev-parse", rev)

    def write_file(self, file: str, content: str) -> None:
        with open(os.path.join(self.repo_dir, file), "w") as f:
            f.write(content)

    def read_file(self, file: str) -> str:
        with open(os.path.join(self.repo_dir, file)) as f:
            return f.read()

    def make_commit(self, file: str, content: str, *messages: str) -> str:
        """Write file, commit it with one -m per message and return the new sha."""
        self.write_file(file, content)
        self.git("add", file)
        args: List[str] = ["commit"]
        for message in messages:
            args.extend(["-m", message])
        self.git(*args)
        return self.rev_parse("HEAD")

    def show(self, rev: str, file: str) -> str:
        """File contents at a revision."""
        return self.git("show", f"{rev}:{file}")

    def files_at(self, rev: str) -> List[str]:
        return self.git("ls-tree", "-r", "--name-only", rev).splitlines()

    def message(self, rev: str) -> str:
        return self.git("log", "-1", "--format=%B", rev)

    def refs(self) -> List[Tuple[str, str]]:
        return list_refs(self.repo_dir)

    def push_main(self) -> str:
        """Push main so the current HEAD becomes the stack base."""
        self.git("push", "origin", "main")
        return self.rev_parse("origin/main")

SHARED_LINES = [f"line {n}" for n in range(1, 11)]

def shared_content(first: str = "line 1", last: str = "line 10") -> str:
    """Ten line file used to exercise content level merges."""
    lines = list(SHARED_LINES)
    lines[0] = first
    lines[-1] = last
    return "\n".join(lines) + "\n"
