"""Git interfaces and implementation.

Nothing in here knows about patch stacks. Functions take and return GitPython
types and plain git concepts (shas, refs, trees) so that the patch stack layer
can be built on top of them.
"""

import os
import shlex
import logging
import tempfile
from io import BytesIO
from typing import Dict, List, Optional
import git
from git import Blob, Commit, IndexFile, Reference, Repo
from git.exc import (BadName, BadObject, GitCommandError, InvalidGitRepositoryError,
                     NoSuchPathError, UnmergedEntriesError)
from gitdb.base import IStream
from ..config.models import PypsConfig
from ..typing import CommitHash

# Get module logger
logger = logging.getLogger(__name__)

class GitError(Exception):
    """Base class for failures talking to the repository."""

class RepositoryMissingError(GitError):
    """No repository at or above the working directory."""

class NotFoundError(GitError):
    """An object, ref or value that was asked for does not exist."""

class GitCommandFailedError(GitError):
    """A git plumbing command exited with an error."""

class MergeConflictError(GitError):
    """A three-way tree merge left paths that could not be resolved."""

    def __init__(self, paths: List[str]):
        self.paths = paths
        super().__init__(f"Merge conflict in {', '.join(paths)}")

class RealGit:
    """Runs git plumbing commands against one repository."""
    def __init__(self, repo: Repo, config: PypsConfig):
        """Initialize with repository and config."""
        self.repo = repo
        self.config = config

    def must_git(self, *args: str) -> str:
        """Run git command, raising GitCommandFailedError on error."""
        cmd_str = " ".join(shlex.quote(a) for a in args)
        if self.config.user.log_git_commands:
            logger.info(f"> git {cmd_str}")
        else:
            logger.debug(f"> git {cmd_str}")

        git_command = args[0]
        method = getattr(self.repo.git, git_command.replace('-', '_'))
        try:
            result = method(*args[1:])
        except GitCommandError as e:
            raise GitCommandFailedError(f"Git command failed: {e}") from e
        return result if isinstance(result, str) else str(result)

def create_cwd_repo() -> Repo:
    """Open the already-existing repository at or above the current working directory."""
    try:
        return Repo(os.getcwd(), search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise RepositoryMissingError(f"No git repository at or above {os.getcwd()}") from e

def resolve_commit(repo: Repo, oid: str) -> Commit:
    """Find the commit for a sha or revision."""
    try:
        commit = repo.commit(oid)
    except (BadName, BadObject, ValueError) as e:
        raise NotFoundError(f"Commit {oid} not found") from e
    # The all-zero sha is handed back without an object database lookup
    if commit.binsha == Commit.NULL_BIN_SHA:
        raise NotFoundError(f"Commit {oid} not found")
    return commit

def get_summary(repo: Repo, oid: str) -> str:
    """Get the first line of a commit's message."""
    summary = resolve_commit(repo, oid).summary
    if not isinstance(summary, str) or not summary:
        raise NotFoundError(f"Commit {oid} has no summary")
    return summary

def branch_upstream_name(repo: Repo, branch_name: str, git_cmd: Optional[RealGit] = None) -> str:
    """Get the full ref name of the upstream configured for a local branch.

    git maps branch.<name>.merge through the remote's fetch refspec, so the
    name is right for non-default refspecs. The ref itself may not exist yet.
    """
    if git_cmd is None:
        git_cmd = RealGit(repo, PypsConfig())
    try:
        upstream = git_cmd.must_git("for-each-ref", "--format=%(upstream)",
                                    git.Head.to_full_path(branch_name)).strip()
    except GitCommandFailedError as e:
        raise NotFoundError(f"Branch {branch_name} upstream lookup failed") from e
    if not upstream:
        raise NotFoundError(f"Branch {branch_name} has no upstream")
    return upstream

def _store_blob(repo: Repo, data: bytes) -> bytes:
    """Write data to the object database, returning the binary sha."""
    istream = repo.odb.store(IStream(Blob.type, len(data), BytesIO(data)))
    return istream.binsha

def _merge_blobs(repo: Repo, git_cmd: RealGit, path: str, stages: Dict[int, Blob]) -> Blob:
    """Content merge of a path present at all three stages.

    Runs git merge-file on temporary copies so the working tree is never used.
    """
    base, ours, theirs = stages[1], stages[2], stages[3]
    if ours.mode == base.mode:
        mode = theirs.mode
    elif theirs.mode == base.mode or theirs.mode == ours.mode:
        mode = ours.mode
    else:
        raise MergeConflictError([path])

    with tempfile.TemporaryDirectory(prefix="pyps-merge-") as tmpdir:
        files: List[str] = []
        for name, blob in (("ours", ours), ("base", base), ("theirs", theirs)):
            file_path = os.path.join(tmpdir, name)
            with open(file_path, "wb") as f:
                f.write(blob.data_stream.read())
            files.append(file_path)
        try:
            git_cmd.must_git("merge-file", "-q", *files)
        except GitCommandFailedError as e:
            raise MergeConflictError([path]) from e
        with open(files[0], "rb") as f:
            merged = f.read()

    return Blob(repo, _store_blob(repo, merged), mode, path)

def merge_trees(repo: Repo, git_cmd: RealGit, base: Commit, ours: Commit, theirs: Commit) -> git.Tree:
    """Three-way merge of commit trees into a new tree in the object database.

    The merge happens in a temporary index, the repository index and working
    tree are left alone. Raises MergeConflictError when a path can't be merged.
    """
    try:
        index = IndexFile.from_tree(repo, base.tree, ours.tree, theirs.tree)
    except GitCommandError as e:
        raise GitCommandFailedError(f"Tree merge failed: {e}") from e

    resolved: List[Blob] = []
    conflicts: List[str] = []
    for path, entries in index.unmerged_blobs().items():
        stages = dict(entries)
        if set(stages) != {1, 2, 3}:
            # Added on both sides, or changed on one side and deleted on the other
            conflicts.append(str(path))
            continue
        try:
            resolved.append(_merge_blobs(repo, git_cmd, str(path), stages))
        except MergeConflictError:
            conflicts.append(str(path))

    if conflicts:
        raise MergeConflictError(sorted(conflicts))

    index.resolve_blobs(iter(resolved))
    try:
        return index.write_tree()
    except (UnmergedEntriesError, ValueError) as e:
        raise GitCommandFailedError(f"Failed to write merged tree: {e}") from e

def cherry_pick_no_working_copy(repo: Repo, git_cmd: RealGit, oid: str, dest_ref_name: str) -> CommitHash:
    """Cherry pick a commit onto the commit a ref points at, then advance the ref.

    Nothing is checked out. The ref is only moved once the new commit exists,
    and only if it still points where it did when the pick started.
    """
    commit = resolve_commit(repo, oid)
    dest = Reference(repo, dest_ref_name)
    try:
        dest_commit = dest.commit
    except (ValueError, BadName, BadObject) as e:
        raise NotFoundError(f"Reference {dest_ref_name} not found") from e

    if len(commit.parents) != 1:
        raise GitCommandFailedError(
            f"Can only cherry pick commits with one parent, {commit.hexsha[:8]} has {len(commit.parents)}")

    tree = merge_trees(repo, git_cmd, commit.parents[0], dest_commit, commit)
    new_commit = Commit.create_from_tree(
        repo, tree, commit.message,
        parent_commits=[dest_commit],
        head=False,
        author=commit.author,
        author_date=commit.authored_datetime)
    logger.debug(f"Wrote commit {new_commit.hexsha[:8]} picking {commit.hexsha[:8]} onto {dest_commit.hexsha[:8]}")

    git_cmd.must_git("update-ref", "-m", f"pyps: cherry-pick {commit.summary}",
                     dest_ref_name, new_commit.hexsha, dest_commit.hexsha)
    return CommitHash(new_commit.hexsha)

def head_branch_name(repo: Repo) -> Optional[str]:
    """Name of the branch HEAD points at, or None when detached."""
    if repo.head.is_detached:
        return None
    return repo.head.reference.name
