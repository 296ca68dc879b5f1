"""Patch stack concepts built on top of the git module.

A patch stack is the list of commits between the upstream of the current
branch (the base) and HEAD. Each patch gets a stable identifier stored as a
``ps-id:`` trailer in its commit message the first time it is needed.
"""

import re
import uuid
import logging
from dataclasses import dataclass
from typing import List, Optional
from git import Commit, Head, Reference, Repo
from git.exc import BadName, BadObject, GitCommandError
from .. import git as ps_git
from ..typing import CommitHash, Patch, PatchId

# Get module logger
logger = logging.getLogger(__name__)

PS_ID_KEY = "ps-id"
PS_ID_REGEX = re.compile(
    r'^' + PS_ID_KEY + r':[ \t]*([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})[ \t]*$',
    re.MULTILINE)
TRAILER_REGEX = re.compile(r'^[A-Za-z0-9][A-Za-z0-9-]*:\s')

class PatchStackError(Exception):
    """Base class for failures locating the patch stack."""

class HeadNoNameError(PatchStackError):
    """HEAD is detached, so there is no branch to find an upstream for."""

class UpstreamBranchNameNotFoundError(PatchStackError):
    """The current branch has no upstream configured."""

class PatchStackGitError(PatchStackError):
    """Walking the commits between base and HEAD failed."""

class PatchStackBaseNotFoundError(PatchStackError):
    """The upstream ref does not resolve to a commit."""

class AddPsIdError(Exception):
    """Base class for failures adding a ps-id to a commit."""

class AddPsIdCommitNotFoundError(AddPsIdError):
    """The commit to add an id to does not exist."""

class AddPsIdMessageMissingError(AddPsIdError):
    """The commit has no message to add an id to."""

class AddPsIdGitError(AddPsIdError):
    """Writing the new commit failed."""

@dataclass
class PatchStack:
    """HEAD's branch and the upstream ref it is stacked on."""
    head: Head
    base: Reference

@dataclass
class LocatedPatchStack:
    """Base commit of a patch stack and its patches, oldest first."""
    base: Commit
    patches: List[Patch]

def get_patch_stack(repo: Repo, git_cmd: Optional[ps_git.RealGit] = None) -> PatchStack:
    """Find HEAD's branch and its upstream."""
    branch_name = ps_git.head_branch_name(repo)
    if branch_name is None:
        raise HeadNoNameError("HEAD is not on a branch")

    try:
        upstream_name = ps_git.branch_upstream_name(repo, branch_name, git_cmd)
    except ps_git.NotFoundError as e:
        raise UpstreamBranchNameNotFoundError(f"Branch {branch_name} has no upstream") from e

    logger.debug(f"Patch stack {branch_name} is based on {upstream_name}")
    return PatchStack(head=repo.head.reference, base=Reference(repo, upstream_name))

def peel_base(patch_stack: PatchStack) -> Commit:
    """Resolve the base of the patch stack to a commit."""
    try:
        return patch_stack.base.commit
    except (ValueError, BadName, BadObject) as e:
        raise PatchStackBaseNotFoundError(f"{patch_stack.base.path} does not point at a commit") from e

def get_patch_list(repo: Repo, patch_stack: PatchStack) -> List[Patch]:
    """List the patches in the stack. Returns patches ordered with bottom patch first."""
    rev_range = f"{patch_stack.base.path}..{patch_stack.head.path}"
    try:
        commits = list(repo.iter_commits(rev_range, reverse=True))
    except (GitCommandError, ValueError) as e:
        raise PatchStackGitError(f"Failed to walk {rev_range}: {e}") from e
    return [Patch.from_commit(commit, index) for index, commit in enumerate(commits)]

def locate_stack(repo: Repo, git_cmd: Optional[ps_git.RealGit] = None) -> LocatedPatchStack:
    """Find the base commit and the patches on top of it."""
    patch_stack = get_patch_stack(repo, git_cmd)
    base = peel_base(patch_stack)
    patches = get_patch_list(repo, patch_stack)

    logger.info(f"Patch stack: {len(patches)} patches on {patch_stack.base.name} ({base.hexsha[:8]})")
    for patch in patches:
        logger.debug(f"  {patch.index}: {patch.oid[:8]} {patch.summary}")
    return LocatedPatchStack(base=base, patches=patches)

def extract_ps_id(message: str) -> Optional[PatchId]:
    """Find the ps-id in a commit message, if it has one."""
    match = PS_ID_REGEX.search(message)
    if match is None:
        return None
    return PatchId(match.group(1).lower())

def _ends_with_trailers(message: str) -> bool:
    """Whether the last paragraph of a message is a trailer block.

    The subject paragraph never counts as trailers.
    """
    paragraphs = [p for p in re.split(r'\n\s*\n', message.strip()) if p.strip()]
    if len(paragraphs) < 2:
        return False
    return all(TRAILER_REGEX.match(line) for line in paragraphs[-1].splitlines())

def add_ps_id_to_message(message: str, ps_id: uuid.UUID) -> str:
    """Append a ps-id trailer to a message."""
    body = message.rstrip()
    separator = "\n" if _ends_with_trailers(body) else "\n\n"
    return f"{body}{separator}{PS_ID_KEY}: {ps_id}\n"

def add_ps_id(repo: Repo, commit_oid: str, ps_id: uuid.UUID) -> CommitHash:
    """Write a copy of a commit with ps_id added to its message.

    The copy has the same tree, parents, author and committer. No ref is
    updated, the returned sha is unreachable until the caller points a ref
    at it.
    """
    try:
        commit = ps_git.resolve_commit(repo, commit_oid)
    except ps_git.NotFoundError as e:
        raise AddPsIdCommitNotFoundError(f"Commit {commit_oid} not found") from e

    message = commit.message
    if not isinstance(message, str) or not message.strip():
        raise AddPsIdMessageMissingError(f"Commit {commit_oid} has no message")

    try:
        new_commit = Commit.create_from_tree(
            repo, commit.tree, add_ps_id_to_message(message, ps_id),
            parent_commits=list(commit.parents),
            head=False,
            author=commit.author,
            committer=commit.committer,
            author_date=commit.authored_datetime,
            commit_date=commit.committed_datetime)
    except (GitCommandError, ValueError, OSError) as e:
        raise AddPsIdGitError(f"Failed to write commit with {PS_ID_KEY}: {e}") from e

    logger.info(f"Added {PS_ID_KEY} {ps_id} to {commit.hexsha[:8]} as {new_commit.hexsha[:8]}")
    return CommitHash(new_commit.hexsha)

def ensure_ps_id(repo: Repo, commit_oid: str) -> CommitHash:
    """Return a commit carrying a ps-id: the commit itself if it has one, else a new copy."""
    try:
        commit = ps_git.resolve_commit(repo, commit_oid)
    except ps_git.NotFoundError as e:
        raise AddPsIdCommitNotFoundError(f"Commit {commit_oid} not found") from e

    message = commit.message if isinstance(commit.message, str) else ""
    if extract_ps_id(message) is not None:
        return CommitHash(commit.hexsha)
    return add_ps_id(repo, commit.hexsha, uuid.uuid4())

def generate_rr_branch_name(summary: str, prefix: str = "ps/rr/") -> str:
    """Branch name for a request-review branch, derived from the patch summary."""
    stripped = re.sub(r'[^\w\s-]', '', summary.lower())
    slug = '_'.join(stripped.split())
    return f"{prefix}{slug}"
