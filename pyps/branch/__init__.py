"""Request-review branch creation.

Publishes one patch of the stack as its own branch: a branch at the stack
base with that single patch cherry picked on top. HEAD, the index and the
working tree are never touched.
"""

import uuid
import logging
from typing import Dict, Optional, Type
import git
from git import Repo
from git.exc import GitCommandError
from .. import git as ps_git
from .. import ps
from ..config import Config
from ..config.config_parser import parse_config
from ..config.models import PypsConfig

# Get module logger
logger = logging.getLogger(__name__)

class BranchError(Exception):
    """Base class for branch command failures. str() is the user facing message."""
    message = "Branch failed"

    def __init__(self, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

class RepositoryMissing(BranchError):
    message = "Repository not found in current working directory"

class PatchStackNotFound(BranchError):
    message = "Patch Stack not found"

class PatchStackBaseNotFound(BranchError):
    message = "Patch Stack Base not found"

class PatchIndexNotFound(BranchError):
    message = "Patch Index out of range"

class PatchCommitNotFound(BranchError):
    message = "Patch commit not found"

class PatchMessageMissing(BranchError):
    message = "Patch missing message"

class AddPsIdToPatchFailed(BranchError):
    message = "Failed to add patch stack id to patch"

class PatchSummaryMissing(BranchError):
    message = "Patch missing summary"

class CreateRrBranchFailed(BranchError):
    message = "Failed to create request-review branch"

class RrBranchNameNotUtf8(BranchError):
    message = "request-review branch is not utf8"

class CherryPickFailed(BranchError):
    message = "Failed to cherry pick"

_PATCH_STACK_ERRORS: Dict[Type[ps.PatchStackError], Type[BranchError]] = {
    ps.HeadNoNameError: PatchStackNotFound,
    ps.UpstreamBranchNameNotFoundError: PatchStackNotFound,
    ps.PatchStackGitError: PatchStackNotFound,
    ps.PatchStackBaseNotFoundError: PatchStackBaseNotFound,
}

_ADD_PS_ID_ERRORS: Dict[Type[ps.AddPsIdError], Type[BranchError]] = {
    ps.AddPsIdCommitNotFoundError: AddPsIdToPatchFailed,
    ps.AddPsIdMessageMissingError: PatchMessageMissing,
    ps.AddPsIdGitError: AddPsIdToPatchFailed,
}

def from_patch_stack_error(e: ps.PatchStackError) -> BranchError:
    """Convert a patch stack error into the branch error the caller reports."""
    return _PATCH_STACK_ERRORS[type(e)](e)

def from_add_ps_id_error(e: ps.AddPsIdError) -> BranchError:
    """Convert a ps-id assignment error into the branch error the caller reports."""
    return _ADD_PS_ID_ERRORS[type(e)](e)

def from_cwd_repo_error(e: ps_git.GitError) -> BranchError:
    """Convert a failure to open the repository."""
    return RepositoryMissing(e)

def publish(repo: Repo, patch_index: int, config: Optional[PypsConfig] = None) -> None:
    """Create a request-review branch for the patch at patch_index.

    The branch is created at the patch stack base and the patch, tagged with
    a ps-id, is cherry picked onto it.
    """
    if config is None:
        config = Config(parse_config(repo))
    git_cmd = ps_git.RealGit(repo, config)

    # - find the patch identified by the patch_index
    try:
        stack = ps.locate_stack(repo, git_cmd)
    except ps.PatchStackError as e:
        raise from_patch_stack_error(e) from e

    if patch_index < 0 or patch_index >= len(stack.patches):
        raise PatchIndexNotFound()
    patch_oid = stack.patches[patch_index].oid

    try:
        patch_commit = ps_git.resolve_commit(repo, patch_oid)
    except ps_git.NotFoundError as e:
        raise PatchCommitNotFound(e) from e

    patch_message = patch_commit.message
    if not isinstance(patch_message, str) or not patch_message.strip():
        raise PatchMessageMissing()

    if ps.extract_ps_id(patch_message) is not None:
        new_patch_oid = patch_oid
    else:
        try:
            new_patch_oid = ps.add_ps_id(repo, patch_oid, uuid.uuid4())
        except ps.AddPsIdError as e:
            raise from_add_ps_id_error(e) from e

    # - create rr branch based on upstream branch
    try:
        patch_summary = ps_git.get_summary(repo, patch_oid)
    except ps_git.NotFoundError as e:
        raise PatchSummaryMissing(e) from e

    branch_name = ps.generate_rr_branch_name(patch_summary, config.branch.branch_prefix)
    if git.Head(repo, git.Head.to_full_path(branch_name)).is_valid():
        logger.error(f"Branch {branch_name} already exists")
        raise CreateRrBranchFailed()
    try:
        branch = repo.create_head(branch_name, stack.base,
                                  logmsg=f"pyps: branch {branch_name} from {stack.base.hexsha[:8]}")
    except (OSError, ValueError, GitCommandError) as e:
        raise CreateRrBranchFailed(e) from e

    branch_ref_name = str(branch.path)
    try:
        branch_ref_name.encode("utf-8")
    except UnicodeEncodeError as e:
        raise RrBranchNameNotUtf8(e) from e

    # - cherry pick the patch onto new rr branch
    try:
        new_sha = ps_git.cherry_pick_no_working_copy(repo, git_cmd, new_patch_oid, branch_ref_name)
    except ps_git.GitError as e:
        logger.error(f"Cherry pick of {new_patch_oid[:8]} onto {branch_name} failed: {e}")
        raise CherryPickFailed(e) from e

    logger.info(f"Created request-review branch {branch_name} at {new_sha[:8]}")

def branch(patch_index: int, config: Optional[PypsConfig] = None) -> None:
    """Create a request-review branch in the repository containing the working directory."""
    try:
        repo = ps_git.create_cwd_repo()
    except ps_git.RepositoryMissingError as e:
        raise from_cwd_repo_error(e) from e
    publish(repo, patch_index, config)
