"""Common types used across the codebase."""

from dataclasses import dataclass
from typing import NewType

import git

# NewTypes for the two kinds of identifiers a patch carries
CommitHash = NewType('CommitHash', str)
PatchId = NewType('PatchId', str)

@dataclass
class Patch:
    """A commit in the patch stack, positioned relative to the stack base."""
    oid: CommitHash
    index: int
    summary: str
    message: str

    @classmethod
    def from_commit(cls, commit: git.Commit, index: int) -> 'Patch':
        """Create a Patch from a GitPython commit at the given stack position."""
        message = commit.message if isinstance(commit.message, str) else ""
        summary = commit.summary if isinstance(commit.summary, str) else ""
        return cls(CommitHash(commit.hexsha), index, summary, message)
