"""Pydantic models for config types."""

from pydantic import BaseModel, ConfigDict, Field

class UserConfig(BaseModel):
    """User configuration."""
    model_config = ConfigDict(extra="allow")

    log_git_commands: bool = False

class BranchConfig(BaseModel):
    """Configuration for the branch command."""
    model_config = ConfigDict(extra="allow")

    branch_prefix: str = "ps/rr/"

class PypsConfig(BaseModel):
    """Full pyps configuration."""
    model_config = ConfigDict(extra="allow")

    user: UserConfig = Field(default_factory=UserConfig)
    branch: BranchConfig = Field(default_factory=BranchConfig)
