"""CLI entry point."""

import os
import sys
import click
import logging
from typing import Dict, List, Optional, Tuple
from click import Context

from ...branch import BranchError, from_cwd_repo_error, publish
from ...config import Config
from ...config.config_parser import parse_config
from ...git import RepositoryMissingError, create_cwd_repo

# Get module logger
logger = logging.getLogger(__name__)

COMMAND_ALIASES: Dict[str, str] = {
    'br': 'branch',
}

class AliasedGroup(click.Group):
    """Command group that resolves the short names in COMMAND_ALIASES."""

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        return super().get_command(ctx, COMMAND_ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx: Context, args: List[str]) -> Tuple[Optional[str], Optional[click.Command], List[str]]:
        # Report the full command name, not the alias, in help and errors
        _, cmd, rest = super().resolve_command(ctx, args)
        return (cmd.name if cmd else None), cmd, rest

@click.group(cls=AliasedGroup)
@click.pass_context
def cli(ctx: Context) -> None:
    """pyps - publish patches of a patch stack for review."""
    ctx.obj = {}

@cli.command(name="branch", help="Create a request-review branch for the patch at PATCH_INDEX")
@click.argument('patch_index', type=click.IntRange(min=0))
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if pyps was started in DIRECTORY instead of the current working directory')
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
@click.pass_context
def branch(ctx: Context, patch_index: int, directory: Optional[str], verbose: int) -> None:
    """Branch command."""
    from ... import setup_logging
    setup_logging(verbose)

    if directory:
        os.chdir(directory)

    try:
        repo = create_cwd_repo()
    except RepositoryMissingError as e:
        logger.error(f"{from_cwd_repo_error(e)}")
        sys.exit(2)

    config = Config(parse_config(repo))
    try:
        publish(repo, patch_index, config)
    except BranchError as e:
        logger.error(f"{e}")
        sys.exit(1)

def main() -> None:
    """Main entry point."""
    cli(obj={})

if __name__ == "__main__":
    main()
