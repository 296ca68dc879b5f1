"""Config parser logic.

Config is read from up to three YAML files, each overriding the previous one
key by key within a section:

1. ``~/.pyps.yml`` (user)
2. ``.pyps.yaml`` at the root of the working tree (shared with the repository)
3. ``pyps.yaml`` inside the git directory (local to this clone)
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import yaml
from git import Repo

# Get module logger
logger = logging.getLogger(__name__)

Section = Dict[str, Any]  # Use Any since yaml can return various types
Config = Dict[str, Section]

REPO_CONFIG_FILE = '.pyps.yaml'
LOCAL_CONFIG_FILE = 'pyps.yaml'

def default_config_dict() -> Config:
    """Built-in defaults every layer is merged onto."""
    return {
        'user': {
            'log_git_commands': False,
        },
        'branch': {
            'branch_prefix': 'ps/rr/',
        },
    }

def user_config_file_path() -> Path:
    """Get path to the user config file."""
    return Path.home() / ".pyps.yml"

def config_file_paths(repo: Optional[Repo]) -> List[Path]:
    """Config files in increasing order of precedence."""
    paths = [user_config_file_path()]
    if repo is not None:
        if repo.working_tree_dir is not None:
            paths.append(Path(repo.working_tree_dir) / REPO_CONFIG_FILE)
        paths.append(Path(repo.git_dir) / LOCAL_CONFIG_FILE)
    return paths

def load_config_file(path: Path) -> Config:
    """Load one config file. Missing or unreadable files give an empty config."""
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug(f"No config at {path}")
        return {}
    except yaml.YAMLError as e:
        logger.error(f"Ignoring malformed config {path}: {e}")
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error(f"Ignoring config {path}: expected a mapping, got {type(data).__name__}")
        return {}
    config: Config = {}
    for name, section in data.items():
        if section is None:
            continue
        if not isinstance(section, dict):
            logger.error(f"Ignoring section {name} in {path}: expected a mapping, got {type(section).__name__}")
            continue
        config[name] = section
    logger.debug(f"Config from {path}: {config}")
    return config

def merge_config(base: Config, override: Config) -> Config:
    """Merge override onto base. Sections merge key by key, later values win."""
    merged: Config = {name: dict(section) for name, section in base.items()}
    for name, section in override.items():
        if isinstance(section, dict) and isinstance(merged.get(name), dict):
            merged[name].update(section)
        else:
            merged[name] = section
    return merged

def parse_config(repo: Optional[Repo] = None) -> Config:
    """Parse config from user and repository config files."""
    config = default_config_dict()
    for path in config_file_paths(repo):
        config = merge_config(config, load_config_file(path))
    return config
