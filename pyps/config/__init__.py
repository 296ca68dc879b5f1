"""Config module."""

from typing import Any, Dict
from .models import BranchConfig, PypsConfig, UserConfig

class Config(PypsConfig):
    """Config object built from a parsed config dict.

    Sections missing from the dict fall back to the model defaults.
    """
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict."""
        super().__init__(
            user=UserConfig.model_validate(config.get('user') or {}),
            branch=BranchConfig.model_validate(config.get('branch') or {}),
        )

def default_config() -> Config:
    """Get default config without reading any files."""
    return Config({
        'user': {},
        'branch': {
            'branch_prefix': 'ps/rr/',
        },
    })
