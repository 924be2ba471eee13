import os
from pathlib import Path
from typing import Callable, Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "openai",
    "lookup": "gh",  # "gh" = GitHub CLI, "api" = REST API via PyGithub
    "store": "file",  # "file" | "sqlite" | "memory"
    "store_path": None,  # None = <git-dir>/glance (file) or <git-dir>/glance/cache.db (sqlite)
    "workers": 4,
    "github_repo": None,  # owner/name for lookup: api; None = derive from the origin remote
}

# Environment variable first, then the git config key used as a fallback.
_API_KEYS = {
    "openai_api_key": ("OPENAI_API_KEY", "glance.openai.key"),
    "anthropic_api_key": ("ANTHROPIC_API_KEY", "glance.anthropic.key"),
}


def load_config(
    config_path: str = ".glance.yml",
    cli_overrides: Optional[dict] = None,
    git_config: Optional[Callable[[str], Optional[str]]] = None,
) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .glance.yml in the current directory
      3. CLI argument overrides

    ``git_config`` reads a git config key (e.g. ``glance.openai.key``) and is
    used for API keys not present in the environment.
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a YAML mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    try:
        config["workers"] = max(1, int(config["workers"]))
    except (TypeError, ValueError):
        raise ValueError(f"workers must be an integer, got {config['workers']!r}")

    # Resolve credentials from environment variables, then git config
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    for key, (env_var, git_key) in _API_KEYS.items():
        value = os.environ.get(env_var)
        if not value and git_config is not None:
            value = git_config(git_key)
        config[key] = value

    return config
