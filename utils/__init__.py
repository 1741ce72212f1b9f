"""Top-level shared utilities (logging, config)."""

from utils.logging_config import setup_logger
from utils.config import load_seed_config, resolve_repo_path, SEED_CONFIG_PATH, DEFAULT_SEED_CONFIG

__all__ = [
    "setup_logger",
    "load_seed_config",
    "resolve_repo_path",
    "SEED_CONFIG_PATH",
    "DEFAULT_SEED_CONFIG",
]
