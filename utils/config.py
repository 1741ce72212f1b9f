"""Central seed config loader."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parent.parent
SEED_CONFIG_PATH = REPO_ROOT / "seed_config.yml"

DEFAULT_SEED_CONFIG: Dict[str, Any] = {
    "data_dir": "data/seeds",
    "report_dir": "output/seed_reports",
    "retry": {
        "max_attempts": 3,
        "base_delay": 0.1,
        "max_delay": 2.0,
        "jitter": 0.1,
    },
}


def load_seed_config(path: Path | None = None) -> Dict[str, Any]:
    """Load seed_config.yml, falling back to defaults if missing or invalid."""
    config_path = path or SEED_CONFIG_PATH
    merged = copy.deepcopy(DEFAULT_SEED_CONFIG)
    if not config_path.exists():
        return merged
    try:
        payload = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        LOGGER.warning("Ignoring invalid seed config %s: %s", config_path, exc)
        return merged
    if not isinstance(payload, dict):
        LOGGER.warning("Ignoring seed config %s: expected a mapping.", config_path)
        return merged
    for section, cfg in payload.items():
        if isinstance(cfg, dict) and isinstance(merged.get(section), dict):
            merged[section] = {**merged[section], **cfg}
        else:
            merged[section] = cfg
    return merged


def resolve_repo_path(value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else REPO_ROOT / path


__all__ = ["load_seed_config", "resolve_repo_path", "SEED_CONFIG_PATH", "DEFAULT_SEED_CONFIG"]
