"""Load and write the goscope TOML configuration file."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from . import config

logger = logging.getLogger(__name__)


@dataclass
class ScanConfig:
    exclude_paths: List[str] = field(default_factory=lambda: list(config.DEFAULT_EXCLUDE_PATHS))
    max_files_analyze: int = config.DEFAULT_MAX_FILES
    git_commit_limit: int = config.DEFAULT_GIT_COMMIT_LIMIT
    enable_cache: bool = False
    enable_parallel: bool = True
    hotspot_count: int = config.DEFAULT_HOTSPOT_COUNT
    file_extensions: List[str] = field(default_factory=lambda: list(config.DEFAULT_FILE_EXTENSIONS))

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ScanConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            logger.debug("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in payload.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: Optional[Path] = None) -> ScanConfig:
    """Load configuration from TOML.

    Returns defaults when the file is missing. A file that cannot be parsed
    is reported and also falls back to defaults.
    """
    path = Path(path) if path is not None else config.DEFAULT_CONFIG_PATH
    if not path.exists():
        return ScanConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Failed to parse config %s, using defaults: %s", path, exc)
        return ScanConfig()

    section = payload.get("goscope", payload)
    try:
        return ScanConfig.from_dict(section)
    except TypeError as exc:
        logger.warning("Invalid config %s, using defaults: %s", path, exc)
        return ScanConfig()


def save_config(cfg: ScanConfig, path: Optional[Path] = None) -> Path:
    path = Path(path) if path is not None else config.DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        toml.dump({"goscope": cfg.to_dict()}, f)
    return path


def create_default(path: Optional[Path] = None) -> bool:
    """Write the default config. Returns False if a file already exists."""
    path = Path(path) if path is not None else config.DEFAULT_CONFIG_PATH
    if path.exists():
        return False
    save_config(ScanConfig(), path)
    return True
