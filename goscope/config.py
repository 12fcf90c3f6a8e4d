"""Configuration defaults and paths for goscope runs."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_CONFIG_PATH = Path(os.environ.get("GOSCOPE_CONFIG", ".goscope.toml")).expanduser()
DEFAULT_OUTPUT_DIR = Path(os.environ.get("GOSCOPE_OUTPUT", "output")).expanduser()
REPORT_FILE_NAME = "index.html"

DEFAULT_EXCLUDE_PATHS = [
    ".git", ".build", "node_modules", "vendor", "dist",
    "build", ".idea", ".vscode", "__pycache__", ".cache",
    "DerivedData", "Pods", "target",
]
DEFAULT_FILE_EXTENSIONS = ["go", "proto"]
DEFAULT_MAX_FILES = 50000
DEFAULT_GIT_COMMIT_LIMIT = 1000
DEFAULT_HOTSPOT_COUNT = 15

# Parse worker pool size is min(cpu count, MAX_PARSE_WORKERS).
MAX_PARSE_WORKERS = 8
