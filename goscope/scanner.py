"""Filesystem walker that discovers source files and groups them into components.

A component ("microservice") is usually a directory carrying a service
marker such as ``go.mod`` or a ``Dockerfile``. Directories are searched up to
three levels deep so layouts like ``repos/src/<service>`` are recognised.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from .config_manager import ScanConfig

logger = logging.getLogger(__name__)

ROOT_COMPONENT = "root"

# Directory names that typically hold services inside them.
SERVICE_CONTAINER_DIRS: Set[str] = {
    "src", "services", "service", "apps", "microservices", "svc", "cmd",
    "modules", "components", "backend", "packages", "projects", "server", "servers",
}

SERVICE_MARKERS = [
    "Dockerfile", "go.mod", "main.go", "package.json", "requirements.txt",
    "setup.py", "pyproject.toml", "pom.xml", "build.gradle", "build.gradle.kts",
    "Cargo.toml", "composer.json", "Gemfile", "mix.exs", "CMakeLists.txt",
    "Makefile", ".csproj", "Program.cs",
]

REPO_MARKERS = [".git", "go.mod", "Dockerfile", "Makefile", "docker-compose.yml"]

FOREIGN_LANGUAGES: Dict[str, str] = {
    ".py": "Python", ".java": "Java", ".kt": "Kotlin", ".scala": "Scala",
    ".php": "PHP", ".rb": "Ruby", ".rs": "Rust", ".cs": "C#",
    ".ts": "TypeScript", ".js": "JavaScript", ".c": "C", ".cpp": "C++",
    ".cc": "C++", ".h": "C/C++ Header", ".hpp": "C++", ".ex": "Elixir",
    ".exs": "Elixir", ".swift": "Swift", ".dart": "Dart",
}


@dataclass
class ForeignService:
    """A service directory written in a language other than Go."""

    name: str
    language: str
    path: str
    line_count: int = 0
    file_count: int = 0


@dataclass
class ScanResult:
    files: List[str] = field(default_factory=list)
    microservices: Dict[str, List[str]] = field(default_factory=dict)
    root_subdirs: List[str] = field(default_factory=list)
    git_repos: List[str] = field(default_factory=list)
    foreign_services: List[ForeignService] = field(default_factory=list)
    services_root: str = ""


def _visible_subdirs(path: Path, exclude: Set[str]) -> List[Path]:
    try:
        entries = sorted(path.iterdir())
    except OSError:
        return []
    return [e for e in entries if e.is_dir() and not e.name.startswith(".") and e.name not in exclude]


def is_service_dir(path: Path) -> bool:
    for marker in SERVICE_MARKERS:
        if marker.startswith("."):
            if any(path.glob(f"*{marker}")):
                return True
        elif (path / marker).exists():
            return True
    return (path / ".git").exists()


def discover_service_dirs(root: Path, exclude: Set[str]) -> List[Path]:
    """Find directories that look like services, up to three levels below *root*."""
    found: List[Path] = []
    for level1 in _visible_subdirs(root, exclude):
        if is_service_dir(level1):
            found.append(level1)
            continue
        if level1.name.lower() in SERVICE_CONTAINER_DIRS:
            found.extend(d for d in _visible_subdirs(level1, exclude) if is_service_dir(d))
            continue
        for level2 in _visible_subdirs(level1, exclude):
            if level2.name.lower() in SERVICE_CONTAINER_DIRS:
                found.extend(d for d in _visible_subdirs(level2, exclude) if is_service_dir(d))
    return found


def detect_services_root(root: Path, service_dirs: List[Path]) -> str:
    """Return the first-level directory holding at least two services, if any."""
    parents: Dict[str, int] = {}
    for sd in service_dirs:
        parts = sd.relative_to(root).parts
        if len(parts) >= 2:
            parents[parts[0]] = parents.get(parts[0], 0) + 1
    if not parents:
        return ""
    best = max(sorted(parents), key=lambda p: parents[p])
    return best if parents[best] >= 2 else ""


def detect_microservice(root: Path, file_path: Path, service_dirs: List[Path]) -> str:
    """Infer the component name that owns *file_path*."""
    for sd in service_dirs:
        if sd in file_path.parents:
            return sd.name

    parts = file_path.relative_to(root).parts
    if len(parts) < 2:
        return ROOT_COMPONENT

    first_dir = root / parts[0]
    if any((first_dir / marker).exists() for marker in REPO_MARKERS):
        return parts[0]

    dirs = parts[:-1]
    for containers in ({"cmd"}, {"services", "service", "apps", "microservices", "svc"},
                       {"proto", "api", "pkg"}, {"internal"}):
        for i, part in enumerate(dirs):
            if part in containers and i + 1 < len(parts) - 1:
                return parts[i + 1]
    return parts[0]


def _count_lines(path: Path) -> int:
    try:
        with open(path, "rb") as fh:
            return sum(1 for _ in fh)
    except OSError:
        return 0


def scan(root_path: Path, cfg: Optional[ScanConfig] = None) -> ScanResult:
    """Walk *root_path* and collect source files grouped by component.

    Raises ``NotADirectoryError`` if *root_path* is not a directory.
    """
    cfg = cfg or ScanConfig()
    root = Path(root_path).resolve()
    if not root.is_dir():
        raise NotADirectoryError(str(root))

    exclude = set(cfg.exclude_paths)
    extensions = {"." + ext.lstrip(".").lower() for ext in cfg.file_extensions}
    result = ScanResult()

    service_dirs = discover_service_dirs(root, exclude)
    if service_dirs:
        result.services_root = detect_services_root(root, service_dirs)

    for sub in _visible_subdirs(root, exclude):
        result.root_subdirs.append(sub.name)
        if (sub / ".git").exists():
            result.git_repos.append(str(sub))
    for sd in service_dirs:
        if (sd / ".git").exists() and str(sd) not in result.git_repos:
            result.git_repos.append(str(sd))
    if (root / ".git").exists() and str(root) not in result.git_repos:
        result.git_repos.insert(0, str(root))

    foreign: Dict[Path, ForeignService] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in exclude)
        current = Path(dirpath)
        for name in sorted(filenames):
            path = current / name
            ext = path.suffix.lower()
            if ext in extensions:
                result.files.append(str(path))
                component = detect_microservice(root, path, service_dirs)
                result.microservices.setdefault(component, []).append(str(path))
                continue

            language = FOREIGN_LANGUAGES.get(ext)
            if language is None:
                continue
            owner = next((sd for sd in service_dirs if sd in path.parents), None)
            if owner is None:
                continue
            svc = foreign.setdefault(owner, ForeignService(name=owner.name, language=language, path=str(owner)))
            svc.file_count += 1
            svc.line_count += _count_lines(path)

    # keep only pure foreign services with more than a stray file
    result.foreign_services = sorted(
        (s for s in foreign.values() if s.name not in result.microservices and s.file_count >= 2),
        key=lambda s: (-s.line_count, s.name),
    )
    logger.debug(
        "Scanned %s: %d files, %d components, %d git repos",
        root, len(result.files), len(result.microservices), len(result.git_repos),
    )
    return result
