"""Authorship and change history from ``git log``.

Every git failure (missing binary, not a repository, timeout) yields empty
output, so a tree without history simply produces empty metadata.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .models import GitMetadata, ParsedFile

logger = logging.getLogger(__name__)

COMMIT_MARKER = "__COMMIT__"
MAX_TOP_AUTHORS = 3
MAX_RECENT_MESSAGES = 5
GIT_TIMEOUT_SECONDS = 60


@dataclass
class AuthorStats:
    files_modified: int = 0
    total_commits: int = 0
    first_commit: float = 0.0
    last_commit: float = 0.0
    microservice_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class FileStats:
    change_count: int = 0
    last_modified: float = 0.0
    first_commit_date: float = 0.0
    author_counts: Dict[str, int] = field(default_factory=dict)
    messages: List[str] = field(default_factory=list)


def run_git(repo_path: str, *args: str) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=repo_path,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("git %s failed in %s: %s", " ".join(args), repo_path, exc)
        return ""
    if result.returncode != 0:
        logger.debug("git %s exited %d in %s", " ".join(args), result.returncode, repo_path)
        return ""
    return result.stdout


def _parse_timestamp(value: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        return 0.0


class GitAnalyzer:
    """Reads history for one repository."""

    def __init__(self, repo_path: str, commit_limit: int = 1000) -> None:
        self.repo_path = repo_path
        self.commit_limit = commit_limit

    def current_branch(self) -> str:
        return run_git(self.repo_path, "rev-parse", "--abbrev-ref", "HEAD").strip()

    def author_log(self) -> str:
        return run_git(self.repo_path, "log", f"-{self.commit_limit}", "--pretty=format:%an\t%at")

    def file_log(self) -> str:
        return run_git(
            self.repo_path,
            "log",
            f"-{self.commit_limit}",
            f"--pretty=format:{COMMIT_MARKER}%n%an%n%at%n%s",
            "--name-only",
        )

    def collect_file_stats(self) -> Dict[str, FileStats]:
        return parse_file_log(self.file_log())


def parse_author_log(output: str, stats: Optional[Dict[str, AuthorStats]] = None) -> Dict[str, AuthorStats]:
    """Aggregate ``%an<TAB>%at`` lines into per-author commit statistics."""
    stats = stats if stats is not None else {}
    for line in output.splitlines():
        author, sep, raw_ts = line.partition("\t")
        if not sep:
            continue
        ts = _parse_timestamp(raw_ts)
        if ts <= 0:
            continue
        entry = stats.setdefault(author, AuthorStats())
        entry.total_commits += 1
        if entry.first_commit == 0 or ts < entry.first_commit:
            entry.first_commit = ts
        if ts > entry.last_commit:
            entry.last_commit = ts
    return stats


def parse_file_log(output: str) -> Dict[str, FileStats]:
    """Aggregate ``git log --name-only`` blocks into per-file statistics."""
    stats: Dict[str, FileStats] = {}
    for block in output.split(COMMIT_MARKER + "\n"):
        lines = block.split("\n")
        if len(lines) < 3:
            continue
        author, ts, message = lines[0], _parse_timestamp(lines[1]), lines[2]
        for file_line in lines[3:]:
            name = file_line.strip()
            if not name:
                continue
            fs = stats.setdefault(name, FileStats())
            fs.change_count += 1
            if ts > fs.last_modified:
                fs.last_modified = ts
            if fs.first_commit_date == 0 or (0 < ts < fs.first_commit_date):
                fs.first_commit_date = ts
            fs.author_counts[author] = fs.author_counts.get(author, 0) + 1
            if len(fs.messages) < MAX_RECENT_MESSAGES:
                fs.messages.append(message)
    return stats


def author_stats_multi_repo(repos: Iterable[str], commit_limit: int) -> Dict[str, AuthorStats]:
    stats: Dict[str, AuthorStats] = {}
    for repo in repos:
        parse_author_log(GitAnalyzer(repo, commit_limit).author_log(), stats)
    return stats


def enrich_files_multi_repo(
    repos: Iterable[str],
    commit_limit: int,
    files: List[ParsedFile],
    author_stats: Dict[str, AuthorStats],
) -> int:
    """Attach git metadata to *files* in place; returns the number enriched."""
    merged: Dict[str, FileStats] = {}
    repo_count = 0
    for repo in repos:
        repo_count += 1
        for rel_path, fs in GitAnalyzer(repo, commit_limit).collect_file_stats().items():
            merged[os.path.join(repo, rel_path)] = fs
            merged[rel_path] = fs
    logger.info("Batch git log parsed (%d file entries from %d repos)", len(merged), repo_count)

    enriched = 0
    for pf in files:
        fs = merged.get(pf.file_path)
        if fs is None:
            continue
        ranked = sorted(fs.author_counts.items(), key=lambda item: (-item[1], item[0]))
        top_authors = [name for name, _ in ranked[:MAX_TOP_AUTHORS]]
        pf.git_meta = GitMetadata(
            last_modified=fs.last_modified,
            change_frequency=fs.change_count,
            top_authors=top_authors,
            recent_messages=list(fs.messages),
            first_commit_date=fs.first_commit_date,
        )
        enriched += 1
        for author in top_authors:
            entry = author_stats.get(author)
            if entry is None:
                continue
            entry.files_modified += 1
            if pf.microservice_name:
                entry.microservice_counts[pf.microservice_name] = (
                    entry.microservice_counts.get(pf.microservice_name, 0) + 1
                )
    return enriched
