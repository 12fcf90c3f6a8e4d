"""Tests for git log parsing and metadata enrichment."""

import subprocess
from pathlib import Path

from goscope import git_analyzer
from goscope.git_analyzer import (
    COMMIT_MARKER,
    GitAnalyzer,
    author_stats_multi_repo,
    enrich_files_multi_repo,
    parse_author_log,
    parse_file_log,
    run_git,
)
from goscope.models import ParsedFile

AUTHOR_LOG = "alice\t1700000000\nbob\t1700000500\nalice\t1700001000\nbroken line\nbob\tnot-a-number\n"

FILE_LOG = (
    f"{COMMIT_MARKER}\nalice\n1700001000\nfix order lookup\n\norders/service.go\norders/order.go\n"
    f"{COMMIT_MARKER}\nbob\n1700000500\nadd gateway\n\ngateway/main.go\norders/service.go\n"
    f"{COMMIT_MARKER}\nalice\n1700000000\ninitial\n\norders/service.go\n"
)


class TestParsing:
    """Tests for the pure log parsers."""

    def test_parse_author_log(self):
        stats = parse_author_log(AUTHOR_LOG)
        assert sorted(stats) == ["alice", "bob"]
        assert stats["alice"].total_commits == 2
        assert stats["alice"].first_commit == 1700000000
        assert stats["alice"].last_commit == 1700001000
        assert stats["bob"].total_commits == 1

    def test_parse_author_log_accumulates(self):
        stats = parse_author_log("carol\t1700000000\n")
        parse_author_log("carol\t1700000100\n", stats)
        assert stats["carol"].total_commits == 2

    def test_parse_file_log(self):
        stats = parse_file_log(FILE_LOG)
        service = stats["orders/service.go"]
        assert service.change_count == 3
        assert service.last_modified == 1700001000
        assert service.first_commit_date == 1700000000
        assert service.author_counts == {"alice": 2, "bob": 1}
        assert service.messages == ["fix order lookup", "add gateway", "initial"]
        assert stats["gateway/main.go"].change_count == 1

    def test_parse_empty_output(self):
        assert parse_file_log("") == {}
        assert parse_author_log("") == {}


class TestRunGit:
    """Tests for the subprocess boundary."""

    def test_missing_binary_returns_empty(self, monkeypatch, temp_dir: Path):
        def _raise(*args, **kwargs):
            raise FileNotFoundError("git")

        monkeypatch.setattr(subprocess, "run", _raise)
        assert run_git(str(temp_dir), "status") == ""

    def test_non_zero_exit_returns_empty(self, monkeypatch, temp_dir: Path):
        def _fail(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 128, stdout="", stderr="not a git repository")

        monkeypatch.setattr(subprocess, "run", _fail)
        assert GitAnalyzer(str(temp_dir)).current_branch() == ""


class TestEnrichment:
    """Tests for attaching history to parsed files."""

    def test_enrich_files(self, monkeypatch):
        repo = "/repo"

        def _fake_git(repo_path, *args):
            if any(a.startswith(f"--pretty=format:{COMMIT_MARKER}") for a in args):
                return FILE_LOG
            return AUTHOR_LOG

        monkeypatch.setattr(git_analyzer, "run_git", _fake_git)
        files = [
            ParsedFile(file_path="/repo/orders/service.go", microservice_name="orders"),
            ParsedFile(file_path="/repo/gateway/main.go", microservice_name="gateway"),
            ParsedFile(file_path="/repo/untracked.go", microservice_name="root"),
        ]
        stats = author_stats_multi_repo([repo], 100)
        enriched = enrich_files_multi_repo([repo], 100, files, stats)

        assert enriched == 2
        meta = files[0].git_meta
        assert meta.change_frequency == 3
        assert meta.top_authors == ["alice", "bob"]
        assert meta.recent_messages[0] == "fix order lookup"
        assert files[2].git_meta.change_frequency == 0
        assert stats["bob"].microservice_counts == {"gateway": 1, "orders": 1}
        assert stats["alice"].files_modified == 1
