"""Pipeline coordinating scanning, parsing, git enrichment and graph analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .config_manager import ScanConfig
from .decl_graph import build_decl_graph
from .git_analyzer import AuthorStats, GitAnalyzer, author_stats_multi_repo, enrich_files_multi_repo
from .graph import DependencyGraph
from .models import ComponentSummary, GraphData, ParsedFile
from .parser import DEFAULT_COMPONENT, component_lookup_from, parse_files
from .scanner import ScanResult, scan
from .tech import scan_compose_tree

logger = logging.getLogger(__name__)


class AnalysisError(RuntimeError):
    """Raised when a tree cannot be analysed (nothing found, or too large)."""


def is_api_gateway(name: str) -> bool:
    lowered = name.lower()
    return "gateway" in lowered or "api-gw" in lowered or lowered == "api"


def is_proto_component(name: str) -> bool:
    lowered = name.lower()
    return (
        lowered in ("proto", "protobuf", "protos")
        or lowered.startswith("proto-")
        or lowered.endswith("-proto")
    )


def summarize_components(files: List[ParsedFile]) -> List[ComponentSummary]:
    """Group files by component; gateways first, then proto components, then by size."""
    grouped: Dict[str, List[ParsedFile]] = {}
    for f in files:
        grouped.setdefault(f.microservice_name or DEFAULT_COMPONENT, []).append(f)
    summaries = [ComponentSummary.from_files(name, grouped[name]) for name in grouped]
    summaries.sort(key=lambda c: (
        not is_api_gateway(c.name),
        not is_proto_component(c.name),
        -c.total_lines,
        c.name,
    ))
    return summaries


@dataclass
class AnalysisResult:
    root: Path
    scan: ScanResult
    files: List[ParsedFile]
    graph: DependencyGraph
    components: List[ComponentSummary]
    branch: str = ""
    author_stats: Dict[str, AuthorStats] = field(default_factory=dict)
    technologies: List[str] = field(default_factory=list)
    compose_services: List[str] = field(default_factory=list)

    def decl_graph(self, component: ComponentSummary) -> GraphData:
        return build_decl_graph(component, self.graph.pagerank_scores)


class GoscopeOrchestrator:
    """Runs the full analysis for one root directory.

    *progress* receives short human-readable status lines; the CLI routes
    them to a rich console.
    """

    def __init__(self, cfg: Optional[ScanConfig] = None, progress: Optional[Callable[[str], None]] = None):
        self.cfg = cfg or ScanConfig()
        self._progress = progress or (lambda message: logger.info(message))

    def scan(self, root: Path) -> ScanResult:
        self._progress("📂 Scanning repositories...")
        result = scan(root, self.cfg)
        if not result.files:
            raise AnalysisError("No source files found.")
        if len(result.files) > self.cfg.max_files_analyze:
            raise AnalysisError(
                f"Too many files ({len(result.files)}). Limit: {self.cfg.max_files_analyze}"
            )
        self._progress(f"   Found {len(result.files)} files across {len(result.microservices)} microservices")
        return result

    def parse(self, scan_result: ScanResult) -> List[ParsedFile]:
        self._progress(f"📦 Parsing {len(scan_result.files)} files...")
        lookup = component_lookup_from(scan_result.microservices)
        files = parse_files(scan_result.files, lookup, parallel=self.cfg.enable_parallel)
        self._progress(f"   Parsed {len(files)} files")
        return files

    def enrich(self, scan_result: ScanResult, files: List[ParsedFile]) -> Tuple[str, Dict[str, AuthorStats]]:
        self._progress("📜 Analyzing Git history...")
        repos = scan_result.git_repos
        if not repos:
            self._progress("   ⚠️  No .git directories found.")
            return "", {}
        branch = GitAnalyzer(repos[0], self.cfg.git_commit_limit).current_branch()
        stats = author_stats_multi_repo(repos, self.cfg.git_commit_limit)
        enrich_files_multi_repo(repos, self.cfg.git_commit_limit, files, stats)
        return branch, stats

    def build_graph(self, files: List[ParsedFile]) -> DependencyGraph:
        self._progress("🕸️  Building dependency graph...")
        graph = DependencyGraph()
        graph.build(files)
        graph.analyze()
        self._progress(f"   Graph: {len(graph.vertices)} nodes, {len(graph.edges)} edges")
        return graph

    def run(self, root: Path) -> AnalysisResult:
        root = Path(root).resolve()
        scan_result = self.scan(root)
        compose_services, technologies = scan_compose_tree(root)
        files = self.parse(scan_result)
        branch, author_stats = self.enrich(scan_result, files)
        graph = self.build_graph(files)
        return AnalysisResult(
            root=root,
            scan=scan_result,
            files=files,
            graph=graph,
            components=summarize_components(files),
            branch=branch,
            author_stats=author_stats,
            technologies=technologies,
            compose_services=compose_services,
        )
