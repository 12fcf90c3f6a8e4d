"""File-level dependency graph with heuristic edge inference and PageRank scoring.

The graph is advisory: invalid edge requests (self-loops, unknown endpoints,
duplicates) are dropped silently instead of raising, and files that cannot be
read simply contribute no reference edges.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Set, Tuple

from .matching import references
from .models import REFERENCE_KINDS, HotspotEntry, ParsedFile

logger = logging.getLogger(__name__)

ROOT_COMPONENT = "__root__"
MIN_REFERENCE_NAME_LEN = 3
MAX_REFERENCE_CANDIDATES = 500
DEFAULT_DAMPING = 0.85
DEFAULT_ITERATIONS = 100


class DependencyGraph:
    """Directed file graph: vertices are file paths, edges are inferred dependencies."""

    def __init__(self) -> None:
        self.vertices: Set[str] = set()
        self.edges: List[Tuple[str, str]] = []
        self.pagerank_scores: Dict[str, float] = {}
        self._adjacency: Dict[str, Set[str]] = {}
        self._reverse_adjacency: Dict[str, Set[str]] = {}

    # ------------------------------------------------------------------
    # Entity model
    # ------------------------------------------------------------------

    def add_vertex(self, vertex: str) -> None:
        self.vertices.add(vertex)
        self._adjacency.setdefault(vertex, set())
        self._reverse_adjacency.setdefault(vertex, set())

    def add_edge(self, source: str, target: str) -> None:
        if source == target:
            return
        if source not in self.vertices or target not in self.vertices:
            return
        if target in self._adjacency[source]:
            return
        self.edges.append((source, target))
        self._adjacency[source].add(target)
        self._reverse_adjacency[target].add(source)

    def out_degree(self, vertex: str) -> int:
        return len(self._adjacency.get(vertex, ()))

    def in_degree(self, vertex: str) -> int:
        return len(self._reverse_adjacency.get(vertex, ()))

    def successors(self, vertex: str) -> Set[str]:
        return set(self._adjacency.get(vertex, ()))

    def predecessors(self, vertex: str) -> Set[str]:
        return set(self._reverse_adjacency.get(vertex, ()))

    # ------------------------------------------------------------------
    # Edge inference
    # ------------------------------------------------------------------

    def build(self, files: Iterable[ParsedFile]) -> None:
        """Populate vertices and edges from parsed files.

        Two signals are combined: import resolution across the whole codebase,
        and type-name references between files of the same component.
        """
        ordered = sorted(files, key=lambda f: f.file_path)

        name_to_path: Dict[str, str] = {}
        for f in ordered:
            self.add_vertex(f.file_path)
            name_to_path.setdefault(f.file_name_without_ext, f.file_path)
            if f.module_name:
                name_to_path.setdefault(f.module_name, f.file_path)

        for src in ordered:
            for imp in src.imports:
                base_name = imp.rsplit("/", 1)[-1]
                target = name_to_path.get(base_name)
                if target is not None:
                    self.add_edge(src.file_path, target)
        import_edges = len(self.edges)

        by_component: Dict[str, List[ParsedFile]] = {}
        for f in ordered:
            by_component.setdefault(f.microservice_name or ROOT_COMPONENT, []).append(f)

        for component in sorted(by_component):
            self._build_type_ref_edges(by_component[component])

        logger.debug(
            "Built graph: %d vertices, %d import edges, %d reference edges",
            len(self.vertices), import_edges, len(self.edges) - import_edges,
        )

    def _build_type_ref_edges(self, files: List[ParsedFile]) -> None:
        candidates: List[Tuple[str, str]] = []
        for f in files:
            for decl in f.declarations:
                if decl.kind in REFERENCE_KINDS and len(decl.name) >= MIN_REFERENCE_NAME_LEN:
                    candidates.append((decl.name, f.file_path))
        candidates = candidates[:MAX_REFERENCE_CANDIDATES]
        if not candidates:
            return

        for f in files:
            content = f.read_content()
            if not content:
                continue
            for name, declaring_path in candidates:
                if declaring_path == f.file_path:
                    continue
                if references(content, name):
                    self.add_edge(f.file_path, declaring_path)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def analyze(self) -> Dict[str, float]:
        """Compute and store PageRank scores with the default parameters."""
        self.pagerank_scores = self.compute_pagerank(DEFAULT_DAMPING, DEFAULT_ITERATIONS)
        return self.pagerank_scores

    def compute_pagerank(
        self,
        damping: float = DEFAULT_DAMPING,
        iterations: int = DEFAULT_ITERATIONS,
        redistribute_dangling: bool = False,
    ) -> Dict[str, float]:
        """Power-iteration PageRank over the file graph.

        Runs exactly *iterations* rounds with no convergence check. By default
        vertices without outgoing edges do not pass their mass on, so totals
        can drop below 1. ``redistribute_dangling=True`` switches to the
        textbook variant where that mass is spread evenly over all vertices.
        """
        n = len(self.vertices)
        if n == 0:
            return {}

        vertices = sorted(self.vertices)
        scores = {v: 1.0 / n for v in vertices}
        base = (1.0 - damping) / n

        for _ in range(iterations):
            new_scores = {v: base for v in vertices}
            dangling_mass = 0.0
            for v in vertices:
                neighbors = self._adjacency[v]
                if not neighbors:
                    dangling_mass += scores[v]
                    continue
                share = damping * scores[v] / len(neighbors)
                for neighbor in neighbors:
                    new_scores[neighbor] += share
            if redistribute_dangling and dangling_mass:
                spread = damping * dangling_mass / n
                for v in vertices:
                    new_scores[v] += spread
            scores = new_scores
        return scores

    # ------------------------------------------------------------------
    # Hotspots
    # ------------------------------------------------------------------

    def top_hotspots(self, limit: int) -> List[HotspotEntry]:
        """Return at most *limit* files ordered by descending score (path breaks ties)."""
        if limit <= 0:
            return []
        ranked = sorted(self.pagerank_scores.items(), key=lambda item: (-item[1], item[0]))
        return [HotspotEntry(path=path, score=score) for path, score in ranked[:limit]]
