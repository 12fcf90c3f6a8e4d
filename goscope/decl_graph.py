"""Per-component declaration graph for the detailed component views.

Nodes are the component's type declarations and functions; edges come from
four heuristic signals that collapse on the ``(source, target)`` pair:

1. cross-file references: a declaration's file mentions another file's declaration
2. co-location: declarations sharing a (not too sparse, not too dense) file
3. schema linkage: a proto service's file mentions a message or rpc
4. call heuristic: a function's file mentions a function from another file

The result is capped so the rendering layer can draw it without further trimming.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .matching import references
from .models import TYPE_KINDS, ComponentSummary, DeclKind, GraphData, GraphLink, GraphNode

logger = logging.getLogger(__name__)

MAX_NODES = 80
MAX_OUT_EDGES_PER_NODE = 5
MIN_EDGE_BUDGET = 10
EDGES_PER_NODE_BUDGET = 3
MIN_NODE_NAME_LEN = 3
MIN_REFERENCE_NAME_LEN = 5
MIN_COLOCATED = 2
MAX_COLOCATED = 20
MIN_NODE_SCORE = 0.001


@dataclass(frozen=True)
class _Candidate:
    name: str
    file_path: str
    file_name: str
    kind: str

    @property
    def node_id(self) -> str:
        return f"{self.file_path}::{self.name}"


def collect_candidates(component: ComponentSummary) -> List[_Candidate]:
    """Type declarations plus one entry per distinct ``(file, function)`` pair."""
    candidates: List[_Candidate] = []
    seen: Set[Tuple[str, str]] = set()

    def _add(name: str, file_path: str, file_name: str, kind: str) -> None:
        # node ids are "<file>::<name>", so the first kind seen for a name wins
        key = (file_path, name)
        if len(name) < MIN_NODE_NAME_LEN or key in seen:
            return
        seen.add(key)
        candidates.append(_Candidate(name, file_path, file_name, kind))

    for f in component.files:
        for decl in f.declarations:
            if decl.kind in TYPE_KINDS or decl.kind == DeclKind.FUNC:
                _add(decl.name, f.file_path, f.file_name, decl.kind)
        # big functions may come from a different extraction path
        for big in f.big_functions:
            _add(big.name, big.file_path, f.file_name, DeclKind.FUNC)
    return candidates


def _node_score(scores: Mapping[str, float], file_path: str) -> float:
    return max(scores.get(file_path, 0.0), MIN_NODE_SCORE)


class _EdgeCollector:
    """Deduplicating per-source candidate edge lists."""

    def __init__(self) -> None:
        self.outgoing: Dict[str, List[str]] = {}
        self._seen: Set[Tuple[str, str]] = set()

    def add(self, source: str, target: str) -> None:
        if source == target or (source, target) in self._seen:
            return
        self._seen.add((source, target))
        self.outgoing.setdefault(source, []).append(target)

    def __len__(self) -> int:
        return len(self._seen)


def build_decl_graph(
    component: ComponentSummary,
    scores: Mapping[str, float],
    read_content: Optional[Callable[[str], str]] = None,
) -> GraphData:
    """Build the bounded declaration graph for one component.

    *scores* maps file paths to their PageRank score. *read_content* returns
    a file's (size-capped) text; it defaults to each file's own reader.
    """
    candidates = collect_candidates(component)
    if len(candidates) > MAX_NODES:
        candidates.sort(key=lambda c: (-scores.get(c.file_path, 0.0), c.node_id))
        candidates = candidates[:MAX_NODES]

    nodes = [
        GraphNode(
            id=c.node_id,
            label=c.name,
            sublabel=c.file_name,
            kind=c.kind,
            score=_node_score(scores, c.file_path),
            group=component.name,
        )
        for c in candidates
    ]
    node_scores = {n.id: n.score for n in nodes}

    if read_content is None:
        contents = {f.file_path: f.read_content() for f in component.files}
    else:
        contents = {f.file_path: read_content(f.file_path) for f in component.files}

    by_file: Dict[str, List[_Candidate]] = {}
    for c in candidates:
        by_file.setdefault(c.file_path, []).append(c)

    edges = _EdgeCollector()
    _add_reference_edges(edges, by_file, candidates, contents)
    _add_colocation_edges(edges, by_file)
    _add_schema_edges(edges, candidates, contents)
    _add_call_edges(edges, candidates, contents)

    links = _cap_edges(edges.outgoing, node_scores, len(nodes))
    logger.debug(
        "Declaration graph for %s: %d nodes, %d candidate edges, %d kept",
        component.name, len(nodes), len(edges), len(links),
    )
    return GraphData(nodes=nodes, links=links)


def _add_reference_edges(
    edges: _EdgeCollector,
    by_file: Mapping[str, List[_Candidate]],
    candidates: Iterable[_Candidate],
    contents: Mapping[str, str],
) -> None:
    targets = [c for c in candidates if len(c.name) >= MIN_REFERENCE_NAME_LEN]
    for file_path in sorted(by_file):
        content = contents.get(file_path, "")
        if not content:
            continue
        hits = [t for t in targets if t.file_path != file_path and references(content, t.name)]
        for src in by_file[file_path]:
            for tgt in hits:
                if tgt.name != src.name:
                    edges.add(src.node_id, tgt.node_id)


def _add_colocation_edges(edges: _EdgeCollector, by_file: Mapping[str, List[_Candidate]]) -> None:
    for file_path in sorted(by_file):
        local = by_file[file_path]
        if not MIN_COLOCATED <= len(local) <= MAX_COLOCATED:
            continue
        for i, src in enumerate(local):
            for j, tgt in enumerate(local):
                if i != j and tgt.name != src.name:
                    edges.add(src.node_id, tgt.node_id)


def _add_schema_edges(
    edges: _EdgeCollector,
    candidates: List[_Candidate],
    contents: Mapping[str, str],
) -> None:
    schema_targets = [
        c for c in candidates
        if c.kind in (DeclKind.MESSAGE, DeclKind.RPC) and len(c.name) >= MIN_REFERENCE_NAME_LEN
    ]
    for src in candidates:
        if src.kind != DeclKind.SERVICE:
            continue
        content = contents.get(src.file_path, "")
        if not content:
            continue
        for tgt in schema_targets:
            if references(content, tgt.name):
                edges.add(src.node_id, tgt.node_id)


def _add_call_edges(
    edges: _EdgeCollector,
    candidates: List[_Candidate],
    contents: Mapping[str, str],
) -> None:
    funcs = [c for c in candidates if c.kind == DeclKind.FUNC]
    callees = [c for c in funcs if len(c.name) >= MIN_REFERENCE_NAME_LEN]
    for src in funcs:
        content = contents.get(src.file_path, "")
        if not content:
            continue
        for tgt in callees:
            if tgt.file_path == src.file_path or tgt.name == src.name:
                continue
            if references(content, tgt.name):
                edges.add(src.node_id, tgt.node_id)


def _cap_edges(
    outgoing: Mapping[str, List[str]],
    node_scores: Mapping[str, float],
    node_count: int,
) -> List[GraphLink]:
    links: List[GraphLink] = []
    for source in sorted(outgoing):
        if source not in node_scores:
            continue
        targets = [t for t in outgoing[source] if t in node_scores]
        targets.sort(key=lambda t: (-node_scores[t], t))
        links.extend(GraphLink(source=source, target=t) for t in targets[:MAX_OUT_EDGES_PER_NODE])

    max_edges = max(MIN_EDGE_BUDGET, EDGES_PER_NODE_BUDGET * node_count)
    links.sort(key=lambda link: (
        -node_scores[link.source], link.source, -node_scores[link.target], link.target,
    ))
    return links[:max_edges]
