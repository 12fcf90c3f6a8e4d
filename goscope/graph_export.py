"""Graph export helpers for DOT and JSON outputs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List

from .graph import DependencyGraph


def _label(path: str, root: str) -> str:
    if root and path.startswith(root.rstrip("/") + "/"):
        return path[len(root.rstrip("/")) + 1:]
    return path


def export_dot(graph: DependencyGraph, output_file: Path, root: str = "") -> None:
    """Write the file graph as Graphviz DOT; node labels are root-relative paths."""
    lines = ["digraph GoScope {"]
    lines.append("  rankdir=LR;")

    for vertex in sorted(graph.vertices):
        score = graph.pagerank_scores.get(vertex, 0.0)
        label = f"{_label(vertex, root)}\\n{score:.4f}"
        lines.append(f'  "{_esc(vertex)}" [label="{_esc(label)}"];')

    for src, dst in graph.edges:
        lines.append(f'  "{_esc(src)}" -> "{_esc(dst)}";')

    lines.append("}")
    output_file.write_text("\n".join(lines), encoding="utf-8")


def graph_payload(graph: DependencyGraph, root: str = "") -> Dict[str, List[dict]]:
    return {
        "nodes": [
            {
                "id": vertex,
                "label": _label(vertex, root),
                "score": graph.pagerank_scores.get(vertex, 0.0),
                "in_degree": graph.in_degree(vertex),
                "out_degree": graph.out_degree(vertex),
            }
            for vertex in sorted(graph.vertices)
        ],
        "edges": [{"src": src, "dst": dst} for src, dst in graph.edges],
    }


def export_json(graph: DependencyGraph, output_file: Path, root: str = "") -> None:
    output_file.write_text(json.dumps(graph_payload(graph, root), indent=2), encoding="utf-8")


def _esc(text: str) -> str:
    # labels may carry a literal "\n" line break, so only quotes are escaped
    return text.replace('"', '\\"')
