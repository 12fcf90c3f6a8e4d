"""Self-contained HTML report for an analysis run."""

from __future__ import annotations

import html
import json
import logging
import re
import time
from pathlib import Path
from typing import Dict, List, Tuple

from .models import ComponentSummary, DeclKind, GraphData, GraphLink, GraphNode, HotspotEntry, ParsedFile
from .orchestrator import AnalysisResult
from .tech import techs_from_imports

logger = logging.getLogger(__name__)

HOTSPOT_POOL = 30
HOTSPOT_SHOWN = 10
# dependency-injection wiring files rank high without being interesting
BOILERPLATE_FILES = {"module.go"}
MAX_LONGEST_FUNCTIONS = 20
MAX_TODO_FILES = 30
MAX_TEAM_ROWS = 30
MAX_PENETRATION_ROWS = 20

_PLACEHOLDER = re.compile(r"\{\{ (TITLE|BODY|SCRIPTS) \}\}")


def _esc(value: object) -> str:
    return html.escape(str(value))


def _relative(path: str, root: Path) -> str:
    try:
        return str(Path(path).relative_to(root))
    except ValueError:
        return path


def _format_date(ts: float) -> str:
    if ts <= 0:
        return "-"
    return time.strftime("%Y-%m-%d", time.localtime(ts))


def report_hotspots(result: AnalysisResult) -> List[HotspotEntry]:
    """Top hotspots as shown in the report: boilerplate files skipped."""
    shown: List[HotspotEntry] = []
    for entry in result.graph.top_hotspots(HOTSPOT_POOL):
        if entry.path.rsplit("/", 1)[-1] in BOILERPLATE_FILES:
            continue
        shown.append(entry)
        if len(shown) >= HOTSPOT_SHOWN:
            break
    return shown


def architecture_graph(result: AnalysisResult) -> GraphData:
    """Components (and foreign services) linked to the technologies they import."""
    data = GraphData()
    tech_ids: Dict[str, str] = {}
    for component in result.components:
        comp_id = f"svc::{component.name}"
        data.nodes.append(GraphNode(
            id=comp_id, label=component.name, sublabel=f"{len(component.files)} files",
            kind="microservice", score=0.01, group=component.name,
        ))
        imports = [imp for f in component.files for imp in f.imports]
        for tech in sorted(techs_from_imports(imports)):
            if tech not in tech_ids:
                tech_ids[tech] = f"tech::{tech}"
                data.nodes.append(GraphNode(
                    id=tech_ids[tech], label=tech, sublabel="technology",
                    kind="technology", score=0.005, group="technology",
                ))
            data.links.append(GraphLink(source=comp_id, target=tech_ids[tech]))
    for svc in result.scan.foreign_services:
        data.nodes.append(GraphNode(
            id=f"foreign::{svc.name}", label=svc.name, sublabel=svc.language,
            kind="foreign", score=0.01, group="foreign",
        ))
    return data


def longest_functions(files: List[ParsedFile], limit: int = MAX_LONGEST_FUNCTIONS) -> List[Tuple[ParsedFile, str, int]]:
    found = [
        (f, f.longest_function.name, f.longest_function.line_count)
        for f in files
        if f.longest_function is not None
    ]
    found.sort(key=lambda item: (-item[2], item[0].file_path))
    return found[:limit]


def todo_files(files: List[ParsedFile], limit: int = MAX_TODO_FILES) -> List[ParsedFile]:
    marked = [f for f in files if f.todo_count or f.fixme_count]
    marked.sort(key=lambda f: (-(f.todo_count + f.fixme_count), f.file_path))
    return marked[:limit]


def penetration_rows(result: AnalysisResult, limit: int = MAX_PENETRATION_ROWS) -> List[Tuple[str, List[str]]]:
    """Authors who touched files in more than one component, widest reach first."""
    rows = [
        (author, sorted(stats.microservice_counts))
        for author, stats in result.author_stats.items()
        if len(stats.microservice_counts) > 1
    ]
    rows.sort(key=lambda row: (-len(row[1]), row[0]))
    return rows[:limit]


class ReportBuilder:
    """Renders an :class:`AnalysisResult` into the HTML template."""

    def __init__(self, result: AnalysisResult):
        self.result = result
        self._scripts: List[str] = []

    def _graph_block(self, element_id: str, data: GraphData) -> str:
        payload = json.dumps(data.to_dict()).replace("</", "<\\/")
        self._scripts.append(f"drawGraph({json.dumps(element_id)}, {payload});")
        return f'<div id="{_esc(element_id)}" class="graph-container"></div>'

    def _summary(self) -> str:
        r = self.result
        cards = [
            ("Files", len(r.files)),
            ("Lines", sum(f.line_count for f in r.files)),
            ("Components", len(r.components)),
            ("Structs", sum(c.count(DeclKind.STRUCT) for c in r.components)),
            ("Interfaces", sum(c.count(DeclKind.INTERFACE) for c in r.components)),
            ("Messages", sum(c.count(DeclKind.MESSAGE) for c in r.components)),
            ("Graph edges", len(r.graph.edges)),
            ("Authors", len(r.author_stats)),
        ]
        body = "".join(
            f'<div class="summary-card"><div class="num">{_esc(value)}</div>'
            f'<div class="label">{_esc(label)}</div></div>'
            for label, value in cards
        )
        branch = f' <span class="muted">on {_esc(r.branch)}</span>' if r.branch else ""
        layout = ""
        if r.scan.root_subdirs:
            dirs = "".join(
                f'<span class="tag tag-local">{_esc(d)}{" (services)" if d == r.scan.services_root else ""}</span>'
                for d in r.scan.root_subdirs
            )
            layout = f'<p class="muted">Top-level directories: {dirs}</p>'
        return (
            f'<div class="card"><h1>{_esc(r.root.name)}</h1>'
            f'<p class="muted">{_esc(r.root)}{branch}</p>{layout}'
            f'<div class="summary">{body}</div></div>'
        )

    def _hotspots(self) -> str:
        rows = "".join(
            f'<tr><td>{i}</td><td class="mono">{_esc(_relative(h.path, self.result.root))}</td>'
            f"<td>{h.score:.4f}</td></tr>"
            for i, h in enumerate(report_hotspots(self.result), start=1)
        )
        if not rows:
            return ""
        return (
            '<div class="card"><h2>🔥 Hotspots</h2><table>'
            "<tr><th>#</th><th>File</th><th>Score</th></tr>"
            f"{rows}</table></div>"
        )

    def _technologies(self) -> str:
        techs = set(self.result.technologies)
        techs.update(techs_from_imports(imp for f in self.result.files for imp in f.imports))
        if not techs and not self.result.compose_services:
            return ""
        tags = "".join(f'<span class="tag tag-tech">{_esc(t)}</span>' for t in sorted(techs))
        services = "".join(
            f'<span class="tag tag-local">{_esc(s)}</span>' for s in self.result.compose_services
        )
        section = f'<div class="card"><h2>🧰 Technologies</h2><div>{tags}</div>'
        if services:
            section += f'<h2 style="margin-top:16px">🐳 Compose services</h2><div>{services}</div>'
        return section + "</div>"

    def _architecture(self) -> str:
        graph = self._graph_block("architecture-graph", architecture_graph(self.result))
        return f'<div class="card"><h2>🏗️ Architecture</h2>{graph}</div>'

    def _component(self, index: int, component: ComponentSummary) -> str:
        files = sorted(component.files, key=lambda f: (-f.line_count, f.file_path))
        rows = []
        for f in files:
            desc = f'<div class="file-desc">{_esc(f.description)}</div>' if f.description else ""
            authors = ", ".join(f.git_meta.top_authors)
            rows.append(
                f'<tr><td class="mono">{_esc(_relative(f.file_path, self.result.root))}{desc}</td>'
                f"<td>{f.line_count}</td><td>{len(f.declarations)}</td>"
                f"<td>{f.git_meta.change_frequency}</td><td>{_esc(authors)}</td></tr>"
            )
        counts = ", ".join(f"{kind}: {component.kind_counts[kind]}" for kind in sorted(component.kind_counts))
        graph = self._graph_block(f"component-graph-{index}", self.result.decl_graph(component))
        return (
            f'<div class="card" id="component-{index}"><h2>📦 {_esc(component.name)}</h2>'
            f'<p class="muted">{len(component.files)} files, {component.total_lines} lines. {_esc(counts)}</p>'
            f"{graph}<table><tr><th>File</th><th>Lines</th><th>Declarations</th>"
            f"<th>Changes</th><th>Top authors</th></tr>{''.join(rows)}</table></div>"
        )

    def _components(self) -> str:
        links = "".join(
            f'<a class="tag tag-local" href="#component-{i}">{_esc(c.name)}</a>'
            for i, c in enumerate(self.result.components)
        )
        foreign = "".join(
            f'<span class="tag tag-foreign">{_esc(s.name)} ({_esc(s.language)})</span>'
            for s in self.result.scan.foreign_services
        )
        overview = f'<div class="card"><h2>🧩 Components</h2><div>{links}{foreign}</div></div>'
        details = "".join(self._component(i, c) for i, c in enumerate(self.result.components))
        return overview + details

    def _longest_functions(self) -> str:
        rows = "".join(
            f'<tr><td class="mono">{_esc(name)}</td>'
            f'<td class="mono">{_esc(_relative(f.file_path, self.result.root))}</td><td>{lines}</td></tr>'
            for f, name, lines in longest_functions(self.result.files)
        )
        if not rows:
            return ""
        return (
            '<div class="card"><h2>📏 Longest functions</h2><table>'
            f"<tr><th>Function</th><th>File</th><th>Lines</th></tr>{rows}</table></div>"
        )

    def _todos(self) -> str:
        rows = "".join(
            f'<tr><td class="mono">{_esc(_relative(f.file_path, self.result.root))}</td>'
            f"<td>{f.todo_count}</td><td>{f.fixme_count}</td></tr>"
            for f in todo_files(self.result.files)
        )
        if not rows:
            return ""
        return (
            '<div class="card"><h2>📝 TODO / FIXME</h2><table>'
            f"<tr><th>File</th><th>TODO</th><th>FIXME</th></tr>{rows}</table></div>"
        )

    def _team(self) -> str:
        ranked = sorted(self.result.author_stats.items(), key=lambda item: (-item[1].total_commits, item[0]))
        rows = "".join(
            f"<tr><td>{_esc(author)}</td><td>{s.total_commits}</td><td>{s.files_modified}</td>"
            f"<td>{_format_date(s.first_commit)}</td><td>{_format_date(s.last_commit)}</td></tr>"
            for author, s in ranked[:MAX_TEAM_ROWS]
        )
        if not rows:
            return ""
        return (
            '<div class="card"><h2>👥 Team</h2><table>'
            "<tr><th>Author</th><th>Commits</th><th>Files</th><th>First</th><th>Last</th></tr>"
            f"{rows}</table></div>"
        )

    def _penetration(self) -> str:
        rows = "".join(
            f"<tr><td>{_esc(author)}</td><td>{len(components)}</td>"
            f"<td>{_esc(', '.join(components))}</td></tr>"
            for author, components in penetration_rows(self.result)
        )
        if not rows:
            return ""
        return (
            '<div class="card"><h2>🔀 Cross-component contributors</h2><table>'
            f"<tr><th>Author</th><th>Components</th><th>Touched</th></tr>{rows}</table></div>"
        )

    def body(self) -> str:
        return "\n".join(part for part in (
            self._summary(),
            self._hotspots(),
            self._technologies(),
            self._architecture(),
            self._components(),
            self._longest_functions(),
            self._todos(),
            self._team(),
            self._penetration(),
        ) if part)

    def render(self) -> str:
        self._scripts = []
        body = self.body()
        title = f"goscope: {self.result.root.name}"
        template_path = Path(__file__).parent / "templates" / "report.html"
        if template_path.exists():
            template = template_path.read_text(encoding="utf-8")
        else:
            logger.warning("Report template missing at %s, using bare layout", template_path)
            template = _BASIC_TEMPLATE
        values = {
            "TITLE": _esc(title),
            "BODY": body,
            "SCRIPTS": "\n".join(self._scripts),
        }
        # one pass, so placeholder text inside substituted values stays literal
        return _PLACEHOLDER.sub(lambda m: values[m.group(1)], template)


_BASIC_TEMPLATE = """<!doctype html>
<html>
<head><meta charset="utf-8" /><title>{{ TITLE }}</title>
<script src="https://unpkg.com/force-graph"></script></head>
<body>
{{ BODY }}
<script>
function drawGraph(elId, data) {
  const el = document.getElementById(elId);
  if (!el || data.nodes.length === 0) { return; }
  ForceGraph()(el).graphData(data).nodeLabel(n => n.label).height(420);
}
{{ SCRIPTS }}
</script>
</body>
</html>
"""


def write_report(result: AnalysisResult, output_dir: Path, file_name: str = "index.html") -> Path:
    """Render the report into *output_dir* and return the written path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / file_name
    target.write_text(ReportBuilder(result).render(), encoding="utf-8")
    logger.info("Report written to %s", target)
    return target
