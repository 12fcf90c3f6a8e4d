"""Core data models shared by scanning, parsing, graph building and reporting."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from .matching import read_capped


class DeclKind:
    """Declaration kinds produced by the Go and proto parsers."""

    STRUCT = "struct"
    INTERFACE = "interface"
    FUNC = "func"
    TYPE = "type"
    CONST = "const"
    VAR = "var"
    # proto-specific
    MESSAGE = "message"
    SERVICE = "service"
    RPC = "rpc"
    ENUM = "enum"


# Kinds that participate in cross-file type reference edges.
REFERENCE_KINDS = frozenset({DeclKind.STRUCT, DeclKind.INTERFACE, DeclKind.MESSAGE, DeclKind.SERVICE})

# Kinds rendered as type nodes in the declaration graph.
TYPE_KINDS = frozenset({
    DeclKind.STRUCT, DeclKind.INTERFACE, DeclKind.MESSAGE, DeclKind.SERVICE, DeclKind.ENUM,
})


@dataclass(frozen=True)
class Declaration:
    name: str
    kind: str


@dataclass
class FunctionInfo:
    name: str
    line_count: int
    file_path: str


@dataclass
class GitMetadata:
    last_modified: float = 0.0
    change_frequency: int = 0
    top_authors: List[str] = field(default_factory=list)
    recent_messages: List[str] = field(default_factory=list)
    first_commit_date: float = 0.0


@dataclass
class ParsedFile:
    """Parse result for a single source file."""

    file_path: str
    microservice_name: str = ""
    module_name: str = ""
    package_name: str = ""
    imports: List[str] = field(default_factory=list)
    declarations: List[Declaration] = field(default_factory=list)
    line_count: int = 0
    description: str = ""
    todo_count: int = 0
    fixme_count: int = 0
    longest_function: Optional[FunctionInfo] = None
    big_functions: List[FunctionInfo] = field(default_factory=list)
    file_type: str = ""
    git_meta: GitMetadata = field(default_factory=GitMetadata)

    @property
    def file_name(self) -> str:
        return self.file_path.rsplit("/", 1)[-1]

    @property
    def file_name_without_ext(self) -> str:
        name = self.file_name
        if "." not in name:
            return name
        return name.rsplit(".", 1)[0]

    def read_content(self) -> str:
        """Return the first 512KB of the file, or ``""`` if it cannot be read."""
        return read_capped(self.file_path)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class HotspotEntry:
    path: str
    score: float


@dataclass
class ComponentSummary:
    """Aggregated view of one logical component (microservice)."""

    name: str
    files: List[ParsedFile]
    total_lines: int = 0
    declarations: List[Declaration] = field(default_factory=list)
    kind_counts: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_files(cls, name: str, files: List[ParsedFile]) -> "ComponentSummary":
        summary = cls(name=name, files=list(files))
        for f in files:
            summary.total_lines += f.line_count
            for decl in f.declarations:
                summary.declarations.append(decl)
                summary.kind_counts[decl.kind] = summary.kind_counts.get(decl.kind, 0) + 1
        return summary

    def count(self, kind: str) -> int:
        return self.kind_counts.get(kind, 0)


@dataclass
class GraphNode:
    id: str
    label: str
    sublabel: str
    kind: str
    score: float
    group: str


@dataclass
class GraphLink:
    source: str
    target: str


@dataclass
class GraphData:
    """Render-ready node/link payload consumed by the force-graph views."""

    nodes: List[GraphNode] = field(default_factory=list)
    links: List[GraphLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, object]]]:
        return {
            "nodes": [asdict(n) for n in self.nodes],
            "links": [asdict(link) for link in self.links],
        }
