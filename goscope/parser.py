"""Regex-based extraction of imports and declarations from Go and proto files.

The parsers are deliberately line-oriented: they never build a syntax tree,
so broken or unusual sources still yield whatever declarations are
recognisable instead of failing.
"""

from __future__ import annotations

import logging
import os
import queue
import re
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from . import config
from .models import Declaration, DeclKind, FunctionInfo, ParsedFile

logger = logging.getLogger(__name__)

DEFAULT_COMPONENT = "root"
BIG_FUNCTION_LINES = 50

# ---------------------------------------------------------------------------
# Go patterns (applied to stripped lines)
# ---------------------------------------------------------------------------
_GO_IMPORT_SINGLE = re.compile(r'^import\s+(?:[\w.]+\s+)?"([^"]+)"')
_GO_IMPORT_BLOCK_ITEM = re.compile(r'^(?:[\w.]+\s+)?"([^"]+)"')
_GO_TYPE_DECL = re.compile(r"^type\s+(\w+)(?:\[[^\]]*\])?\s+(struct|interface)\b")
_GO_OTHER_TYPE_DECL = re.compile(r"^type\s+(\w+)(?:\[[^\]]*\])?\s+=?\s*[\w*\[\]]")
_GO_FUNC_DECL = re.compile(
    r"^func\s+(?:\(\s*\w*\s*\*?\w+(?:\[[^\]]*\])?\s*\)\s+)?(\w+)\s*(?:\[[^\]]*\])?\s*\("
)
_GO_CONST_VAR_DECL = re.compile(r"^(const|var)\s+(\w+)\b")
_GO_DOC_COMMENT = re.compile(r"^//\s?(.*)")

# ---------------------------------------------------------------------------
# Proto patterns
# ---------------------------------------------------------------------------
_PROTO_IMPORT = re.compile(r'^import\s+(?:public\s+|weak\s+)?"([^"]+)"')
_PROTO_PACKAGE = re.compile(r"^package\s+(\S+)\s*;")
_PROTO_DECLS = (
    (re.compile(r"^message\s+(\w+)"), DeclKind.MESSAGE),
    (re.compile(r"^service\s+(\w+)"), DeclKind.SERVICE),
    (re.compile(r"^rpc\s+(\w+)"), DeclKind.RPC),
    (re.compile(r"^enum\s+(\w+)"), DeclKind.ENUM),
)


def _count_markers(line: str) -> tuple:
    todo = int("// TODO" in line or "//TODO" in line)
    fixme = int("// FIXME" in line or "//FIXME" in line)
    return todo, fixme


# ===================================================================
# Abstract Parser Interface
# ===================================================================

class Parser(ABC):
    """Abstract base class for source file parsers."""

    file_type: str = ""
    extensions: frozenset = frozenset()

    def supports(self, file_path: str) -> bool:
        return os.path.splitext(file_path)[1].lower() in self.extensions

    def parse_file(self, file_path: str, microservice: str = DEFAULT_COMPONENT) -> ParsedFile:
        """Parse *file_path*; raises ``OSError`` if the file cannot be opened."""
        with open(file_path, "r", encoding="utf-8", errors="ignore") as fh:
            return self.parse_lines(fh, file_path, microservice)

    @abstractmethod
    def parse_lines(self, lines: Iterable[str], file_path: str, microservice: str) -> ParsedFile:
        """Parse already-open source lines."""
        ...


# ===================================================================
# Go
# ===================================================================

class GoParser(Parser):
    """Extracts package, imports, type/func declarations and function sizes."""

    file_type = "go"
    extensions = frozenset({".go"})

    def parse_lines(self, lines: Iterable[str], file_path: str, microservice: str) -> ParsedFile:
        pf = ParsedFile(file_path=file_path, microservice_name=microservice, file_type=self.file_type)
        doc_lines: List[str] = []
        in_import_block = False

        # longest-function tracking
        func_name = ""
        func_start = 0
        brace_depth = 0
        in_func = False

        for raw in lines:
            pf.line_count += 1
            line = raw.strip()

            if not pf.package_name and line.startswith("package "):
                pf.package_name = line[len("package "):].strip()

            if line.startswith("import ("):
                in_import_block = True
                continue
            if in_import_block:
                if line == ")":
                    in_import_block = False
                    continue
                m = _GO_IMPORT_BLOCK_ITEM.match(line)
                if m:
                    pf.imports.append(m.group(1))
                continue
            m = _GO_IMPORT_SINGLE.match(line)
            if m:
                pf.imports.append(m.group(1))
                continue

            m = _GO_TYPE_DECL.match(line)
            if m:
                kind = DeclKind.INTERFACE if m.group(2) == "interface" else DeclKind.STRUCT
                pf.declarations.append(Declaration(m.group(1), kind))
                if not pf.description and doc_lines:
                    pf.description = " ".join(doc_lines)
                doc_lines = []
            else:
                m = _GO_OTHER_TYPE_DECL.match(line)
                if m:
                    pf.declarations.append(Declaration(m.group(1), DeclKind.TYPE))

            m = _GO_CONST_VAR_DECL.match(raw)
            if m:
                kind = DeclKind.CONST if m.group(1) == "const" else DeclKind.VAR
                pf.declarations.append(Declaration(m.group(2), kind))

            m = _GO_FUNC_DECL.match(line)
            if m:
                pf.declarations.append(Declaration(m.group(1), DeclKind.FUNC))
                if not in_func:
                    func_name = m.group(1)
                    func_start = pf.line_count
                    brace_depth = 0
                    in_func = True

            if in_func:
                brace_depth += line.count("{") - line.count("}")
                if brace_depth <= 0 and "}" in line:
                    self._close_function(pf, func_name, pf.line_count - func_start + 1)
                    in_func = False
                    func_name = ""

            m = _GO_DOC_COMMENT.match(line)
            if m:
                doc_lines.append(m.group(1))
            elif line:
                doc_lines = []

            todo, fixme = _count_markers(line)
            pf.todo_count += todo
            pf.fixme_count += fixme

        pf.module_name = pf.package_name
        return pf

    @staticmethod
    def _close_function(pf: ParsedFile, name: str, length: int) -> None:
        info = FunctionInfo(name=name, line_count=length, file_path=pf.file_path)
        if pf.longest_function is None or length > pf.longest_function.line_count:
            pf.longest_function = info
        if length >= BIG_FUNCTION_LINES:
            pf.big_functions.append(info)


# ===================================================================
# Protocol Buffers
# ===================================================================

class ProtoParser(Parser):
    """Extracts package, imports and message/service/rpc/enum declarations."""

    file_type = "proto"
    extensions = frozenset({".proto"})

    def parse_lines(self, lines: Iterable[str], file_path: str, microservice: str) -> ParsedFile:
        pf = ParsedFile(file_path=file_path, microservice_name=microservice, file_type=self.file_type)
        for raw in lines:
            pf.line_count += 1
            line = raw.strip()

            m = _PROTO_PACKAGE.match(line)
            if m:
                pf.package_name = m.group(1)
            m = _PROTO_IMPORT.match(line)
            if m:
                pf.imports.append(m.group(1))
            for pattern, kind in _PROTO_DECLS:
                m = pattern.match(line)
                if m:
                    pf.declarations.append(Declaration(m.group(1), kind))

            todo, fixme = _count_markers(line)
            pf.todo_count += todo
            pf.fixme_count += fixme

        pf.module_name = pf.package_name
        return pf


PARSERS: List[Parser] = [GoParser(), ProtoParser()]


def parse_file(file_path: str, microservice: str = DEFAULT_COMPONENT) -> Optional[ParsedFile]:
    """Dispatch to the parser for the file's extension.

    Returns None for unsupported extensions and for files that cannot be read.
    """
    for parser in PARSERS:
        if parser.supports(file_path):
            try:
                return parser.parse_file(file_path, microservice or DEFAULT_COMPONENT)
            except OSError as exc:
                logger.warning("Failed to parse %s: %s", Path(file_path).name, exc)
                return None
    return None


# ===================================================================
# Bounded worker pool
# ===================================================================

_STOP = object()


def _parse_job(path: str, component_lookup: Mapping[str, str]) -> Optional[ParsedFile]:
    """Parse one pooled job; a parser bug skips the file instead of killing its worker."""
    try:
        return parse_file(path, component_lookup.get(path, DEFAULT_COMPONENT))
    except Exception:
        logger.exception("Unexpected error parsing %s", path)
        return None


def worker_count() -> int:
    return max(1, min(os.cpu_count() or 1, config.MAX_PARSE_WORKERS))


def parse_files(
    file_paths: Iterable[str],
    component_lookup: Mapping[str, str],
    parallel: bool = True,
    workers: Optional[int] = None,
) -> List[ParsedFile]:
    """Parse every file, optionally across a fixed pool of worker threads.

    Workers pull paths from a bounded job queue and push results onto a
    results queue; every worker is joined before the list is returned, so
    callers only ever see the complete set. Output is sorted by path.
    """
    paths = list(file_paths)
    if not parallel or len(paths) < 2:
        parsed = [_parse_job(p, component_lookup) for p in paths]
        return sorted((pf for pf in parsed if pf is not None), key=lambda pf: pf.file_path)

    n_workers = min(workers or worker_count(), len(paths))
    jobs: "queue.Queue[object]" = queue.Queue(maxsize=n_workers * 4)
    results: "queue.Queue[ParsedFile]" = queue.Queue()

    def _work() -> None:
        while True:
            path = jobs.get()
            if path is _STOP:
                return
            pf = _parse_job(path, component_lookup)
            if pf is not None:
                results.put(pf)

    threads = [threading.Thread(target=_work, name=f"goscope-parse-{i}", daemon=True) for i in range(n_workers)]
    for t in threads:
        t.start()
    for path in paths:
        jobs.put(path)
    for _ in threads:
        jobs.put(_STOP)
    for t in threads:
        t.join()

    parsed: List[ParsedFile] = []
    while not results.empty():
        parsed.append(results.get_nowait())
    logger.debug("Parsed %d/%d files with %d workers", len(parsed), len(paths), n_workers)
    return sorted(parsed, key=lambda pf: pf.file_path)


def component_lookup_from(microservices: Mapping[str, List[str]]) -> Dict[str, str]:
    """Invert a component -> files mapping into file -> component."""
    lookup: Dict[str, str] = {}
    for name, files in microservices.items():
        for f in files:
            lookup[f] = name
    return lookup
