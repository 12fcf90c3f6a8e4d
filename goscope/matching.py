"""Word-boundary identifier matching and size-capped file reads.

Every heuristic edge signal (file-level type references, declaration-level
references, schema linkage and the call heuristic) reduces to the same
question: does *identifier* occur in *content* as a whole word?
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

MAX_CONTENT_BYTES = 512 * 1024


def _is_ident_char(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ("0" <= ch <= "9")


def references(content: str, identifier: str) -> bool:
    """Return True if *identifier* occurs in *content* bounded by non-identifier
    characters (or the string edges) on both sides."""
    if not identifier:
        return False
    size = len(identifier)
    start = 0
    while True:
        pos = content.find(identifier, start)
        if pos < 0:
            return False
        end = pos + size
        before_ok = pos == 0 or not _is_ident_char(content[pos - 1])
        after_ok = end >= len(content) or not _is_ident_char(content[end])
        if before_ok and after_ok:
            return True
        start = pos + 1


def read_capped(path: str, limit: int = MAX_CONTENT_BYTES) -> str:
    """Read at most *limit* bytes of *path* as text; unreadable files give ``""``."""
    try:
        with open(path, "rb") as fh:
            data = fh.read(limit)
    except OSError as exc:
        logger.debug("Could not read %s: %s", path, exc)
        return ""
    return data.decode("utf-8", errors="ignore")
