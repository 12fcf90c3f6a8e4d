"""Pytest configuration and fixtures for goscope tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator, Sequence, Tuple

import pytest

from goscope.models import Declaration, ParsedFile


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_services_path() -> Path:
    """Get path to the sample multi-service Go tree."""
    return Path(__file__).parent / "fixtures" / "sample_services"


@pytest.fixture
def sample_services_copy(temp_dir: Path, sample_services_path: Path) -> Path:
    """A writable copy of the sample tree (outside any git checkout)."""
    target = temp_dir / "shop"
    shutil.copytree(sample_services_path, target)
    return target


@pytest.fixture
def make_file(temp_dir: Path) -> Callable[..., ParsedFile]:
    """Factory writing a source file to disk and returning its ParsedFile.

    ``decls`` is a sequence of ``(name, kind)`` pairs.
    """

    def _make(
        name: str,
        content: str = "",
        component: str = "svc",
        decls: Sequence[Tuple[str, str]] = (),
        imports: Sequence[str] = (),
        module: str = "",
    ) -> ParsedFile:
        path = temp_dir / component / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return ParsedFile(
            file_path=str(path),
            microservice_name=component,
            module_name=module,
            imports=list(imports),
            declarations=[Declaration(n, k) for n, k in decls],
            line_count=content.count("\n"),
        )

    return _make
