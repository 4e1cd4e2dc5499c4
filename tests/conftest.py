"""
Shared pytest fixtures for resmerge tests.

Provides:
- CNL collection writers
- Output collections opened the way the CLI opens them
- A subprocess runner for the resmerge CLI
"""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if SRC_ROOT.is_dir():
    sys.path.insert(0, str(SRC_ROOT))

REPO_ROOT = Path(__file__).resolve().parents[1]

from resmerge.cnl.header import parse_header  # noqa: E402
from resmerge.cnl.line_buffer import LineBuffer  # noqa: E402
from resmerge.cnl.tokens import iter_clusters, iter_members  # noqa: E402
from resmerge.utils.io import CollectionFile  # noqa: E402


# =============================================================================
# Shared test helpers
# =============================================================================


def write_cnl(path: Path, content: str) -> Path:
    """Write a CNL collection, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))
    return path


def read_collection(path: Path) -> tuple[tuple[int, int], list[list[int]]]:
    """Parse a collection back into its declared counts and member id lists."""
    with CollectionFile(path) as fin:
        line = LineBuffer()
        header = parse_header(fin.stream, line)
        clusters = [
            [nid for nid, _ in iter_members(cluster.members)]
            for cluster in iter_clusters(fin.stream, line)
        ]
    return (header.clusters, header.nodes), clusters


@pytest.fixture
def cnl_writer() -> Callable[[Path, str], Path]:
    return write_cnl


@pytest.fixture
def sample_inputs(tmp_path: Path) -> list[Path]:
    """The two collections of the reference merge scenario."""
    return [
        write_cnl(tmp_path / "inp" / "a.cnl", "# Clusters: 2, Nodes: 4\n1 2\n3 4\n"),
        write_cnl(tmp_path / "inp" / "b.cnl", "2 1\n5 6\n"),
    ]


@pytest.fixture
def input_files(sample_inputs: list[Path]) -> Generator[list[CollectionFile], None, None]:
    files = [CollectionFile(path) for path in sample_inputs]
    yield files
    for file in files:
        file.close()


@pytest.fixture
def output_file(tmp_path: Path) -> Generator[CollectionFile, None, None]:
    output = CollectionFile(tmp_path / "out" / "merged.cnl", "w+b", lazy=True)
    output.path.parent.mkdir(parents=True, exist_ok=True)
    output.open()
    yield output
    output.close()


# =============================================================================
# CLI fixtures
# =============================================================================


def _build_env(repo_root: Path) -> dict[str, str]:
    env = os.environ.copy()
    env["PYTHONPATH"] = f"{repo_root / 'src'}{os.pathsep}{env.get('PYTHONPATH', '')}".strip(
        os.pathsep
    )
    return env


@pytest.fixture
def repo_root() -> Path:
    return REPO_ROOT


@pytest.fixture
def run_resmerge(repo_root: Path) -> Callable[..., subprocess.CompletedProcess[str]]:
    env = _build_env(repo_root)

    def _run(
        args: list[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = 60,
    ) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [sys.executable, "-m", "resmerge.cli", *args],
            check=False,
            cwd=cwd or repo_root,
            env=env,
            text=True,
            capture_output=True,
            timeout=timeout,
        )

    return _run


@pytest.fixture
def collection_reader() -> Callable[[Path], tuple[tuple[int, int], list[list[int]]]]:
    return read_collection
