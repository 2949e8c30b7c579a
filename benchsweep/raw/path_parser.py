"""Path parsing helpers for the result cache layout."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

RESULT_SUFFIX = ".json"
_BENCHMARK_ID_RE = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class ParsedResultPath:
    """Parsed components of a cached result file path.

    Attributes:
        benchmark_id: Hex SHA-256 of the benchmark command (directory name).
        revision: Revision id (file stem).
        path: Full path of the result file.
        relpath: Path relative to the cache root, POSIX style.
    """

    benchmark_id: str
    revision: str
    path: Path
    relpath: str


def result_relpath(benchmark_id: str, revision: str) -> str:
    # {benchmark_id}/{revision}.json
    return f"{benchmark_id}/{revision}{RESULT_SUFFIX}"


def parse_result_path(path: str | Path, root: str | Path) -> ParsedResultPath:
    """Parse a `{benchmark_id}/{revision}.json` path under the cache root."""
    p = Path(path)
    rel = p.relative_to(Path(root)).as_posix()
    parts = rel.split("/")
    if len(parts) != 2:
        raise ValueError(f"Unrecognized result path: {rel}")

    bench, filename = parts
    if not _BENCHMARK_ID_RE.match(bench):
        raise ValueError(f"Not a benchmark id directory: {bench!r} in {rel}")
    if not filename.endswith(RESULT_SUFFIX) or len(filename) == len(RESULT_SUFFIX):
        raise ValueError(f"Not a result file: {rel}")

    return ParsedResultPath(
        benchmark_id=bench,
        revision=filename[: -len(RESULT_SUFFIX)],
        path=p,
        relpath=rel,
    )
