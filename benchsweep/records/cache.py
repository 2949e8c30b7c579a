"""Content-addressed, write-once store of benchmark result files."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from benchsweep.errors import CacheWriteError
from benchsweep.raw.path_parser import (
    RESULT_SUFFIX,
    ParsedResultPath,
    parse_result_path,
    result_relpath,
)
from benchsweep.records.results import ResultRecord, dumps_record, load_result_file

logger = logging.getLogger(__name__)


class ResultCache:
    """File-backed map from (benchmark id, revision) to a result record.

    Layout: ``<root>/<benchmark_id>/<revision>.json``. A record is written at
    most once and never modified afterwards; deleting the file is the only way
    to get the pair measured again. Writes go through a temporary file that is
    hard-linked into place, so readers never see a partial record and an
    existing record is never replaced.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"ResultCache({str(self.root)!r})"

    def ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheWriteError(f"Could not create cache directory {self.root}: {exc}") from exc

    def path_for(self, benchmark_id: str, revision: str) -> Path:
        if not revision or "/" in revision or os.sep in revision or revision.startswith("."):
            raise ValueError(f"Invalid revision id for cache path: {revision!r}")
        return self.root / result_relpath(benchmark_id, revision)

    def has(self, benchmark_id: str, revision: str) -> bool:
        return self.path_for(benchmark_id, revision).is_file()

    def get(self, benchmark_id: str, revision: str) -> list[ResultRecord]:
        """Load the records stored for a pair.

        Raises:
            FileNotFoundError: If the pair is not cached.
            ValueError: If the stored file is corrupt.
        """
        return load_result_file(self.path_for(benchmark_id, revision))

    def put(self, benchmark_id: str, revision: str, record: ResultRecord) -> bool:
        """Store `record` for a pair unless one is already stored.

        Returns:
            True if the record was written, False if the pair already existed.

        Raises:
            CacheWriteError: If the directory or the file cannot be written.
        """
        target = self.path_for(benchmark_id, revision)
        if target.exists():
            logger.debug("Not overwriting existing record %s", target)
            return False

        data = dumps_record(record).encode("utf-8")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_raw = tempfile.mkstemp(
                dir=target.parent, prefix=f".{revision}.", suffix=".tmp"
            )
        except OSError as exc:
            raise CacheWriteError(f"Could not prepare {target}: {exc}") from exc

        tmp = Path(tmp_raw)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            try:
                os.link(tmp, target)
            except FileExistsError:
                logger.debug("Record %s appeared concurrently; keeping it", target)
                return False
        except OSError as exc:
            raise CacheWriteError(f"Could not write {target}: {exc}") from exc
        finally:
            tmp.unlink(missing_ok=True)

        logger.debug("Wrote %s", target)
        return True

    def entries(self) -> list[ParsedResultPath]:
        """List every result file under the root, sorted by relative path.

        Files that do not follow the cache layout are ignored.
        """
        if not self.root.is_dir():
            return []
        out: list[ParsedResultPath] = []
        for p in self.root.glob(f"*/*{RESULT_SUFFIX}"):
            if not p.is_file():
                continue
            try:
                out.append(parse_result_path(p, self.root))
            except ValueError:
                logger.debug("Ignoring non-result file %s", p)
        out.sort(key=lambda e: e.relpath)
        return out
