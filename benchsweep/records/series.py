"""Flattened time series of cached results with typed collection API."""

from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from benchsweep.errors import GitError, GitOutputError
from benchsweep.records.cache import ResultCache
from benchsweep.records.results import SuccessRecord, load_result_file
from benchsweep.vcs import RevisionInfo, RevisionSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlotRow:
    """One sample (or one failure marker) of a benchmark at a revision.

    Attributes:
        git_sha: Revision id.
        git_msg: Commit message of the revision.
        git_date: Committer date of the revision.
        command: Benchmark command string.
        time: Sample in seconds, or ``None`` when the measurement failed.
    """

    git_sha: str
    git_msg: str
    git_date: str
    command: str
    time: float | None

    @property
    def is_failure(self) -> bool:
        return self.time is None


_ROW_FIELDS = tuple(f.name for f in dataclasses.fields(PlotRow))
_SUMMARY_COLUMNS = [
    "command",
    "git_sha",
    "git_date",
    "git_msg",
    "samples",
    "failed",
    "mean_s",
    "median_s",
    "min_s",
    "max_s",
    "std_s",
]


class _PlotRowsData:
    """Column accessor for `PlotRows`, returning `list[T]` per field."""

    __slots__ = ("_cache", "_rows")

    def __init__(self, rows: tuple[PlotRow, ...], cache: dict[str, Any]) -> None:
        self._rows = rows
        self._cache = cache

    if not TYPE_CHECKING:

        def __getattr__(self, name: str) -> list[Any]:
            if name not in _ROW_FIELDS:
                raise AttributeError(f"PlotRow has no field {name!r}")
            key = f"_data_{name}"
            if key not in self._cache:
                self._cache[key] = [getattr(r, name) for r in self._rows]
            return self._cache[key]

    if TYPE_CHECKING:

        @property
        def git_sha(self) -> list[str]: ...

        @property
        def git_msg(self) -> list[str]: ...

        @property
        def git_date(self) -> list[str]: ...

        @property
        def command(self) -> list[str]: ...

        @property
        def time(self) -> list[float | None]: ...


class PlotRows:
    """Immutable collection of plot rows with fluent filtering.

    Example:

        rows = aggregate("results", GitRepository("/tmp/benchsweep"))
        slow = rows.measured().where(lambda r: r.time > 1.0)
        per_commit = rows.command("make test").summary()
    """

    def __init__(self, rows: Sequence[PlotRow]) -> None:
        self._rows = tuple(rows)
        self._cache: dict[str, Any] = {}

    def command(self, *commands: str) -> PlotRows:
        """Filter to rows of any of the given benchmark commands."""
        return self._filter("command", commands)

    def revision(self, *shas: str) -> PlotRows:
        """Filter to rows of any of the given revisions."""
        return self._filter("git_sha", shas)

    def failures(self) -> PlotRows:
        """Filter to failure markers."""
        return self.where(lambda r: r.time is None)

    def measured(self) -> PlotRows:
        """Filter to rows carrying a timing sample."""
        return self.where(lambda r: r.time is not None)

    def where(self, predicate: Callable[[PlotRow], bool]) -> PlotRows:
        """Filter rows by an arbitrary predicate."""
        return PlotRows([r for r in self._rows if predicate(r)])

    def _filter(self, field: str, values: tuple[Any, ...]) -> PlotRows:
        key = f"_filter_{field}_{values}"
        if key not in self._cache:
            value_set = set(values)
            self._cache[key] = PlotRows([r for r in self._rows if getattr(r, field) in value_set])
        return self._cache[key]

    @property
    def commands(self) -> list[str]:
        """Distinct benchmark commands, in first-seen order."""
        return list(dict.fromkeys(r.command for r in self._rows))

    @property
    def data(self) -> _PlotRowsData:
        """Column-oriented access, e.g. ``rows.data.time``."""
        key = "_data_accessor"
        if key not in self._cache:
            self._cache[key] = _PlotRowsData(self._rows, self._cache)
        return self._cache[key]

    def group_by(self, *fields: str) -> dict[Any, PlotRows]:
        """Group rows by one or more fields.

        Returns:
            Single field: `{value: PlotRows, ...}`.
            Multiple fields: `{(v1, v2, ...): PlotRows, ...}`.
        """
        key = f"_group_by_{fields}"
        if key not in self._cache:
            groups: dict[Any, list[PlotRow]] = defaultdict(list)
            for r in self._rows:
                if len(fields) == 1:
                    k = getattr(r, fields[0])
                else:
                    k = tuple(getattr(r, f) for f in fields)
                groups[k].append(r)
            self._cache[key] = {k: PlotRows(v) for k, v in groups.items()}
        return self._cache[key]

    def sorted(self) -> PlotRows:
        """Rows ordered by command, then date, then revision."""
        return PlotRows(sorted(self._rows, key=lambda r: (r.command, r.git_date, r.git_sha)))

    def __iter__(self) -> Iterator[PlotRow]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, index: int) -> PlotRow:
        return self._rows[index]

    def __bool__(self) -> bool:
        return len(self._rows) > 0

    def __add__(self, other: PlotRows) -> PlotRows:
        return PlotRows(list(self._rows) + list(other._rows))

    def __repr__(self) -> str:
        return f"PlotRows({len(self._rows)} rows)"

    def to_records(self) -> list[dict[str, Any]]:
        """Plain dicts, the shape the chart's inline data expects."""
        return [dataclasses.asdict(r) for r in self._rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame with one row per sample or failure."""
        if not self._rows:
            return pd.DataFrame(columns=list(_ROW_FIELDS))
        df = pd.DataFrame(self.to_records(), columns=list(_ROW_FIELDS))
        df["time"] = df["time"].astype(float)
        return df

    def summary(self) -> pd.DataFrame:
        """Per-(command, revision) statistics.

        Returns:
            DataFrame with columns `command`, `git_sha`, `git_date`, `git_msg`,
            `samples`, `failed`, `mean_s`, `median_s`, `min_s`, `max_s`,
            `std_s`, sorted by command and date. Statistics are NaN for
            revisions with no samples.
        """
        out: list[dict[str, Any]] = []
        for (command, sha), group in self.group_by("command", "git_sha").items():
            first = group[0]
            times = np.asarray([t for t in group.data.time if t is not None], dtype=float)
            has_samples = times.size > 0
            out.append(
                {
                    "command": command,
                    "git_sha": sha,
                    "git_date": first.git_date,
                    "git_msg": first.git_msg,
                    "samples": int(times.size),
                    "failed": any(r.time is None for r in group),
                    "mean_s": float(np.mean(times)) if has_samples else np.nan,
                    "median_s": float(np.median(times)) if has_samples else np.nan,
                    "min_s": float(np.min(times)) if has_samples else np.nan,
                    "max_s": float(np.max(times)) if has_samples else np.nan,
                    "std_s": float(np.std(times)) if has_samples else np.nan,
                }
            )
        if not out:
            return pd.DataFrame(columns=_SUMMARY_COLUMNS)
        df = pd.DataFrame(out, columns=_SUMMARY_COLUMNS)
        return df.sort_values(["command", "git_date", "git_sha"]).reset_index(drop=True)


def _revision_info(source: RevisionSource, sha: str) -> RevisionInfo | None:
    """Metadata of `sha`, or `None` if git no longer knows the revision."""
    try:
        return source.metadata(sha)
    except GitOutputError:
        raise
    except GitError as exc:
        if exc.returncode is None:
            raise
        logger.warning("No metadata for revision %s, using placeholders: %s", sha, exc)
        return None


def aggregate(output_dir: str | Path | ResultCache, source: RevisionSource) -> PlotRows:
    """Flatten every cached result file into plot rows.

    Revision metadata is fetched from `source` once per revision per call;
    nothing is kept between calls. Corrupt result files are skipped with a
    warning.

    Args:
        output_dir: Cache root (or the cache itself).
        source: Revision source providing date and message per revision.
    """
    cache = output_dir if isinstance(output_dir, ResultCache) else ResultCache(output_dir)
    entries = cache.entries()
    logger.info("Aggregating %d result files from %s", len(entries), cache.root)

    infos: dict[str, RevisionInfo | None] = {}
    rows: list[PlotRow] = []
    skipped = 0
    for entry in entries:
        try:
            records = load_result_file(entry.path)
        except (OSError, ValueError) as exc:
            logger.warning("Skipping corrupt result file %s: %s", entry.path, exc)
            skipped += 1
            continue

        sha = entry.revision
        if sha not in infos:
            infos[sha] = _revision_info(source, sha)
        info = infos[sha]
        msg, date = (info.message, info.date) if info is not None else ("", "")
        for record in records:
            if isinstance(record, SuccessRecord):
                rows.extend(
                    PlotRow(
                        git_sha=sha,
                        git_msg=msg,
                        git_date=date,
                        command=record.command,
                        time=t,
                    )
                    for t in record.times
                )
            else:
                # A failure record carries the metadata it was written with.
                rows.append(
                    PlotRow(
                        git_sha=sha,
                        git_msg=msg if info is not None else record.git_msg,
                        git_date=date if info is not None else record.git_date,
                        command=record.command,
                        time=None,
                    )
                )

    logger.info("Built %d plot rows (%d files skipped)", len(rows), skipped)
    return PlotRows(rows)
