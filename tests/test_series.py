from __future__ import annotations

import json
import math
from pathlib import Path

import pandas as pd
import pytest

from benchsweep.errors import GitError, GitOutputError
from benchsweep.records.cache import ResultCache
from benchsweep.records.results import FailureRecord, SuccessRecord, benchmark_id
from benchsweep.records.series import PlotRow, PlotRows, aggregate
from benchsweep.vcs import RevisionInfo

SHA_1 = "1" * 40
SHA_2 = "2" * 40
SHA_3 = "3" * 40


class StaticSource:
    """Revision source serving fixed metadata and counting lookups."""

    def __init__(self, infos: dict[str, tuple[str, str]], *, missing_rc: int | None = 128) -> None:
        self.infos = infos
        self.missing_rc = missing_rc
        self.lookups: list[str] = []

    def metadata(self, revision: str) -> RevisionInfo:
        self.lookups.append(revision)
        if revision not in self.infos:
            raise GitError(f"unknown revision {revision}", returncode=self.missing_rc)
        date, msg = self.infos[revision]
        return RevisionInfo(sha=revision, date=date, message=msg)


def _source() -> StaticSource:
    return StaticSource(
        {
            SHA_1: ("2024-01-01 10:00:00 +0000", "first"),
            SHA_2: ("2024-01-02 10:00:00 +0000", "second"),
            SHA_3: ("2024-01-03 10:00:00 +0000", "third"),
        }
    )


def _fill_cache(root: Path) -> ResultCache:
    cache = ResultCache(root)
    a = benchmark_id("bench-a")
    b = benchmark_id("bench-b")
    cache.put(a, SHA_1, SuccessRecord(command="bench-a", times=(1.0, 2.0, 3.0)))
    cache.put(a, SHA_2, SuccessRecord(command="bench-a", times=(2.0, 4.0)))
    cache.put(
        a, SHA_3, FailureRecord(command="bench-a", git_sha=SHA_3, git_msg="third", git_date="d")
    )
    cache.put(b, SHA_1, SuccessRecord(command="bench-b", times=(0.5,)))
    cache.put(
        b, SHA_2, FailureRecord(command="bench-b", git_sha=SHA_2, git_msg="second", git_date="d")
    )
    return cache


def test_aggregate_row_count(tmp_path: Path) -> None:
    _fill_cache(tmp_path)
    rows = aggregate(tmp_path, _source())
    # 3 + 2 + 1 samples plus 2 failure markers.
    assert len(rows) == 8
    assert len(rows.failures()) == 2
    assert len(rows.measured()) == 6


def test_aggregate_joins_metadata(tmp_path: Path) -> None:
    _fill_cache(tmp_path)
    source = _source()
    rows = aggregate(tmp_path, source)

    second = rows.revision(SHA_2)
    assert set(second.data.git_msg) == {"second"}
    assert set(second.data.git_date) == {"2024-01-02 10:00:00 +0000"}
    # One lookup per revision per pass.
    assert sorted(source.lookups) == [SHA_1, SHA_2, SHA_3]

    aggregate(tmp_path, source)
    assert len(source.lookups) == 6


def test_failure_rows_have_no_time(tmp_path: Path) -> None:
    _fill_cache(tmp_path)
    rows = aggregate(tmp_path, _source())
    (failure,) = rows.command("bench-b").failures()
    assert failure == PlotRow(
        git_sha=SHA_2,
        git_msg="second",
        git_date="2024-01-02 10:00:00 +0000",
        command="bench-b",
        time=None,
    )
    assert failure.is_failure


def test_corrupt_files_are_skipped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    _fill_cache(tmp_path)
    bad_dir = tmp_path / benchmark_id("bench-c")
    bad_dir.mkdir()
    (bad_dir / f"{SHA_1}.json").write_text("{truncated")
    (bad_dir / f"{SHA_2}.json").write_text(json.dumps({"results": [{"command": "c", "times": []}]}))

    with caplog.at_level("WARNING"):
        rows = aggregate(tmp_path, _source())
    assert len(rows) == 8
    assert "bench-c" not in rows.commands
    assert caplog.text.count("Skipping corrupt result file") == 2


def test_unknown_revision_gets_placeholder(tmp_path: Path) -> None:
    cache = ResultCache(tmp_path)
    gone = "9" * 40
    cache.put(benchmark_id("x"), gone, SuccessRecord(command="x", times=(1.0,)))

    (row,) = aggregate(cache, _source())
    assert row.git_sha == gone
    assert row.git_msg == ""
    assert row.git_date == ""


def test_git_unavailable_propagates(tmp_path: Path) -> None:
    cache = ResultCache(tmp_path)
    cache.put(benchmark_id("x"), "9" * 40, SuccessRecord(command="x", times=(1.0,)))
    with pytest.raises(GitError):
        aggregate(cache, StaticSource({}, missing_rc=None))


def test_undecodable_metadata_propagates(tmp_path: Path) -> None:
    cache = ResultCache(tmp_path)
    cache.put(benchmark_id("x"), SHA_1, SuccessRecord(command="x", times=(1.0,)))

    class Garbled(StaticSource):
        def metadata(self, revision: str) -> RevisionInfo:
            raise GitOutputError("not valid UTF-8", returncode=0)

    with pytest.raises(GitOutputError):
        aggregate(cache, Garbled({}))


def test_failure_keeps_recorded_metadata_for_unknown_revision(tmp_path: Path) -> None:
    cache = ResultCache(tmp_path)
    gone = "9" * 40
    recorded = FailureRecord(
        command="x", git_sha=gone, git_msg="rewritten", git_date="2023-05-01 09:00:00 +0000"
    )
    cache.put(benchmark_id("x"), gone, recorded)
    cache.put(benchmark_id("y"), gone, SuccessRecord(command="y", times=(1.0,)))

    rows = aggregate(cache, _source())
    (failure,) = rows.failures()
    assert failure.git_msg == "rewritten"
    assert failure.git_date == "2023-05-01 09:00:00 +0000"
    (measured,) = rows.measured()
    assert measured.git_msg == ""
    assert measured.git_date == ""


def test_aggregate_empty_cache(tmp_path: Path) -> None:
    rows = aggregate(tmp_path / "missing", _source())
    assert not rows
    columns = list(rows.to_dataframe().columns)
    assert columns == ["git_sha", "git_msg", "git_date", "command", "time"]
    assert rows.summary().empty


class TestPlotRows:
    @pytest.fixture()
    def rows(self, tmp_path: Path) -> PlotRows:
        _fill_cache(tmp_path)
        return aggregate(tmp_path, _source())

    def test_group_by_command(self, rows: PlotRows) -> None:
        groups = rows.group_by("command")
        assert set(groups) == {"bench-a", "bench-b"}
        assert len(groups["bench-a"]) == 6
        assert len(groups["bench-b"]) == 2

    def test_multi_field_group_by(self, rows: PlotRows) -> None:
        groups = rows.group_by("command", "git_sha")
        assert len(groups) == 5
        assert len(groups[("bench-a", SHA_1)]) == 3

    def test_where_and_chaining(self, rows: PlotRows) -> None:
        slow = rows.command("bench-a").measured().where(lambda r: r.time > 1.5)
        assert sorted(slow.data.time) == [2.0, 2.0, 3.0, 4.0]

    def test_sorted_by_command_then_date(self, rows: PlotRows) -> None:
        ordered = rows.sorted()
        keys = [(r.command, r.git_date) for r in ordered]
        assert keys == sorted(keys)

    def test_container_protocol(self, rows: PlotRows) -> None:
        assert bool(rows)
        assert isinstance(rows[0], PlotRow)
        assert len(rows + rows) == 16
        assert "8 rows" in repr(rows)
        assert not PlotRows([])

    def test_invalid_field_access(self, rows: PlotRows) -> None:
        with pytest.raises(AttributeError):
            _ = rows.data.nonexistent  # type: ignore[attr-defined]

    def test_to_dataframe(self, rows: PlotRows) -> None:
        df = rows.to_dataframe()
        assert len(df) == 8
        assert df["time"].isna().sum() == 2
        assert pd.api.types.is_float_dtype(df["time"])

    def test_to_records_uses_null_time(self, rows: PlotRows) -> None:
        records = rows.failures().to_records()
        assert all(r["time"] is None for r in records)
        assert set(records[0]) == {"git_sha", "git_msg", "git_date", "command", "time"}

    def test_summary(self, rows: PlotRows) -> None:
        summary = rows.summary()
        assert len(summary) == 5
        a1 = summary[(summary["command"] == "bench-a") & (summary["git_sha"] == SHA_1)].iloc[0]
        assert a1["samples"] == 3
        assert a1["mean_s"] == pytest.approx(2.0)
        assert a1["median_s"] == pytest.approx(2.0)
        assert a1["min_s"] == 1.0
        assert a1["max_s"] == 3.0
        assert not a1["failed"]

        b2 = summary[(summary["command"] == "bench-b") & (summary["git_sha"] == SHA_2)].iloc[0]
        assert b2["samples"] == 0
        assert b2["failed"]
        assert math.isnan(b2["mean_s"])
