"""Benchmark backend driving the `hyperfine` command-line tool."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol

from benchsweep.errors import BackendUnavailable, BenchmarkFailed
from benchsweep.records.results import SuccessRecord, load_result_file

logger = logging.getLogger(__name__)


class BenchmarkBackend(Protocol):
    """Measures one command in a working directory."""

    def measure(self, command: str, workdir: str | Path, warmup: int) -> SuccessRecord:
        """Return timing samples for `command`.

        Raises:
            BenchmarkFailed: If the command or the measurement fails.
        """
        ...


class HyperfineBackend:
    """Runs ``hyperfine --export-json <file> --warmup <n> <command>``.

    The JSON export is read back and its first result entry becomes the
    success record, keeping hyperfine's summary statistics alongside the raw
    ``times``.
    """

    def __init__(self, executable: str = "hyperfine", *, extra_args: tuple[str, ...] = ()) -> None:
        self.executable = executable
        self.extra_args = extra_args

    def __repr__(self) -> str:
        return f"HyperfineBackend({self.executable!r})"

    def measure(self, command: str, workdir: str | Path, warmup: int) -> SuccessRecord:
        with tempfile.TemporaryDirectory(prefix="benchsweep-") as tmp:
            export = Path(tmp) / "hyperfine.json"
            cmd = [
                self.executable,
                "--export-json",
                str(export),
                "--warmup",
                str(warmup),
                *self.extra_args,
                command,
            ]
            logger.debug("Running %s in %s", cmd, workdir)
            try:
                proc = subprocess.run(cmd, cwd=workdir, check=False)
            except OSError as exc:
                raise BackendUnavailable(f"Could not run {self.executable}: {exc}") from exc
            if proc.returncode != 0:
                raise BenchmarkFailed(
                    f"{self.executable} exited with status {proc.returncode} for {command!r}"
                )
            if not export.is_file():
                raise BenchmarkFailed(f"{self.executable} wrote no export for {command!r}")
            try:
                records = load_result_file(export)
            except ValueError as exc:
                raise BenchmarkFailed(f"Malformed {self.executable} export: {exc}") from exc
            except OSError as exc:
                raise BackendUnavailable(
                    f"Could not read {self.executable} export: {exc}"
                ) from exc

        record = records[0]
        if not isinstance(record, SuccessRecord):
            raise BenchmarkFailed(f"{self.executable} export has no timings for {command!r}")
        if record.command != command:
            logger.debug("Backend reported command %r for %r", record.command, command)
        return SuccessRecord(command=command, times=record.times, extra=record.extra)
