"""Sweep driver: measure every configured benchmark at every selected revision."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from benchsweep.backend import BenchmarkBackend, HyperfineBackend
from benchsweep.config import SweepConfig
from benchsweep.errors import MeasurementError
from benchsweep.plot import write_chart
from benchsweep.records.cache import ResultCache
from benchsweep.records.results import FailureRecord, ResultRecord, benchmark_id
from benchsweep.records.series import PlotRows, aggregate
from benchsweep.runner import CommandRunner
from benchsweep.vcs import GitRepository, RevisionSource

logger = logging.getLogger(__name__)


@dataclass
class SweepStats:
    """Counters of one sweep.

    Attributes:
        revisions: Revisions visited.
        cached: (revision, benchmark) pairs that were already recorded.
        measured: New success records written.
        failed: New failure records written.
    """

    revisions: int = 0
    cached: int = 0
    measured: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.cached + self.measured + self.failed


class SweepDriver:
    """Walks revisions and fills the result cache.

    The driver is the only user allowed to mutate the checkout in
    `config.repo_dir`, and it processes one revision at a time. Collaborators
    can be replaced for testing; by default they are built from `config`.
    """

    def __init__(
        self,
        config: SweepConfig,
        *,
        repo: RevisionSource | None = None,
        backend: BenchmarkBackend | None = None,
        runner: CommandRunner | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.config = config
        if repo is None:
            repo = GitRepository(
                config.repo_dir, branch=config.branch, clean=config.clean_checkout
            )
        self.repo = repo
        self.backend = backend if backend is not None else HyperfineBackend(config.hyperfine)
        self.runner = runner if runner is not None else CommandRunner()
        self.cache = cache if cache is not None else ResultCache(config.output_dir)
        self._benchmark_ids = {cmd: benchmark_id(cmd) for cmd in config.benchmarks}

    @property
    def workdir(self) -> Path:
        return self.config.repo_dir

    def select_revisions(self) -> list[str]:
        """Revisions to visit, in processing order."""
        revisions = self.repo.list_revisions(limit=self.config.max_revisions)
        if self.config.oldest_first:
            revisions.reverse()
        return revisions

    def pending(self, revision: str) -> list[str]:
        """Benchmark commands not yet recorded for `revision`."""
        return [
            cmd
            for cmd in self.config.benchmarks
            if not self.cache.has(self._benchmark_ids[cmd], revision)
        ]

    def run(self) -> SweepStats:
        """Run one sweep.

        Measurement failures are recorded as failure records. Infrastructure
        errors (`SweepError`) propagate and abort the sweep; everything
        recorded up to that point stays cached.
        """
        self.repo.sync_to_latest(self.config.repository)
        self.cache.ensure_root()
        revisions = self.select_revisions()
        n_bench = len(self.config.benchmarks)
        logger.info(
            "Sweeping %d revisions x %d benchmarks into %s",
            len(revisions),
            n_bench,
            self.cache.root,
        )

        stats = SweepStats()
        for i, revision in enumerate(revisions, 1):
            stats.revisions += 1
            todo = self.pending(revision)
            stats.cached += n_bench - len(todo)
            if not todo:
                logger.info(
                    "[%d/%d] %s: all %d benchmarks cached", i, len(revisions), revision, n_bench
                )
                continue

            logger.info(
                "[%d/%d] %s: %d of %d benchmarks to run",
                i,
                len(revisions),
                revision,
                len(todo),
                n_bench,
            )
            self.repo.checkout(revision)
            for command in todo:
                record = self._measure(revision, command)
                if not self.cache.put(self._benchmark_ids[command], revision, record):
                    continue
                if isinstance(record, FailureRecord):
                    stats.failed += 1
                else:
                    stats.measured += 1
                if self.config.incremental_plot:
                    self.render()

        logger.info(
            "Sweep done: %d revisions, %d pairs cached, %d measured, %d failed",
            stats.revisions,
            stats.cached,
            stats.measured,
            stats.failed,
        )
        return stats

    def _measure(self, revision: str, command: str) -> ResultRecord:
        try:
            self.runner.run_all(self.config.prepare, self.workdir)
            return self.backend.measure(command, self.workdir, self.config.warmup)
        except MeasurementError as exc:
            logger.warning("Benchmark %r failed at %s: %s", command, revision, exc)
            info = self.repo.metadata(revision)
            return FailureRecord(
                command=command,
                git_sha=revision,
                git_msg=info.message,
                git_date=info.date,
            )

    def aggregate(self) -> PlotRows:
        return aggregate(self.cache, self.repo)

    def render(self) -> Path:
        """Aggregate the whole cache and write the chart."""
        rows = self.aggregate()
        return write_chart(rows, self.cache.root, self.config.chart_name)
