"""Git-backed revision source operating on one explicit working directory."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from benchsweep.errors import GitError, GitOutputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevisionInfo:
    """Metadata for one revision.

    Attributes:
        sha: Revision id.
        date: Committer date as printed by ``git log --format=%ci``.
        message: Full commit message (``%B``), trailing whitespace stripped.
    """

    sha: str
    date: str
    message: str


class RevisionSource(Protocol):
    """Interface the sweep and the aggregator need from version control."""

    def sync_to_latest(self, url: str) -> None:
        """Clone `url` if needed, otherwise fast-forward to the latest main line."""
        ...

    def list_revisions(self, limit: int | None = None) -> list[str]:
        """Return revision ids newest-first, truncated to `limit`."""
        ...

    def checkout(self, revision: str) -> None:
        """Check out `revision` in the working directory."""
        ...

    def metadata(self, revision: str) -> RevisionInfo:
        """Return date and message of `revision`."""
        ...


class GitRepository:
    """A git working copy used as the shared checkout of a sweep.

    Only the sweep driver may call the mutating operations (`sync_to_latest`,
    `checkout`); everything runs sequentially against `workdir`. The working
    copy is owned by this class: checkouts discard local modifications, and
    with `clean` also untracked and ignored files.
    """

    def __init__(
        self,
        workdir: str | Path,
        *,
        branch: str = "main",
        git: str = "git",
        clean: bool = False,
    ) -> None:
        self.workdir = Path(workdir)
        self.branch = branch
        self.git = git
        self.clean = clean

    def __repr__(self) -> str:
        return f"GitRepository({str(self.workdir)!r}, branch={self.branch!r})"

    def _run(self, *args: str, cwd: Path | None = None) -> str:
        cmd = [self.git, *args]
        run_dir = self.workdir if cwd is None else cwd
        logger.debug("Running %s in %s", " ".join(cmd), run_dir)
        try:
            proc = subprocess.run(cmd, cwd=run_dir, capture_output=True, check=False)
        except OSError as exc:
            raise GitError(
                f"Could not run {' '.join(cmd)} in {run_dir}: {exc}", args_=args
            ) from exc
        try:
            stdout = proc.stdout.decode("utf-8")
            stderr = proc.stderr.decode("utf-8", errors="replace")
        except UnicodeDecodeError as exc:
            raise GitOutputError(
                f"git {' '.join(args)} produced output that is not valid UTF-8",
                args_=args,
                returncode=proc.returncode,
            ) from exc
        if proc.returncode != 0:
            raise GitError(
                f"git {' '.join(args)} failed ({proc.returncode}): {stderr.strip()}",
                args_=args,
                returncode=proc.returncode,
                stderr=stderr,
            )
        return stdout

    def is_cloned(self) -> bool:
        return (self.workdir / ".git").exists()

    def sync_to_latest(self, url: str) -> None:
        if not self.is_cloned():
            logger.info("Cloning %s to %s", url, self.workdir)
            self.workdir.parent.mkdir(parents=True, exist_ok=True)
            self._run("clone", "--quiet", url, str(self.workdir), cwd=self.workdir.parent)
            self._run("checkout", "--quiet", self.branch)
            return
        logger.info("Updating %s (%s)", self.workdir, self.branch)
        self._reset_to(self.branch)
        self._run("pull", "--quiet", "--ff-only")

    def list_revisions(self, limit: int | None = None) -> list[str]:
        args = ["rev-list"]
        if limit is not None:
            args.append(f"--max-count={limit}")
        args.append(self.branch)
        revisions = self._run(*args).split()
        logger.info("Found %d revisions on %s", len(revisions), self.branch)
        return revisions

    def checkout(self, revision: str) -> None:
        self._reset_to(revision, detach=True)

    def _reset_to(self, ref: str, *, detach: bool = False) -> None:
        # Preparation commands may leave tracked files modified.
        args = ["checkout", "--quiet", "--force"]
        if detach:
            args.append("--detach")
        self._run(*args, ref)
        if self.clean:
            self._run("clean", "--quiet", "-ffdx")

    def metadata(self, revision: str) -> RevisionInfo:
        out = self._run("log", "-n", "1", "--format=%ci%n%B", revision)
        date, _, message = out.partition("\n")
        return RevisionInfo(sha=revision, date=date.strip(), message=message.rstrip())
