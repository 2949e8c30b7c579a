"""Error taxonomy for benchmark sweeps.

Two families are kept strictly apart:

- `SweepError` covers infrastructure problems (a subprocess that cannot be
  spawned, a git call that fails, an unwritable cache, a broken config).
  These abort the whole run.
- `MeasurementError` covers problems with the code under test (a preparation
  step or a benchmark that exits non-zero). These are recorded as failure
  records and the sweep moves on.
"""

from __future__ import annotations


class SweepError(Exception):
    """Fatal infrastructure error."""


class ConfigError(SweepError):
    """Configuration file is missing, unparsable, or invalid."""


class GitError(SweepError):
    """A git invocation failed or produced unusable output.

    Attributes:
        args_: The git arguments (without the executable).
        returncode: Exit status, or `None` if git never ran.
        stderr: Captured standard error, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        args_: tuple[str, ...] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.args_ = args_
        self.returncode = returncode
        self.stderr = stderr


class GitOutputError(GitError):
    """git ran but its output could not be decoded."""


class CacheWriteError(SweepError):
    """A result record could not be written to the cache."""


class BackendUnavailable(SweepError):
    """The benchmark backend or the shell could not be started."""


class MeasurementError(Exception):
    """Recoverable failure while preparing or measuring a revision."""


class PreparationFailed(MeasurementError):
    """A preparation command exited non-zero."""

    def __init__(self, command: str, returncode: int) -> None:
        super().__init__(f"preparation command {command!r} exited with status {returncode}")
        self.command = command
        self.returncode = returncode


class BenchmarkFailed(MeasurementError):
    """The benchmark backend failed or produced no usable result."""
