"""Shell command execution inside the shared checkout."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from benchsweep.errors import BackendUnavailable, PreparationFailed

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs shell commands synchronously in a working directory.

    Output is not captured so build logs stream to the operator's terminal.
    """

    def run(self, command: str, cwd: str | Path) -> int:
        """Run `command` through the shell and return its exit status.

        Raises:
            BackendUnavailable: If the shell itself cannot be started.
        """
        logger.debug("Running %r in %s", command, cwd)
        try:
            proc = subprocess.run(command, shell=True, cwd=cwd, check=False)
        except OSError as exc:
            raise BackendUnavailable(f"Could not run {command!r} in {cwd}: {exc}") from exc
        return proc.returncode

    def run_all(self, commands: Sequence[str], cwd: str | Path) -> None:
        """Run `commands` in order, stopping at the first failure.

        Raises:
            PreparationFailed: If a command exits non-zero.
        """
        for command in commands:
            returncode = self.run(command, cwd)
            if returncode != 0:
                raise PreparationFailed(command, returncode)
