from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from benchsweep.errors import BackendUnavailable, PreparationFailed
from benchsweep.runner import CommandRunner


def test_run_uses_shell_in_workdir(tmp_path: Path) -> None:
    runner = CommandRunner()
    assert runner.run("echo built > artifact && test -f artifact", tmp_path) == 0
    assert (tmp_path / "artifact").read_text().strip() == "built"
    assert runner.run("exit 7", tmp_path) == 7


def test_run_all_stops_at_first_failure(tmp_path: Path) -> None:
    runner = CommandRunner()
    with pytest.raises(PreparationFailed) as excinfo:
        runner.run_all(["touch one", "false", "touch two"], tmp_path)
    assert excinfo.value.command == "false"
    assert excinfo.value.returncode == 1
    assert (tmp_path / "one").exists()
    assert not (tmp_path / "two").exists()


def test_run_all_empty(tmp_path: Path) -> None:
    CommandRunner().run_all([], tmp_path)


def test_spawn_failure_is_fatal(tmp_path: Path) -> None:
    with patch("benchsweep.runner.subprocess.run", side_effect=OSError("no shell")):
        with pytest.raises(BackendUnavailable):
            CommandRunner().run("true", tmp_path)
