"""Result records and their on-disk JSON codec.

A result file holds ``{"results": [entry, ...]}``. Success entries follow the
hyperfine export format (``command`` plus a ``times`` list of seconds, with
any other hyperfine statistics kept as-is). Failure entries carry
``command``, ``git_sha``, ``git_msg`` and ``git_date`` and have no ``times``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_FAILURE_KEYS = ("git_sha", "git_msg", "git_date")


def benchmark_id(command: str) -> str:
    """Return the cache key of a benchmark command (hex SHA-256 of its text)."""
    return hashlib.sha256(command.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class SuccessRecord:
    """Timing samples of one benchmark at one revision.

    Attributes:
        command: Benchmark command string.
        times: Wall-clock samples in seconds, in measurement order.
        extra: Other keys of the backend's result entry (e.g. ``mean``).
    """

    command: str
    times: tuple[float, ...]
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_failure(self) -> bool:
        return False


@dataclass(frozen=True)
class FailureRecord:
    """Marker for a benchmark that could not be prepared or measured."""

    command: str
    git_sha: str
    git_msg: str
    git_date: str

    @property
    def is_failure(self) -> bool:
        return True


ResultRecord = SuccessRecord | FailureRecord


def _entry_to_record(entry: Any) -> ResultRecord:
    if not isinstance(entry, dict):
        raise ValueError(f"Result entry is not an object: {entry!r}")
    command = entry.get("command")
    if not isinstance(command, str):
        raise ValueError("Result entry has no string 'command'")

    times = entry.get("times")
    if times is None:
        values = {k: entry.get(k, "") for k in _FAILURE_KEYS}
        if not all(isinstance(v, str) for v in values.values()):
            raise ValueError(f"Failure entry for {command!r} has non-string metadata")
        return FailureRecord(command=command, **values)

    if not isinstance(times, list) or not times:
        raise ValueError(f"'times' for {command!r} must be a non-empty list")
    samples: list[float] = []
    for t in times:
        # JSON booleans would otherwise pass as numbers.
        if isinstance(t, bool) or not isinstance(t, int | float):
            raise ValueError(f"Non-numeric sample {t!r} for {command!r}")
        samples.append(float(t))
    extra = {k: v for k, v in entry.items() if k not in ("command", "times")}
    return SuccessRecord(command=command, times=tuple(samples), extra=extra)


def records_from_payload(payload: Any) -> list[ResultRecord]:
    """Decode a parsed result file.

    Raises:
        ValueError: If the payload does not have the result file shape.
    """
    if not isinstance(payload, dict):
        raise ValueError("Result file is not a JSON object")
    entries = payload.get("results")
    if not isinstance(entries, list) or not entries:
        raise ValueError("Result file has no non-empty 'results' list")
    return [_entry_to_record(e) for e in entries]


def record_to_payload(record: ResultRecord) -> dict[str, Any]:
    """Encode a single record as a result file object."""
    if isinstance(record, SuccessRecord):
        entry: dict[str, Any] = {"command": record.command}
        entry.update(record.extra)
        entry["times"] = list(record.times)
    else:
        entry = {
            "command": record.command,
            "git_sha": record.git_sha,
            "git_msg": record.git_msg,
            "git_date": record.git_date,
        }
    return {"results": [entry]}


def dumps_record(record: ResultRecord) -> str:
    return json.dumps(record_to_payload(record))


def load_result_file(path: str | Path) -> list[ResultRecord]:
    """Read and decode one result file.

    Raises:
        ValueError: If the file is not valid JSON or has the wrong shape.
        OSError: If the file cannot be read.
    """
    p = Path(path)
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {p}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ValueError(f"Result file is not UTF-8: {p}") from exc
    return records_from_payload(payload)
