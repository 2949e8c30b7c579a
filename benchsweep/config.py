"""Sweep configuration loading and validation."""

from __future__ import annotations

import dataclasses
import logging
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from benchsweep.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_REPO_DIR = Path(tempfile.gettempdir()) / "benchsweep"
DEFAULT_OUTPUT_DIR = Path("results")
DEFAULT_WARMUP = 5


@dataclass(frozen=True)
class SweepConfig:
    """Immutable configuration for one sweep.

    Attributes:
        repository: URL or path of the repository to benchmark.
        benchmarks: Benchmark command strings, in configuration order.
        prepare: Commands run in the checkout before every measurement.
        repo_dir: Working directory holding the checkout.
        output_dir: Root of the result cache. The chart is written here too.
        max_revisions: Process at most this many revisions (newest first).
            ``None`` means every revision reachable from `branch`.
        branch: Main line whose history is swept.
        warmup: Warm-up runs passed to the benchmark backend.
        oldest_first: Walk the selected revisions from oldest to newest.
        incremental_plot: Re-render the chart after every new record.
        clean_checkout: Remove untracked and ignored files after every
            checkout, so build output does not carry over between revisions.
        hyperfine: Benchmark backend executable.
        chart_name: File name of the chart inside `output_dir`.
    """

    repository: str
    benchmarks: tuple[str, ...]
    prepare: tuple[str, ...] = ()
    repo_dir: Path = DEFAULT_REPO_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    max_revisions: int | None = None
    branch: str = "main"
    warmup: int = DEFAULT_WARMUP
    oldest_first: bool = False
    incremental_plot: bool = False
    clean_checkout: bool = False
    hyperfine: str = "hyperfine"
    chart_name: str = "index.html"
    source_path: Path | None = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, raw: dict[str, Any], *, source_path: Path | None = None) -> SweepConfig:
        """Validate a parsed configuration mapping.

        Raises:
            ConfigError: On unknown keys, missing required keys, or bad types.
        """
        where = f" in {source_path}" if source_path is not None else ""
        known = {f.name for f in dataclasses.fields(cls)} - {"source_path"}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys{where}: {', '.join(unknown)}")

        repository = raw.get("repository")
        if not isinstance(repository, str) or not repository:
            raise ConfigError(f"Missing required string 'repository'{where}")

        benchmarks = _str_list(raw, "benchmarks", where, required=True)
        if not benchmarks:
            raise ConfigError(f"'benchmarks' must list at least one command{where}")
        deduped = tuple(dict.fromkeys(benchmarks))
        if len(deduped) != len(benchmarks):
            logger.warning(
                "Dropping %d duplicate benchmark commands", len(benchmarks) - len(deduped)
            )

        kwargs: dict[str, Any] = {
            "repository": repository,
            "benchmarks": deduped,
            "prepare": _str_list(raw, "prepare", where),
            "source_path": source_path,
        }
        for key in ("repo_dir", "output_dir"):
            if raw.get(key) is not None:
                kwargs[key] = Path(_typed(raw, key, str, where)).expanduser()
        for key in ("branch", "hyperfine", "chart_name"):
            if raw.get(key) is not None:
                kwargs[key] = _typed(raw, key, str, where)
        for key in ("oldest_first", "incremental_plot", "clean_checkout"):
            if raw.get(key) is not None:
                kwargs[key] = _typed(raw, key, bool, where)

        if raw.get("max_revisions") is not None:
            max_revisions = _typed(raw, "max_revisions", int, where)
            if max_revisions <= 0:
                raise ConfigError(f"'max_revisions' must be positive{where}, got {max_revisions}")
            kwargs["max_revisions"] = max_revisions
        if raw.get("warmup") is not None:
            warmup = _typed(raw, "warmup", int, where)
            if warmup < 0:
                raise ConfigError(f"'warmup' must not be negative{where}, got {warmup}")
            kwargs["warmup"] = warmup

        return cls(**kwargs)

    @property
    def chart_path(self) -> Path:
        return self.output_dir / self.chart_name


def _typed(raw: dict[str, Any], key: str, typ: type, where: str) -> Any:
    value = raw[key]
    # bool is a subclass of int; reject it where an int is expected.
    if not isinstance(value, typ) or (typ is int and isinstance(value, bool)):
        raise ConfigError(
            f"'{key}' must be of type {typ.__name__}{where}, got {type(value).__name__}"
        )
    return value


def _str_list(
    raw: dict[str, Any], key: str, where: str, *, required: bool = False
) -> tuple[str, ...]:
    value = raw.get(key)
    if value is None:
        if required:
            raise ConfigError(f"Missing required list '{key}'{where}")
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings{where}")
    return tuple(value)


def load_config(path: str | Path) -> SweepConfig:
    """Load a sweep configuration from a YAML or TOML file.

    Files ending in ``.toml`` are parsed as TOML; anything else as YAML.

    Args:
        path: Configuration file path.

    Raises:
        ConfigError: If the file is missing, unparsable, or invalid.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Configuration file does not exist: {p}") from None
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Could not read configuration file {p}: {exc}") from exc

    try:
        if p.suffix.lower() == ".toml":
            raw = tomllib.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not parse configuration file {p}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid configuration file (not a mapping): {p}")
    config = SweepConfig.from_dict(raw, source_path=p)
    logger.debug("Loaded configuration from %s: %s", p, config)
    return config
