"""Command-line entry point.

Usage::

    benchsweep bench.yaml
    benchsweep bench.yaml --plot-only

The configuration file declares the repository, preparation and benchmark
commands, the checkout directory, and an optional revision cap::

    repository: https://github.com/example/project.git
    prepare:
      - cargo build --release
    benchmarks:
      - target/release/project --input data/small.txt
    repo_dir: /tmp/benchsweep
    max_revisions: 20
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

from benchsweep.config import load_config
from benchsweep.errors import SweepError
from benchsweep.sweep import SweepDriver

logger = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="benchsweep",
        description="Benchmark every revision of a repository and chart the results",
    )
    parser.add_argument("config", type=str, help="Configuration file (YAML, or TOML with .toml)")
    parser.add_argument(
        "--plot-only",
        action="store_true",
        help="Skip the sweep and only re-render the chart from cached results",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        config = load_config(args.config)
        driver = SweepDriver(config)
        if args.plot_only:
            logger.info("Skipping sweep (--plot-only)")
        else:
            stats = driver.run()
            logger.info(
                "%d pairs: %d cached, %d measured, %d failed",
                stats.total,
                stats.cached,
                stats.measured,
                stats.failed,
            )
        chart = driver.render()
    except SweepError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc

    logger.info("Done. Chart: %s", chart)


if __name__ == "__main__":
    main()
