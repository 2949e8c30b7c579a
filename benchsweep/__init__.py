"""Longitudinal benchmark sweeps over a repository's history."""

from benchsweep.config import SweepConfig, load_config
from benchsweep.records.cache import ResultCache
from benchsweep.records.results import FailureRecord, SuccessRecord, benchmark_id
from benchsweep.records.series import PlotRow, PlotRows, aggregate
from benchsweep.sweep import SweepDriver, SweepStats

__all__ = [
    "FailureRecord",
    "PlotRow",
    "PlotRows",
    "ResultCache",
    "SuccessRecord",
    "SweepConfig",
    "SweepDriver",
    "SweepStats",
    "aggregate",
    "benchmark_id",
    "load_config",
]

__version__ = "0.1.0"
