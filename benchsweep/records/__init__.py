"""Result records, the result cache, and the aggregated series."""

from benchsweep.records.cache import ResultCache
from benchsweep.records.results import (
    FailureRecord,
    ResultRecord,
    SuccessRecord,
    benchmark_id,
)
from benchsweep.records.series import PlotRow, PlotRows, aggregate

__all__ = [
    "FailureRecord",
    "PlotRow",
    "PlotRows",
    "ResultCache",
    "ResultRecord",
    "SuccessRecord",
    "aggregate",
    "benchmark_id",
]
