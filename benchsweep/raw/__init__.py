"""Cache layout parsers."""

from benchsweep.raw.path_parser import ParsedResultPath, parse_result_path, result_relpath

__all__ = [
    "ParsedResultPath",
    "parse_result_path",
    "result_relpath",
]
