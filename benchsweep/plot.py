"""Vega-Lite chart of the aggregated time series."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from benchsweep.records.series import PlotRows

logger = logging.getLogger(__name__)

VEGA_LITE_SCHEMA = "https://vega.github.io/schema/vega-lite/v5.json"

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title}</title>
  <script src="https://cdn.jsdelivr.net/npm/vega@5"></script>
  <script src="https://cdn.jsdelivr.net/npm/vega-lite@5"></script>
  <script src="https://cdn.jsdelivr.net/npm/vega-embed@6"></script>
</head>
<body>
  <div id="vis"></div>
  <script type="text/javascript">
    vegaEmbed("#vis", {spec});
  </script>
</body>
</html>
"""


def build_chart_spec(rows: PlotRows, *, description: str = "") -> dict[str, Any]:
    """Build the Vega-Lite spec: one row facet per command, time over revision date.

    Failure rows (``time`` null) are drawn in red.
    """
    return {
        "$schema": VEGA_LITE_SCHEMA,
        "description": description,
        "data": {"values": rows.sorted().to_records()},
        "mark": {"type": "point", "extent": "min-max"},
        "config": {"mark": {"invalid": None}},
        "encoding": {
            "x": {"field": "git_date", "type": "nominal"},
            "y": {"field": "time", "type": "quantitative", "scale": {"zero": False}},
            "tooltip": [
                {"field": "git_msg", "type": "nominal"},
                {"field": "git_date", "type": "nominal"},
                {"field": "git_sha", "type": "nominal"},
            ],
            "color": {"condition": {"test": "datum['time'] === null", "value": "#f00"}},
            "row": {"field": "command"},
        },
    }


def render_html(spec: dict[str, Any], *, title: str = "benchsweep") -> str:
    # "</" inside inline data would otherwise end the script element early.
    spec_json = json.dumps(spec, indent=2).replace("</", "<\\/")
    return _HTML_TEMPLATE.format(title=title, spec=spec_json)


def write_chart(rows: PlotRows, out_dir: str | Path, name: str = "index.html") -> Path:
    """Write a self-contained HTML chart of `rows` and return its path."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    path = out / name
    path.write_text(render_html(build_chart_spec(rows)), encoding="utf-8")
    logger.info("Wrote chart with %d rows to %s", len(rows), path)
    return path
