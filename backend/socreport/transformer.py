"""
Widget data transformer.

Maps a list of alert records onto the data shape a widget type renders. The
widget type fully determines the shape; unknown types fall through to a
single-value shape.

    transform(records, widget_type)  -> always renderable data
    build(records, widget_type)      -> same, but lets errors propagate
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Any

from .mock_data import FUNNEL_STAGES, HEATMAP_DAYS, HEATMAP_HOURS, hour_label, mock
from .normalizer import NormalizedAlert, normalize

logger = logging.getLogger(__name__)

WIDGET_TYPES = (
    "kpi",
    "bar-chart",
    "line-chart",
    "pie-chart",
    "area-chart",
    "data-table",
    "heatmap",
    "timeline",
    "gauge",
    "funnel",
    "geo-map",
    "sparkline",
)

MAX_TIME_BUCKETS = 48
MAX_TABLE_ROWS = 50
MAX_TIMELINE_ENTRIES = 15

# Placeholder until alert history is tracked per widget.
KPI_TREND = {"value": 5, "direction": "up"}


def timeline_type(level: float) -> str:
    if level >= 12:
        return "error"
    if level >= 8:
        return "warning"
    if level >= 4:
        return "info"
    return "success"


def health_score(alerts: list[NormalizedAlert]) -> int:
    critical = sum(1 for a in alerts if a.severity == "Critical")
    high = sum(1 for a in alerts if a.severity == "High")
    return round(max(0, 100 - critical * 10 - high * 5))


def _record_id(record: Any, index: int) -> Any:
    if isinstance(record, dict):
        for key in ("id", "_id"):
            if record.get(key) not in (None, ""):
                return record[key]
    return index


def _severity_buckets(alerts: list[NormalizedAlert]) -> list[dict]:
    counts: dict[str, int] = {}
    for a in alerts:
        counts[a.severity] = counts.get(a.severity, 0) + 1
    return [{"name": name, "value": value} for name, value in counts.items()]


def _hourly_buckets(alerts: list[NormalizedAlert]) -> list[dict]:
    counts = Counter(hour_label(a.occurred_at) for a in alerts)
    keys = sorted(counts)[-MAX_TIME_BUCKETS:]
    return [{"x": key, "y": counts[key]} for key in keys]


def _table_rows(records: list, alerts: list[NormalizedAlert]) -> list[dict]:
    return [
        {
            "id": _record_id(record, i),
            "name": a.title,
            "severity": a.severity,
            "agent": a.agent,
            "timestamp": a.timestamp,
        }
        for i, (record, a) in enumerate(zip(records[:MAX_TABLE_ROWS], alerts))
    ]


def _timeline(records: list, alerts: list[NormalizedAlert]) -> list[dict]:
    return [
        {
            "id": _record_id(record, i),
            "timestamp": a.timestamp,
            "title": a.title,
            "description": f"Severity: {a.severity} | Agent: {a.agent}",
            "type": timeline_type(a.level),
        }
        for i, (record, a) in enumerate(zip(records[:MAX_TIMELINE_ENTRIES], alerts))
    ]


def _heatmap(alerts: list[NormalizedAlert]) -> list[dict]:
    grid = {(day, hour): 0 for day in HEATMAP_DAYS for hour in HEATMAP_HOURS}
    for a in alerts:
        day = HEATMAP_DAYS[a.occurred_at.weekday()]
        hour = HEATMAP_HOURS[a.occurred_at.hour // 6]
        grid[(day, hour)] += 1
    return [{"day": day, "hour": hour, "value": value} for (day, hour), value in grid.items()]


def _funnel(alerts: list[NormalizedAlert]) -> list[dict]:
    total = len(alerts)
    escalated = sum(1 for a in alerts if a.severity in ("Critical", "High"))
    stages = [total, escalated, math.floor(total * 0.3), math.floor(total * 0.1)]
    # the raw formula is not monotonic (ten Low alerts give 10, 0, 3, 1);
    # cap each stage at the one before it
    for i in range(1, len(stages)):
        stages[i] = min(stages[i], stages[i - 1])
    return [{"name": name, "value": value} for name, value in zip(FUNNEL_STAGES, stages)]


def build(records: list, widget_type: str) -> list[dict]:
    """Transform non-empty records for `widget_type`. May raise on bad input."""
    count = len(records)

    if widget_type == "kpi":
        return [{"value": count, "count": count, "trend": dict(KPI_TREND)}]

    elif widget_type in ("bar-chart", "pie-chart"):
        return _severity_buckets([normalize(r) for r in records])

    elif widget_type in ("line-chart", "area-chart"):
        return _hourly_buckets([normalize(r) for r in records])

    elif widget_type == "data-table":
        return _table_rows(records, [normalize(r) for r in records[:MAX_TABLE_ROWS]])

    elif widget_type == "timeline":
        return _timeline(records, [normalize(r) for r in records[:MAX_TIMELINE_ENTRIES]])

    elif widget_type == "gauge":
        return [{"value": health_score([normalize(r) for r in records])}]

    elif widget_type == "heatmap":
        return _heatmap([normalize(r) for r in records])

    elif widget_type == "funnel":
        return _funnel([normalize(r) for r in records])

    else:
        return [{"value": count}]


def transform(records: Any, widget_type: str) -> list[dict]:
    if not isinstance(records, list) or not records:
        return mock(widget_type)
    try:
        return build(records, widget_type)
    except Exception:
        logger.exception("Transform failed for %s widget, using placeholder data", widget_type)
        return mock(widget_type)
