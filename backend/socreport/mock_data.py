"""
Placeholder data for widgets.

Every generator returns the same field names the transformer produces for the
widget type, so a preview or a failed query still renders a complete grid.
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from .normalizer import SEVERITIES

HEATMAP_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
HEATMAP_HOURS = ("00:00", "06:00", "12:00", "18:00")

FUNNEL_STAGES = ("Total Alerts", "High & Critical", "Needs Review", "Resolved")

SAMPLE_TITLES = (
    "Multiple authentication failures",
    "File integrity checksum changed",
    "Suspicious PowerShell execution",
    "Outbound connection to known C2 host",
    "New user account created",
    "Rootkit signature detected",
)
SAMPLE_AGENTS = ("web-01", "db-01", "dc-01", "vpn-gw", "workstation-17")

TIMELINE_TYPES = ("error", "warning", "info", "success")


def hour_label(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:00")


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def mock(widget_type: str, rng: Optional[random.Random] = None) -> list[dict]:
    rng = rng or random.Random()
    now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)

    if widget_type == "kpi":
        total = rng.randint(50, 500)
        return [{
            "value": total,
            "count": total,
            "trend": {"value": rng.randint(1, 20), "direction": rng.choice(("up", "down"))},
        }]

    elif widget_type in ("bar-chart", "pie-chart"):
        return [{"name": sev, "value": rng.randint(1, 60)} for sev in SEVERITIES]

    elif widget_type in ("line-chart", "area-chart"):
        return [
            {"x": hour_label(now - timedelta(hours=h)), "y": rng.randint(0, 40)}
            for h in range(23, -1, -1)
        ]

    elif widget_type == "data-table":
        return [
            {
                "id": f"mock-{i}",
                "name": rng.choice(SAMPLE_TITLES),
                "severity": rng.choice(SEVERITIES),
                "agent": rng.choice(SAMPLE_AGENTS),
                "timestamp": _iso(now - timedelta(minutes=17 * i)),
            }
            for i in range(10)
        ]

    elif widget_type == "timeline":
        entries = []
        for i in range(5):
            severity = rng.choice(SEVERITIES)
            agent = rng.choice(SAMPLE_AGENTS)
            entries.append({
                "id": f"mock-{i}",
                "timestamp": _iso(now - timedelta(minutes=45 * i)),
                "title": rng.choice(SAMPLE_TITLES),
                "description": f"Severity: {severity} | Agent: {agent}",
                "type": TIMELINE_TYPES[SEVERITIES.index(severity)],
            })
        return entries

    elif widget_type == "gauge":
        return [{"value": rng.randint(60, 95)}]

    elif widget_type == "heatmap":
        return [
            {"day": day, "hour": hour, "value": rng.randint(0, 25)}
            for day in HEATMAP_DAYS
            for hour in HEATMAP_HOURS
        ]

    elif widget_type == "funnel":
        total = rng.randint(200, 500)
        values = [total, total * 6 // 10, total * 3 // 10, total // 10]
        return [{"name": name, "value": v} for name, v in zip(FUNNEL_STAGES, values)]

    else:
        return [{"value": rng.randint(10, 100)}]
