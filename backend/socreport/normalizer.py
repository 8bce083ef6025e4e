"""
Alert field normalizer.

Alert records reach the report pipeline in two shapes: the flat shape produced
by our own alert API (`severity`, `source`, `timestamp`, `title`) and the raw
Wazuh document, which nests the same values under `rawData.rule.*`,
`rawData.agent.*` and `rawData.timestamp` / `rawData.@timestamp`.

Every normalized value is read through an ordered list of accessors. The first
accessor returning something usable wins; otherwise the field default applies.
Nothing in here raises.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

SEVERITIES = ("Critical", "High", "Medium", "Low")

UNKNOWN_AGENT = "Unknown"
UNKNOWN_TITLE = "Unknown Alert"

# Wazuh writes offsets as +0000
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")

Accessor = Callable[[dict], Any]


def _path(*keys: str) -> Accessor:
    def get(record: dict) -> Any:
        cur: Any = record
        for key in keys:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(key)
        return cur

    return get


def _first(record: Any, accessors: list[Accessor], coerce: Callable[[Any], Any]) -> Any:
    if not isinstance(record, dict):
        return None
    for accessor in accessors:
        value = coerce(accessor(record))
        if value is not None:
            return value
    return None


# ---------------------------
# Coercions (None = "try the next accessor")
# ---------------------------

def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _severity(value: Any) -> Optional[str]:
    text = _text(value)
    if text is None:
        return None
    label = text.strip().capitalize()
    return label if label in SEVERITIES else None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = _text(value)
        if text is None:
            return None
        text = text.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _COMPACT_OFFSET.sub(r"\1:\2", text)
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _timestamp(value: Any) -> Optional[tuple[str, datetime]]:
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    raw = value.isoformat() if isinstance(value, datetime) else value
    return raw, parsed


# ---------------------------
# Accessor chains, flat shape first
# ---------------------------

SEVERITY_FIELDS: list[Accessor] = [
    _path("severity"),
    _path("rawData", "severity"),
]

LEVEL_FIELDS: list[Accessor] = [
    _path("rule", "level"),
    _path("rawData", "rule", "level"),
    _path("level"),
]

AGENT_FIELDS: list[Accessor] = [
    _path("source"),
    _path("agent"),
    _path("agentName"),
    _path("agent", "name"),
    _path("rawData", "agent", "name"),
    _path("rawData", "manager", "name"),
]

TIMESTAMP_FIELDS: list[Accessor] = [
    _path("timestamp"),
    _path("@timestamp"),
    _path("rawData", "timestamp"),
    _path("rawData", "@timestamp"),
]

TITLE_FIELDS: list[Accessor] = [
    _path("title"),
    _path("rule", "description"),
    _path("rawData", "rule", "description"),
    _path("description"),
]


def level_to_severity(level: float) -> str:
    if level >= 12:
        return "Critical"
    if level >= 8:
        return "High"
    if level >= 4:
        return "Medium"
    return "Low"


def rule_level(record: Any) -> float:
    level = _first(record, LEVEL_FIELDS, _number)
    return level if level is not None else 0


def severity_label(record: Any) -> str:
    label = _first(record, SEVERITY_FIELDS, _severity)
    if label is not None:
        return label
    return level_to_severity(rule_level(record))


def agent_name(record: Any) -> str:
    return _first(record, AGENT_FIELDS, _text) or UNKNOWN_AGENT


def alert_title(record: Any) -> str:
    return _first(record, TITLE_FIELDS, _text) or UNKNOWN_TITLE


def alert_timestamp(record: Any) -> tuple[str, datetime]:
    found = _first(record, TIMESTAMP_FIELDS, _timestamp)
    if found is not None:
        return found
    now = datetime.now(timezone.utc)
    return now.isoformat().replace("+00:00", "Z"), now


@dataclass(frozen=True)
class NormalizedAlert:
    severity: str
    agent: str
    timestamp: str
    occurred_at: datetime
    level: float
    title: str


def normalize(record: Any) -> NormalizedAlert:
    timestamp, occurred_at = alert_timestamp(record)
    return NormalizedAlert(
        severity=severity_label(record),
        agent=agent_name(record),
        timestamp=timestamp,
        occurred_at=occurred_at,
        level=rule_level(record),
        title=alert_title(record),
    )
