"""
In-process filtering, grouping and aggregation for data-source results.

Used for sources whose upstream API cannot filter for us (agents, rules,
cases) and for request-level groupBy / aggregation on every source.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .normalizer import parse_timestamp
from .schemas import Aggregation, ReportFilter

logger = logging.getLogger(__name__)


def get_nested_value(obj: Any, path: str) -> Any:
    cur = obj
    for key in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _comparable(a: Any, b: Any) -> tuple[Any, Any]:
    # ISO timestamps compare as instants, whatever their formatting
    if isinstance(a, str) and isinstance(b, str):
        ta, tb = parse_timestamp(a), parse_timestamp(b)
        if ta is not None and tb is not None:
            return ta, tb
    return a, b


def _compare(a: Any, b: Any, op: str) -> bool:
    if a is None or b is None:
        return False
    a, b = _comparable(a, b)
    try:
        if op == "gt":
            return a > b
        if op == "lt":
            return a < b
        if op == "gte":
            return a >= b
        return a <= b
    except TypeError:
        return False


def evaluate_filter(item: Any, f: ReportFilter) -> bool:
    value = get_nested_value(item, f.field)
    op = f.operator

    if op == "equals":
        return value == f.value
    if op == "not-equals":
        return value != f.value
    if op == "contains":
        return str(f.value).lower() in str(value).lower()
    if op == "not-contains":
        return str(f.value).lower() not in str(value).lower()
    if op == "greater-than":
        return _compare(value, f.value, "gt")
    if op == "less-than":
        return _compare(value, f.value, "lt")
    if op == "gte":
        return _compare(value, f.value, "gte")
    if op == "lte":
        return _compare(value, f.value, "lte")
    if op == "in":
        return isinstance(f.value, list) and value in f.value
    if op == "not-in":
        return isinstance(f.value, list) and value not in f.value
    if op == "between":
        return (
            isinstance(f.value, list)
            and len(f.value) == 2
            and _compare(value, f.value[0], "gte")
            and _compare(value, f.value[1], "lte")
        )
    if op == "exists":
        return value is not None
    if op == "not-exists":
        return value is None
    return True


def apply_filters(rows: list, filters: Iterable[ReportFilter]) -> list:
    filters = list(filters or [])
    if not filters:
        return rows
    return [row for row in rows if all(evaluate_filter(row, f) for f in filters)]


def group_data(rows: list, group_by: list[str]) -> list[dict]:
    """Group rows by the values of `group_by`, first-seen group order."""
    groups: dict[tuple, list] = {}
    for row in rows:
        key = tuple(str(get_nested_value(row, field)) for field in group_by)
        groups.setdefault(key, []).append(row)

    out = []
    for key, items in groups.items():
        group: dict[str, Any] = {"count": len(items)}
        group.update(zip(group_by, key))
        group["items"] = items
        out.append(group)
    return out


def calculate_aggregation(rows: list, field: str, agg_type: str) -> float:
    values = [v for v in (get_nested_value(r, field) for r in rows) if v is not None]

    if agg_type in ("sum", "avg", "min", "max"):
        numbers = []
        for v in values:
            try:
                numbers.append(float(v))
            except (TypeError, ValueError):
                logger.debug("Skipping non-numeric %s value %r", field, v)
        if agg_type == "sum":
            return sum(numbers)
        if not numbers:
            return 0
        if agg_type == "avg":
            return sum(numbers) / len(numbers)
        if agg_type == "min":
            return min(numbers)
        return max(numbers)

    # count, and anything not implemented upstream either (percentile)
    return len(values)


def aggregate_data(rows: list, group_by: Optional[list[str]], aggregation: Aggregation) -> list[dict]:
    if not group_by:
        value = calculate_aggregation(rows, aggregation.field, aggregation.type)
        return [{aggregation.type: value, "count": len(rows), "items": rows}]

    grouped = group_data(rows, group_by)
    for group in grouped:
        group[aggregation.type] = calculate_aggregation(group["items"], aggregation.field, aggregation.type)
    return grouped


def flatten_groups(rows: list) -> list:
    """Undo group_data / aggregate_data: return the member records."""
    if rows and all(isinstance(r, dict) and isinstance(r.get("items"), list) for r in rows):
        return [item for r in rows for item in r["items"]]
    return rows


def filter_summary(filters: Iterable[ReportFilter]) -> str:
    filters = list(filters or [])
    if not filters:
        return "No filters applied"

    parts = []
    for f in filters:
        if f.operator == "between" and isinstance(f.value, list) and len(f.value) == 2:
            parts.append(f"{f.field} between {f.value[0]} and {f.value[1]}")
        else:
            parts.append(f"{f.field} {f.operator} {f.value}")
    return ", ".join(parts)
