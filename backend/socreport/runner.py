"""
Report orchestrator.

Runs every widget of a template against a time range:

    widget filters + global filters + request filters + timestamp >= fromDate
        -> data-source query -> transformer -> WidgetData

A widget whose query or transform fails gets placeholder data and a notice;
the remaining widgets carry on. Only report-level problems (no template, no
widgets, unknown time range) raise.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from . import transformer
from .errors import EmptyTemplateError, TemplateNotFoundError
from .mock_data import mock
from .query import filter_summary, flatten_groups
from .schemas import QueryDataRequest, ReportFilter, TemplateBase, WidgetConfig, WidgetData
from .timeranges import from_date, hours_for, to_iso

logger = logging.getLogger(__name__)

QueryFn = Callable[[QueryDataRequest], list]

DEFAULT_LIMIT = 1000


@dataclass
class WidgetFetch:
    """Outcome of one widget's query."""
    widget_id: str
    records: list = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ReportRun:
    template_name: str
    time_range: str
    widgets: list[WidgetData]
    filters: list[ReportFilter]
    alerts_in_range: int = 0
    total_records: int = 0
    data_sources_used: list[str] = field(default_factory=list)
    fallback_widgets: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    execution_time_ms: int = 0

    @property
    def status(self) -> str:
        return "ready-with-partial-errors" if self.fallback_widgets else "ready"

    @property
    def filters_summary(self) -> str:
        return filter_summary(self.filters)


def time_filter(time_range: str, now: Optional[datetime] = None) -> ReportFilter:
    return ReportFilter(field="timestamp", operator="gte", value=to_iso(from_date(time_range, now)))


def widget_request(widget: WidgetConfig, extra_filters: list[ReportFilter]) -> QueryDataRequest:
    qc = widget.query_config
    return QueryDataRequest(
        data_source=widget.data_source,
        filters=[*qc.filters, *extra_filters],
        group_by=qc.group_by,
        aggregation=qc.aggregation,
        limit=qc.limit or DEFAULT_LIMIT,
    )


def fetch_widget(widget: WidgetConfig, extra_filters: list[ReportFilter], query: QueryFn) -> WidgetFetch:
    try:
        rows = query(widget_request(widget, extra_filters))
    except Exception as e:
        logger.warning("Query for widget %s (%s) failed: %s", widget.id, widget.data_source, e)
        return WidgetFetch(widget.id, error=str(e) or e.__class__.__name__)

    if not isinstance(rows, list):
        return WidgetFetch(widget.id, error=f"malformed response from {widget.data_source}")
    return WidgetFetch(widget.id, records=flatten_groups(rows))


def run_report(
    template: Optional[TemplateBase],
    time_range: str,
    query: QueryFn,
    filters: Optional[list[ReportFilter]] = None,
    now: Optional[datetime] = None,
) -> ReportRun:
    if template is None:
        raise TemplateNotFoundError(None)
    if not template.widgets:
        raise EmptyTemplateError(template.name)
    hours_for(time_range)  # InvalidTimeRangeError before any query goes out

    started = time.perf_counter()
    extra = [*template.global_filters, *(filters or []), time_filter(time_range, now)]
    run = ReportRun(template_name=template.name, time_range=time_range, widgets=[], filters=extra)

    for widget in template.widgets:
        fetched = fetch_widget(widget, extra, query)
        error = fetched.error

        if fetched.ok:
            run.alerts_in_range = max(run.alerts_in_range, len(fetched.records))
            run.total_records += len(fetched.records)
            if widget.data_source not in run.data_sources_used:
                run.data_sources_used.append(widget.data_source)

        if fetched.ok and fetched.records:
            try:
                data = transformer.build(fetched.records, widget.type)
            except Exception as e:
                logger.exception("Transform failed for widget %s (%s)", widget.id, widget.type)
                error = f"transform failed: {e}"
                data = mock(widget.type)
        else:
            data = mock(widget.type)

        if error is not None:
            run.fallback_widgets.append(widget.id)
            run.notices.append(f"Widget '{widget.title}' used placeholder data: {error}")

        run.widgets.append(WidgetData(widget_id=widget.id, widget_type=widget.type, data=data))

    run.execution_time_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "Report '%s' (%s) ran %d widget(s), %d on placeholder data, %d alerts in range",
        template.name, time_range, len(run.widgets), len(run.fallback_widgets), run.alerts_in_range,
    )
    return run
