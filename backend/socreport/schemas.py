from datetime import datetime
from typing import Any, Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


WidgetType = Literal[
    "kpi",
    "bar-chart",
    "line-chart",
    "pie-chart",
    "area-chart",
    "data-table",
    "heatmap",
    "timeline",
    "geo-map",
    "gauge",
    "funnel",
    "sparkline",
]

DataSource = Literal[
    "wazuh-alerts",
    "wazuh-agents",
    "wazuh-rules",
    "iris-cases",
    "vulnerabilities",
    "fim-events",
    "custom-query",
]

AggregationType = Literal["count", "sum", "avg", "min", "max", "percentile"]

FilterOperator = Literal[
    "equals",
    "not-equals",
    "contains",
    "not-contains",
    "greater-than",
    "less-than",
    "gte",
    "lte",
    "in",
    "not-in",
    "between",
    "exists",
    "not-exists",
]

ReportCategory = Literal["security", "compliance", "operational", "executive", "custom"]
ReportStatus = Literal["ready", "ready-with-partial-errors"]


class CamelModel(BaseModel):
    """Snake case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------
# Query model
# ---------------------------

class ReportFilter(CamelModel):
    field: str
    operator: FilterOperator
    value: Any = None
    logical_operator: Optional[Literal["AND", "OR"]] = None


class Aggregation(CamelModel):
    field: str
    type: AggregationType = "count"


class SortBy(CamelModel):
    field: str
    order: Literal["asc", "desc"] = "desc"


class QueryConfig(CamelModel):
    filters: List[ReportFilter] = []
    group_by: Optional[List[str]] = None
    aggregation: Optional[Aggregation] = None
    sort_by: Optional[SortBy] = None
    limit: Optional[int] = Field(default=None, ge=1)


class WidgetPosition(CamelModel):
    x: int = 0
    y: int = 0
    w: int = Field(default=3, ge=1)
    h: int = Field(default=2, ge=1)


class WidgetConfig(CamelModel):
    id: str
    type: WidgetType
    title: str
    description: Optional[str] = None
    data_source: DataSource = "wazuh-alerts"
    query_config: QueryConfig = QueryConfig()
    chart_config: Optional[dict] = None
    table_config: Optional[dict] = None
    position: WidgetPosition = WidgetPosition()


# ---------------------------
# Templates
# ---------------------------

class LayoutConfig(CamelModel):
    columns: int = 12
    row_height: int = 100
    breakpoints: Optional[dict[str, int]] = None


class ReportStyling(CamelModel):
    theme: Optional[Literal["light", "dark", "custom"]] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    font_family: Optional[str] = None
    logo: Optional[str] = None
    watermark: Optional[str] = None
    header_text: Optional[str] = None
    footer_text: Optional[str] = None


class TemplateBase(CamelModel):
    name: str = Field(min_length=1, max_length=256)
    description: str = ""
    category: ReportCategory = "custom"
    widgets: List[WidgetConfig] = []
    global_filters: List[ReportFilter] = []
    layout: LayoutConfig = LayoutConfig()
    styling: Optional[ReportStyling] = None
    is_public: bool = False
    tags: List[str] = []


class TemplateCreate(TemplateBase):
    pass


class TemplateUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=256)
    description: Optional[str] = None
    category: Optional[ReportCategory] = None
    widgets: Optional[List[WidgetConfig]] = None
    global_filters: Optional[List[ReportFilter]] = None
    layout: Optional[LayoutConfig] = None
    styling: Optional[ReportStyling] = None
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = None
    version: Optional[int] = None  # optimistic locking


class TemplateOut(TemplateBase):
    id: int
    is_predefined: bool = False
    created_by: str
    created_at: datetime
    updated_at: datetime
    version: int


class PredefinedTemplate(CamelModel):
    id: str
    name: str
    description: str
    category: ReportCategory
    template: TemplateBase


# ---------------------------
# Report runs
# ---------------------------

class WidgetData(CamelModel):
    widget_id: str
    widget_type: str
    data: List[Any]
    error: Optional[str] = None


class ReportMetadata(CamelModel):
    total_records: int
    alerts_in_range: int
    execution_time: int  # milliseconds
    data_sources_used: List[str]
    filters_summary: str
    fallback_widgets: List[str] = []


class GenerateReportRequest(CamelModel):
    template_id: int
    time_range: str = "24h"
    filters: List[ReportFilter] = []


class PreviewRequest(CamelModel):
    template: TemplateBase
    time_range: str = "24h"
    filters: List[ReportFilter] = []


class ReportRunOut(CamelModel):
    template_name: str
    time_range: str
    status: ReportStatus
    filters: List[ReportFilter] = []
    data: List[WidgetData]
    metadata: ReportMetadata
    notices: List[str] = []


class GeneratedReportOut(ReportRunOut):
    id: int
    template_id: int
    generated_at: datetime
    generated_by: str


class TimeRangeOut(CamelModel):
    label: str
    hours: int


# ---------------------------
# Data queries
# ---------------------------

class QueryDataRequest(CamelModel):
    data_source: DataSource
    filters: List[ReportFilter] = []
    group_by: Optional[List[str]] = None
    aggregation: Optional[Aggregation] = None
    limit: Optional[int] = Field(default=None, ge=1)
    offset: Optional[int] = Field(default=None, ge=0)


class QueryDataResponse(CamelModel):
    success: bool = True
    data: List[Any]
    total: int
