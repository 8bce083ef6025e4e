"""Built-in report templates, seeded read-only."""
from __future__ import annotations

from .schemas import PredefinedTemplate, TemplateBase

COUNT_BY_ID = {"field": "id", "type": "count"}


def _kpi(widget_id, title, source, x, w=3, filters=None):
    return {
        "id": widget_id,
        "type": "kpi",
        "title": title,
        "dataSource": source,
        "queryConfig": {"filters": filters or [], "aggregation": COUNT_BY_ID},
        "position": {"x": x, "y": 0, "w": w, "h": 2},
    }


def _eq(field, value):
    return {"field": field, "operator": "equals", "value": value}


DAILY_SECURITY_SUMMARY = {
    "name": "Daily Security Summary",
    "description": "Comprehensive overview of security events and alerts from the last 24 hours",
    "category": "security",
    "widgets": [
        _kpi("total-alerts-kpi", "Total Alerts", "wazuh-alerts", 0),
        _kpi("critical-alerts-kpi", "Critical Alerts", "wazuh-alerts", 3, filters=[_eq("severity", "critical")]),
        _kpi("high-alerts-kpi", "High Alerts", "wazuh-alerts", 6, filters=[_eq("severity", "high")]),
        _kpi("active-agents-kpi", "Active Agents", "wazuh-agents", 9, filters=[_eq("status", "active")]),
        {
            "id": "alert-trend-line",
            "type": "line-chart",
            "title": "Alert Trend",
            "dataSource": "wazuh-alerts",
            "queryConfig": {"filters": []},
            "chartConfig": {
                "xAxis": {"field": "timestamp", "label": "Hour"},
                "yAxis": {"field": "count", "label": "Number of Alerts"},
                "showLegend": True,
            },
            "position": {"x": 0, "y": 2, "w": 6, "h": 4},
        },
        {
            "id": "severity-distribution-pie",
            "type": "pie-chart",
            "title": "Alerts by Severity",
            "dataSource": "wazuh-alerts",
            "queryConfig": {"filters": [], "groupBy": ["severity"]},
            "chartConfig": {"colorScheme": ["#ef4444", "#f97316", "#eab308", "#3b82f6"], "showLegend": True},
            "position": {"x": 6, "y": 2, "w": 6, "h": 4},
        },
        {
            "id": "activity-heatmap",
            "type": "heatmap",
            "title": "Alert Activity by Day and Hour",
            "dataSource": "wazuh-alerts",
            "queryConfig": {"filters": []},
            "position": {"x": 0, "y": 6, "w": 8, "h": 4},
        },
        {
            "id": "security-health-gauge",
            "type": "gauge",
            "title": "Security Health Score",
            "dataSource": "wazuh-alerts",
            "queryConfig": {"filters": []},
            "position": {"x": 8, "y": 6, "w": 4, "h": 4},
        },
        {
            "id": "critical-alerts-table",
            "type": "data-table",
            "title": "Critical Alerts",
            "dataSource": "wazuh-alerts",
            "queryConfig": {
                "filters": [{"field": "severity", "operator": "in", "value": ["critical", "high"]}],
                "limit": 50,
            },
            "tableConfig": {
                "columns": [
                    {"field": "timestamp", "header": "Time", "sortable": True},
                    {"field": "severity", "header": "Severity", "sortable": True},
                    {"field": "name", "header": "Alert"},
                    {"field": "agent", "header": "Agent", "sortable": True},
                ],
                "pagination": {"enabled": True, "pageSize": 10},
            },
            "position": {"x": 0, "y": 10, "w": 12, "h": 5},
        },
    ],
    "layout": {"columns": 12, "rowHeight": 80},
    "styling": {"theme": "light", "primaryColor": "#3b82f6", "secondaryColor": "#8b5cf6"},
    "isPublic": True,
    "tags": ["security", "daily", "overview"],
}

AGENT_HEALTH_DASHBOARD = {
    "name": "Agent Health Dashboard",
    "description": "Monitor the health and status of all security agents",
    "category": "operational",
    "widgets": [
        _kpi("total-agents-kpi", "Total Agents", "wazuh-agents", 0, w=4),
        _kpi("active-agents-kpi", "Active Agents", "wazuh-agents", 4, w=4, filters=[_eq("status", "active")]),
        _kpi("disconnected-agents-kpi", "Disconnected", "wazuh-agents", 8, w=4,
             filters=[_eq("status", "disconnected")]),
        {
            "id": "agent-status-pie",
            "type": "pie-chart",
            "title": "Agent Status Distribution",
            "dataSource": "wazuh-agents",
            "queryConfig": {"filters": [], "groupBy": ["status"]},
            "position": {"x": 0, "y": 2, "w": 6, "h": 4},
        },
        {
            "id": "agent-alerts-timeline",
            "type": "timeline",
            "title": "Recent Agent Alerts",
            "dataSource": "wazuh-alerts",
            "queryConfig": {"filters": [], "limit": 15},
            "position": {"x": 6, "y": 2, "w": 6, "h": 4},
        },
    ],
    "layout": {"columns": 12, "rowHeight": 80},
    "isPublic": True,
    "tags": ["agents", "operational", "health"],
}

WEEKLY_THREAT_REPORT = {
    "name": "Weekly Threat Report",
    "description": "Weekly summary of incidents, escalations and threat activity",
    "category": "executive",
    "widgets": [
        _kpi("total-incidents-kpi", "Total Incidents", "iris-cases", 0, w=4),
        _kpi("critical-incidents-kpi", "Critical Incidents", "iris-cases", 4, w=4,
             filters=[_eq("severity", "critical")]),
        _kpi("resolved-incidents-kpi", "Resolved", "iris-cases", 8, w=4, filters=[_eq("status", "closed")]),
        {
            "id": "alert-trend-area",
            "type": "area-chart",
            "title": "Alert Volume",
            "dataSource": "wazuh-alerts",
            "queryConfig": {"filters": []},
            "position": {"x": 0, "y": 2, "w": 12, "h": 4},
        },
        {
            "id": "severity-breakdown",
            "type": "bar-chart",
            "title": "Incidents by Severity",
            "dataSource": "iris-cases",
            "queryConfig": {"filters": [], "groupBy": ["severity"]},
            "position": {"x": 0, "y": 6, "w": 6, "h": 4},
        },
        {
            "id": "triage-funnel",
            "type": "funnel",
            "title": "Alert Triage Funnel",
            "dataSource": "wazuh-alerts",
            "queryConfig": {"filters": []},
            "position": {"x": 6, "y": 6, "w": 6, "h": 4},
        },
    ],
    "layout": {"columns": 12, "rowHeight": 80},
    "isPublic": True,
    "tags": ["threats", "weekly", "executive"],
}

PREDEFINED_TEMPLATES: list[PredefinedTemplate] = [
    PredefinedTemplate(
        id=slug,
        name=raw["name"],
        description=raw["description"],
        category=raw["category"],
        template=TemplateBase.model_validate(raw),
    )
    for slug, raw in (
        ("daily-security-summary", DAILY_SECURITY_SUMMARY),
        ("agent-health-dashboard", AGENT_HEALTH_DASHBOARD),
        ("weekly-threat-report", WEEKLY_THREAT_REPORT),
    )
]
