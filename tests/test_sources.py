"""
Tests for the upstream clients and the data-source query service.
"""
from unittest.mock import MagicMock

import pytest
import requests

from socreport.config import Settings
from socreport.errors import DataSourceError, UnsupportedDataSourceError
from socreport.schemas import Aggregation, QueryDataRequest, ReportFilter
from socreport.sources import (
    DataSourceService,
    IrisClient,
    WazuhIndexerClient,
    WazuhManagerClient,
    indexer_filters,
    to_alert,
    to_case,
)

CFG = Settings(
    WAZUH_INDEXER_URL="https://indexer:9200/",
    WAZUH_API_URL="https://manager:55000",
    WAZUH_API_PASSWORD="secret",
    IRIS_API_URL="https://iris:8443",
    IRIS_API_KEY="iris-key",
)

HIT = {
    "_id": "hit-1",
    "_source": {
        "timestamp": "2024-03-04T10:15:00.000+0000",
        "rule": {"level": 13, "description": "Rootkit detected", "id": "510"},
        "agent": {"id": "001", "name": "web-01"},
        "full_log": "trojaned version of file detected",
    },
}


def response(payload=None, status=200, bad_json=False):
    resp = MagicMock()
    resp.status_code = status
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Server Error")
    if bad_json:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = payload
    return resp


def f(field, operator, value=None):
    return ReportFilter(field=field, operator=operator, value=value)


# ============================================================
# Document conversion
# ============================================================

def test_to_alert():
    alert = to_alert(HIT)
    assert alert["id"] == "hit-1"
    assert alert["title"] == "Rootkit detected"
    assert alert["severity"] == "critical"
    assert alert["source"] == "web-01"
    assert alert["description"] == "trojaned version of file detected"
    assert alert["rawData"] is HIT["_source"]


def test_to_alert_defaults():
    alert = to_alert({"_source": {}})
    assert alert["title"] == "Unknown Alert"
    assert alert["source"] == "Unknown"
    assert alert["severity"] == "low"


def test_to_case():
    case = to_case({"case_id": 7, "case_name": "Phishing", "severity_name": "High", "state_name": "In progress"})
    assert case["id"] == "7"
    assert case["severity"] == "high"
    assert case["status"] == "investigating"
    assert case["assignedTo"] == "Unassigned"
    assert to_case({})["title"] == "Untitled Case"


def test_indexer_filters():
    status = f("status", "equals", "open")
    args, rest = indexer_filters([
        f("timestamp", "gte", "2024-03-04T00:00:00Z"),
        f("severity", "equals", "critical"),
        f("agentId", "equals", "001"),
        status,
    ])
    assert args == {"start_date": "2024-03-04T00:00:00Z", "severity": ["critical"], "agent_id": "001"}
    assert rest == [status]

    args, rest = indexer_filters([f("timestamp", "between", ["a", "b"]), f("severity", "in", ["high", "medium"])])
    assert args == {"start_date": "a", "end_date": "b", "severity": ["high", "medium"]}
    assert rest == []


@pytest.mark.parametrize("flt", [
    f("severity", "not-equals", "low"),
    f("severity", "not-in", ["low", "medium"]),
    f("severity", "contains", "crit"),
    f("severity", "exists"),
    f("severity", "equals", "informational"),
    f("agentId", "not-equals", "001"),
    f("ruleId", "in", ["5712", "510"]),
    f("timestamp", "greater-than", "2024-03-04T00:00:00Z"),
])
def test_indexer_filters_leave_other_operators(flt):
    args, rest = indexer_filters([flt])
    assert args == {}
    assert rest == [flt]


def test_indexer_filters_second_filter_on_same_argument():
    first = f("timestamp", "gte", "2024-03-01T00:00:00Z")
    second = f("timestamp", "gte", "2024-03-04T00:00:00Z")
    args, rest = indexer_filters([first, second])
    assert args == {"start_date": "2024-03-01T00:00:00Z"}
    assert rest == [second]


# ============================================================
# Clients
# ============================================================

def test_indexer_search_alerts_builds_query():
    session = MagicMock()
    session.request.return_value = response({"hits": {"hits": [HIT]}})
    client = WazuhIndexerClient(CFG, session=session)

    alerts = client.search_alerts(start_date="2024-03-04T00:00:00Z", severity=["critical", "high"], limit=50)

    assert [a["id"] for a in alerts] == ["hit-1"]
    method, url = session.request.call_args.args
    body = session.request.call_args.kwargs["json"]
    assert method == "POST"
    assert url == "https://indexer:9200/wazuh-alerts-*/_search"
    assert body["size"] == 50
    must = body["query"]["bool"]["must"]
    assert must[0] == {"range": {"timestamp": {"gte": "2024-03-04T00:00:00Z"}}}
    assert must[1]["bool"]["should"] == [
        {"range": {"rule.level": {"gte": 12}}},
        {"range": {"rule.level": {"gte": 8, "lt": 12}}},
    ]
    assert session.auth == ("admin", "admin")


def test_indexer_match_all_without_filters():
    session = MagicMock()
    session.request.return_value = response({"hits": {"hits": []}})
    WazuhIndexerClient(CFG, session=session).search_alerts()
    body = session.request.call_args.kwargs["json"]
    assert body["query"]["bool"]["must"] == [{"match_all": {}}]


@pytest.mark.parametrize("resp", [
    response(status=503),
    response(bad_json=True),
    response({"took": 3}),
])
def test_indexer_errors_raise_data_source_error(resp):
    session = MagicMock()
    session.request.return_value = resp
    with pytest.raises(DataSourceError):
        WazuhIndexerClient(CFG, session=session).search_alerts()


def test_transport_error_raises_data_source_error():
    session = MagicMock()
    session.request.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(DataSourceError) as exc:
        IrisClient(CFG, session=session).get_cases()
    assert exc.value.source == "iris"


def test_manager_token_is_cached():
    session = MagicMock()
    session.request.side_effect = [
        response({"data": {"token": "jwt"}}),
        response({"data": {"affected_items": [{"id": "001"}]}}),
        response({"data": {"affected_items": [{"id": "5712"}]}}),
    ]
    client = WazuhManagerClient(CFG, session=session)

    assert client.get_agents() == [{"id": "001"}]
    assert client.get_rules() == [{"id": "5712"}]

    calls = session.request.call_args_list
    assert len(calls) == 3
    assert calls[0].args == ("POST", "https://manager:55000/security/user/authenticate")
    assert calls[0].kwargs["auth"] == ("wazuh", "secret")
    assert calls[2].kwargs["headers"] == {"Authorization": "Bearer jwt"}


def test_manager_without_token_fails():
    session = MagicMock()
    session.request.return_value = response({"data": {}})
    with pytest.raises(DataSourceError):
        WazuhManagerClient(CFG, session=session).get_agents()


def test_iris_cases_in_nested_payload():
    session = MagicMock()
    session.request.return_value = response({"data": {"cases": [{"case_id": 1, "case_severity": "Critical"}]}})
    cases = IrisClient(CFG, session=session).get_cases(limit=20)
    assert cases[0]["severity"] == "critical"
    assert session.request.call_args.kwargs["params"] == {"cid": 1, "per_page": 20}


# ============================================================
# Query service
# ============================================================

@pytest.fixture
def service():
    indexer = MagicMock()
    manager = MagicMock()
    iris = MagicMock()
    manager.get_agents.return_value = [
        {"id": "001", "status": "active"},
        {"id": "002", "status": "disconnected"},
        {"id": "003", "status": "active"},
    ]
    indexer.search_alerts.return_value = [to_alert(HIT)]
    return DataSourceService(indexer, manager, iris, default_limit=1000)


def test_alert_query_goes_to_indexer(service):
    rows = service.query(QueryDataRequest(
        data_source="wazuh-alerts",
        filters=[f("timestamp", "gte", "2024-03-04T00:00:00Z"), f("severity", "equals", "critical")],
        limit=25,
    ))
    assert len(rows) == 1
    service.indexer.search_alerts.assert_called_once_with(
        limit=25, offset=0, start_date="2024-03-04T00:00:00Z", severity=["critical"],
    )


def indexer_hit(hit_id, level, agent_id="001", rule_id="5712"):
    return {
        "_id": hit_id,
        "_source": {
            "timestamp": "2024-03-04T10:15:00.000+0000",
            "rule": {"level": level, "id": rule_id},
            "agent": {"id": agent_id, "name": f"agent-{agent_id}"},
        },
    }


def test_negated_severity_filter_is_applied_after_search(service):
    service.indexer.search_alerts.return_value = [
        to_alert(indexer_hit("a", 2)),
        to_alert(indexer_hit("b", 13)),
        to_alert(indexer_hit("c", 9)),
    ]
    rows = service.query(QueryDataRequest(
        data_source="wazuh-alerts",
        filters=[f("timestamp", "gte", "2024-03-04T00:00:00Z"), f("severity", "not-equals", "low")],
    ))
    assert [r["id"] for r in rows] == ["b", "c"]
    assert service.indexer.search_alerts.call_args.kwargs == {
        "limit": 1000, "offset": 0, "start_date": "2024-03-04T00:00:00Z",
    }


def test_agent_and_rule_filters_on_alert_rows(service):
    service.indexer.search_alerts.return_value = [
        to_alert(indexer_hit("a", 5, agent_id="001", rule_id="5712")),
        to_alert(indexer_hit("b", 5, agent_id="002", rule_id="510")),
        to_alert(indexer_hit("c", 5, agent_id="003", rule_id="5712")),
    ]
    rows = service.query(QueryDataRequest(
        data_source="wazuh-alerts",
        filters=[f("agentId", "not-equals", "002"), f("ruleId", "in", ["5712"])],
    ))
    assert [r["id"] for r in rows] == ["a", "c"]
    assert "agent_id" not in service.indexer.search_alerts.call_args.kwargs


def test_fim_events_restricted_to_syscheck(service):
    service.query(QueryDataRequest(data_source="fim-events"))
    assert service.indexer.search_alerts.call_args.kwargs["groups"] == "syscheck"


def test_agent_query_ignores_time_filter(service):
    rows = service.query(QueryDataRequest(
        data_source="wazuh-agents",
        filters=[f("timestamp", "gte", "2024-03-04T00:00:00Z"), f("status", "equals", "active")],
    ))
    assert [r["id"] for r in rows] == ["001", "003"]


def test_query_applies_grouping_and_aggregation(service):
    grouped = service.query(QueryDataRequest(data_source="wazuh-agents", group_by=["status"]))
    assert [(g["status"], g["count"]) for g in grouped] == [("active", 2), ("disconnected", 1)]

    (row,) = service.query(QueryDataRequest(
        data_source="wazuh-agents", aggregation=Aggregation(field="id", type="count"),
    ))
    assert row["count"] == 3


def test_query_respects_limit(service):
    rows = service.query(QueryDataRequest(data_source="wazuh-agents", limit=2))
    assert len(rows) == 2


def test_custom_query_is_unsupported(service):
    with pytest.raises(UnsupportedDataSourceError):
        service.query(QueryDataRequest(data_source="custom-query"))
