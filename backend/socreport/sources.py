"""
Data-source query service.

Every report widget names a data source. `DataSourceService.query()` fetches the
records for it from the upstream platform (Wazuh Indexer, Wazuh Manager API,
DFIR-IRIS), applies the request filters the upstream could not, then any
grouping / aggregation, and returns plain dicts.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests

from .config import Settings, settings as default_settings
from .errors import DataSourceError, UnsupportedDataSourceError
from .normalizer import level_to_severity
from .query import aggregate_data, apply_filters, group_data
from .schemas import QueryDataRequest, ReportFilter

logger = logging.getLogger(__name__)

ALERTS_INDEX = "wazuh-alerts-*"
VULNERABILITIES_INDEX = "wazuh-states-vulnerabilities-*"

AVAILABLE_SOURCES = [
    "wazuh-alerts",
    "wazuh-agents",
    "wazuh-rules",
    "iris-cases",
    "vulnerabilities",
    "fim-events",
]

# rule.level ranges used by the indexer severity filter
SEVERITY_LEVEL_RANGES = {
    "critical": {"gte": 12},
    "high": {"gte": 8, "lt": 12},
    "medium": {"gte": 4, "lt": 8},
    "low": {"lt": 4},
}

# flat alert field -> indexer search argument, for exact matches
INDEXER_ARGS = {"agentId": "agent_id", "ruleId": "rule_id"}

TOKEN_TTL_SECONDS = 14 * 60


class _HttpClient:
    source = "upstream"

    def __init__(self, base_url: str, verify: bool, timeout: float, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.verify = verify

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise DataSourceError(self.source, str(e)) from e
        except ValueError as e:
            raise DataSourceError(self.source, f"malformed response from {path}") from e


class WazuhIndexerClient(_HttpClient):
    source = "wazuh-indexer"

    def __init__(self, cfg: Settings, session: Optional[requests.Session] = None):
        super().__init__(cfg.WAZUH_INDEXER_URL, cfg.WAZUH_INDEXER_VERIFY_SSL, cfg.REQUEST_TIMEOUT, session)
        self.session.auth = (cfg.WAZUH_INDEXER_USER, cfg.WAZUH_INDEXER_PASSWORD)

    def search(self, index: str, body: dict) -> list[dict]:
        data = self._request("POST", f"/{index}/_search", json=body)
        hits = data.get("hits", {}).get("hits") if isinstance(data, dict) else None
        if not isinstance(hits, list):
            raise DataSourceError(self.source, "search response has no hits")
        return hits

    def search_alerts(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        severity: Optional[list[str]] = None,
        agent_id: Optional[str] = None,
        rule_id: Optional[str] = None,
        groups: Optional[str] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> list[dict]:
        must: list[dict] = []

        time_range = {}
        if start_date:
            time_range["gte"] = start_date
        if end_date:
            time_range["lte"] = end_date
        if time_range:
            must.append({"range": {"timestamp": time_range}})

        if severity:
            should = [
                {"range": {"rule.level": SEVERITY_LEVEL_RANGES[s]}}
                for s in (str(v).lower() for v in severity)
                if s in SEVERITY_LEVEL_RANGES
            ]
            if should:
                must.append({"bool": {"should": should, "minimum_should_match": 1}})

        if agent_id:
            must.append({"match": {"agent.id": agent_id}})
        if rule_id:
            must.append({"match": {"rule.id": rule_id}})
        if groups:
            must.append({"match": {"rule.groups": groups}})

        body = {
            "size": limit,
            "from": offset,
            "sort": [{"timestamp": {"order": "desc"}}],
            "query": {"bool": {"must": must or [{"match_all": {}}]}},
        }
        logger.debug("Querying indexer for alerts: %s", body)
        return [to_alert(hit) for hit in self.search(ALERTS_INDEX, body)]

    def search_vulnerabilities(self, limit: int = 1000, offset: int = 0) -> list[dict]:
        body = {"size": limit, "from": offset, "query": {"match_all": {}}}
        out = []
        for hit in self.search(VULNERABILITIES_INDEX, body):
            doc = dict(hit.get("_source") or {})
            doc.setdefault("id", hit.get("_id"))
            out.append(doc)
        return out


class WazuhManagerClient(_HttpClient):
    source = "wazuh-manager"

    def __init__(self, cfg: Settings, session: Optional[requests.Session] = None):
        super().__init__(cfg.WAZUH_API_URL, cfg.WAZUH_VERIFY_SSL, cfg.REQUEST_TIMEOUT, session)
        self.user = cfg.WAZUH_API_USER
        self.password = cfg.WAZUH_API_PASSWORD
        self._token: Optional[str] = None
        self._token_expiry = 0.0

    def _authenticate(self) -> str:
        if self._token and time.monotonic() < self._token_expiry:
            return self._token

        logger.info("Authenticating with Wazuh API")
        data = self._request("POST", "/security/user/authenticate", auth=(self.user, self.password))
        token = (data.get("data") or {}).get("token") if isinstance(data, dict) else None
        if not token:
            raise DataSourceError(self.source, "no token in authentication response")
        self._token = token
        self._token_expiry = time.monotonic() + TOKEN_TTL_SECONDS
        return token

    def _affected_items(self, path: str) -> list[dict]:
        token = self._authenticate()
        data = self._request("GET", path, headers={"Authorization": f"Bearer {token}"})
        items = (data.get("data") or {}).get("affected_items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise DataSourceError(self.source, f"no affected_items in {path} response")
        return items

    def get_agents(self) -> list[dict]:
        return self._affected_items("/agents")

    def get_rules(self) -> list[dict]:
        return self._affected_items("/rules")


class IrisClient(_HttpClient):
    source = "iris"

    def __init__(self, cfg: Settings, session: Optional[requests.Session] = None):
        super().__init__(cfg.IRIS_API_URL, cfg.IRIS_VERIFY_SSL, cfg.REQUEST_TIMEOUT, session)
        self.session.headers["Authorization"] = f"Bearer {cfg.IRIS_API_KEY}"

    def get_cases(self, customer_id: int = 1, limit: Optional[int] = None) -> list[dict]:
        params: dict[str, Any] = {"cid": customer_id}
        if limit:
            params["per_page"] = limit
        data = self._request("GET", "/manage/cases/list", params=params)

        payload = data.get("data") if isinstance(data, dict) else None
        if isinstance(payload, dict):
            payload = payload.get("cases")
        if not isinstance(payload, list):
            raise DataSourceError(self.source, "no cases in response")
        return [to_case(c) for c in payload]


# ---------------------------
# Upstream document conversion
# ---------------------------

def to_alert(hit: dict) -> dict:
    source = hit.get("_source") or {}
    rule = source.get("rule") or {}
    agent = source.get("agent") or {}
    manager = source.get("manager") or {}
    level = rule.get("level") or 0
    return {
        "id": source.get("id") or hit.get("_id") or f"{source.get('timestamp')}-{rule.get('id')}",
        "title": rule.get("description") or "Unknown Alert",
        "description": source.get("full_log") or rule.get("description") or "",
        "severity": level_to_severity(level).lower(),
        "status": "open",
        "source": agent.get("name") or manager.get("name") or "Unknown",
        "agentId": agent.get("id"),
        "ruleId": rule.get("id"),
        "timestamp": source.get("timestamp") or source.get("@timestamp"),
        "rawData": source,
    }


def _case_severity(value: Any) -> str:
    s = str(value or "").lower()
    for label in ("critical", "high", "medium"):
        if label in s:
            return label
    return "low"


def _case_status(value: Any) -> str:
    s = str(value or "").lower()
    if "closed" in s or "resolved" in s:
        return "closed"
    if "investigating" in s or "progress" in s:
        return "investigating"
    return "open"


def to_case(raw: dict) -> dict:
    severity = raw.get("case_severity") or raw.get("severity_name") or raw.get("case_severity_name")
    state = raw.get("case_state") or raw.get("state_name") or raw.get("case_state_name")
    return {
        "id": str(raw.get("case_id") or raw.get("id") or ""),
        "title": raw.get("case_name") or "Untitled Case",
        "description": raw.get("case_description") or "",
        "severity": _case_severity(severity),
        "status": _case_status(state),
        "timestamp": raw.get("case_open_date"),
        "assignedTo": raw.get("owner") or "Unassigned",
        "rawData": raw,
    }


def _indexer_arg(f: ReportFilter) -> Optional[dict]:
    if f.field == "timestamp":
        if f.operator == "between" and isinstance(f.value, list) and len(f.value) == 2:
            return {"start_date": f.value[0], "end_date": f.value[1]}
        if f.operator == "gte":
            return {"start_date": f.value}
        if f.operator == "lte":
            return {"end_date": f.value}
    elif f.field == "severity":
        values = [f.value] if f.operator == "equals" else f.value if f.operator == "in" else None
        if isinstance(values, list) and values and all(str(v).lower() in SEVERITY_LEVEL_RANGES for v in values):
            return {"severity": list(values)}
    elif f.operator == "equals" and f.field in INDEXER_ARGS:
        return {INDEXER_ARGS[f.field]: f.value}
    return None


def indexer_filters(filters: list[ReportFilter]) -> tuple[dict, list[ReportFilter]]:
    """
    Split report filters into indexer search arguments and the filters the
    indexer query cannot express, which are left for `apply_filters`.
    """
    args: dict[str, Any] = {}
    rest: list[ReportFilter] = []
    for f in filters:
        arg = _indexer_arg(f)
        if arg is None or args.keys() & arg.keys():
            rest.append(f)
        else:
            args.update(arg)
    return args, rest


def _untimed(filters: list[ReportFilter]) -> list[ReportFilter]:
    # inventory and case sources carry no event timestamp
    return [f for f in filters if f.field != "timestamp"]


class DataSourceService:
    def __init__(
        self,
        indexer: WazuhIndexerClient,
        manager: WazuhManagerClient,
        iris: IrisClient,
        default_limit: int = 1000,
    ):
        self.indexer = indexer
        self.manager = manager
        self.iris = iris
        self.default_limit = default_limit

    @classmethod
    def from_settings(cls, cfg: Settings = default_settings) -> "DataSourceService":
        return cls(
            WazuhIndexerClient(cfg),
            WazuhManagerClient(cfg),
            IrisClient(cfg),
            default_limit=cfg.DEFAULT_QUERY_LIMIT,
        )

    def query(self, request: QueryDataRequest) -> list[dict]:
        limit = request.limit or self.default_limit
        offset = request.offset or 0
        filters = list(request.filters)
        source = request.data_source

        if source in ("wazuh-alerts", "fim-events"):
            args, rest = indexer_filters(filters)
            if source == "fim-events":
                args["groups"] = "syscheck"
            rows = self.indexer.search_alerts(limit=limit, offset=offset, **args)
            rows = apply_filters(rows, rest)
        elif source == "vulnerabilities":
            rows = apply_filters(self.indexer.search_vulnerabilities(limit=limit, offset=offset), _untimed(filters))
        elif source == "wazuh-agents":
            rows = apply_filters(self.manager.get_agents(), _untimed(filters))
        elif source == "wazuh-rules":
            rows = apply_filters(self.manager.get_rules(), _untimed(filters))
        elif source == "iris-cases":
            rows = apply_filters(self.iris.get_cases(limit=limit), _untimed(filters))
        else:
            raise UnsupportedDataSourceError(source)

        logger.info("Fetched %d records from %s", len(rows), source)

        if request.aggregation:
            return aggregate_data(rows, request.group_by, request.aggregation)
        if request.group_by:
            return group_data(rows, request.group_by)
        return rows[offset:offset + limit] if source in ("wazuh-agents", "wazuh-rules") else rows[:limit]
