"""
Tests for the Streamlit report viewer (backend calls mocked).
"""
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

pytest.importorskip("streamlit")
from streamlit.testing.v1 import AppTest

APP = str(Path(__file__).parent.parent / "ui" / "app.py")

TEMPLATES = [{
    "id": 1,
    "name": "SOC Overview",
    "description": "Daily overview",
    "widgets": [{"id": "total", "type": "kpi", "title": "Total Alerts", "position": {"x": 0, "y": 0}}],
}]
RANGES = [{"label": "24h", "hours": 24}, {"label": "7d", "hours": 168}]


def report_for(time_range):
    return {
        "templateName": "SOC Overview",
        "timeRange": time_range,
        "metadata": {"alertsInRange": 3, "executionTime": 12, "filtersSummary": "No filters applied"},
        "data": [{"widgetId": "total", "data": [{"value": 3, "count": 3, "trend": {"value": 5, "direction": "up"}}]}],
        "notices": ["Widget 'Open Cases' used placeholder data: iris: connection refused"],
    }


def json_response(payload):
    resp = MagicMock()
    resp.ok = True
    resp.json.return_value = payload
    return resp


@pytest.fixture
def backend(monkeypatch):
    def fake_get(url, **kwargs):
        return json_response(TEMPLATES if url.endswith("/reports/templates") else RANGES)

    def fake_post(url, json=None, **kwargs):
        return json_response(report_for(json["timeRange"]))

    post = MagicMock(side_effect=fake_post)
    monkeypatch.setattr(requests, "get", fake_get)
    monkeypatch.setattr(requests, "post", post)
    return post


def test_generated_report_is_rendered(backend):
    at = AppTest.from_file(APP).run()
    assert len(at.metric) == 0

    at.button[0].click().run()

    assert backend.call_args.kwargs["json"] == {"templateId": 1, "timeRange": "24h"}
    assert len(at.metric) == 4
    assert at.warning[0].value.startswith("Widget 'Open Cases' used placeholder data")


def test_report_hidden_after_time_range_change(backend):
    at = AppTest.from_file(APP).run()
    at.button[0].click().run()
    assert len(at.metric) == 4

    at.selectbox[1].set_value("7d").run()
    assert len(at.metric) == 0
    assert len(at.warning) == 0
