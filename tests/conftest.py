"""
Pytest configuration and fixtures for the report pipeline tests.
"""
import os
import sys
from pathlib import Path

# Add backend to path for imports
BACKEND_DIR = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(BACKEND_DIR))

# In-memory database before any socreport import builds the engine
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from socreport.db import Base, get_db
from socreport.errors import DataSourceError
from socreport.main import app, get_data_source


# ============================================================
# Alert record builders
# ============================================================

def make_raw_alert(level=5, agent="web-01", ts="2024-03-04T10:15:00.000Z", description="SSH brute force", alert_id=None):
    """Alert in the raw Wazuh shape (everything under rawData)."""
    alert = {
        "rawData": {
            "timestamp": ts,
            "rule": {"level": level, "description": description, "id": "5712"},
            "agent": {"id": "001", "name": agent},
        }
    }
    if alert_id is not None:
        alert["id"] = alert_id
    return alert


def make_flat_alert(severity="high", source="db-01", ts="2024-03-04T10:15:00Z", title="Malware detected", alert_id=None):
    """Alert in the normalized flat shape."""
    alert = {"severity": severity, "source": source, "timestamp": ts, "title": title}
    if alert_id is not None:
        alert["id"] = alert_id
    return alert


@pytest.fixture
def raw_alert():
    return make_raw_alert


@pytest.fixture
def flat_alert():
    return make_flat_alert


# ============================================================
# Data source fakes
# ============================================================

class FakeSource:
    """Stands in for DataSourceService; records every request it sees."""

    def __init__(self, by_source=None, failing=()):
        self.by_source = by_source or {}
        self.failing = set(failing)
        self.requests = []

    def query(self, request):
        self.requests.append(request)
        if request.data_source in self.failing:
            raise DataSourceError(request.data_source, "connection refused")
        return list(self.by_source.get(request.data_source, []))


@pytest.fixture
def fake_source():
    return FakeSource(
        by_source={
            "wazuh-alerts": [
                make_flat_alert("critical", alert_id="a1"),
                make_flat_alert("critical", alert_id="a2"),
                make_flat_alert("high", alert_id="a3"),
            ],
        },
        failing={"iris-cases"},
    )


# ============================================================
# Database / API fixtures
# ============================================================

@pytest.fixture
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def client(db_session, fake_source):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_data_source] = lambda: fake_source
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
