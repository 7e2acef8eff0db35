from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from cashflow.api import app
from cashflow.config import AppConfig
from cashflow.errors import UnauthenticatedError
from cashflow.session import SessionStore, StaticTokenProvider
from cashflow.settings import SettingsStore

from conftest import FakeClient, expense, income


def make_config():
    return AppConfig(
        api_url="http://backend.test",
        api_prefix="/api/v1",
        access_token="abc",
        request_timeout=5,
        base_currency="EUR",
        login_url="/login",
        log_level="INFO",
    )


@pytest.fixture
def backend():
    return FakeClient(
        get_settings={"forecastPeriod": 60},
        list_transactions=[
            income("1", 100, date.today(), "Salary"),
            expense("2", 40, date.today() + timedelta(days=2), "Power bill"),
        ],
    )


def install(backend, token="abc"):
    """Wire app.state by hand; the lifespan would build a real HTTP client."""

    session_store = SessionStore(StaticTokenProvider(token))
    app.state.config = make_config()
    app.state.session_store = session_store
    app.state.client = backend
    app.state.settings_store = SettingsStore(backend, session_store)
    session_store.check_session()
    return TestClient(app)


def test_health_check(backend):
    response = install(backend).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_transactions_are_filtered(backend):
    response = install(backend).get("/transactions", params={"type": "EXPENSE"})

    body = response.json()
    assert response.status_code == 200
    assert body["count"] == 1
    assert body["transactions"][0]["description"] == "Power bill"
    assert body["transactions"][0]["type"] == "EXPENSE"
    assert body["error"] is None


def test_transactions_empty_search_reports_empty_state(backend):
    body = install(backend).get("/transactions", params={"q": "groceries"}).json()

    assert body["transactions"] == []
    assert body["empty_state"] is not None


def test_missing_session_redirects_to_login(backend):
    response = install(backend, token=None).get("/transactions", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert backend.called("list_transactions") == []


def test_expired_session_mid_request_redirects(backend):
    backend.responses["list_transactions"] = UnauthenticatedError("401")
    response = install(backend).get("/transactions", follow_redirects=False)

    assert response.status_code == 303


def test_settings_round_trip(backend):
    client = install(backend)
    assert client.get("/settings").json()["forecast_period"] == 60

    backend.responses["update_settings"] = lambda changes, defaults: type(defaults)(
        forecast_period=defaults.forecast_period, theme=changes["theme"]
    )
    body = client.put("/settings", json={"theme": "dark"}).json()

    assert body["theme"] == "dark"
    assert body["forecast_period"] == 60


def test_export_is_csv_attachment(backend):
    response = install(backend).get("/transactions/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    assert response.text.splitlines()[0] == "Date,Type,Amount,Currency,Description,Category/Status"


def test_export_includes_past_rows(backend):
    rows = backend.responses["list_transactions"]
    backend.responses["list_transactions"] = rows + [expense("0", 25, date.today() - timedelta(days=3), "Paid bill")]

    lines = install(backend).get("/transactions/export").text.splitlines()

    assert len(lines) == 4
    assert "Paid bill" in lines[1]


def test_type_query_parameter_filters_by_kind(backend):
    body = install(backend).get("/transactions", params={"type": "INCOME"}).json()

    assert [tx["description"] for tx in body["transactions"]] == ["Salary"]
