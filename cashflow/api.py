"""FastAPI application serving the cashflow view-models as JSON.

Each request builds fresh view-models over the shared client, so every screen
owns its own copy of the data it fetched.  Panel failures are reported inside
the payload; only an expired session changes the response itself (a redirect
to the login page).
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date
from typing import Annotated, Any, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response

from .client import CashflowClient
from .config import AppConfig, load_config
from .dashboard import DashboardViewModel
from .errors import ApiError, TransportError, UnauthenticatedError, ValidationError
from .export import export_filename
from .forecast import ForecastViewModel, forecast_options
from .models import Transaction
from .recurring import RecurringRulesViewModel
from .reminders import RemindersViewModel
from .session import SessionStore, StaticTokenProvider
from .settings import SettingsStore
from .transactions import DateRange, TransactionListViewModel, TypeFilter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Initialise shared services once and reuse them across requests."""

    config = load_config()
    session_store = SessionStore(StaticTokenProvider.from_config(config))
    client = CashflowClient(config, session_store)
    settings_store = SettingsStore(client, session_store)
    session_store.check_session()

    app.state.config = config
    app.state.session_store = session_store
    app.state.client = client
    app.state.settings_store = settings_store

    yield

    settings_store.close()
    session_store.logout()
    client.close()


app = FastAPI(lifespan=lifespan, title="cashflow client", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error mapping --------------------------------------------------------------


@app.exception_handler(UnauthenticatedError)
async def redirect_to_login(request: Request, exc: UnauthenticatedError) -> RedirectResponse:
    config: AppConfig = request.app.state.config
    return RedirectResponse(config.login_url, status_code=303)


@app.exception_handler(ValidationError)
async def validation_failed(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=422)


@app.exception_handler(TransportError)
async def backend_unavailable(request: Request, exc: TransportError) -> JSONResponse:
    logger.error("Backend unavailable: %s", exc)
    return JSONResponse({"detail": "Backend unavailable"}, status_code=502)


# Dependency injection ------------------------------------------------------


def get_client() -> CashflowClient:
    client: CashflowClient = app.state.client
    return client


def get_session_store() -> SessionStore:
    """Return the session store, refusing the request when nobody is signed in."""

    session_store: SessionStore = app.state.session_store
    if session_store.user is None and session_store.check_session() is None:
        raise UnauthenticatedError("No active session")
    return session_store


def get_settings_store(session_store: Annotated[SessionStore, Depends(get_session_store)]) -> SettingsStore:
    settings_store: SettingsStore = app.state.settings_store
    if settings_store.loading:
        settings_store.load()
    return settings_store


def _ensure_session(session_store: SessionStore) -> None:
    # A view-model that hit a 401 has already expired the session.
    if session_store.user is None:
        raise UnauthenticatedError("Session expired")


# Serialisation -------------------------------------------------------------


def transaction_dict(tx: Transaction) -> dict[str, Any]:
    payload = asdict(tx)
    payload["type"] = tx.type
    payload["status"] = tx.status
    return payload


def forecast_dict(model: ForecastViewModel) -> dict[str, Any]:
    lowest = model.lowest_day
    return {
        "forecast_days": model.forecast_days,
        "safe_mode": model.safe_mode,
        "current_balance": model.current_balance,
        "starting_balance": model.starting_balance,
        "projected_balance": model.projected_balance,
        "safe_to_spend": model.safe_to_spend,
        "daily_breakdown": [asdict(day) for day in model.daily_breakdown],
        "chart": model.chart_points(),
        "lowest_day": {"date": lowest.date, "balance": lowest.closing_balance} if lowest else None,
        "warnings": [asdict(item) for item in model.warnings],
        "bank_hold": [
            {
                "bank_account_id": bank.bank_account_id,
                "name": bank.name,
                "color": bank.color,
                "minimum_hold": bank.minimum_hold,
                "expense_count": bank.expense_count,
                "groups": [
                    {"tag_name": group.tag_name, "total": group.total, "count": len(group.transactions)}
                    for group in model.tag_groups(bank)
                ],
            }
            for bank in model.bank_hold_summary
        ],
        "total_hold": model.total_hold,
        "error": model.error,
    }


# Routes --------------------------------------------------------------------


@app.get("/health")
def health_check() -> dict[str, str]:
    """Return a basic heartbeat payload for monitoring purposes."""

    return {"status": "ok"}


@app.get("/dashboard")
def dashboard(
    safe_mode: Optional[bool] = None,
    client: Annotated[CashflowClient, Depends(get_client)] = None,
    session_store: Annotated[SessionStore, Depends(get_session_store)] = None,
    settings_store: Annotated[SettingsStore, Depends(get_settings_store)] = None,
) -> dict[str, object]:
    model = DashboardViewModel(client, settings_store, session_store)
    if safe_mode is None:
        model.load()
    else:
        model.set_safe_mode(safe_mode)
        model.load_recent()
    _ensure_session(session_store)
    return {
        "forecast": forecast_dict(model.forecast),
        "recent_transactions": [transaction_dict(tx) for tx in model.recent_transactions],
        "recent_error": model.recent.error,
        "low_balance": model.low_balance,
    }


@app.get("/forecast")
def forecast(
    days: Annotated[Optional[int], Query(ge=1, le=3660)] = None,
    safe_mode: Optional[bool] = None,
    client: Annotated[CashflowClient, Depends(get_client)] = None,
    session_store: Annotated[SessionStore, Depends(get_session_store)] = None,
    settings_store: Annotated[SettingsStore, Depends(get_settings_store)] = None,
) -> dict[str, object]:
    current = settings_store.settings
    model = ForecastViewModel(client, session_store)
    model.set_params(
        days if days is not None else current.forecast_period,
        safe_mode if safe_mode is not None else current.default_safe_mode,
    )
    _ensure_session(session_store)
    return forecast_dict(model)


@app.get("/forecast/options")
def list_forecast_options() -> list[dict[str, object]]:
    return [asdict(option) for option in forecast_options(date.today())]


def _transaction_view(
    type_filter: TypeFilter,
    start_date: Optional[date],
    end_date: Optional[date],
    q: str,
    client: CashflowClient,
    session_store: SessionStore,
) -> TransactionListViewModel:
    model = TransactionListViewModel(client, session_store)
    model.set_type_filter(type_filter)
    model.set_search(q)
    model.set_date_range(DateRange(start_date, end_date))
    _ensure_session(session_store)
    return model


@app.get("/transactions")
def list_transactions(
    type_filter: Annotated[TypeFilter, Query(alias="type")] = TypeFilter.ALL,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    q: str = "",
    client: Annotated[CashflowClient, Depends(get_client)] = None,
    session_store: Annotated[SessionStore, Depends(get_session_store)] = None,
) -> dict[str, object]:
    view = _transaction_view(type_filter, start_date, end_date, q, client, session_store).view()
    return {
        "transactions": [transaction_dict(tx) for tx in view.items],
        "count": len(view.items),
        "empty_state": view.empty_state.value if view.empty_state else None,
        "error": view.error,
    }


@app.get("/transactions/export")
def export_transactions(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    client: Annotated[CashflowClient, Depends(get_client)] = None,
    session_store: Annotated[SessionStore, Depends(get_session_store)] = None,
) -> Response:
    model = _transaction_view(TypeFilter.ALL, start_date, end_date, "", client, session_store)
    if model.resource.error:
        raise HTTPException(status_code=502, detail=model.resource.error)
    return Response(
        content=model.export_csv(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(date.today())}"'},
    )


@app.get("/recurring-rules")
def list_recurring_rules(
    client: Annotated[CashflowClient, Depends(get_client)] = None,
    session_store: Annotated[SessionStore, Depends(get_session_store)] = None,
) -> dict[str, object]:
    model = RecurringRulesViewModel(client, session_store)
    model.load()
    _ensure_session(session_store)
    return {
        "rules": [{**asdict(entry.rule), "expired": entry.expired} for entry in model.entries()],
        "error": model.error,
    }


@app.get("/reminders")
def list_reminders(
    days: Annotated[int, Query(ge=1, le=365)] = 30,
    client: Annotated[CashflowClient, Depends(get_client)] = None,
    session_store: Annotated[SessionStore, Depends(get_session_store)] = None,
) -> dict[str, object]:
    model = RemindersViewModel(client, session_store)
    model.load(days)
    _ensure_session(session_store)
    return {"reminders": [asdict(item) for item in model.reminders], "error": model.error}


@app.get("/settings")
def get_settings(settings_store: Annotated[SettingsStore, Depends(get_settings_store)]) -> dict[str, object]:
    return asdict(settings_store.settings)


@app.put("/settings")
def update_settings(
    changes: Annotated[dict[str, Any], Body()],
    settings_store: Annotated[SettingsStore, Depends(get_settings_store)] = None,
) -> dict[str, object]:
    try:
        updated = settings_store.update(**changes)
    except ApiError as exc:
        raise HTTPException(status_code=exc.status_code or 500, detail=str(exc)) from exc
    return asdict(updated)
