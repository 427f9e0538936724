from __future__ import annotations

import json
from datetime import date

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from timeboxing.core.config import Settings
from timeboxing.models.entities import AdsPlatform, AdsSyncJob, GoogleAdsCampaign, SyncJobStatus
from timeboxing.workers.google_ads import (
    TOKEN_URL,
    GoogleAdsClient,
    GoogleAdsError,
    aggregate_monthly_rows,
    get_date_range,
    parse_campaign_row,
)
from timeboxing.workers.sync import SyncJobRunner

CAMPAIGN_ROW = {
    "campaign": {"id": "9001", "name": "Brand", "status": "ENABLED"},
    "campaignBudget": {"amountMicros": "5000000"},
    "metrics": {
        "costMicros": "12500000",
        "conversionsValue": 30.5,
        "conversions": 2,
        "clicks": "40",
        "impressions": "900",
    },
    "segments": {"date": "2026-03-14"},
}


def _settings(**overrides: object) -> Settings:
    values = {
        "google_client_id": "client-id",
        "google_client_secret": "secret",
        "google_developer_token": "dev-token",
        "google_refresh_token": "refresh",
        "google_mcc_id": "999",
        "google_ads_api_version": "v22",
    }
    values.update(overrides)
    return Settings(**values)


def _handler(request: httpx.Request) -> httpx.Response:
    url = str(request.url)
    if url == TOKEN_URL:
        return httpx.Response(200, json={"access_token": "token-1"})

    assert request.headers["Authorization"] == "Bearer token-1"
    assert request.headers["login-customer-id"] == "999"
    if "/customers/999/" in url:
        return httpx.Response(
            200,
            json=[
                {
                    "results": [
                        {"customerClient": {"clientCustomer": "customers/111", "descriptiveName": "Acme"}},
                        {"customerClient": {"clientCustomer": "customers/222", "descriptiveName": "Closed"}},
                    ]
                }
            ],
        )
    if "/customers/111/" in url:
        assert "BETWEEN '2026-02-01' AND '2026-03-14'" in json.loads(request.content)["query"]
        return httpx.Response(200, json=[{"results": [CAMPAIGN_ROW]}])
    return httpx.Response(403, json={"error": {"status": "PERMISSION_DENIED"}})


def test_date_range_starts_on_previous_month() -> None:
    assert get_date_range(date(2026, 3, 14)).first_day == date(2026, 2, 1)
    assert get_date_range(date(2026, 1, 5)).first_day == date(2025, 12, 1)


def test_parse_campaign_row_converts_micros_and_month() -> None:
    row = parse_campaign_row("111", CAMPAIGN_ROW)

    assert row == {
        "client_id": "111",
        "campaign_id": "9001",
        "campaign_name": "Brand",
        "status": "ENABLED",
        "date": date(2026, 3, 1),
        "cost": 12.5,
        "daily_budget": 5.0,
        "conversions_value": 30.5,
        "conversions": 2.0,
        "clicks": 40,
        "impressions": 900,
    }


def test_parse_campaign_row_without_budget() -> None:
    row = parse_campaign_row("111", {**CAMPAIGN_ROW, "campaignBudget": None})

    assert row["daily_budget"] == 0.0


def test_iter_rows_skips_failing_accounts() -> None:
    client = GoogleAdsClient(_settings(), http_client=httpx.Client(transport=httpx.MockTransport(_handler)))
    lines: list[str] = []

    batches = list(client.iter_rows(lines.append, today=date(2026, 3, 14)))

    assert len(batches) == 1
    [row] = batches[0]
    assert row["client_name"] == "Acme"
    assert row["cost"] == 12.5
    assert lines == [
        "Iniciando Sync Google v22. Desde: 2026-02-01",
        "2 cuentas encontradas.",
        "[1/2] Acme...",
        "[2/2] Closed...",
    ]


def test_token_error_is_reported() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
    client = GoogleAdsClient(_settings(), http_client=httpx.Client(transport=transport))

    with pytest.raises(GoogleAdsError, match="Error obteniendo Token"):
        client.get_access_token()


def test_missing_configuration_is_rejected() -> None:
    client = GoogleAdsClient(_settings(google_refresh_token=None), http_client=httpx.Client())

    with pytest.raises(GoogleAdsError, match="GOOGLE_REFRESH_TOKEN"):
        list(client.iter_rows(lambda message: None))


def _daily_row(day: str, cost_micros: str, clicks: str, status: str = "ENABLED") -> dict:
    return {
        **CAMPAIGN_ROW,
        "campaign": {**CAMPAIGN_ROW["campaign"], "status": status},
        "metrics": {**CAMPAIGN_ROW["metrics"], "costMicros": cost_micros, "clicks": clicks},
        "segments": {"date": day},
    }


def test_aggregate_monthly_rows_sums_days_of_a_campaign() -> None:
    daily = [
        ("2026-03-14", parse_campaign_row("111", _daily_row("2026-03-14", "12500000", "40", status="PAUSED"))),
        ("2026-03-02", parse_campaign_row("111", _daily_row("2026-03-02", "7500000", "10"))),
        ("2026-02-27", parse_campaign_row("111", _daily_row("2026-02-27", "1000000", "1"))),
    ]

    rows = aggregate_monthly_rows(daily)

    assert [(row["date"], row["cost"], row["clicks"], row["conversions"]) for row in rows] == [
        (date(2026, 3, 1), 20.0, 50, 4.0),
        (date(2026, 2, 1), 1.0, 1, 2.0),
    ]
    # The latest day decides the status.
    assert rows[0]["status"] == "PAUSED"


def test_sync_stores_monthly_totals(session_factory: sessionmaker, db_session: Session) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == TOKEN_URL:
            return httpx.Response(200, json={"access_token": "token-1"})
        if "/customers/999/" in url:
            return httpx.Response(
                200,
                json=[{"results": [{"customerClient": {"clientCustomer": "customers/111", "descriptiveName": "Acme"}}]}],
            )
        return httpx.Response(
            200,
            json=[
                {
                    "results": [
                        _daily_row("2026-03-02", "12500000", "40"),
                        _daily_row("2026-03-03", "7500000", "10"),
                    ]
                }
            ],
        )

    source = GoogleAdsClient(_settings(), http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    runner = SyncJobRunner(AdsPlatform.GOOGLE, source, session_factory, _settings())

    job_id = runner.create_job()

    assert runner.process_job(job_id) == SyncJobStatus.COMPLETED
    stored = db_session.execute(select(GoogleAdsCampaign.cost, GoogleAdsCampaign.clicks)).all()
    assert [tuple(row) for row in stored] == [(20.0, 50)]
    assert db_session.get(AdsSyncJob, job_id).logs[-1] == "Finalizado. 1 filas actualizadas."
