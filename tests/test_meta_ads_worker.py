from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from timeboxing.core.config import Settings
from timeboxing.workers.meta_ads import (
    MetaAdsClient,
    MetaAdsError,
    MonthRange,
    get_month_ranges,
    normalize_insight,
    parse_meta_metrics,
)

INSIGHT = {
    "campaign_id": "123",
    "campaign_name": "Leads",
    "spend": "45.20",
    "impressions": "2000",
    "clicks": "80",
    "actions": [
        {"action_type": "lead", "value": "3"},
        {"action_type": "purchase", "value": "1"},
        {"action_type": "link_click", "value": "80"},
    ],
    "action_values": [
        {"action_type": "purchase", "value": "99.90"},
        {"action_type": "lead", "value": "10"},
    ],
}


def _settings(**overrides: object) -> Settings:
    values = {
        "meta_access_token": "meta-token",
        "meta_ad_account_ids": ["act_1", "act_2"],
        "meta_api_version": "v19.0",
    }
    values.update(overrides)
    return Settings(**values)


def test_month_ranges() -> None:
    previous, current = get_month_ranges(date(2026, 3, 14))

    assert (previous.start, previous.end, previous.label) == (date(2026, 2, 1), date(2026, 2, 28), "Mes Pasado")
    assert (current.start, current.end, current.label) == (date(2026, 3, 1), date(2026, 3, 14), "Mes Actual")


def test_parse_meta_metrics_counts_conversion_actions() -> None:
    conversions, value = parse_meta_metrics(INSIGHT)

    assert conversions == 4.0
    assert value == pytest.approx(99.9)
    assert parse_meta_metrics({}) == (0, 0)


def test_normalize_insight() -> None:
    month_range = MonthRange(start=date(2026, 3, 1), end=date(2026, 3, 14), label="Mes Actual")

    row = normalize_insight("act_1", INSIGHT, month_range)

    assert row["client_name"] == "Meta Account act_1"
    assert row["date"] == date(2026, 3, 1)
    assert row["cost"] == 45.2
    assert row["clicks"] == 80
    assert row["status"] == "ENABLED"


def test_iter_rows_queries_each_account_and_month() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if "/act_2/" in request.url.path:
            return httpx.Response(400, json={"error": {"message": "Invalid account"}})
        return httpx.Response(200, json={"data": [INSIGHT]})

    client = MetaAdsClient(_settings(), http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    lines: list[str] = []

    batches = list(client.iter_rows(lines.append, today=date(2026, 3, 14)))

    assert [batch[0]["date"] for batch in batches] == [date(2026, 2, 1), date(2026, 3, 1)]
    assert len(requests) == 4
    first = requests[0]
    assert first.url.path == "/v19.0/act_1/insights"
    assert first.url.params["level"] == "campaign"
    assert json.loads(first.url.params["time_range"]) == {"since": "2026-02-01", "until": "2026-02-28"}
    assert lines[0] == "Iniciando Sincronización META (Mensual). 2 cuentas."


def test_network_errors_yield_no_rows() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    client = MetaAdsClient(_settings(), http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    month_range = MonthRange(start=date(2026, 3, 1), end=date(2026, 3, 14), label="Mes Actual")

    assert client.fetch_insights("act_1", month_range) == []


def test_missing_token_is_rejected() -> None:
    client = MetaAdsClient(_settings(meta_access_token=None), http_client=httpx.Client())

    with pytest.raises(MetaAdsError):
        list(client.iter_rows(lambda message: None))


def test_unexpected_payload_skips_only_that_account() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "/act_1/" in request.url.path:
            return httpx.Response(502, json=["bad gateway"])
        return httpx.Response(200, json={"data": [INSIGHT]})

    client = MetaAdsClient(_settings(), http_client=httpx.Client(transport=httpx.MockTransport(handler)))

    batches = list(client.iter_rows(lambda message: None, today=date(2026, 3, 14)))

    assert [batch[0]["client_id"] for batch in batches] == ["act_2", "act_2"]


def test_failed_status_without_error_body_yields_no_rows() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"data": [INSIGHT]}))
    client = MetaAdsClient(_settings(), http_client=httpx.Client(transport=transport))
    month_range = MonthRange(start=date(2026, 3, 1), end=date(2026, 3, 14), label="Mes Actual")

    assert client.fetch_insights("act_1", month_range) == []
