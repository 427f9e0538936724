"""Google Ads REST client pulling monthly campaign metrics for every MCC client."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import date, timedelta

import httpx

from timeboxing.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
ADS_BASE_URL = "https://googleads.googleapis.com"
MICROS = 1_000_000

CLIENT_ACCOUNTS_QUERY = """
    SELECT
        customer_client.client_customer,
        customer_client.descriptive_name
    FROM customer_client
    WHERE
        customer_client.status = 'ENABLED'
        AND customer_client.manager = false"""

CAMPAIGN_METRICS_QUERY = """
    SELECT
      campaign.id,
      campaign.name,
      campaign.status,
      campaign_budget.amount_micros,
      metrics.cost_micros,
      metrics.conversions_value,
      metrics.conversions,
      metrics.clicks,
      metrics.impressions,
      segments.date
    FROM campaign
    WHERE
      segments.date BETWEEN '{first_day}' AND '{today}'
      AND metrics.cost_micros > 0"""


class GoogleAdsError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class DateRange:
    first_day: date
    today: date


@dataclass(frozen=True, slots=True)
class ClientAccount:
    id: str
    name: str


def get_date_range(today: date | None = None) -> DateRange:
    """From the first day of the previous month up to today.

    The previous month is included so late-arriving conversions get refreshed.
    """

    today = today or date.today()
    last_of_previous = today.replace(day=1) - timedelta(days=1)
    return DateRange(first_day=last_of_previous.replace(day=1), today=today)


def _micros(value: object) -> float:
    return int(value or 0) / MICROS


def _iter_results(payload: object) -> Iterator[dict]:
    # searchStream answers with a list of batches, each holding ``results``.
    if not isinstance(payload, list):
        return
    for batch in payload:
        yield from batch.get("results") or []


def parse_campaign_row(customer_id: str, row: dict) -> dict[str, object]:
    campaign = row.get("campaign") or {}
    metrics = row.get("metrics") or {}
    budget = row.get("campaignBudget")
    segment_date = row["segments"]["date"]
    return {
        "client_id": customer_id,
        "campaign_id": str(campaign.get("id")),
        "campaign_name": campaign.get("name"),
        "status": campaign.get("status"),
        "date": date.fromisoformat(segment_date[:7] + "-01"),
        "cost": _micros(metrics.get("costMicros")),
        "daily_budget": _micros(budget.get("amountMicros")) if budget else 0.0,
        "conversions_value": float(metrics.get("conversionsValue") or 0),
        "conversions": float(metrics.get("conversions") or 0),
        "clicks": int(metrics.get("clicks") or 0),
        "impressions": int(metrics.get("impressions") or 0),
    }


SUMMED_FIELDS = ("cost", "conversions_value", "conversions", "clicks", "impressions")
LATEST_FIELDS = ("campaign_name", "status", "daily_budget")


def aggregate_monthly_rows(daily_rows: Iterable[tuple[str, dict[str, object]]]) -> list[dict[str, object]]:
    """Fold ``(day, row)`` pairs into one row per (campaign_id, month).

    Metrics are summed; name, status and budget come from the latest day.
    """

    merged: dict[tuple[object, object], dict[str, object]] = {}
    latest_day: dict[tuple[object, object], str] = {}
    for day, row in daily_rows:
        key = (row["campaign_id"], row["date"])
        current = merged.get(key)
        if current is None:
            merged[key] = dict(row)
            latest_day[key] = day
            continue
        for field in SUMMED_FIELDS:
            current[field] += row[field]
        if day >= latest_day[key]:
            latest_day[key] = day
            current.update({name: row[name] for name in LATEST_FIELDS})
    return list(merged.values())


class GoogleAdsClient:
    """Thin wrapper over the Google Ads ``searchStream`` REST endpoint."""

    platform = "google"

    def __init__(self, settings: Settings | None = None, *, http_client: httpx.Client | None = None) -> None:
        self.settings = settings or get_settings()
        self.http = http_client or httpx.Client(timeout=self.settings.http_timeout_seconds)
        self.manager_id = self.settings.google_manager_id

    def check_configuration(self) -> None:
        missing = [
            name
            for name, value in (
                ("GOOGLE_CLIENT_ID", self.settings.google_client_id),
                ("GOOGLE_CLIENT_SECRET", self.settings.google_client_secret),
                ("GOOGLE_DEVELOPER_TOKEN", self.settings.google_developer_token),
                ("GOOGLE_REFRESH_TOKEN", self.settings.google_refresh_token),
                ("GOOGLE_MCC_ID or GOOGLE_LOGIN_CUSTOMER_ID", self.manager_id),
            )
            if not value
        ]
        if missing:
            raise GoogleAdsError(f"Missing Google Ads settings: {', '.join(missing)}")

    def _search_url(self, customer_id: str) -> str:
        return f"{ADS_BASE_URL}/{self.settings.google_ads_api_version}/customers/{customer_id}/googleAds:searchStream"

    def _headers(self, access_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "developer-token": self.settings.google_developer_token or "",
            "Content-Type": "application/json",
            "login-customer-id": self.manager_id or "",
        }

    def get_access_token(self) -> str:
        try:
            response = self.http.post(
                TOKEN_URL,
                data={
                    "client_id": self.settings.google_client_id,
                    "client_secret": self.settings.google_client_secret,
                    "refresh_token": self.settings.google_refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GoogleAdsError(f"Error obteniendo Token: {exc}") from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise GoogleAdsError(f"Error obteniendo Token: {data}")
        return token

    def get_client_accounts(self, access_token: str) -> list[ClientAccount]:
        """Enabled, non-manager accounts below the MCC."""

        response = self.http.post(
            self._search_url(self.manager_id),
            headers=self._headers(access_token),
            json={"query": CLIENT_ACCOUNTS_QUERY},
        )
        if not response.is_success:
            raise GoogleAdsError(f"Error API Clients: {response.text}")

        accounts: list[ClientAccount] = []
        for row in _iter_results(response.json()):
            client = row["customerClient"]
            # customers/123 -> 123
            accounts.append(
                ClientAccount(
                    id=client["clientCustomer"].split("/")[1],
                    name=client.get("descriptiveName") or "",
                )
            )
        return accounts

    def get_account_data(self, customer_id: str, access_token: str, date_range: DateRange) -> list[dict[str, object]]:
        query = CAMPAIGN_METRICS_QUERY.format(
            first_day=date_range.first_day.isoformat(),
            today=date_range.today.isoformat(),
        )
        response = self.http.post(
            self._search_url(customer_id),
            headers=self._headers(access_token),
            json={"query": query},
        )
        if not response.is_success:
            # Cancelled accounts commonly answer with permission errors.
            logger.warning("Aviso cuenta %s: %s %s", customer_id, response.status_code, response.reason_phrase)
            return []

        # segments.date splits metrics per day; rows are stored per month.
        return aggregate_monthly_rows(
            (row["segments"]["date"], parse_campaign_row(customer_id, row)) for row in _iter_results(response.json())
        )

    def iter_rows(self, log: Callable[[str], None], *, today: date | None = None) -> Iterator[list[dict[str, object]]]:
        """Yield campaign rows account by account; failing accounts are skipped."""

        self.check_configuration()
        date_range = get_date_range(today)
        log(f"Iniciando Sync Google {self.settings.google_ads_api_version}. Desde: {date_range.first_day.isoformat()}")

        token = self.get_access_token()
        accounts = self.get_client_accounts(token)
        log(f"{len(accounts)} cuentas encontradas.")

        for index, account in enumerate(accounts, start=1):
            log(f"[{index}/{len(accounts)}] {account.name}...")
            try:
                rows = self.get_account_data(account.id, token, date_range)
            except (httpx.HTTPError, KeyError, ValueError) as exc:
                logger.error("Skip %s: %s", account.name, exc)
                continue
            if rows:
                yield [{**row, "client_name": account.name} for row in rows]
