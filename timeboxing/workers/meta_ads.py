"""Meta Graph API client pulling campaign insights per month."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import date, timedelta

import httpx

from timeboxing.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.facebook.com"
INSIGHT_FIELDS = "campaign_id,campaign_name,spend,impressions,clicks,actions,action_values"
CONVERSION_ACTIONS = frozenset({"purchase", "lead", "submit_application", "contact"})
VALUE_ACTION = "purchase"
PAGE_LIMIT = 500


class MetaAdsError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class MonthRange:
    start: date
    end: date
    label: str

    @property
    def month_date(self) -> date:
        return self.start.replace(day=1)


def get_month_ranges(today: date | None = None) -> list[MonthRange]:
    """Previous full month followed by the current month up to today."""

    today = today or date.today()
    current_start = today.replace(day=1)
    previous_end = current_start - timedelta(days=1)
    return [
        MonthRange(start=previous_end.replace(day=1), end=previous_end, label="Mes Pasado"),
        MonthRange(start=current_start, end=today, label="Mes Actual"),
    ]


def parse_meta_metrics(row: dict) -> tuple[float, float]:
    """Return ``(conversions, conversions_value)`` from an insights row."""

    conversions = sum(
        float(action.get("value") or 0)
        for action in row.get("actions") or []
        if action.get("action_type") in CONVERSION_ACTIONS
    )
    value = sum(
        float(action.get("value") or 0)
        for action in row.get("action_values") or []
        if action.get("action_type") == VALUE_ACTION
    )
    return conversions, value


def normalize_insight(account_id: str, row: dict, month_range: MonthRange) -> dict[str, object]:
    conversions, value = parse_meta_metrics(row)
    return {
        "client_id": account_id,
        # Insights carry no account name.
        "client_name": f"Meta Account {account_id}",
        "campaign_id": str(row.get("campaign_id")),
        "campaign_name": row.get("campaign_name"),
        "status": "ENABLED",
        "date": month_range.month_date,
        "cost": float(row.get("spend") or 0),
        "impressions": int(row.get("impressions") or 0),
        "clicks": int(row.get("clicks") or 0),
        "conversions": conversions,
        "conversions_value": value,
    }


class MetaAdsClient:
    platform = "meta"

    def __init__(self, settings: Settings | None = None, *, http_client: httpx.Client | None = None) -> None:
        self.settings = settings or get_settings()
        self.http = http_client or httpx.Client(timeout=self.settings.http_timeout_seconds)

    def check_configuration(self) -> None:
        if not self.settings.meta_access_token:
            raise MetaAdsError("Missing Meta Ads setting: META_ACCESS_TOKEN")
        if not self.settings.meta_ad_account_ids:
            raise MetaAdsError("Missing Meta Ads setting: META_AD_ACCOUNT_IDS")

    def fetch_insights(self, account_id: str, month_range: MonthRange) -> list[dict]:
        """Campaign-level insights for one account; API or network errors yield nothing."""

        url = f"{GRAPH_BASE_URL}/{self.settings.meta_api_version}/{account_id}/insights"
        params = {
            "level": "campaign",
            "fields": INSIGHT_FIELDS,
            "time_range": json.dumps({"since": month_range.start.isoformat(), "until": month_range.end.isoformat()}),
            "access_token": self.settings.meta_access_token,
            "limit": PAGE_LIMIT,
        }
        try:
            response = self.http.get(url, params=params)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Error Red (%s): %s", account_id, exc)
            return []

        if not isinstance(data, dict):
            logger.warning("Respuesta inesperada (%s): %s %s", account_id, response.status_code, response.text[:200])
            return []
        error = data.get("error")
        if error or not response.is_success:
            message = error.get("message") if isinstance(error, dict) else error
            logger.warning("Error Meta API (%s): %s %s", account_id, response.status_code, message)
            return []
        rows = data.get("data")
        return [row for row in rows if isinstance(row, dict)] if isinstance(rows, list) else []

    def iter_rows(self, log: Callable[[str], None], *, today: date | None = None) -> Iterator[list[dict[str, object]]]:
        self.check_configuration()
        ranges = get_month_ranges(today)
        accounts = self.settings.meta_ad_account_ids
        log(f"Iniciando Sincronización META (Mensual). {len(accounts)} cuentas.")

        for index, account_id in enumerate(accounts, start=1):
            log(f"[{index}/{len(accounts)}] Procesando cuenta: {account_id}")
            for month_range in ranges:
                insights = self.fetch_insights(account_id, month_range)
                if insights:
                    yield [normalize_insight(account_id, row, month_range) for row in insights]
