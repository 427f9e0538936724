from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from timeboxing.core.auth import ensure_user_principal
from timeboxing.models.entities import AdsPlatform
from timeboxing.repositories.ads_repository import AdsRepository
from timeboxing.services import ads_service

API = "/api/v1"


def _campaign(client_id: str, client_name: str, campaign_id: str, cost: float, conversions: float) -> dict:
    return {
        "client_id": client_id,
        "client_name": client_name,
        "campaign_id": campaign_id,
        "campaign_name": f"Campaign {campaign_id}",
        "status": "ENABLED",
        "date": date(2026, 3, 1),
        "cost": cost,
        "conversions_value": 0.0,
        "conversions": conversions,
        "clicks": 20,
        "impressions": 400,
    }


def _seed_meta(db: Session) -> None:
    AdsRepository(db).upsert_campaigns(
        AdsPlatform.META,
        [
            _campaign("act_2", "Zeta", "20", 50.0, 5),
            _campaign("act_1", "Acme", "10", 100.0, 4),
            _campaign("act_1", "Acme", "11", 20.0, 0),
        ],
    )
    db.commit()


def test_campaign_report_groups_accounts(client: TestClient, db_session: Session, admin_headers: dict[str, str]) -> None:
    _seed_meta(db_session)

    response = client.get(f"{API}/ads/meta/campaigns", headers=admin_headers, params={"month": "2026-03"})

    assert response.status_code == 200
    body = response.json()
    assert [account["client_name"] for account in body["accounts"]] == ["Acme", "Zeta"]
    acme = body["accounts"][0]
    assert len(acme["campaigns"]) == 2
    assert acme["totals"]["cost"] == 120.0
    assert acme["totals"]["cpa"] == 30.0
    assert acme["totals"]["ctr"] == 5.0
    assert body["totals"]["cost"] == 170.0
    assert "daily_budget" not in acme["campaigns"][0]

    other_month = client.get(f"{API}/ads/meta/campaigns", headers=admin_headers, params={"month": "2026-04"})
    assert other_month.json()["accounts"] == []


def test_account_summary(
    client: TestClient,
    db_session: Session,
    admin_headers: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _seed_meta(db_session)
    calls: list[tuple] = []

    def fake_summary(account_name, campaigns, total_spend, total_conversions, *, service=None) -> str:
        calls.append((account_name, len(campaigns), total_spend, total_conversions))
        return "Resumen"

    monkeypatch.setattr(ads_service, "generate_ads_summary", fake_summary)

    response = client.get(f"{API}/ads/meta/accounts/act_1/summary", headers=admin_headers, params={"month": "2026-03"})

    assert response.status_code == 200
    assert response.json()["summary"] == "Resumen"
    assert calls == [("Acme", 2, 120.0, 4.0)]

    missing = client.get(f"{API}/ads/meta/accounts/act_9/summary", headers=admin_headers, params={"month": "2026-03"})
    assert missing.status_code == 404


def test_sync_job_requests(client: TestClient, admin_headers: dict[str, str]) -> None:
    created = client.post(f"{API}/ads/google/sync-jobs", headers=admin_headers)
    assert created.status_code == 202
    job = created.json()
    assert job["platform"] == "google"
    assert job["status"] == "pending"

    duplicate = client.post(f"{API}/ads/google/sync-jobs", headers=admin_headers)
    assert duplicate.status_code == 409

    other_platform = client.post(f"{API}/ads/meta/sync-jobs", headers=admin_headers)
    assert other_platform.status_code == 202

    listed = client.get(f"{API}/ads/google/sync-jobs", headers=admin_headers).json()["items"]
    assert [item["id"] for item in listed] == [job["id"]]

    fetched = client.get(f"{API}/ads/sync-jobs/{job['id']}", headers=admin_headers)
    assert fetched.json()["status"] == "pending"
    assert client.get(f"{API}/ads/sync-jobs/9999", headers=admin_headers).status_code == 404


def test_platform_sections_are_enforced(client: TestClient, db_session: Session) -> None:
    ensure_user_principal(
        db_session,
        subject="subject-google",
        email="google@test.local",
        display_name="Google only",
        permissions={"can_access_meta_ads": False, "can_access_ads_reports": False},
    )
    headers = {"X-AUTH-SUBJECT": "subject-google", "X-AUTH-EMAIL": "google@test.local"}

    assert client.get(f"{API}/ads/google/campaigns", headers=headers, params={"month": "2026-03"}).status_code == 200
    assert client.get(f"{API}/ads/meta/campaigns", headers=headers, params={"month": "2026-03"}).status_code == 403
    assert client.post(f"{API}/ads/meta/sync-jobs", headers=headers).status_code == 403
