"""Campaign listings, sync job requests and AI summaries for ad platforms."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from timeboxing.core.config import get_settings
from timeboxing.models.entities import AdsPlatform, AdsSyncJob, GoogleAdsCampaign, MetaAdsCampaign, SyncJobStatus
from timeboxing.repositories.ads_repository import AdsRepository
from timeboxing.services.ai_service import AIService, generate_ads_summary
from timeboxing.services.capacity import month_bounds
from timeboxing.services.planning_service import parse_month_or_422

logger = logging.getLogger(__name__)

ACTIVE_JOB_STATUSES = {SyncJobStatus.PENDING, SyncJobStatus.RUNNING}


def _r2(value: float) -> float:
    return round(value + 0.0, 2)


class AdsService:
    def __init__(self, db: Session, *, ai_service: AIService | None = None) -> None:
        self.db = db
        self.repo = AdsRepository(db)
        self.settings = get_settings()
        self.ai_service = ai_service

    # ---------- Serialization ----------
    @staticmethod
    def serialize_job(job: AdsSyncJob) -> dict[str, object]:
        return {
            "id": job.id,
            "platform": job.platform.value,
            "status": job.status.value,
            "logs": list(job.logs or []),
            "created_at": job.created_at.isoformat(),
            "updated_at": job.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_campaign(row: GoogleAdsCampaign | MetaAdsCampaign) -> dict[str, object]:
        payload = {
            "client_id": row.client_id,
            "client_name": row.client_name,
            "campaign_id": row.campaign_id,
            "campaign_name": row.campaign_name,
            "status": row.status,
            "date": row.date.isoformat(),
            "cost": row.cost,
            "conversions_value": row.conversions_value,
            "conversions": row.conversions,
            "clicks": row.clicks,
            "impressions": row.impressions,
        }
        if isinstance(row, GoogleAdsCampaign):
            payload["daily_budget"] = row.daily_budget
        return payload

    @staticmethod
    def summarize(rows: list[dict[str, object]]) -> dict[str, float]:
        cost = sum(float(row["cost"] or 0) for row in rows)
        conversions = sum(float(row["conversions"] or 0) for row in rows)
        clicks = sum(int(row["clicks"] or 0) for row in rows)
        impressions = sum(int(row["impressions"] or 0) for row in rows)
        return {
            "cost": _r2(cost),
            "conversions": _r2(conversions),
            "conversions_value": _r2(sum(float(row["conversions_value"] or 0) for row in rows)),
            "clicks": clicks,
            "impressions": impressions,
            "ctr": _r2(clicks / impressions * 100) if impressions > 0 else 0.0,
            "cpa": _r2(cost / conversions) if conversions > 0 else 0.0,
        }

    # ---------- Campaigns ----------
    def campaign_report(self, platform: AdsPlatform, month: str, *, client_id: str | None = None) -> dict[str, object]:
        """Campaigns of a month grouped per ad account, with totals."""

        year, month_no = parse_month_or_422(month)
        month_start, month_end = month_bounds(year, month_no)
        rows = [
            self.serialize_campaign(row)
            for row in self.repo.list_campaigns(platform, from_month=month_start, to_month=month_end, client_id=client_id)
        ]

        accounts: dict[str, dict[str, object]] = {}
        for row in rows:
            account = accounts.setdefault(
                str(row["client_id"]),
                {"client_id": row["client_id"], "client_name": row["client_name"], "campaigns": []},
            )
            account["campaigns"].append(row)
        for account in accounts.values():
            account["totals"] = self.summarize(account["campaigns"])

        return {
            "platform": platform.value,
            "month": month,
            "accounts": sorted(accounts.values(), key=lambda item: str(item["client_name"] or "").lower()),
            "totals": self.summarize(rows),
        }

    def account_summary(self, platform: AdsPlatform, month: str, client_id: str) -> dict[str, object]:
        report = self.campaign_report(platform, month, client_id=client_id)
        if not report["accounts"]:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No campaign data for this account.")

        account = report["accounts"][0]
        summary = generate_ads_summary(
            str(account["client_name"] or client_id),
            account["campaigns"],
            account["totals"]["cost"],
            account["totals"]["conversions"],
            service=self.ai_service,
        )
        return {"platform": platform.value, "month": month, "client_id": client_id, "summary": summary}

    # ---------- Sync jobs ----------
    def list_jobs(self, platform: AdsPlatform, *, limit: int = 20) -> list[AdsSyncJob]:
        return self.repo.list_jobs(platform, limit=limit)

    def get_job(self, job_id: int) -> AdsSyncJob:
        job = self.repo.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sync job not found.")
        return job

    def request_sync(self, platform: AdsPlatform) -> AdsSyncJob:
        """Queue a sync job and wake the platform worker."""

        active = [job for job in self.repo.list_jobs(platform, limit=5) if job.status in ACTIVE_JOB_STATUSES]
        if active:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A {platform.value} sync is already {active[0].status.value}.",
            )

        now = datetime.utcnow()
        job = self.repo.add_job(
            AdsSyncJob(platform=platform, status=SyncJobStatus.PENDING, logs=[], created_at=now, updated_at=now)
        )
        self.repo.notify_workers(self.settings.sync_notify_channel, f"{platform.value}:{job.id}")
        self.db.commit()
        self.db.refresh(job)
        logger.info("Queued %s sync job %s", platform.value, job.id)
        return job
