"""Repository helpers for ad-platform campaigns and sync jobs."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import and_, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from timeboxing.models.entities import (
    AdsPlatform,
    AdsSyncJob,
    GoogleAdsCampaign,
    MetaAdsCampaign,
    SyncJobStatus,
)

CAMPAIGN_MODELS: dict[AdsPlatform, type[GoogleAdsCampaign] | type[MetaAdsCampaign]] = {
    AdsPlatform.GOOGLE: GoogleAdsCampaign,
    AdsPlatform.META: MetaAdsCampaign,
}

CONFLICT_COLUMNS = ("campaign_id", "date")


class AdsRepository:
    """Persistence operations for campaign metrics and sync job rows."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Sync jobs ----------
    def add_job(self, job: AdsSyncJob) -> AdsSyncJob:
        self.db.add(job)
        self.db.flush()
        return job

    def get_job(self, job_id: int) -> AdsSyncJob | None:
        return self.db.scalar(select(AdsSyncJob).where(AdsSyncJob.id == job_id))

    def list_jobs(self, platform: AdsPlatform, *, limit: int = 20) -> list[AdsSyncJob]:
        return self.db.scalars(
            select(AdsSyncJob)
            .where(AdsSyncJob.platform == platform)
            .order_by(AdsSyncJob.created_at.desc(), AdsSyncJob.id.desc())
            .limit(limit)
        ).all()

    def first_pending_job(self, platform: AdsPlatform) -> AdsSyncJob | None:
        return self.db.scalar(
            select(AdsSyncJob)
            .where(
                and_(
                    AdsSyncJob.platform == platform,
                    AdsSyncJob.status == SyncJobStatus.PENDING,
                )
            )
            .order_by(AdsSyncJob.created_at.asc(), AdsSyncJob.id.asc())
            .limit(1)
        )

    def notify_workers(self, channel: str, payload: str) -> None:
        """Wake listening workers; a no-op outside Postgres."""

        if self.db.get_bind().dialect.name != "postgresql":
            return
        self.db.execute(text("SELECT pg_notify(:channel, :payload)"), {"channel": channel, "payload": payload})

    # ---------- Campaign rows ----------
    def upsert_campaigns(self, platform: AdsPlatform, rows: Sequence[dict[str, object]]) -> int:
        """Insert or update campaign rows keyed by (campaign_id, date)."""

        # A single ON CONFLICT statement may touch each key once; the last row wins.
        unique_rows = list({tuple(row[name] for name in CONFLICT_COLUMNS): row for row in rows}.values())
        if not unique_rows:
            return 0

        model = CAMPAIGN_MODELS[platform]
        dialect_name = self.db.get_bind().dialect.name
        if dialect_name == "postgresql":
            statement = postgresql.insert(model).values(unique_rows)
        elif dialect_name == "sqlite":
            statement = sqlite.insert(model).values(unique_rows)
        else:
            raise RuntimeError(f"Upsert is not supported for dialect {dialect_name!r}.")

        update_columns = {
            column.name: statement.excluded[column.name]
            for column in model.__table__.columns
            if column.name not in CONFLICT_COLUMNS and not column.primary_key
        }
        statement = statement.on_conflict_do_update(index_elements=list(CONFLICT_COLUMNS), set_=update_columns)
        self.db.execute(statement)
        self.db.flush()
        return len(unique_rows)

    def list_campaigns(
        self,
        platform: AdsPlatform,
        *,
        from_month: date,
        to_month: date,
        client_id: str | None = None,
    ) -> list[GoogleAdsCampaign] | list[MetaAdsCampaign]:
        model = CAMPAIGN_MODELS[platform]
        conditions = [model.date >= from_month, model.date <= to_month]
        if client_id is not None:
            conditions.append(model.client_id == client_id)
        return self.db.scalars(
            select(model)
            .where(and_(*conditions))
            .order_by(model.client_name.asc(), model.cost.desc(), model.campaign_id.asc())
        ).all()
