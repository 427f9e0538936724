"""Job runner shared by the Google Ads and Meta Ads workers.

A job is a row in ``ads_sync_logs``. The API inserts it as ``pending`` and
sends a Postgres notification; the worker claims it, streams progress lines
into ``logs`` and leaves it ``completed`` or ``error``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Protocol

import psycopg
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timeboxing.core.config import Settings, get_settings
from timeboxing.models.entities import AdsPlatform, AdsSyncJob, SyncJobStatus
from timeboxing.repositories.ads_repository import AdsRepository

logger = logging.getLogger(__name__)


class CampaignSource(Protocol):
    def iter_rows(self, log: Callable[[str], None]) -> Iterator[list[dict[str, object]]]: ...


def append_log_line(job: AdsSyncJob, message: str, *, max_lines: int) -> None:
    job.logs = [*(job.logs or []), message][-max_lines:]
    job.updated_at = datetime.utcnow()


def listen_dsn(database_url: str) -> str | None:
    """libpq DSN for LISTEN, or ``None`` when the database is not Postgres."""

    url = make_url(database_url)
    if url.get_backend_name() != "postgresql":
        return None
    return url.set(drivername="postgresql").render_as_string(hide_password=False)


class SyncJobRunner:
    """Process sync jobs for one ad platform, one at a time."""

    def __init__(
        self,
        platform: AdsPlatform,
        source: CampaignSource,
        session_factory: Callable[[], Session],
        settings: Settings | None = None,
    ) -> None:
        self.platform = platform
        self.source = source
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    def create_job(self) -> int:
        with self.session_factory() as db:
            now = datetime.utcnow()
            job = AdsRepository(db).add_job(
                AdsSyncJob(
                    platform=self.platform,
                    status=SyncJobStatus.PENDING,
                    logs=[],
                    created_at=now,
                    updated_at=now,
                )
            )
            db.commit()
            return job.id

    def claim_pending_job(self) -> int | None:
        """Id of the oldest pending job for this platform."""

        with self.session_factory() as db:
            job = AdsRepository(db).first_pending_job(self.platform)
            return job.id if job is not None else None

    def process_job(self, job_id: int) -> SyncJobStatus | None:
        with self.session_factory() as db:
            repo = AdsRepository(db)
            job = repo.get_job(job_id)
            if job is None:
                logger.warning("Sync job %s not found", job_id)
                return None

            job.status = SyncJobStatus.RUNNING
            job.updated_at = datetime.utcnow()
            db.commit()

            def log(message: str) -> None:
                logger.info("[Job %s] %s", job_id, message)
                append_log_line(job, message, max_lines=self.settings.sync_max_log_lines)
                db.commit()

            try:
                total_rows = 0
                for rows in self.source.iter_rows(log):
                    try:
                        total_rows += repo.upsert_campaigns(self.platform, rows)
                        db.commit()
                    except SQLAlchemyError as exc:
                        db.rollback()
                        logger.error("Error DB for job %s: %s", job_id, exc)
                log(f"Finalizado. {total_rows} filas actualizadas.")
                job.status = SyncJobStatus.COMPLETED
            except Exception as exc:
                logger.exception("Sync job %s failed", job_id)
                db.rollback()
                log(f"ERROR: {exc}")
                job.status = SyncJobStatus.ERROR

            job.updated_at = datetime.utcnow()
            db.commit()
            return job.status

    def run_pending(self) -> int:
        """Drain pending jobs; returns how many were processed."""

        processed = 0
        while (job_id := self.claim_pending_job()) is not None:
            self.process_job(job_id)
            processed += 1
        return processed

    def wait_for_notification(self, connection: psycopg.Connection | None) -> None:
        interval = self.settings.sync_poll_interval_seconds
        if connection is None:
            time.sleep(interval)
            return
        for notify in connection.notifies(timeout=interval, stop_after=1):
            logger.debug("Notification on %s: %s", notify.channel, notify.payload)

    def run_forever(self) -> None:
        """Process jobs as they are announced, polling as a safety net."""

        dsn = listen_dsn(self.settings.database_url)
        connection = None
        if dsn is not None:
            connection = psycopg.connect(dsn, autocommit=True)
            connection.execute(f"LISTEN {self.settings.sync_notify_channel}")

        logger.info("%s worker ready (poll every %ss)", self.platform.value, self.settings.sync_poll_interval_seconds)
        try:
            while True:
                self.run_pending()
                self.wait_for_notification(connection)
        finally:
            if connection is not None:
                connection.close()
