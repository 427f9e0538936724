"""Google Ads and Meta Ads campaign endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from timeboxing.core.auth import Permission, RequestUserContext, has_permission, require_permission
from timeboxing.db.dependencies import get_db_session
from timeboxing.models.entities import AdsPlatform
from timeboxing.services.ads_service import AdsService

router = APIRouter(prefix="/ads", tags=["ads"])

PLATFORM_PERMISSIONS = {
    AdsPlatform.GOOGLE: {Permission.GOOGLE_ADS, Permission.ADS_REPORTS},
    AdsPlatform.META: {Permission.META_ADS, Permission.ADS_REPORTS},
}


def _service(db: Session) -> AdsService:
    return AdsService(db)


def _ensure_platform_access(context: RequestUserContext, platform: AdsPlatform) -> None:
    if not has_permission(context, PLATFORM_PERMISSIONS[platform]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions for this section.",
        )


@router.get("/{platform}/campaigns")
def list_campaigns(
    platform: AdsPlatform,
    month: str = Query(..., description="YYYY-MM"),
    client_id: str | None = Query(default=None),
    context: RequestUserContext = Depends(
        require_permission(Permission.GOOGLE_ADS, Permission.META_ADS, Permission.ADS_REPORTS)
    ),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Campaign rows of the month grouped by ad account, with totals."""

    _ensure_platform_access(context, platform)
    return _service(db).campaign_report(platform, month, client_id=client_id)


@router.get("/{platform}/accounts/{client_id}/summary")
def get_account_summary(
    platform: AdsPlatform,
    client_id: str,
    month: str = Query(..., description="YYYY-MM"),
    context: RequestUserContext = Depends(require_permission(Permission.ADS_REPORTS)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """AI-written executive summary for one ad account."""

    _ensure_platform_access(context, platform)
    return _service(db).account_summary(platform, month, client_id)


@router.get("/{platform}/sync-jobs")
def list_sync_jobs(
    platform: AdsPlatform,
    limit: int = Query(default=20, ge=1, le=100),
    context: RequestUserContext = Depends(
        require_permission(Permission.GOOGLE_ADS, Permission.META_ADS, Permission.ADS_REPORTS)
    ),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    _ensure_platform_access(context, platform)
    service = _service(db)
    return {"items": [service.serialize_job(job) for job in service.list_jobs(platform, limit=limit)]}


@router.post("/{platform}/sync-jobs", status_code=status.HTTP_202_ACCEPTED)
def request_sync(
    platform: AdsPlatform,
    context: RequestUserContext = Depends(
        require_permission(Permission.GOOGLE_ADS, Permission.META_ADS, Permission.ADS_REPORTS)
    ),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Queue a sync; the platform worker picks it up."""

    _ensure_platform_access(context, platform)
    service = _service(db)
    return service.serialize_job(service.request_sync(platform))


@router.get("/sync-jobs/{job_id}")
def get_sync_job(
    job_id: int,
    context: RequestUserContext = Depends(
        require_permission(Permission.GOOGLE_ADS, Permission.META_ADS, Permission.ADS_REPORTS)
    ),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    job = service.get_job(job_id)
    _ensure_platform_access(context, job.platform)
    return service.serialize_job(job)
