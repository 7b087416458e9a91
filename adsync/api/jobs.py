"""
Job vacancy endpoints
"""
from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from adsync.api.deps import require_user, resolve_org
from adsync.config import get_settings
from adsync.connectors.google_sheets import GoogleSheetsConnector, PrivateSheetsConnector
from adsync.errors import ValidationError
from adsync.models.base import get_db
from adsync.services import job_service
from adsync.utils.logger import log

settings = get_settings()

router = APIRouter(prefix="/jobs", tags=["jobs"])


class CreateJobRequest(BaseModel):
    org_id: str | None = None
    title: str
    description: str | None = None
    status: str = "active"
    external_id: str | None = None
    metadata: Dict[str, Any] | None = None


class UpdateJobRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    status: str | None = None
    metadata: Dict[str, Any] | None = None


class SheetSyncRequest(BaseModel):
    org_id: str | None = None
    sheet_id: str | None = None
    sync_type: str = "jobs"


class PrivateSheetSyncRequest(BaseModel):
    org_id: str | None = None
    sheet_id: str
    access_token: str
    sheet_range: str = "A:Z"


class SheetListRequest(BaseModel):
    access_token: str


def get_sheets_connector() -> GoogleSheetsConnector:
    return GoogleSheetsConnector()


def get_private_sheets_factory() -> Callable[[str], PrivateSheetsConnector]:
    return PrivateSheetsConnector


@router.get("")
async def list_jobs(
    org_id: str | None = Query(None),
    status: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    jobs = job_service.list_jobs(db, org_id, status)
    return {"success": True, "jobs": [job_service.job_to_dict(j) for j in jobs], "total": len(jobs)}


@router.post("", status_code=201)
async def create_job(
    body: CreateJobRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, body.org_id)
    job = job_service.create_job(
        db, org_id, user_id,
        title=body.title,
        description=body.description,
        status=body.status,
        external_id=body.external_id,
        metadata=body.metadata,
    )
    return {"success": True, "job": job_service.job_to_dict(job)}


@router.post("/sync-sheet")
async def sync_sheet(
    body: SheetSyncRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    connector: GoogleSheetsConnector = Depends(get_sheets_connector),
):
    """
    Import jobs from a publicly viewable Google Sheet.

    Required columns: job_id and job_title (common header variants accepted).
    """
    if body.sync_type != "jobs":
        raise ValidationError('Invalid sync_type. Use "jobs".')
    org_id = resolve_org(db, user_id, body.org_id)
    sheet_id = body.sheet_id or settings.sheets_default_id

    log.info(f"Job sheet sync for org {org_id} from sheet {sheet_id}")
    return await job_service.sync_jobs_from_sheet(db, org_id, sheet_id, user_id, connector=connector)


@router.post("/sync-private-sheet")
async def sync_private_sheet(
    body: PrivateSheetSyncRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    connector_factory: Callable[[str], PrivateSheetsConnector] = Depends(get_private_sheets_factory),
):
    """Import jobs from a private sheet using the caller's Google OAuth access token"""
    org_id = resolve_org(db, user_id, body.org_id)
    connector = connector_factory(body.access_token)

    log.info(f"Private job sheet sync for org {org_id} from sheet {body.sheet_id}")
    return await job_service.sync_jobs_from_private_sheet(
        db, org_id, body.sheet_id, user_id, connector=connector, sheet_range=body.sheet_range
    )


@router.post("/sheets")
async def list_sheets(
    body: SheetListRequest,
    user_id: str = Depends(require_user),
    connector_factory: Callable[[str], PrivateSheetsConnector] = Depends(get_private_sheets_factory),
):
    """Spreadsheets visible to the caller's Google account, for picking an import source"""
    sheets = await connector_factory(body.access_token).list_spreadsheets()
    return {"success": True, "sheets": sheets}


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    return {"success": True, "job": job_service.job_to_dict(job_service.get_job(db, org_id, job_id))}


@router.patch("/{job_id}")
async def update_job(
    job_id: str,
    body: UpdateJobRequest,
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    job = job_service.update_job(db, org_id, job_id, **body.model_dump(exclude_unset=True))
    return {"success": True, "job": job_service.job_to_dict(job)}


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    job_service.delete_job(db, org_id, job_id)
    return {"success": True}
