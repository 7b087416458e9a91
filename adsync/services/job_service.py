"""
Job vacancies: CRUD and spreadsheet import
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adsync.connectors.google_sheets import GoogleSheetsConnector, PrivateSheetsConnector
from adsync.errors import NotFoundError, ValidationError
from adsync.models.job import Job
from adsync.utils.logger import log

# Accepted spreadsheet headers per field, compared lower-cased and trimmed
COLUMN_ALIASES = {
    "company_name": ("company_name", "company name", "company"),
    "job_id": ("job_id", "job id", "id", "jobid"),
    "job_status": ("job_status", "job status", "status"),
    "job_title": ("job_title", "job title", "title", "position"),
    "short_description": ("short_description", "short description", "description", "desc"),
    "location_city": ("location_city", "location city", "location", "city"),
    "vacancy_url": ("vacancy_url", "vacancy url", "url", "link"),
}
REQUIRED_COLUMNS = ("job_id", "job_title")
METADATA_COLUMNS = ("company_name", "location_city", "vacancy_url")
JOB_STATUSES = ("active", "paused", "closed", "draft")


def job_to_dict(job: Job) -> Dict[str, Any]:
    return {
        "id": job.id,
        "org_id": job.org_id,
        "title": job.title,
        "description": job.description,
        "status": job.status,
        "external_id": job.external_id,
        "metadata": job.job_metadata or {},
        "created_by": job.created_by,
        "created_at": job.created_at.isoformat() if job.created_at else None,
        "updated_at": job.updated_at.isoformat() if job.updated_at else None,
    }


def list_jobs(db: Session, org_id: str, status: Optional[str] = None) -> List[Job]:
    query = db.query(Job).filter(Job.org_id == org_id)
    if status:
        query = query.filter(Job.status == status)
    return query.order_by(Job.created_at.desc(), Job.id).all()


def get_job(db: Session, org_id: str, job_id: str) -> Job:
    job = db.query(Job).filter(Job.org_id == org_id, Job.id == job_id).first()
    if not job:
        raise NotFoundError("Job not found")
    return job


def create_job(
    db: Session,
    org_id: str,
    created_by: str,
    title: str,
    description: Optional[str] = None,
    status: str = "active",
    external_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Job:
    if not (title or "").strip():
        raise ValidationError("Job title is required")
    status = status or "active"
    if status not in JOB_STATUSES:
        raise ValidationError(f"Invalid job status: {status}")

    job = Job(
        org_id=org_id,
        title=title.strip(),
        description=description,
        status=status,
        external_id=external_id,
        job_metadata=metadata or {},
        created_by=created_by,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def update_job(db: Session, org_id: str, job_id: str, **changes) -> Job:
    job = get_job(db, org_id, job_id)

    if "title" in changes and changes["title"] is not None:
        if not changes["title"].strip():
            raise ValidationError("Job title is required")
        job.title = changes["title"].strip()
    if changes.get("description") is not None:
        job.description = changes["description"]
    if changes.get("status") is not None:
        if changes["status"] not in JOB_STATUSES:
            raise ValidationError(f"Invalid job status: {changes['status']}")
        job.status = changes["status"]
    if changes.get("metadata") is not None:
        job.job_metadata = {**(job.job_metadata or {}), **changes["metadata"]}

    job.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(job)
    return job


def delete_job(db: Session, org_id: str, job_id: str) -> None:
    job = get_job(db, org_id, job_id)
    db.delete(job)
    db.commit()


# ── Spreadsheet import ───────────────────────────────────────

def map_columns(headers: List[str]) -> Dict[str, int]:
    """Field name -> column index for every recognised header"""
    normalized = [h.strip().lower() for h in headers]
    indices = {}
    for field_name, aliases in COLUMN_ALIASES.items():
        for i, header in enumerate(normalized):
            if header in aliases:
                indices[field_name] = i
                break
    return indices


def _cell(row: List[str], index: Optional[int]) -> Optional[str]:
    if index is None or index >= len(row):
        return None
    return row[index].strip() or None


def import_job_rows(db: Session, org_id: str, rows: List[List[str]], created_by: str) -> Dict[str, Any]:
    """
    Upsert jobs from spreadsheet rows (header row first) by (org_id, external_id).

    Rows missing a job id or title are skipped. A row that fails to save is
    reported in `errors` and does not stop the import.
    """
    if not rows:
        raise ValidationError("No data found in Google Sheets")
    headers, data_rows = rows[0], rows[1:]
    columns = map_columns(headers)

    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise ValidationError(
            f"Missing required columns: {', '.join(missing)}. Found headers: {', '.join(headers)}"
        )

    synced_count = 0
    errors = []

    for line_no, row in enumerate(data_rows, start=2):
        external_id = _cell(row, columns.get("job_id"))
        title = _cell(row, columns.get("job_title"))
        if not external_id or not title:
            log.warning(f"Skipping sheet row {line_no}: missing job_id or job_title")
            continue

        metadata = {}
        for name in METADATA_COLUMNS:
            value = _cell(row, columns.get(name))
            if value is not None:
                metadata[name] = value
        status = (_cell(row, columns.get("job_status")) or "active").lower()
        description = _cell(row, columns.get("short_description"))

        try:
            job = db.query(Job).filter(Job.org_id == org_id, Job.external_id == external_id).first()
            if job:
                job.title = title
                job.status = status
                job.description = description
                job.job_metadata = {**(job.job_metadata or {}), **metadata}
                job.updated_at = datetime.utcnow()
            else:
                db.add(Job(
                    org_id=org_id,
                    external_id=external_id,
                    title=title,
                    status=status,
                    description=description,
                    job_metadata=metadata,
                    created_by=created_by,
                ))
            db.commit()
            synced_count += 1
        except SQLAlchemyError as e:
            db.rollback()
            log.error(f"Sheet row {line_no} ({external_id}) failed: {e}")
            errors.append(f"Row {line_no}: {e}")

    log.info(f"Job import for org {org_id}: {synced_count} synced, {len(errors)} errors")

    response: Dict[str, Any] = {
        "success": True,
        "synced_count": synced_count,
        "total_rows": len(data_rows),
    }
    if errors:
        response["errors"] = errors
    return response


async def sync_jobs_from_sheet(
    db: Session,
    org_id: str,
    sheet_id: str,
    created_by: str,
    connector: Optional[GoogleSheetsConnector] = None
) -> Dict[str, Any]:
    """Download a public Google Sheet and import its rows as jobs"""
    connector = connector or GoogleSheetsConnector()
    rows = await connector.fetch_rows(sheet_id)
    return import_job_rows(db, org_id, rows, created_by)


async def sync_jobs_from_private_sheet(
    db: Session,
    org_id: str,
    sheet_id: str,
    created_by: str,
    connector: PrivateSheetsConnector,
    sheet_range: str = "A:Z"
) -> Dict[str, Any]:
    """Read a private sheet with the user's Google token and import its rows as jobs"""
    rows = await connector.fetch_rows(sheet_id, sheet_range)
    return import_job_rows(db, org_id, rows, created_by)
