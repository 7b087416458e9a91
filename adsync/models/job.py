"""
Job vacancy model
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Text, Index
from sqlalchemy.sql import func

from adsync.models.base import Base
from adsync.models.organization import new_id


class Job(Base):
    """Vacancy record, created manually or imported from a spreadsheet"""
    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_org_external", "org_id", "external_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, index=True, nullable=False, default="active")
    external_id = Column(String, nullable=True)  # Spreadsheet job id
    # `metadata` is reserved on declarative classes
    job_metadata = Column("metadata", JSON, nullable=True)  # company_name, location, vacancy_url

    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
