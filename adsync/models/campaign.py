"""
Campaign and daily metric models
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, JSON, Numeric, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from adsync.models.base import Base
from adsync.models.organization import new_id


CAMPAIGN_STATUSES = ("active", "paused", "draft", "deleted", "archived", "unknown")
PLATFORMS = ("meta", "tiktok")


class Campaign(Base):
    """
    Recruitment/marketing campaign, created by the campaign wizard or by sync.

    Synced rows are matched on (org_id, platform, external_id), falling back to
    name for rows that predate external ids. Sync never deletes rows.
    """
    __tablename__ = "campaigns"
    __table_args__ = (
        Index("ix_campaigns_org_platform_name", "org_id", "platform", "name"),
        Index("ix_campaigns_org_platform_external", "org_id", "platform", "external_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False)

    name = Column(String, nullable=False)
    status = Column(String, index=True, nullable=False, default="draft")
    objective = Column(String, nullable=False, default="")
    budget = Column(Numeric(12, 2), nullable=False, default=0)
    platform = Column(String, index=True, nullable=True)  # meta, tiktok, NULL = manual
    external_id = Column(String, nullable=True)  # Vendor campaign id

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    # Targeting and creative blobs (opaque JSON from the wizard)
    location_targeting = Column(JSON, nullable=False, default=dict)
    audience_targeting = Column(JSON, nullable=False, default=dict)
    ad_copy = Column(Text, nullable=True)
    cta_button = Column(String, nullable=True)
    creative_assets = Column(JSON, nullable=True)

    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)

    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    metrics = relationship(
        "Metric",
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Metric(Base):
    """Performance snapshot for one campaign on one date"""
    __tablename__ = "metrics"

    id = Column(String(36), primary_key=True, default=new_id)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    date = Column(Date, index=True, nullable=True)

    impressions = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)
    spend = Column(Numeric(12, 2), nullable=False, default=0)  # Major currency units
    leads = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now())

    campaign = relationship("Campaign", back_populates="metrics")
