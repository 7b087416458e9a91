"""
Vendor credential store model
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Text
from sqlalchemy.sql import func

from adsync.models.base import Base
from adsync.models.organization import new_id


class Integration(Base):
    """
    Stored Meta/TikTok credential for an organization.

    user_id NULL = org-level credential. A user-level credential for the same
    (org, vendor) takes precedence when resolving which one to sync with.
    """
    __tablename__ = "integrations"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, index=True, nullable=True)
    integration_type = Column(String, index=True, nullable=False)  # meta, tiktok

    access_token = Column(Text, nullable=False)
    ad_account_id = Column(JSON, nullable=True)  # List of ad account / advertiser ids
    account_name = Column(String, nullable=True)
    status = Column(String, index=True, nullable=False, default="active")  # active, inactive

    last_sync_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def account_ids(self):
        """Stored account ids as a de-duplicated list, order preserved"""
        raw = self.ad_account_id
        if raw is None:
            return []
        if not isinstance(raw, list):
            raw = [raw]
        seen = []
        for account_id in raw:
            if account_id and str(account_id) not in seen:
                seen.append(str(account_id))
        return seen
