"""Database models for adsync"""

from adsync.models.organization import Organization, Member, Invite
from adsync.models.integration import Integration
from adsync.models.job import Job
from adsync.models.campaign import Campaign, Metric, CAMPAIGN_STATUSES, PLATFORMS

__all__ = [
    "Organization",
    "Member",
    "Invite",
    "Integration",
    "Job",
    "Campaign",
    "Metric",
    "CAMPAIGN_STATUSES",
    "PLATFORMS",
]
