"""
Tenant models: organizations, memberships and pending invites
"""
import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.sql import func

from adsync.models.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Organization(Base):
    """Tenant boundary. Owns members, campaigns, integrations and jobs."""
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Member(Base):
    """A user's membership in an organization"""
    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("user_id", "org_id", name="uq_members_user_org"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String, index=True, nullable=False)  # Auth provider user id
    org_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False)
    role = Column(String, nullable=False, default="member")  # owner, admin, member

    created_at = Column(DateTime, server_default=func.now())


class Invite(Base):
    """Pending invitation to join an organization"""
    __tablename__ = "invites"

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=False)
    role = Column(String, nullable=False, default="member")
    org_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False)
    ad_account_id = Column(JSON, nullable=True)  # Ad accounts pre-assigned to the invitee

    created_at = Column(DateTime, server_default=func.now())
