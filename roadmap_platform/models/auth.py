"""
Auth Models: users, user groups, sessions.

Identity is owned by an external subsystem; these tables hold the records
the access-policy evaluator reads (admin flag, group membership) and the
session rows that can be revoked to force a logout.
"""

import uuid
from datetime import datetime, timezone

from roadmap_platform.models import db


user_group_members = db.Table(
    "user_group_members",
    db.Column("user_id", db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    db.Column("group_id", db.Integer, db.ForeignKey("user_groups.id", ondelete="CASCADE"), primary_key=True),
)


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = db.Column(db.String(100), unique=True, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    groups = db.relationship("UserGroup", secondary=user_group_members, back_populates="users")
    sessions = db.relationship("Session", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")

    @property
    def group_names(self):
        return sorted(g.name for g in self.groups)


# ═══════════════════════════════════════════════════════════════
# 2. USER GROUPS
# ═══════════════════════════════════════════════════════════════
class UserGroup(db.Model):
    __tablename__ = "user_groups"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)  # case-sensitive, e.g. "Public"

    users = db.relationship("User", secondary=user_group_members, back_populates="groups")


# ═══════════════════════════════════════════════════════════════
# 3. SESSIONS
# ═══════════════════════════════════════════════════════════════
class Session(db.Model):
    __tablename__ = "sessions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    revoked_at = db.Column(db.DateTime(timezone=True))
    revoke_reason = db.Column(db.String(50))  # logout, bad_session, expired

    __table_args__ = (
        db.Index("ix_sessions_user_id", "user_id"),
    )

    user = db.relationship("User", back_populates="sessions")
