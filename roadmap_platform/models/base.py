"""
TimestampedModel: Abstract base class for every authorizable resource.

All roadmap resources inherit from TimestampedModel instead of db.Model
directly. This adds:
  - a UUID string primary key
  - created_at / updated_at columns (updated_at is the lastModified value
    the concurrency guard compares against)
  - touch() to bump updated_at when only relationship rows changed
"""

import uuid

from roadmap_platform.models import db
from roadmap_platform.utils.helpers import to_epoch_ms, utcnow


def new_id():
    return str(uuid.uuid4())


class TimestampedModel(db.Model):
    """Abstract base for resource tables."""
    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def touch(self):
        """Mark the resource as modified now.

        Needed because many-to-many changes (editors, links) do not issue an
        UPDATE on the owning row, so ``onupdate`` would never fire.
        """
        self.updated_at = utcnow()

    @property
    def last_modified_ms(self):
        return to_epoch_ms(self.updated_at)

    def _timestamps(self):
        return {
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "timestamp": self.last_modified_ms,
        }
