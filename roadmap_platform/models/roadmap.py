"""
Roadmap Models: meta roadmaps, roadmaps, goals, actions and their
dependent records (data series, links, comments).

Hierarchy:
    MetaRoadmap (tree via parent_roadmap_id)
      └── Roadmap            ← carries the ACL for itself and everything below
            └── Goal         (+ DataSeries, Links, Comments)
                  └── Action (+ Links, Comments)

MetaRoadmap carries its own ACL as well; Goal and Action never do.
Links are shared many-to-many so one link row may back several parents;
comments point at their parent through nullable FKs. Both become orphans
when their last parent goes away and are removed by orphan pruning.
"""

from roadmap_platform.models import db
from roadmap_platform.models.base import TimestampedModel, new_id
from roadmap_platform.utils.helpers import utcnow

ROADMAP_TYPES = ("NATIONAL", "REGIONAL", "MUNICIPAL", "LOCAL", "OTHER")
NATIONAL = "NATIONAL"

DATA_SERIES_FIRST_YEAR = 2020
DATA_SERIES_LAST_YEAR = 2050


def _member_table(name, owner_column, owner_table, target_column, target_table, target_type):
    return db.Table(
        name,
        db.Column(owner_column, db.String(36),
                  db.ForeignKey(f"{owner_table}.id", ondelete="CASCADE"), primary_key=True),
        db.Column(target_column, target_type,
                  db.ForeignKey(f"{target_table}.id", ondelete="CASCADE"), primary_key=True),
    )


# ── ACL association tables ───────────────────────────────────────────────
meta_roadmap_editors = _member_table(
    "meta_roadmap_editors", "meta_roadmap_id", "meta_roadmaps", "user_id", "users", db.String(36))
meta_roadmap_viewers = _member_table(
    "meta_roadmap_viewers", "meta_roadmap_id", "meta_roadmaps", "user_id", "users", db.String(36))
meta_roadmap_edit_groups = _member_table(
    "meta_roadmap_edit_groups", "meta_roadmap_id", "meta_roadmaps", "group_id", "user_groups", db.Integer)
meta_roadmap_view_groups = _member_table(
    "meta_roadmap_view_groups", "meta_roadmap_id", "meta_roadmaps", "group_id", "user_groups", db.Integer)

roadmap_editors = _member_table(
    "roadmap_editors", "roadmap_id", "roadmaps", "user_id", "users", db.String(36))
roadmap_viewers = _member_table(
    "roadmap_viewers", "roadmap_id", "roadmaps", "user_id", "users", db.String(36))
roadmap_edit_groups = _member_table(
    "roadmap_edit_groups", "roadmap_id", "roadmaps", "group_id", "user_groups", db.Integer)
roadmap_view_groups = _member_table(
    "roadmap_view_groups", "roadmap_id", "roadmaps", "group_id", "user_groups", db.Integer)

# ── Link association tables ──────────────────────────────────────────────
meta_roadmap_links = _member_table(
    "meta_roadmap_links", "meta_roadmap_id", "meta_roadmaps", "link_id", "links", db.String(36))
goal_links = _member_table(
    "goal_links", "goal_id", "goals", "link_id", "links", db.String(36))
action_links = _member_table(
    "action_links", "action_id", "actions", "link_id", "links", db.String(36))

LINK_TABLES = (meta_roadmap_links, goal_links, action_links)


def _acl_dict(obj):
    return {
        "author": obj.author.username if obj.author else None,
        "editors": sorted(u.username for u in obj.editors),
        "viewers": sorted(u.username for u in obj.viewers),
        "edit_groups": sorted(g.name for g in obj.edit_groups),
        "view_groups": sorted(g.name for g in obj.view_groups),
    }


# ═══════════════════════════════════════════════════════════════
# 1. META ROADMAPS
# ═══════════════════════════════════════════════════════════════
class MetaRoadmap(TimestampedModel):
    __tablename__ = "meta_roadmaps"

    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    type = db.Column(db.String(20), nullable=False, default="OTHER")
    actor = db.Column(db.String(300))
    parent_roadmap_id = db.Column(
        db.String(36), db.ForeignKey("meta_roadmaps.id", ondelete="SET NULL"), nullable=True
    )
    author_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)

    author = db.relationship("User", foreign_keys=[author_id])
    editors = db.relationship("User", secondary=meta_roadmap_editors)
    viewers = db.relationship("User", secondary=meta_roadmap_viewers)
    edit_groups = db.relationship("UserGroup", secondary=meta_roadmap_edit_groups)
    view_groups = db.relationship("UserGroup", secondary=meta_roadmap_view_groups)
    links = db.relationship("Link", secondary=meta_roadmap_links)

    parent = db.relationship("MetaRoadmap", remote_side="MetaRoadmap.id", back_populates="children")
    children = db.relationship("MetaRoadmap", back_populates="parent")
    roadmaps = db.relationship(
        "Roadmap", back_populates="meta_roadmap",
        cascade="all, delete-orphan", order_by="Roadmap.version",
    )

    @property
    def is_national(self):
        return self.type == NATIONAL

    def to_dict(self, include_children=False):
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "actor": self.actor,
            "parent_roadmap_id": self.parent_roadmap_id,
            "links": [link.to_dict() for link in self.links],
            **_acl_dict(self),
            **self._timestamps(),
        }
        if include_children:
            d["roadmaps"] = [
                {"id": r.id, "version": r.version, "goal_count": len(r.goals)}
                for r in self.roadmaps
            ]
            d["children"] = [{"id": c.id, "name": c.name} for c in self.children]
        return d


# ═══════════════════════════════════════════════════════════════
# 2. ROADMAPS
# ═══════════════════════════════════════════════════════════════
class Roadmap(TimestampedModel):
    __tablename__ = "roadmaps"

    meta_roadmap_id = db.Column(
        db.String(36), db.ForeignKey("meta_roadmaps.id", ondelete="CASCADE"), nullable=False
    )
    version = db.Column(db.Integer, nullable=False, default=1)
    description = db.Column(db.Text)
    author_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        db.UniqueConstraint("meta_roadmap_id", "version", name="uq_roadmap_meta_version"),
    )

    author = db.relationship("User", foreign_keys=[author_id])
    editors = db.relationship("User", secondary=roadmap_editors)
    viewers = db.relationship("User", secondary=roadmap_viewers)
    edit_groups = db.relationship("UserGroup", secondary=roadmap_edit_groups)
    view_groups = db.relationship("UserGroup", secondary=roadmap_view_groups)

    meta_roadmap = db.relationship("MetaRoadmap", back_populates="roadmaps")
    goals = db.relationship("Goal", back_populates="roadmap", cascade="all, delete-orphan")
    comments = db.relationship("Comment", back_populates="roadmap")

    @property
    def is_national(self):
        return bool(self.meta_roadmap and self.meta_roadmap.is_national)

    def to_dict(self, include_children=False):
        d = {
            "id": self.id,
            "meta_roadmap_id": self.meta_roadmap_id,
            "name": self.meta_roadmap.name if self.meta_roadmap else None,
            "version": self.version,
            "description": self.description,
            "is_national": self.is_national,
            **_acl_dict(self),
            **self._timestamps(),
        }
        if include_children:
            d["goals"] = [g.to_dict() for g in self.goals]
            d["comments"] = [c.to_dict() for c in self.comments]
        return d


# ═══════════════════════════════════════════════════════════════
# 3. GOALS
# ═══════════════════════════════════════════════════════════════
class Goal(TimestampedModel):
    __tablename__ = "goals"

    roadmap_id = db.Column(
        db.String(36), db.ForeignKey("roadmaps.id", ondelete="CASCADE"), nullable=False
    )
    name = db.Column(db.String(300))
    description = db.Column(db.Text)
    indicator_parameter = db.Column(db.String(500), nullable=False)
    author_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)

    author = db.relationship("User", foreign_keys=[author_id])
    roadmap = db.relationship("Roadmap", back_populates="goals")
    data_series = db.relationship(
        "DataSeries", back_populates="goal", uselist=False, cascade="all, delete-orphan"
    )
    actions = db.relationship("Action", back_populates="goal", cascade="all, delete-orphan")
    links = db.relationship("Link", secondary=goal_links)
    comments = db.relationship("Comment", back_populates="goal")

    def to_dict(self, include_children=False):
        d = {
            "id": self.id,
            "roadmap_id": self.roadmap_id,
            "name": self.name,
            "description": self.description,
            "indicator_parameter": self.indicator_parameter,
            "author": self.author.username if self.author else None,
            "data_series": self.data_series.to_dict() if self.data_series else None,
            "links": [link.to_dict() for link in self.links],
            **self._timestamps(),
        }
        if include_children:
            d["actions"] = [a.to_dict() for a in self.actions]
            d["comments"] = [c.to_dict() for c in self.comments]
        return d


class DataSeries(db.Model):
    __tablename__ = "data_series"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    goal_id = db.Column(
        db.String(36), db.ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    unit = db.Column(db.String(100), nullable=False)
    scale = db.Column(db.String(100))
    values = db.Column("series_values", db.JSON, default=dict)  # {"2020": 1.5, "2021": null, ...}
    author_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    goal = db.relationship("Goal", back_populates="data_series")

    def to_dict(self):
        return {
            "unit": self.unit,
            "scale": self.scale,
            "values": self.values or {},
        }


# ═══════════════════════════════════════════════════════════════
# 4. ACTIONS
# ═══════════════════════════════════════════════════════════════
class Action(TimestampedModel):
    __tablename__ = "actions"

    goal_id = db.Column(
        db.String(36), db.ForeignKey("goals.id", ondelete="CASCADE"), nullable=False
    )
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text)
    cost_efficiency = db.Column(db.Text)
    expected_outcome = db.Column(db.Text)
    project_manager = db.Column(db.String(300))
    relevant_actors = db.Column(db.Text)
    start_year = db.Column(db.Integer)
    end_year = db.Column(db.Integer)
    is_efficiency = db.Column(db.Boolean, default=False)
    is_sufficiency = db.Column(db.Boolean, default=False)
    is_renewables = db.Column(db.Boolean, default=False)
    author_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)

    author = db.relationship("User", foreign_keys=[author_id])
    goal = db.relationship("Goal", back_populates="actions")
    links = db.relationship("Link", secondary=action_links)
    comments = db.relationship("Comment", back_populates="action")

    def to_dict(self):
        return {
            "id": self.id,
            "goal_id": self.goal_id,
            "name": self.name,
            "description": self.description,
            "cost_efficiency": self.cost_efficiency,
            "expected_outcome": self.expected_outcome,
            "project_manager": self.project_manager,
            "relevant_actors": self.relevant_actors,
            "start_year": self.start_year,
            "end_year": self.end_year,
            "is_efficiency": self.is_efficiency,
            "is_sufficiency": self.is_sufficiency,
            "is_renewables": self.is_renewables,
            "author": self.author.username if self.author else None,
            "links": [link.to_dict() for link in self.links],
            **self._timestamps(),
        }


# ═══════════════════════════════════════════════════════════════
# 5. DEPENDENT RECORDS
# ═══════════════════════════════════════════════════════════════
class Link(db.Model):
    __tablename__ = "links"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    url = db.Column(db.String(2000), nullable=False)
    description = db.Column(db.String(500))

    def to_dict(self):
        return {"id": self.id, "url": self.url, "description": self.description}


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    text = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    roadmap_id = db.Column(db.String(36), db.ForeignKey("roadmaps.id", ondelete="SET NULL"), nullable=True)
    goal_id = db.Column(db.String(36), db.ForeignKey("goals.id", ondelete="SET NULL"), nullable=True)
    action_id = db.Column(db.String(36), db.ForeignKey("actions.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    author = db.relationship("User", foreign_keys=[author_id])
    roadmap = db.relationship("Roadmap", back_populates="comments")
    goal = db.relationship("Goal", back_populates="comments")
    action = db.relationship("Action", back_populates="comments")

    @property
    def is_orphan(self):
        return self.roadmap_id is None and self.goal_id is None and self.action_id is None

    def to_dict(self):
        return {
            "id": self.id,
            "text": self.text,
            "author": self.author.username if self.author else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
