"""Meta roadmap & roadmap service layer.

Transaction policy: methods use flush() for ID generation, never commit().
The mutation orchestrator owns the commit.

Extracted operations:
- MetaRoadmap create / update (incl. re-parenting, ACL, links) / delete
- Roadmap create (with nested goals) / update / delete
- Per-meta-roadmap version numbering
"""
import logging

from sqlalchemy import func

from roadmap_platform.models import db
from roadmap_platform.models.roadmap import MetaRoadmap, Roadmap
from roadmap_platform.services.goal_service import build_goal
from roadmap_platform.services.references import apply_acl, build_links

logger = logging.getLogger(__name__)

META_ROADMAP_FIELDS = ("name", "description", "type", "actor")


# ── MetaRoadmap ──────────────────────────────────────────────────────────


def create_meta_roadmap(principal, parent, data):
    """Create a meta roadmap authored by ``principal``.

    Returns:
        MetaRoadmap instance (already flushed).
    """
    meta = MetaRoadmap(
        name=data["name"],
        description=data.get("description") or "",
        type=data["type"],
        actor=data.get("actor") or None,
        parent=parent,
        author_id=principal.id,
    )
    apply_acl(meta, data)
    meta.links = build_links(data.get("links"))
    db.session.add(meta)
    db.session.flush()
    logger.info("MetaRoadmap %s created by %s", meta.id, principal.username)
    return meta


def update_meta_roadmap(meta, data, reparent=False, new_parent=None):
    """Update a meta roadmap.

    ``reparent`` switches the parent link to ``new_parent`` (None detaches);
    the caller has already checked ownership and cycles.
    """
    for field in META_ROADMAP_FIELDS:
        if field in data:
            setattr(meta, field, data[field])
    if reparent:
        meta.parent = new_parent
    apply_acl(meta, data)
    if "links" in data:
        meta.links = build_links(data["links"])
    meta.touch()
    db.session.flush()
    return meta


def delete_meta_roadmap(meta):
    """Delete a meta roadmap and its roadmaps; child meta roadmaps are detached."""
    db.session.delete(meta)
    db.session.flush()


# ── Roadmap ──────────────────────────────────────────────────────────────


def next_roadmap_version(meta_roadmap_id):
    current = (
        db.session.query(func.max(Roadmap.version))
        .filter(Roadmap.meta_roadmap_id == meta_roadmap_id)
        .scalar()
    )
    return (current or 0) + 1


def is_version_collision(exc):
    """True when an IntegrityError is two creates claiming the same version."""
    message = str(getattr(exc, "orig", exc))
    return "uq_roadmap_meta_version" in message or "roadmaps.version" in message


def create_roadmap(principal, meta, data):
    """Create the next roadmap version of ``meta``, with any nested goals.

    Returns:
        Roadmap instance (already flushed).
    """
    roadmap = Roadmap(
        meta_roadmap=meta,
        version=next_roadmap_version(meta.id),
        description=data.get("description") or None,
        author_id=principal.id,
    )
    apply_acl(roadmap, data)
    for goal_data in data.get("goals") or []:
        build_goal(principal, roadmap, goal_data)
    db.session.add(roadmap)
    db.session.flush()
    logger.info(
        "Roadmap %s (v%d) created under meta roadmap %s with %d goals",
        roadmap.id, roadmap.version, meta.id, len(roadmap.goals),
    )
    return roadmap


def update_roadmap(roadmap, principal, data):
    """Update description / ACL; nested ``goals`` are appended."""
    if "description" in data:
        roadmap.description = data["description"]
    apply_acl(roadmap, data)
    for goal_data in data.get("goals") or []:
        build_goal(principal, roadmap, goal_data)
    roadmap.touch()
    db.session.flush()
    return roadmap


def delete_roadmap(roadmap):
    db.session.delete(roadmap)
    db.session.flush()
