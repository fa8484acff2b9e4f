"""
Orphan Pruning: remove dependent records nothing points at any more.

Links are shared between meta roadmaps, goals and actions through
association tables; a link with no association row left is an orphan.
Comments point at a roadmap, goal or action through nullable FKs; a
comment whose three FKs are all NULL is an orphan.

Runs after a mutation has committed, in its own transaction. The caller
commits on success and logs (never propagates) failures.
"""

import logging

from sqlalchemy import and_, select

from roadmap_platform.models import db
from roadmap_platform.models.roadmap import LINK_TABLES, Comment, Link

logger = logging.getLogger(__name__)


def _orphan_link_ids():
    unreferenced = [
        ~select(table.c.link_id).where(table.c.link_id == Link.id).exists()
        for table in LINK_TABLES
    ]
    stmt = select(Link.id).where(and_(*unreferenced))
    return list(db.session.execute(stmt).scalars())


def prune_orphans() -> dict:
    """Delete orphaned links and comments; flush, do not commit.

    Returns:
        {"links": <deleted link count>, "comments": <deleted comment count>}
    """
    link_ids = _orphan_link_ids()
    if link_ids:
        Link.query.filter(Link.id.in_(link_ids)).delete(synchronize_session=False)

    comment_count = (
        Comment.query
        .filter(
            Comment.roadmap_id.is_(None),
            Comment.goal_id.is_(None),
            Comment.action_id.is_(None),
        )
        .delete(synchronize_session=False)
    )
    db.session.flush()

    if link_ids or comment_count:
        logger.info("Pruned %d orphan links and %d orphan comments", len(link_ids), comment_count)
    return {"links": len(link_ids), "comments": comment_count}
