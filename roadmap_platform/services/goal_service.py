"""Goal & Action service layer.

Transaction policy: methods use flush() for ID generation, never commit().
The mutation orchestrator owns the commit so a goal, its data series and
its links land together or not at all.

Authorization is not checked here; callers go through
``mutation_service.mutate``.
"""
import logging

from roadmap_platform.models import db
from roadmap_platform.models.roadmap import Action, DataSeries, Goal
from roadmap_platform.services.data_series import prepare_data_series
from roadmap_platform.services.references import build_links

logger = logging.getLogger(__name__)

GOAL_FIELDS = ("name", "description", "indicator_parameter")
ACTION_FIELDS = (
    "name", "description", "cost_efficiency", "expected_outcome",
    "project_manager", "relevant_actors", "start_year", "end_year",
    "is_efficiency", "is_sufficiency", "is_renewables",
)


# ── Goal ─────────────────────────────────────────────────────────────────


def build_goal(principal, roadmap, data):
    """Build (but do not add) a Goal with its data series and links.

    Used directly by nested goal creation inside a roadmap write.
    """
    series = prepare_data_series(data)
    goal = Goal(
        roadmap=roadmap,
        name=data.get("name") or None,
        description=data.get("description") or None,
        indicator_parameter=data["indicator_parameter"],
        author_id=principal.id,
    )
    goal.data_series = DataSeries(author_id=principal.id, **series)
    goal.links = build_links(data.get("links"))
    return goal


def create_goal(principal, roadmap, data):
    """Create a goal under ``roadmap``.

    Returns:
        Goal instance (already flushed).
    """
    goal = build_goal(principal, roadmap, data)
    db.session.add(goal)
    db.session.flush()
    logger.info("Goal %s created under roadmap %s", goal.id, roadmap.id)
    return goal


def update_goal(goal, principal, data):
    """Update a goal; replaces links and upserts the data series when given.

    Replaced links are left unreferenced for orphan pruning.
    """
    for field in GOAL_FIELDS:
        if field in data:
            setattr(goal, field, data[field])

    if "data_series" in data:
        series = prepare_data_series(data)
        if goal.data_series is None:
            goal.data_series = DataSeries(author_id=principal.id, **series)
        else:
            goal.data_series.unit = series["unit"]
            goal.data_series.scale = series["scale"]
            goal.data_series.values = series["values"]
            goal.data_series.author_id = principal.id
    elif "data_unit" in data and goal.data_series is not None:
        goal.data_series.unit = data["data_unit"]

    if "links" in data:
        goal.links = build_links(data["links"])

    goal.touch()
    db.session.flush()
    return goal


def delete_goal(goal):
    """Delete a goal with its actions and data series."""
    db.session.delete(goal)
    db.session.flush()


# ── Action ───────────────────────────────────────────────────────────────


def create_action(principal, goal, data):
    """Create an action under ``goal``.

    Returns:
        Action instance (already flushed).
    """
    action = Action(goal=goal, author_id=principal.id)
    for field in ACTION_FIELDS:
        if field in data:
            setattr(action, field, data[field])
    action.links = build_links(data.get("links"))
    db.session.add(action)
    db.session.flush()
    logger.info("Action %s created under goal %s", action.id, goal.id)
    return action


def update_action(action, data):
    for field in ACTION_FIELDS:
        if field in data:
            setattr(action, field, data[field])
    if "links" in data:
        action.links = build_links(data["links"])
    action.touch()
    db.session.flush()
    return action


def delete_action(action):
    db.session.delete(action)
    db.session.flush()
