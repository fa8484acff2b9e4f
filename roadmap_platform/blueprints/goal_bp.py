"""
Roadmap Platform
Goal blueprint: goal and action endpoints.

Endpoints summary:
    GOAL    /api/v1/goals                 POST
            /api/v1/goals/<id>            GET, PUT, DELETE

    ACTION  /api/v1/actions               POST
            /api/v1/actions/<id>          GET, PUT, DELETE

Goals and actions carry no ACL of their own; access is decided on the
roadmap they belong to.
"""

import logging

from flask import Blueprint, jsonify

from roadmap_platform.blueprints import (
    client_timestamp,
    current_claims,
    json_payload,
    outcome_error,
    outcome_response,
)
from roadmap_platform.services.mutation_service import MutationRequest, mutate, view
from roadmap_platform.services.resource_hierarchy import ResourceKind, Verb

logger = logging.getLogger(__name__)

goal_bp = Blueprint("goal_bp", __name__, url_prefix="/api/v1")


def _update(kind, resource_id):
    data = json_payload()
    return mutate(MutationRequest(
        kind=kind, verb=Verb.UPDATE, claims=current_claims(), data=data,
        target_id=resource_id, client_timestamp=client_timestamp(data),
    ))


# ── Goals ────────────────────────────────────────────────────────────────────

@goal_bp.route("/goals", methods=["POST"])
def create_goal():
    outcome = mutate(MutationRequest(
        kind=ResourceKind.GOAL, verb=Verb.CREATE,
        claims=current_claims(), data=json_payload(),
    ))
    return outcome_response(outcome, lambda goal: goal.to_dict(), 201)


@goal_bp.route("/goals/<goal_id>", methods=["GET"])
def get_goal(goal_id):
    outcome = view(ResourceKind.GOAL, goal_id, current_claims())
    if not outcome.ok:
        return outcome_error(outcome)
    data = outcome.resource.to_dict(include_children=True)
    data["access_level"] = outcome.details["access_level"]
    return jsonify(data), 200


@goal_bp.route("/goals/<goal_id>", methods=["PUT"])
def update_goal(goal_id):
    outcome = _update(ResourceKind.GOAL, goal_id)
    return outcome_response(outcome, lambda goal: goal.to_dict())


@goal_bp.route("/goals/<goal_id>", methods=["DELETE"])
def delete_goal(goal_id):
    outcome = mutate(MutationRequest(
        kind=ResourceKind.GOAL, verb=Verb.DELETE,
        claims=current_claims(), target_id=goal_id,
    ))
    return outcome_response(outcome, lambda gone: {"deleted": gone["id"]})


# ── Actions ──────────────────────────────────────────────────────────────────

@goal_bp.route("/actions", methods=["POST"])
def create_action():
    outcome = mutate(MutationRequest(
        kind=ResourceKind.ACTION, verb=Verb.CREATE,
        claims=current_claims(), data=json_payload(),
    ))
    return outcome_response(outcome, lambda action: action.to_dict(), 201)


@goal_bp.route("/actions/<action_id>", methods=["GET"])
def get_action(action_id):
    outcome = view(ResourceKind.ACTION, action_id, current_claims())
    if not outcome.ok:
        return outcome_error(outcome)
    data = outcome.resource.to_dict()
    data["access_level"] = outcome.details["access_level"]
    return jsonify(data), 200


@goal_bp.route("/actions/<action_id>", methods=["PUT"])
def update_action(action_id):
    outcome = _update(ResourceKind.ACTION, action_id)
    return outcome_response(outcome, lambda action: action.to_dict())


@goal_bp.route("/actions/<action_id>", methods=["DELETE"])
def delete_action(action_id):
    outcome = mutate(MutationRequest(
        kind=ResourceKind.ACTION, verb=Verb.DELETE,
        claims=current_claims(), target_id=action_id,
    ))
    return outcome_response(outcome, lambda gone: {"deleted": gone["id"]})
