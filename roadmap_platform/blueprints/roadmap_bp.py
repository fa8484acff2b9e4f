"""
Roadmap Platform
Roadmap blueprint: meta roadmap and roadmap endpoints.

Endpoints summary:
    META ROADMAP  /api/v1/meta-roadmaps              GET, POST
                  /api/v1/meta-roadmaps/<id>         GET, PUT, DELETE

    ROADMAP       /api/v1/roadmaps                   POST
                  /api/v1/roadmaps/<id>              GET, PUT, DELETE

Every write goes through ``mutation_service.mutate``; reads through
``mutation_service.view``. Missing and forbidden resources both answer 403.
"""

import logging

from flask import Blueprint, jsonify

from roadmap_platform.blueprints import (
    client_timestamp,
    current_claims,
    json_payload,
    outcome_error,
    outcome_response,
    paginate_list,
)
from roadmap_platform.services.mutation_service import (
    MutationRequest,
    mutate,
    view,
    visible_meta_roadmaps,
)
from roadmap_platform.services.resource_hierarchy import ResourceKind, Verb

logger = logging.getLogger(__name__)

roadmap_bp = Blueprint("roadmap_bp", __name__, url_prefix="/api/v1")


def _with_level(outcome, detail=True):
    data = outcome.resource.to_dict(include_children=detail)
    data["access_level"] = outcome.details.get("access_level", "")
    return jsonify(data), 200


# ═══════════════════════════════════════════════════════════════════════════
#  META ROADMAPS
# ═══════════════════════════════════════════════════════════════════════════

@roadmap_bp.route("/meta-roadmaps", methods=["GET"])
def list_meta_roadmaps():
    outcome = visible_meta_roadmaps(current_claims())
    if not outcome.ok:
        return outcome_error(outcome)
    page, total = paginate_list(outcome.resource)
    items = []
    for meta, level in page:
        d = meta.to_dict()
        d["access_level"] = level.label
        items.append(d)
    return jsonify({"items": items, "total": total})


@roadmap_bp.route("/meta-roadmaps", methods=["POST"])
def create_meta_roadmap():
    outcome = mutate(MutationRequest(
        kind=ResourceKind.META_ROADMAP, verb=Verb.CREATE,
        claims=current_claims(), data=json_payload(),
    ))
    return outcome_response(outcome, lambda m: m.to_dict(), 201)


@roadmap_bp.route("/meta-roadmaps/<meta_id>", methods=["GET"])
def get_meta_roadmap(meta_id):
    outcome = view(ResourceKind.META_ROADMAP, meta_id, current_claims())
    if not outcome.ok:
        return outcome_error(outcome)
    return _with_level(outcome)


@roadmap_bp.route("/meta-roadmaps/<meta_id>", methods=["PUT"])
def update_meta_roadmap(meta_id):
    data = json_payload()
    outcome = mutate(MutationRequest(
        kind=ResourceKind.META_ROADMAP, verb=Verb.UPDATE,
        claims=current_claims(), data=data,
        target_id=meta_id, client_timestamp=client_timestamp(data),
    ))
    return outcome_response(outcome, lambda m: m.to_dict())


@roadmap_bp.route("/meta-roadmaps/<meta_id>", methods=["DELETE"])
def delete_meta_roadmap(meta_id):
    outcome = mutate(MutationRequest(
        kind=ResourceKind.META_ROADMAP, verb=Verb.DELETE,
        claims=current_claims(), target_id=meta_id,
    ))
    return outcome_response(outcome, lambda gone: {"deleted": gone["id"]})


# ═══════════════════════════════════════════════════════════════════════════
#  ROADMAPS
# ═══════════════════════════════════════════════════════════════════════════

@roadmap_bp.route("/roadmaps", methods=["POST"])
def create_roadmap():
    outcome = mutate(MutationRequest(
        kind=ResourceKind.ROADMAP, verb=Verb.CREATE,
        claims=current_claims(), data=json_payload(),
    ))
    return outcome_response(outcome, lambda r: r.to_dict(include_children=True), 201)


@roadmap_bp.route("/roadmaps/<roadmap_id>", methods=["GET"])
def get_roadmap(roadmap_id):
    outcome = view(ResourceKind.ROADMAP, roadmap_id, current_claims())
    if not outcome.ok:
        return outcome_error(outcome)
    return _with_level(outcome)


@roadmap_bp.route("/roadmaps/<roadmap_id>", methods=["PUT"])
def update_roadmap(roadmap_id):
    data = json_payload()
    outcome = mutate(MutationRequest(
        kind=ResourceKind.ROADMAP, verb=Verb.UPDATE,
        claims=current_claims(), data=data,
        target_id=roadmap_id, client_timestamp=client_timestamp(data),
    ))
    return outcome_response(outcome, lambda r: r.to_dict(include_children=True))


@roadmap_bp.route("/roadmaps/<roadmap_id>", methods=["DELETE"])
def delete_roadmap(roadmap_id):
    outcome = mutate(MutationRequest(
        kind=ResourceKind.ROADMAP, verb=Verb.DELETE,
        claims=current_claims(), target_id=roadmap_id,
    ))
    return outcome_response(outcome, lambda gone: {"deleted": gone["id"]})
