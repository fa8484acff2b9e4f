"""
Mutation Service: the single write path for every roadmap resource.

Each request walks the same state machine:

    Received → InputValidated → Authenticated → SessionVerified
             → AclResolved → NationalGate → PolicyEvaluated
             → FreshnessChecked (update only) → Committed → Pruned

and stops at the first failed step with a tagged ``Outcome``. Nothing is
retried; the caller resubmits with corrected input or a fresh timestamp.

The per-kind differences live in ``POLICIES`` (required level, ownership,
validator, writer, pruning) so the checks themselves cannot drift between
meta roadmaps, roadmaps, goals and actions.

Usage:
    from roadmap_platform.services.mutation_service import MutationRequest, mutate

    outcome = mutate(MutationRequest(
        kind=ResourceKind.GOAL, verb=Verb.UPDATE, claims=g.session_claims,
        target_id=goal_id, data=payload, client_timestamp=payload.get("timestamp"),
    ))
    if not outcome.ok:
        ...
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from roadmap_platform.core.exceptions import NotFoundError, ReferentialError, ValidationError
from roadmap_platform.core.outcomes import Outcome, OutcomeStatus
from roadmap_platform.models import db
from roadmap_platform.models.roadmap import MetaRoadmap, ROADMAP_TYPES
from roadmap_platform.services import goal_service, roadmap_service
from roadmap_platform.services.access_policy import AccessLevel, authorize, is_owner
from roadmap_platform.services.concurrency import Freshness, check_freshness
from roadmap_platform.services.data_series import prepare_data_series
from roadmap_platform.services.goal_service import ACTION_FIELDS, GOAL_FIELDS
from roadmap_platform.services.jwt_service import SessionClaims, load_principal, revoke_session
from roadmap_platform.services.orphan_pruning import prune_orphans
from roadmap_platform.services.references import ACL_FIELDS, validate_links
from roadmap_platform.services.resource_hierarchy import (
    PARENT_FIELD,
    ResourceKind,
    Verb,
    governing_acl,
    load_resource,
    resolve,
    touches_national_scope,
    would_create_cycle,
)
from roadmap_platform.services.roadmap_service import META_ROADMAP_FIELDS

logger = logging.getLogger(__name__)

MISSING_INPUT = "Missing required input parameters"
SERIES_FIELDS = ("data_unit", "data_scale")
ACTION_TEXT_FIELDS = tuple(
    name for name in ACTION_FIELDS
    if name not in ("start_year", "end_year", "is_efficiency", "is_sufficiency", "is_renewables")
)


@dataclass(frozen=True)
class MutationRequest:
    kind: ResourceKind
    verb: Verb
    claims: Optional[SessionClaims]
    data: dict = field(default_factory=dict)
    target_id: Optional[str] = None
    client_timestamp: Optional[int] = None

    @property
    def parent_id(self):
        if self.verb is not Verb.CREATE or not isinstance(self.data, dict):
            return None
        return self.data.get(PARENT_FIELD[self.kind]) or None


@dataclass(frozen=True)
class MutationPolicy:
    required: AccessLevel
    validate: Callable[[dict], None]
    write: Callable
    owner_only: bool = False
    prunes: bool = False


# ═══════════════════════════════════════════════════════════════
# Structural validation (runs before any authorization work)
# ═══════════════════════════════════════════════════════════════

def _require(data, *fields):
    missing = [f for f in fields if data.get(f) in (None, "", [])]
    if missing:
        raise ValidationError(MISSING_INPUT, details={f: "required" for f in missing})


def _check_acl_fields(data):
    for name in ACL_FIELDS:
        if name in data and data[name] is not None and not isinstance(data[name], list):
            raise ValidationError("Invalid access lists", details={name: "must be a list of names"})


def _check_optional_int(data, *fields):
    for name in fields:
        value = data.get(name)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValidationError("Invalid input", details={name: "must be an integer"})


def _check_optional_bool(data, *fields):
    for name in fields:
        if name in data and not isinstance(data[name], bool):
            raise ValidationError("Invalid input", details={name: "must be true or false"})


def _check_optional_str(data, *fields):
    for name in fields:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError("Invalid input", details={name: "must be a string"})


def _validate_meta_roadmap_create(data):
    _require(data, "name", "type")
    _validate_meta_roadmap_update(data)


def _validate_meta_roadmap_update(data):
    _check_optional_str(data, *META_ROADMAP_FIELDS)
    if "name" in data and not data["name"]:
        raise ValidationError(MISSING_INPUT, details={"name": "required"})
    if "type" in data and data["type"] not in ROADMAP_TYPES:
        raise ValidationError("Invalid roadmap type", details={"type": f"one of {', '.join(ROADMAP_TYPES)}"})
    _check_acl_fields(data)
    validate_links(data.get("links"))


def _validate_nested_goals(data):
    goals = data.get("goals")
    if goals is None:
        return
    if not isinstance(goals, list):
        raise ValidationError("Invalid goals", details={"goals": "must be a list"})
    for i, goal in enumerate(goals):
        if not isinstance(goal, dict):
            raise ValidationError("Invalid goals", details={f"goals[{i}]": "must be an object"})
        try:
            _validate_goal_body(goal)
        except ValidationError as exc:
            raise ValidationError(f"Goal {i + 1}: {exc}", details=exc.details) from None


def _validate_roadmap_create(data):
    _require(data, "meta_roadmap_id")
    _validate_roadmap_update(data)


def _validate_roadmap_update(data):
    _check_optional_str(data, "description")
    _check_acl_fields(data)
    _validate_nested_goals(data)


def _validate_goal_body(data):
    _require(data, "indicator_parameter", "data_unit")
    _check_optional_str(data, *GOAL_FIELDS, *SERIES_FIELDS)
    if "data_series" not in data:
        raise ValidationError(MISSING_INPUT, details={"data_series": "required"})
    prepare_data_series(data)
    validate_links(data.get("links"))


def _validate_goal_create(data):
    _require(data, "roadmap_id")
    _validate_goal_body(data)


def _validate_goal_update(data):
    _check_optional_str(data, *GOAL_FIELDS, *SERIES_FIELDS)
    if "indicator_parameter" in data and not data["indicator_parameter"]:
        raise ValidationError(MISSING_INPUT, details={"indicator_parameter": "required"})
    if "data_series" in data:
        _require(data, "data_unit")
        prepare_data_series(data)
    validate_links(data.get("links"))


def _validate_action_create(data):
    _require(data, "goal_id", "name")
    _validate_action_update(data)


def _validate_action_update(data):
    _check_optional_str(data, *ACTION_TEXT_FIELDS)
    if "name" in data and not data["name"]:
        raise ValidationError(MISSING_INPUT, details={"name": "required"})
    _check_optional_int(data, "start_year", "end_year")
    _check_optional_bool(data, "is_efficiency", "is_sufficiency", "is_renewables")
    validate_links(data.get("links"))


def _no_validation(data):
    return None


# ═══════════════════════════════════════════════════════════════
# Writers: adapt (principal, resolution, data) to the service layer
# ═══════════════════════════════════════════════════════════════

def _deleted(resource, parent_id=None):
    return {"id": resource.id, "parent_id": parent_id}


def _delete_meta_roadmap(principal, res, data, **_):
    gone = _deleted(res.target, res.target.parent_roadmap_id)
    roadmap_service.delete_meta_roadmap(res.target)
    return gone


def _delete_roadmap(principal, res, data, **_):
    gone = _deleted(res.target, res.target.meta_roadmap_id)
    roadmap_service.delete_roadmap(res.target)
    return gone


def _delete_goal(principal, res, data, **_):
    gone = _deleted(res.target, res.target.roadmap_id)
    goal_service.delete_goal(res.target)
    return gone


def _delete_action(principal, res, data, **_):
    gone = _deleted(res.target, res.target.goal_id)
    goal_service.delete_action(res.target)
    return gone


POLICIES = {
    (ResourceKind.META_ROADMAP, Verb.CREATE): MutationPolicy(
        required=AccessLevel.VIEW,
        validate=_validate_meta_roadmap_create,
        write=lambda p, res, data, **_: roadmap_service.create_meta_roadmap(p, res.parent, data),
    ),
    (ResourceKind.META_ROADMAP, Verb.UPDATE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_validate_meta_roadmap_update,
        write=lambda p, res, data, **kw: roadmap_service.update_meta_roadmap(res.target, data, **kw),
        prunes=True,
    ),
    (ResourceKind.META_ROADMAP, Verb.DELETE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_no_validation,
        write=_delete_meta_roadmap,
        owner_only=True,
        prunes=True,
    ),
    (ResourceKind.ROADMAP, Verb.CREATE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_validate_roadmap_create,
        write=lambda p, res, data, **_: roadmap_service.create_roadmap(p, res.parent, data),
    ),
    (ResourceKind.ROADMAP, Verb.UPDATE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_validate_roadmap_update,
        write=lambda p, res, data, **_: roadmap_service.update_roadmap(res.target, p, data),
        prunes=True,
    ),
    (ResourceKind.ROADMAP, Verb.DELETE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_no_validation,
        write=_delete_roadmap,
        owner_only=True,
        prunes=True,
    ),
    (ResourceKind.GOAL, Verb.CREATE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_validate_goal_create,
        write=lambda p, res, data, **_: goal_service.create_goal(p, res.parent, data),
    ),
    (ResourceKind.GOAL, Verb.UPDATE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_validate_goal_update,
        write=lambda p, res, data, **_: goal_service.update_goal(res.target, p, data),
        prunes=True,
    ),
    (ResourceKind.GOAL, Verb.DELETE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_no_validation,
        write=_delete_goal,
        prunes=True,
    ),
    (ResourceKind.ACTION, Verb.CREATE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_validate_action_create,
        write=lambda p, res, data, **_: goal_service.create_action(p, res.parent, data),
    ),
    (ResourceKind.ACTION, Verb.UPDATE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_validate_action_update,
        write=lambda p, res, data, **_: goal_service.update_action(res.target, data),
        prunes=True,
    ),
    (ResourceKind.ACTION, Verb.DELETE): MutationPolicy(
        required=AccessLevel.EDIT,
        validate=_no_validation,
        write=_delete_action,
        prunes=True,
    ),
}


# ═══════════════════════════════════════════════════════════════
# Steps
# ═══════════════════════════════════════════════════════════════

def _log_extra(request, outcome=None, principal=None):
    return {
        "principal_id": principal.id if principal else None,
        "resource_kind": request.kind.value,
        "resource_id": request.target_id or request.parent_id,
        "outcome": outcome,
    }


def verify_session(claims: SessionClaims):
    """Reload the caller's record and check it against the session.

    Returns:
        (principal, None) on success, (None, Outcome) with BAD_SESSION when
        the user is gone or the session claims an admin flag the record does
        not have. In that case the session row is revoked first.
    """
    principal = load_principal(claims.user_id)
    if principal is None or (claims.is_admin and not principal.is_admin):
        logger.warning(
            "Bad session %s for user %s, forcing logout", claims.session_id, claims.user_id,
            extra={"principal_id": claims.user_id, "outcome": OutcomeStatus.BAD_SESSION.value},
        )
        revoke_session(claims.session_id, reason="bad_session")
        return None, Outcome.failure(OutcomeStatus.BAD_SESSION, "BadSession")
    return principal, None


def _needs_ownership(request, policy, resolution):
    if policy.owner_only:
        return True
    if request.verb is not Verb.UPDATE:
        return False
    if request.kind not in (ResourceKind.META_ROADMAP, ResourceKind.ROADMAP):
        return False
    if any(name in request.data for name in ACL_FIELDS):
        return True
    return _is_reparent(request, resolution)


def _is_reparent(request, resolution):
    if request.kind is not ResourceKind.META_ROADMAP or request.verb is not Verb.UPDATE:
        return False
    if "parent_roadmap_id" not in request.data:
        return False
    return (request.data["parent_roadmap_id"] or None) != resolution.target.parent_roadmap_id


def _check_reparent(request, resolution, principal):
    """Resolve and vet a new parent for a meta roadmap.

    Returns:
        (writer kwargs, None) or (None, Outcome) on failure.
    """
    if not _is_reparent(request, resolution):
        return {}, None
    new_parent_id = request.data["parent_roadmap_id"] or None
    if new_parent_id is None:
        return {"reparent": True, "new_parent": None}, None
    try:
        new_parent = load_resource(ResourceKind.META_ROADMAP, new_parent_id)
    except NotFoundError:
        return None, Outcome.failure(OutcomeStatus.ACCESS_DENIED, "IllegalParent")
    if not authorize(governing_acl(new_parent), principal, AccessLevel.VIEW).allowed:
        return None, Outcome.failure(OutcomeStatus.ACCESS_DENIED, "IllegalParent")
    if would_create_cycle(resolution.target, new_parent):
        return None, Outcome.failure(
            OutcomeStatus.INVALID_INPUT, "A meta roadmap cannot be its own ancestor",
        )
    return {"reparent": True, "new_parent": new_parent}, None


def _commit(request, policy, principal, resolution, extras):
    try:
        result = policy.write(principal, resolution, request.data, **extras)
        db.session.commit()
    except ValidationError as exc:
        db.session.rollback()
        return Outcome.failure(OutcomeStatus.INVALID_INPUT, str(exc), **exc.details)
    except ReferentialError as exc:
        db.session.rollback()
        logger.info("Referential failure: %s", exc, extra=_log_extra(request, "referential", principal))
        return Outcome.failure(
            OutcomeStatus.REFERENTIAL_FAILURE,
            "Failed to connect records",
            field=exc.field, value=exc.value,
        )
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig, extra=_log_extra(request, "referential", principal))
        if roadmap_service.is_version_collision(exc):
            return Outcome.failure(
                OutcomeStatus.REFERENTIAL_FAILURE,
                "Another roadmap version was created at the same time. Resubmit to create the next version",
                version="taken",
            )
        return Outcome.failure(
            OutcomeStatus.REFERENTIAL_FAILURE,
            "Failed to connect records. A referenced record might not exist",
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error on %s %s", request.verb.value, request.kind.value)
        return Outcome.failure(OutcomeStatus.INTERNAL, "Internal server error")
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected error on %s %s", request.verb.value, request.kind.value)
        return Outcome.failure(OutcomeStatus.INTERNAL, "Internal server error")
    return Outcome.success(result, f"{request.kind.label} {request.verb.value}d")


def prune_after_commit(request=None):
    """Best-effort orphan pruning in its own transaction.

    Returns the prune counts, or None if pruning failed (logged, swallowed).
    """
    try:
        counts = prune_orphans()
        db.session.commit()
        return counts
    except Exception:
        db.session.rollback()
        logger.exception(
            "Orphan pruning failed after %s",
            f"{request.verb.value} {request.kind.value}" if request else "mutation",
        )
        return None


# ═══════════════════════════════════════════════════════════════
# Entry points
# ═══════════════════════════════════════════════════════════════

def mutate(request: MutationRequest) -> Outcome:
    """Run one create/update/delete through the full guard sequence."""
    policy = POLICIES[(request.kind, request.verb)]

    # Received → InputValidated
    if not isinstance(request.data, dict):
        return Outcome.failure(OutcomeStatus.INVALID_INPUT, "Request body must be a JSON object")
    if request.verb is not Verb.CREATE and not request.target_id:
        return Outcome.failure(OutcomeStatus.INVALID_INPUT, MISSING_INPUT, id="required")
    try:
        policy.validate(request.data)
    except ValidationError as exc:
        return Outcome.failure(OutcomeStatus.INVALID_INPUT, str(exc), **exc.details)

    # → Authenticated
    if request.claims is None:
        return Outcome.failure(OutcomeStatus.UNAUTHENTICATED, "Unauthorized")

    # → SessionVerified
    principal, failure = verify_session(request.claims)
    if failure:
        return failure

    # → AclResolved
    try:
        resolution = resolve(request.kind, request.verb, request.target_id, request.parent_id)
    except NotFoundError as exc:
        logger.info("%s", exc, extra=_log_extra(request, "not_found", principal))
        message = "IllegalParent" if request.verb is Verb.CREATE else "AccessDenied"
        return Outcome.failure(OutcomeStatus.ACCESS_DENIED, message)

    # → NationalGate
    if touches_national_scope(resolution, request.data) and not principal.is_admin:
        logger.warning(
            "Non-admin %s tried to %s national %s", principal.username,
            request.verb.value, request.kind.value,
            extra=_log_extra(request, "national_denied", principal),
        )
        return Outcome.failure(
            OutcomeStatus.ACCESS_DENIED, "Forbidden; only admins can create or edit national roadmaps",
        )

    # → PolicyEvaluated
    if resolution.acl is not None:
        decision = authorize(resolution.acl, principal, policy.required)
        if not decision.allowed:
            logger.warning(
                "Access denied: %s has %s, needs %s to %s %s",
                principal.username, decision.level.name, decision.required.name,
                request.verb.value, request.kind.value,
                extra=_log_extra(request, "access_denied", principal),
            )
            message = "IllegalParent" if request.verb is Verb.CREATE else "AccessDenied"
            return Outcome.failure(OutcomeStatus.ACCESS_DENIED, message)
        if _needs_ownership(request, policy, resolution) and not is_owner(resolution.acl, principal):
            logger.warning(
                "Access denied: %s is not the owner of %s %s",
                principal.username, request.kind.value, request.target_id,
                extra=_log_extra(request, "not_owner", principal),
            )
            return Outcome.failure(
                OutcomeStatus.ACCESS_DENIED, "Only the author or an admin may do this",
            )

    extras, failure = _check_reparent(request, resolution, principal)
    if failure:
        return failure

    # → FreshnessChecked
    if request.verb is Verb.UPDATE:
        stored = resolution.target.updated_at
        if check_freshness(stored, request.client_timestamp) is Freshness.CONFLICT:
            logger.info(
                "Stale update of %s %s", request.kind.value, request.target_id,
                extra=_log_extra(request, "stale", principal),
            )
            return Outcome.failure(
                OutcomeStatus.STALE_DATA, "StaleData",
                stored=resolution.target.last_modified_ms,
            )

    # → Committed
    outcome = _commit(request, policy, principal, resolution, extras)
    if not outcome.ok:
        return outcome

    # → Pruned
    if policy.prunes:
        prune_after_commit(request)

    logger.info(
        "%s %s by %s", request.kind.label, request.verb.value, principal.username,
        extra=_log_extra(request, "ok", principal),
    )
    return outcome


def view(kind: ResourceKind, resource_id, claims: Optional[SessionClaims]) -> Outcome:
    """Read one resource if the caller has at least VIEW on it.

    On success ``outcome.details["access_level"]`` carries the caller's level.
    """
    principal = None
    if claims is not None:
        principal, failure = verify_session(claims)
        if failure:
            return failure
    try:
        resource = load_resource(kind, resource_id)
    except NotFoundError:
        return Outcome.failure(OutcomeStatus.ACCESS_DENIED, "AccessDenied")
    decision = authorize(governing_acl(resource), principal, AccessLevel.VIEW)
    if not decision.allowed:
        return Outcome.failure(OutcomeStatus.ACCESS_DENIED, "AccessDenied")
    return Outcome(OutcomeStatus.OK, "", resource, {"access_level": decision.level.label})


def visible_meta_roadmaps(claims: Optional[SessionClaims]) -> Outcome:
    """All meta roadmaps the caller can view, paired with the caller's level."""
    principal = None
    if claims is not None:
        principal, failure = verify_session(claims)
        if failure:
            return failure
    visible = []
    for meta in MetaRoadmap.query.order_by(MetaRoadmap.name).all():
        decision = authorize(governing_acl(meta), principal, AccessLevel.VIEW)
        if decision.allowed:
            visible.append((meta, decision.level))
    return Outcome.success(visible)
