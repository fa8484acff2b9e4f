"""
Resource Hierarchy: which ACL governs a request.

MetaRoadmap and Roadmap are authorized against their own ACL. Goal and
Action never carry one: a Goal is authorized with ``goal.roadmap``'s ACL,
an Action with ``action.goal.roadmap``'s. Creates are authorized against
the parent the new resource will hang under.

Missing resources raise ``NotFoundError``; the orchestrator reports that
exactly like a denial so existence never leaks.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from roadmap_platform.core.exceptions import NotFoundError
from roadmap_platform.models import db
from roadmap_platform.models.roadmap import NATIONAL, Action, Goal, MetaRoadmap, Roadmap
from roadmap_platform.services.access_policy import AccessControlled, UserRef

logger = logging.getLogger(__name__)


class ResourceKind(Enum):
    META_ROADMAP = "meta_roadmap"
    ROADMAP = "roadmap"
    GOAL = "goal"
    ACTION = "action"

    @property
    def model(self):
        return _MODELS[self]

    @property
    def label(self):
        return self.model.__name__


class Verb(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


_MODELS = {
    ResourceKind.META_ROADMAP: MetaRoadmap,
    ResourceKind.ROADMAP: Roadmap,
    ResourceKind.GOAL: Goal,
    ResourceKind.ACTION: Action,
}

# Kind of the record a new resource is created under.
PARENT_KIND = {
    ResourceKind.META_ROADMAP: ResourceKind.META_ROADMAP,
    ResourceKind.ROADMAP: ResourceKind.META_ROADMAP,
    ResourceKind.GOAL: ResourceKind.ROADMAP,
    ResourceKind.ACTION: ResourceKind.GOAL,
}

# Payload key carrying the parent id on create.
PARENT_FIELD = {
    ResourceKind.META_ROADMAP: "parent_roadmap_id",
    ResourceKind.ROADMAP: "meta_roadmap_id",
    ResourceKind.GOAL: "roadmap_id",
    ResourceKind.ACTION: "goal_id",
}


@dataclass(frozen=True)
class Resolution:
    """What a request is about and which ACL decides it.

    ``acl`` is None only for a MetaRoadmap created without a parent, which
    any authenticated principal may do.
    """

    kind: ResourceKind
    verb: Verb
    target: object | None
    parent: object | None
    acl: AccessControlled | None


def load_resource(kind: ResourceKind, resource_id):
    """Fetch one resource by id or raise NotFoundError."""
    obj = db.session.get(kind.model, resource_id) if resource_id else None
    if obj is None:
        raise NotFoundError(resource=kind.label, resource_id=resource_id)
    return obj


def acl_of(record) -> AccessControlled:
    """Snapshot the five ACL fields of a MetaRoadmap or Roadmap."""
    return AccessControlled(
        author=UserRef(record.author_id, record.author.username if record.author else ""),
        editors=frozenset(UserRef(u.id, u.username) for u in record.editors),
        viewers=frozenset(UserRef(u.id, u.username) for u in record.viewers),
        edit_groups=frozenset(g.name for g in record.edit_groups),
        view_groups=frozenset(g.name for g in record.view_groups),
    )


def governing_record(resource):
    """The record whose ACL governs ``resource``."""
    if isinstance(resource, (MetaRoadmap, Roadmap)):
        return resource
    if isinstance(resource, Goal):
        return resource.roadmap
    if isinstance(resource, Action):
        return resource.goal.roadmap
    raise TypeError(f"{type(resource).__name__} is not an access-controlled resource")


def governing_acl(resource) -> AccessControlled:
    return acl_of(governing_record(resource))


def resolve(kind: ResourceKind, verb: Verb, target_id=None, parent_id=None) -> Resolution:
    """Load the records a request needs and the ACL that governs it.

    Raises:
        NotFoundError: the target (update/delete) or parent (create) is missing.
    """
    if verb is Verb.CREATE:
        if parent_id is None:
            return Resolution(kind, verb, None, None, None)
        parent = load_resource(PARENT_KIND[kind], parent_id)
        return Resolution(kind, verb, None, parent, governing_acl(parent))

    target = load_resource(kind, target_id)
    return Resolution(kind, verb, target, None, governing_acl(target))


def touches_national_scope(resolution: Resolution, payload: dict) -> bool:
    """True when the write creates or changes national-scope content."""
    if resolution.verb is Verb.DELETE:
        return False
    if resolution.kind is ResourceKind.META_ROADMAP:
        if payload.get("type") == NATIONAL:
            return True
        return bool(resolution.target is not None and resolution.target.is_national)
    if resolution.kind is ResourceKind.ROADMAP:
        record = resolution.target if resolution.target is not None else resolution.parent
        return bool(record is not None and record.is_national)
    return False


def would_create_cycle(meta_roadmap: MetaRoadmap, new_parent: MetaRoadmap | None) -> bool:
    """True if hanging ``meta_roadmap`` under ``new_parent`` closes a loop."""
    seen = set()
    node = new_parent
    while node is not None:
        if node.id == meta_roadmap.id:
            return True
        if node.id in seen:
            logger.error("Existing meta roadmap cycle detected at %s", node.id)
            return True
        seen.add(node.id)
        node = node.parent
    return False
