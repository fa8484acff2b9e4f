"""
Access Policy: resolves a principal's access level on an ACL.

Resolution order (first match wins):
  1. anonymous        → VIEW if "Public" is a view group, else NONE
  2. admin            → ADMIN, whatever the ACL says
  3. author           → EDIT
  4. listed editor    → EDIT
  5. edit group match → EDIT
  6. listed viewer    → VIEW
  7. view group match → VIEW
  8. otherwise        → NONE

All edit grants are checked before any view grant: the two tiers are
independent, so an editor who is not also a viewer still resolves to EDIT.
Group matching is a name intersection against the flat group set the
principal was loaded with.

Usage:
    from roadmap_platform.services.access_policy import AccessLevel, authorize, evaluate

    level = evaluate(acl, principal)            # principal=None for anonymous
    decision = authorize(acl, principal, AccessLevel.EDIT)
    if not decision.allowed:
        ...
"""

from dataclasses import dataclass, field
from enum import IntEnum

PUBLIC_GROUP = "Public"


class AccessLevel(IntEnum):
    """Ranked access levels. Compare with ``>=``, never by label."""

    NONE = 0
    VIEW = 1
    EDIT = 2
    ADMIN = 3

    @property
    def label(self) -> str:
        return "" if self is AccessLevel.NONE else self.name


@dataclass(frozen=True)
class UserRef:
    """Reference to a user inside an ACL. Equality is by id only."""

    id: str
    username: str = field(default="", compare=False)


@dataclass(frozen=True)
class Principal:
    """The (authenticated) actor of a request. Anonymous callers are ``None``."""

    id: str
    username: str
    is_admin: bool = False
    groups: frozenset = frozenset()

    def __post_init__(self):
        if not isinstance(self.groups, frozenset):
            object.__setattr__(self, "groups", frozenset(self.groups or ()))


@dataclass(frozen=True)
class AccessControlled:
    """Canonical five-field ownership / sharing descriptor."""

    author: UserRef
    editors: frozenset = frozenset()
    viewers: frozenset = frozenset()
    edit_groups: frozenset = frozenset()
    view_groups: frozenset = frozenset()

    def __post_init__(self):
        if self.author is None or not self.author.id:
            raise ValueError("AccessControlled requires an author")
        # Accept any iterable; store deduplicated frozensets.
        for name in ("editors", "viewers", "edit_groups", "view_groups"):
            value = getattr(self, name)
            if not isinstance(value, frozenset):
                object.__setattr__(self, name, frozenset(value or ()))

    @property
    def editor_ids(self) -> frozenset:
        return frozenset(u.id for u in self.editors)

    @property
    def viewer_ids(self) -> frozenset:
        return frozenset(u.id for u in self.viewers)


@dataclass(frozen=True)
class AccessDecision:
    """Result of ``authorize``. ``allowed`` is the only field callers must read."""

    allowed: bool
    level: AccessLevel
    required: AccessLevel


def evaluate(acl: AccessControlled, principal: Principal | None) -> AccessLevel:
    """Return the principal's access level on ``acl``.

    Pure and total: never raises for a well-formed ACL and never touches
    the database.
    """
    if principal is None:
        if PUBLIC_GROUP in acl.view_groups:
            return AccessLevel.VIEW
        return AccessLevel.NONE

    if principal.is_admin:
        return AccessLevel.ADMIN

    if principal.id == acl.author.id:
        return AccessLevel.EDIT
    if principal.id in acl.editor_ids:
        return AccessLevel.EDIT
    if acl.edit_groups & principal.groups:
        return AccessLevel.EDIT

    if principal.id in acl.viewer_ids:
        return AccessLevel.VIEW
    if acl.view_groups & principal.groups:
        return AccessLevel.VIEW

    return AccessLevel.NONE


def authorize(
    acl: AccessControlled,
    principal: Principal | None,
    required: AccessLevel,
) -> AccessDecision:
    """Compare the evaluated level against a required minimum by rank."""
    level = evaluate(acl, principal)
    return AccessDecision(allowed=level >= required, level=level, required=required)


def is_owner(acl: AccessControlled, principal: Principal | None) -> bool:
    """Admins and the ACL's author own a resource; nobody else does."""
    if principal is None:
        return False
    return principal.is_admin or principal.id == acl.author.id
