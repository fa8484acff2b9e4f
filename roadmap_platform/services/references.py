"""Resolve name references in write payloads into rows.

ACL payloads name users by username and groups by name. An unknown name
is a referential failure of the write, not a validation error: the payload
is well-formed but points at something the store does not have.
"""
import logging

from roadmap_platform.core.exceptions import ReferentialError, ValidationError
from roadmap_platform.models.auth import User, UserGroup
from roadmap_platform.models.roadmap import Link
from roadmap_platform.utils.helpers import parse_name_list

logger = logging.getLogger(__name__)

ACL_USER_FIELDS = ("editors", "viewers")
ACL_GROUP_FIELDS = ("edit_groups", "view_groups")
ACL_FIELDS = ACL_USER_FIELDS + ACL_GROUP_FIELDS


def resolve_users(names, field):
    names = parse_name_list(names)
    if not names:
        return []
    users = User.query.filter(User.username.in_(names)).all()
    by_name = {u.username: u for u in users}
    for name in names:
        if name not in by_name:
            raise ReferentialError(resource="User", field=field, value=name)
    return [by_name[name] for name in names]


def resolve_groups(names, field):
    names = parse_name_list(names)
    if not names:
        return []
    groups = UserGroup.query.filter(UserGroup.name.in_(names)).all()
    by_name = {g.name: g for g in groups}
    for name in names:
        if name not in by_name:
            raise ReferentialError(resource="UserGroup", field=field, value=name)
    return [by_name[name] for name in names]


def apply_acl(record, data):
    """Replace the ACL lists present in ``data`` on a MetaRoadmap/Roadmap.

    Lists absent from ``data`` are left untouched.
    """
    for field in ACL_USER_FIELDS:
        if field in data:
            setattr(record, field, resolve_users(data[field], field))
    for field in ACL_GROUP_FIELDS:
        if field in data:
            setattr(record, field, resolve_groups(data[field], field))


def validate_links(value):
    """Structural check for a ``links`` payload; raises ValidationError."""
    if value is None:
        return
    if not isinstance(value, list):
        raise ValidationError("Invalid links", details={"links": "must be a list"})
    for i, item in enumerate(value):
        if not isinstance(item, dict) or not str(item.get("url") or "").strip():
            raise ValidationError("Invalid links", details={f"links[{i}]": "url is required"})


def build_links(value):
    """Create fresh Link rows for a ``links`` payload (already validated)."""
    return [
        Link(url=str(item["url"]).strip(), description=item.get("description") or None)
        for item in (value or [])
    ]
