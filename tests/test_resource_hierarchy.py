"""
Resource hierarchy tests: ACL loading, governing records, national scope,
re-parenting cycles.
"""

import pytest

from roadmap_platform.core.exceptions import NotFoundError
from roadmap_platform.models import db
from roadmap_platform.models.roadmap import MetaRoadmap
from roadmap_platform.services.access_policy import UserRef
from roadmap_platform.services.resource_hierarchy import (
    ResourceKind,
    Verb,
    acl_of,
    governing_acl,
    governing_record,
    load_resource,
    resolve,
    touches_national_scope,
    would_create_cycle,
)


class TestLoading:
    def test_load_existing(self, roadmap_tree):
        goal = load_resource(ResourceKind.GOAL, roadmap_tree.goal.id)
        assert goal.id == roadmap_tree.goal.id

    def test_load_missing_raises(self):
        with pytest.raises(NotFoundError):
            load_resource(ResourceKind.ROADMAP, "no-such-id")

    def test_load_without_id_raises(self):
        with pytest.raises(NotFoundError):
            load_resource(ResourceKind.ACTION, None)


class TestGoverningAcl:
    def test_acl_shape(self, roadmap_tree, bob, make_group):
        roadmap = roadmap_tree.roadmap
        roadmap.editors = [bob]
        roadmap.view_groups = [make_group("Public")]
        db.session.commit()

        acl = acl_of(roadmap)
        assert acl.author == UserRef(roadmap.author_id)
        assert acl.editor_ids == {bob.id}
        assert acl.view_groups == {"Public"}
        assert acl.viewers == frozenset()

    def test_goal_uses_roadmap(self, roadmap_tree):
        assert governing_record(roadmap_tree.goal) is roadmap_tree.roadmap

    def test_action_uses_goal_roadmap(self, roadmap_tree, bob):
        roadmap_tree.roadmap.editors = [bob]
        db.session.commit()
        assert governing_acl(roadmap_tree.action).editor_ids == {bob.id}

    def test_meta_roadmap_uses_own_acl(self, roadmap_tree, bob):
        roadmap_tree.meta.viewers = [bob]
        db.session.commit()
        assert governing_acl(roadmap_tree.meta).viewer_ids == {bob.id}
        assert governing_acl(roadmap_tree.roadmap).viewer_ids == frozenset()


class TestResolve:
    def test_create_resolves_parent(self, roadmap_tree):
        res = resolve(ResourceKind.ACTION, Verb.CREATE, parent_id=roadmap_tree.goal.id)
        assert res.parent is roadmap_tree.goal
        assert res.target is None
        assert res.acl == acl_of(roadmap_tree.roadmap)

    def test_root_meta_roadmap_create_has_no_acl(self):
        res = resolve(ResourceKind.META_ROADMAP, Verb.CREATE)
        assert res.acl is None

    def test_update_resolves_target(self, roadmap_tree):
        res = resolve(ResourceKind.GOAL, Verb.UPDATE, target_id=roadmap_tree.goal.id)
        assert res.target is roadmap_tree.goal

    def test_missing_parent_raises(self):
        with pytest.raises(NotFoundError):
            resolve(ResourceKind.GOAL, Verb.CREATE, parent_id="gone")


class TestNationalScope:
    def test_national_meta_roadmap_payload(self):
        res = resolve(ResourceKind.META_ROADMAP, Verb.CREATE)
        assert touches_national_scope(res, {"type": "NATIONAL"})
        assert not touches_national_scope(res, {"type": "LOCAL"})

    def test_roadmap_under_national_meta(self, roadmap_tree):
        roadmap_tree.meta.type = "NATIONAL"
        db.session.commit()
        create = resolve(ResourceKind.ROADMAP, Verb.CREATE, parent_id=roadmap_tree.meta.id)
        update = resolve(ResourceKind.ROADMAP, Verb.UPDATE, target_id=roadmap_tree.roadmap.id)
        assert touches_national_scope(create, {})
        assert touches_national_scope(update, {})

    def test_goal_under_national_roadmap_is_not_gated(self, roadmap_tree):
        roadmap_tree.meta.type = "NATIONAL"
        db.session.commit()
        res = resolve(ResourceKind.GOAL, Verb.CREATE, parent_id=roadmap_tree.roadmap.id)
        assert not touches_national_scope(res, {})

    def test_delete_is_not_gated(self, roadmap_tree):
        roadmap_tree.meta.type = "NATIONAL"
        db.session.commit()
        res = resolve(ResourceKind.META_ROADMAP, Verb.DELETE, target_id=roadmap_tree.meta.id)
        assert not touches_national_scope(res, {})


class TestCycles:
    def test_self_parent_is_a_cycle(self, roadmap_tree):
        assert would_create_cycle(roadmap_tree.meta, roadmap_tree.meta)

    def test_descendant_parent_is_a_cycle(self, roadmap_tree, alice):
        child = MetaRoadmap(name="District plan", type="LOCAL", author_id=alice.id,
                            parent=roadmap_tree.meta)
        db.session.add(child)
        db.session.commit()
        assert would_create_cycle(roadmap_tree.meta, child)
        assert not would_create_cycle(child, roadmap_tree.meta)

    def test_detaching_is_never_a_cycle(self, roadmap_tree):
        assert not would_create_cycle(roadmap_tree.meta, None)
