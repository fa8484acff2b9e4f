"""
Shared pytest fixtures for the Roadmap Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_group / make_user: record factories
    - claims_for / auth_headers: open a session for a user
    - alice / bob / admin: ready-made users
    - roadmap_tree: one meta roadmap → roadmap → goal → action chain
"""

from types import SimpleNamespace

import pytest

from roadmap_platform import create_app
from roadmap_platform.models import db as _db
from roadmap_platform.models.auth import User, UserGroup
from roadmap_platform.models.roadmap import Action, DataSeries, Goal, MetaRoadmap, Roadmap
from roadmap_platform.services.jwt_service import decode_session_token, issue_session_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_group():
    def _make(name):
        group = UserGroup.query.filter_by(name=name).first()
        if group is None:
            group = UserGroup(name=name)
            _db.session.add(group)
            _db.session.commit()
        return group
    return _make


@pytest.fixture()
def make_user(make_group):
    def _make(username, is_admin=False, groups=()):
        user = User(username=username, is_admin=is_admin)
        user.groups = [make_group(name) for name in groups]
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make


@pytest.fixture()
def claims_for():
    """Open a session for ``user`` and return its decoded claims."""
    def _claims(user):
        return decode_session_token(issue_session_token(user))
    return _claims


@pytest.fixture()
def auth_headers():
    """Open a session for ``user`` and return request headers carrying it."""
    def _headers(user):
        return {"Authorization": f"Bearer {issue_session_token(user)}"}
    return _headers


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def alice(make_user):
    return make_user("alice")


@pytest.fixture()
def bob(make_user):
    return make_user("bob")


@pytest.fixture()
def admin(make_user):
    return make_user("root", is_admin=True)


@pytest.fixture()
def roadmap_tree(alice):
    """A municipal meta roadmap → roadmap → goal → action, all authored by alice."""
    meta = MetaRoadmap(name="Climate plan", type="MUNICIPAL", author_id=alice.id)
    roadmap = Roadmap(meta_roadmap=meta, version=1, author_id=alice.id)
    goal = Goal(
        roadmap=roadmap, name="Cut emissions",
        indicator_parameter="Emissions|CO2", author_id=alice.id,
    )
    goal.data_series = DataSeries(unit="kt CO2e", values={"2020": 120.0}, author_id=alice.id)
    action = Action(goal=goal, name="Bike lanes", author_id=alice.id)
    _db.session.add(meta)
    _db.session.commit()
    return SimpleNamespace(meta=meta, roadmap=roadmap, goal=goal, action=action)
