"""Shared test fixtures for the artigov test suite.

Tests run against a throwaway SQLite file so the partial unique indexes
and savepoints behave as they do in production. Every table is emptied
before each test.

Set TEST_DATABASE_URL to run the suite against PostgreSQL instead.
"""

import os
import tempfile

# Force auth off and use the test database before any app imports.
_DB_FILE = os.path.join(tempfile.mkdtemp(prefix="artigov-test-"), "test.db")
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", f"sqlite:///{_DB_FILE}")
os.environ["AUTH_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["INCLUDE_EDITORS_AS_APPROVERS"] = "false"

import pytest
from fastapi.testclient import TestClient

from artigov.database import Base, get_db, engine, SessionLocal
from artigov.main import app
from artigov.middleware.request_context import _rate_buckets
from artigov.models import Project, ProjectApprover, ProjectMember, ProjectRole, User

OWNER = "owner"
EDITOR = "editor"
VIEWER = "viewer"
APPROVERS = ("appr-1", "appr-2", "appr-3")
OUTSIDER = "outsider"


@pytest.fixture(autouse=True)
def _clean_tables():
    """Empty every table before each test (children first)."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    _rate_buckets.clear()  # Reset rate limiter so tests don't hit 429
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_project(db, approvers=APPROVERS, name: str = "Apollo") -> str:
    """Create users, a project and its memberships. Returns the project id.

    owner/editor/viewer get their role; approvers join as viewers and are
    registered as active approvers; ``outsider`` exists but is no member.
    """
    user_ids = {OWNER, EDITOR, VIEWER, OUTSIDER, *APPROVERS}
    for user_id in user_ids:
        if db.get(User, user_id) is None:
            db.add(User(user_id=user_id, display_name=user_id.title(), email=f"{user_id}@example.com"))
    project = Project(name=name)
    db.add(project)
    db.flush()

    roles = {OWNER: ProjectRole.OWNER, EDITOR: ProjectRole.EDITOR, VIEWER: ProjectRole.VIEWER}
    roles.update({a: ProjectRole.VIEWER for a in APPROVERS})
    for user_id, role in roles.items():
        db.add(ProjectMember(project_id=project.id, user_id=user_id, role=role))
    for user_id in approvers:
        db.add(ProjectApprover(project_id=project.id, user_id=user_id, is_active=True))
    db.commit()
    return project.id


@pytest.fixture()
def project_id(db) -> str:
    """Project with three active approvers and a single default step."""
    return make_project(db)


def as_user(user_id: str) -> dict:
    """Dev-mode identity header."""
    return {"X-User-Id": user_id}
