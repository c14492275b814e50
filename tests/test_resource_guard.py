"""
Tests for guarded creation of quota-limited resources.
Covers the service layer and the /jobs and /projects endpoints.
"""
import logging
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from entitlements.main import app
from entitlements.core.exceptions import QuotaExceeded, ResourceNotFound
from entitlements.core.security import create_access_token
from entitlements.core.timeutils import get_period_key
from entitlements.db.base import Base
from entitlements.db.session import get_db
from entitlements.db.models.user import User
from entitlements.db.models.subscription import Subscription
from entitlements.db.models.usage import UsageCounter
from entitlements.db.models.job import Job
from entitlements.db.models.project import Project
from entitlements.services import usage_ledger
from entitlements.services.resource_guard import create_guarded, delete_resource


TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override get_db dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function", autouse=True)
def setup_db():
    """Create and drop tables for each test."""
    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db():
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def test_user(db):
    user = User(full_name="Test User", email="test@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user):
    return {"Authorization": f"Bearer {create_access_token({'sub': test_user.email})}"}


@pytest.fixture
def client():
    return TestClient(app)


def set_usage(db, user, resource_type, count):
    db.add(UsageCounter(
        user_id=user.id,
        resource_type=resource_type,
        period_key=get_period_key(),
        count=count,
    ))
    db.commit()


def used(db, user, resource_type="job"):
    db.expire_all()
    return usage_ledger.current_count(db, user.id, resource_type)


# ---- service layer ----

def test_create_below_limit_increments_usage(db, test_user):
    set_usage(db, test_user, "job", 4)
    
    job = create_guarded(db, test_user.id, "job", {"title": "Logo redesign"})
    
    assert job.id is not None
    assert job.user_id == test_user.id
    assert used(db, test_user) == 5


def test_create_at_limit_raises_without_side_effects(db, test_user):
    set_usage(db, test_user, "job", 5)
    
    with pytest.raises(QuotaExceeded) as exc_info:
        create_guarded(db, test_user.id, "job", {"title": "One too many"})
    
    assert exc_info.value.limit == 5
    assert exc_info.value.used == 5
    assert db.query(Job).count() == 0
    assert used(db, test_user) == 5


def test_free_user_can_create_exactly_five_jobs(db, test_user):
    for i in range(5):
        create_guarded(db, test_user.id, "job", {"title": f"Job {i}"})
    
    with pytest.raises(QuotaExceeded):
        create_guarded(db, test_user.id, "job", {"title": "Job 6"})
    
    assert db.query(Job).count() == 5


def test_unlimited_plan_creates_past_free_limit(db, test_user):
    db.add(Subscription(user_id=test_user.id, plan_tier="basic", status="active"))
    db.commit()
    set_usage(db, test_user, "project", 500)
    
    project = create_guarded(db, test_user.id, "project", {"name": "Big client"})
    
    assert project.id is not None
    assert used(db, test_user, "project") == 501


def test_delete_does_not_refund_usage(db, test_user):
    job = create_guarded(db, test_user.id, "job", {"title": "Temporary"})
    assert used(db, test_user) == 1
    
    delete_resource(db, test_user.id, "job", job.id)
    
    assert db.query(Job).count() == 0
    assert used(db, test_user) == 1


def test_delete_other_users_resource_not_found(db, test_user):
    job = create_guarded(db, test_user.id, "job", {"title": "Mine"})
    with pytest.raises(ResourceNotFound):
        delete_resource(db, test_user.id + 1, "job", job.id)


def test_increment_failure_keeps_resource_and_logs(db, test_user, monkeypatch, caplog):
    def broken_increment(*args, **kwargs):
        raise OperationalError("INSERT INTO usage_counters", {}, Exception("disk I/O error"))
    
    monkeypatch.setattr(usage_ledger, "increment", broken_increment)
    
    with caplog.at_level(logging.ERROR):
        job = create_guarded(db, test_user.id, "job", {"title": "Undercounted"})
    
    assert db.query(Job).filter(Job.id == job.id).count() == 1
    assert "Usage drift" in caplog.text


def test_unsupported_resource_type(db, test_user):
    with pytest.raises(ValueError):
        create_guarded(db, test_user.id, "invoice", {})


# ---- endpoints ----

def test_post_job_created(client, auth_headers, test_user, db):
    response = client.post("/jobs", json={"title": "Website", "client": "ACME", "value": 1500}, headers=auth_headers)
    
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["resource"]["title"] == "Website"
    assert body["resource"]["user_id"] == test_user.id
    assert used(db, test_user) == 1


def test_post_job_over_limit_returns_403(client, auth_headers, test_user, db):
    set_usage(db, test_user, "job", 5)
    
    response = client.post("/jobs", json={"title": "Sixth"}, headers=auth_headers)
    
    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "Limit exceeded"
    assert body["limit"] == 5
    assert body["used"] == 5


def test_post_project_respects_project_limit(client, auth_headers, test_user, db):
    set_usage(db, test_user, "project", 3)
    response = client.post("/projects", json={"name": "Fourth"}, headers=auth_headers)
    assert response.status_code == 403
    assert db.query(Project).count() == 0


def test_post_job_unknown_user_returns_404(client):
    headers = {"Authorization": f"Bearer {create_access_token({'sub': 'ghost@example.com'})}"}
    response = client.post("/jobs", json={"title": "Nobody"}, headers=headers)
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_post_job_requires_token(client):
    response = client.post("/jobs", json={"title": "Anonymous"})
    assert response.status_code == 401


def test_post_job_validation_error(client, auth_headers):
    response = client.post("/jobs", json={"title": ""}, headers=auth_headers)
    assert response.status_code == 422


def test_delete_job_endpoint_keeps_usage(client, auth_headers, test_user, db):
    created = client.post("/jobs", json={"title": "Short lived"}, headers=auth_headers).json()
    job_id = created["resource"]["id"]
    
    response = client.delete(f"/jobs/{job_id}", headers=auth_headers)
    
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert used(db, test_user) == 1
    
    assert client.delete(f"/jobs/{job_id}", headers=auth_headers).status_code == 404


def test_usage_endpoint(client, auth_headers, test_user, db):
    set_usage(db, test_user, "job", 2)
    
    response = client.get("/me/usage", headers=auth_headers)
    
    assert response.status_code == 200
    data = response.json()
    assert data["plan"] == "free"
    assert data["period_key"] == get_period_key()
    job = next(r for r in data["resources"] if r["resource_type"] == "job")
    assert job["used"] == 2
    assert job["remaining"] == 3


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"
