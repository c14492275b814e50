"""
Integration tests for the payment provider webhook endpoints.
"""
import json
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from entitlements.main import app
from entitlements.api.routes.webhooks import get_gateways
from entitlements.core.plan_catalog import PaymentProvider
from entitlements.core.rate_limit import InMemoryRateLimiter
from entitlements.core.timeutils import utcnow
from entitlements.db.base import Base
from entitlements.db.session import get_db
from entitlements.db.models.user import User
from entitlements.db.models.subscription import Subscription
from entitlements.db.models.webhook_event import WebhookEvent
from entitlements.services import subscription_reconciler
from entitlements.services.webhook_gateway import WebhookGateway


WEBHOOK_KEY = "test-webhook-key"
ALLOWED_ORIGIN = "https://app.example.com"

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
def setup_app():
    """Fresh tables and fresh gateways (rate-limit state) for each test."""
    Base.metadata.create_all(bind=test_engine)
    gateways = {
        provider: WebhookGateway(
            provider=provider,
            secret=WEBHOOK_KEY,
            rate_limiter=InMemoryRateLimiter(max_requests=10, window_seconds=60),
            allowed_origins=[ALLOWED_ORIGIN],
        )
        for provider in (PaymentProvider.CAKTO, PaymentProvider.KIWIFY)
    }
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateways] = lambda: gateways
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def test_user(db_session):
    user = User(full_name="Buyer", email="buyer@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def client():
    return TestClient(app)


def make_payload(event="subscription.activated", **data_overrides):
    data = {
        "id": "sub_abc",
        "status": "paid",
        "plan_id": "yppzpjc",
        "customer_email": "buyer@example.com",
        "amount": 29.9,
        "currency": "BRL",
        "created_at": "2026-01-01T12:00:00Z",
        "updated_at": "2026-01-01T12:00:00Z",
    }
    data.update(data_overrides)
    return {"event": event, "data": data}


def post(client, payload, provider="cakto", headers=None):
    headers = {"x-webhook-key": WEBHOOK_KEY} if headers is None else headers
    return client.post(f"/webhooks/{provider}", json=payload, headers=headers)


def get_subscription(db_session, user):
    db_session.expire_all()
    return db_session.query(Subscription).filter(Subscription.user_id == user.id).first()


def test_preflight_is_answered_without_auth(client):
    response = client.options("/webhooks/cakto", headers={"Origin": ALLOWED_ORIGIN})
    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
    assert "x-webhook-key" in response.headers["access-control-allow-headers"]


@pytest.mark.parametrize("method", ["get", "put", "delete"])
def test_non_post_methods_rejected(client, method):
    response = getattr(client, method)("/webhooks/kiwify")
    assert response.status_code == 405
    assert response.text == "Method Not Allowed"


def test_missing_secret_rejected_without_mutation(client, test_user, db_session):
    response = post(client, make_payload(), headers={})
    assert response.status_code == 401
    assert get_subscription(db_session, test_user) is None
    assert db_session.query(WebhookEvent).count() == 0


def test_wrong_secret_rejected(client, test_user):
    response = post(client, make_payload(), headers={"x-webhook-key": "nope"})
    assert response.status_code == 401


def test_authorization_header_fallback(client, test_user, db_session):
    response = post(client, make_payload(), headers={"authorization": WEBHOOK_KEY})
    assert response.status_code == 200
    assert get_subscription(db_session, test_user).status == "active"


def test_malformed_json_rejected(client, test_user):
    response = client.post(
        "/webhooks/cakto",
        content=b"{not json",
        headers={"x-webhook-key": WEBHOOK_KEY, "content-type": "application/json"},
    )
    assert response.status_code == 400
    assert response.text == "Invalid JSON"


def test_payload_without_customer_email_rejected(client, test_user):
    response = post(client, {"event": "payment.success", "data": {"id": "x"}})
    assert response.status_code == 400


def test_unknown_user_returns_404(client, test_user, db_session):
    response = post(client, make_payload(customer_email="stranger@example.com"))
    assert response.status_code == 404
    assert response.text == "User not found"
    assert db_session.query(Subscription).count() == 0


def test_activation_updates_subscription(client, test_user, db_session):
    response = post(client, make_payload(plan_id="uoxtt9o"))
    
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["event"] == "subscription.activated"
    assert body["user_id"] == test_user.id
    
    sub = get_subscription(db_session, test_user)
    assert sub.status == "active"
    assert sub.plan_tier == "enterprise_annual"
    assert sub.payment_provider == "cakto"
    assert abs((sub.period_end - utcnow()).days - 365) <= 1
    
    audit = db_session.query(WebhookEvent).one()
    assert audit.provider == "cakto"
    assert audit.category == "subscription_activated"
    assert audit.processed is True
    assert audit.payload["data"]["plan_id"] == "uoxtt9o"


def test_kiwify_gateway_uses_kiwify_plans(client, test_user, db_session):
    response = post(client, make_payload(event="payment.success", plan_id="kTs280h"), provider="kiwify")
    assert response.status_code == 200
    sub = get_subscription(db_session, test_user)
    assert sub.payment_provider == "kiwify"
    assert sub.plan_tier == "premium"


def test_unrecognized_event_acknowledged_and_audited(client, test_user, db_session):
    response = post(client, make_payload(event="boleto.generated"))
    
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert get_subscription(db_session, test_user) is None
    
    audit = db_session.query(WebhookEvent).one()
    assert audit.event == "boleto.generated"
    assert audit.category is None
    assert audit.processed is False


def test_replayed_webhook_is_idempotent(client, test_user, db_session):
    payload = make_payload(plan_id="kesq5cb")
    assert post(client, payload).status_code == 200
    first = get_subscription(db_session, test_user)
    first_state = (first.status, first.plan_tier, first.external_subscription_id, first.activated_at)
    
    assert post(client, payload).status_code == 200
    second = get_subscription(db_session, test_user)
    
    assert db_session.query(Subscription).count() == 1
    assert (second.status, second.plan_tier, second.external_subscription_id, second.activated_at) == first_state


def test_cancellation_downgrades_to_free(client, test_user, db_session):
    post(client, make_payload(plan_id="34p727v"))
    response = post(client, make_payload(event="subscription.cancelled"))
    
    assert response.status_code == 200
    sub = get_subscription(db_session, test_user)
    assert sub.status == "cancelled"
    assert sub.plan_tier == "free"
    assert sub.cancel_reason == "subscription_cancelled"


def test_rate_limit_after_ten_requests(client):
    for _ in range(10):
        assert post(client, make_payload(), headers={}).status_code == 401
    
    response = post(client, make_payload(), headers={})
    assert response.status_code == 429


def test_rate_limit_is_per_provider(client):
    for _ in range(10):
        post(client, make_payload(), headers={})
    assert post(client, make_payload(), provider="kiwify", headers={}).status_code == 401


def test_disallowed_origin_gets_empty_allow_origin(client, test_user):
    response = client.post(
        "/webhooks/cakto",
        json=make_payload(),
        headers={"x-webhook-key": WEBHOOK_KEY, "Origin": "https://evil.example.com"},
    )
    # Still processed; browsers just cannot read the response
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == ""


def test_datastore_failure_returns_500(client, test_user, monkeypatch):
    def boom(*args, **kwargs):
        raise OperationalError("UPDATE subscriptions", {}, Exception("connection lost"))
    
    monkeypatch.setattr(subscription_reconciler, "apply_event", boom)
    response = post(client, make_payload())
    
    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert "connection lost" in body["error"]


def test_unconfigured_secret_rejects_everything(client, test_user):
    gateways = {
        PaymentProvider.CAKTO: WebhookGateway(
            provider="cakto",
            secret="",
            rate_limiter=InMemoryRateLimiter(),
        )
    }
    app.dependency_overrides[get_gateways] = lambda: gateways
    
    response = client.post(
        "/webhooks/cakto",
        content=json.dumps(make_payload()),
        headers={"x-webhook-key": "", "content-type": "application/json"},
    )
    assert response.status_code == 401
