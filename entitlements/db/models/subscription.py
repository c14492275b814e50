from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON
from entitlements.db.base import Base
from entitlements.core.timeutils import utcnow


class Subscription(Base):
    """
    Subscription record, one per user.
    
    Upserted by the subscription reconciler on every provider event and never
    deleted. Users without a row are on the free plan with no provider.
    """
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    plan_tier = Column(String, default="free", nullable=False)  # free | basic | premium | enterprise | enterprise_annual
    status = Column(String, default="expired", nullable=False)  # active | cancelled | expired | trialing
    payment_provider = Column(String, default="none", nullable=False)  # cakto | kiwify | none

    external_subscription_id = Column(String, nullable=True, index=True)
    external_customer_key = Column(String, nullable=True, index=True)  # provider-side customer email
    amount = Column(Float, nullable=True)
    currency = Column(String(3), nullable=True)

    period_start = Column(DateTime, nullable=True)
    period_end = Column(DateTime, nullable=True)
    trial_end = Column(DateTime, nullable=True)
    activated_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancel_reason = Column(String, nullable=True)

    last_event = Column(String, nullable=True)
    raw_provider_payload = Column(JSON, nullable=True)  # opaque audit copy
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
