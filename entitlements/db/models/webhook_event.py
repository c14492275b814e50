from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, Index
from entitlements.db.base import Base
from entitlements.core.timeutils import utcnow


class WebhookEvent(Base):
    """
    Audit copy of every webhook that reached dispatch.
    
    Written whether or not the event string was recognized.
    """
    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True, index=True)
    provider = Column(String, nullable=False)
    event = Column(String, nullable=False)
    category = Column(String, nullable=True)  # None when unrecognized
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    external_subscription_id = Column(String, nullable=True)
    processed = Column(Boolean, default=False, nullable=False)
    payload = Column(JSON, nullable=True)
    received_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("idx_webhook_provider_event", "provider", "event"),
    )
