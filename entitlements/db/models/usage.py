from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from entitlements.db.base import Base
from entitlements.core.timeutils import utcnow


class UsageCounter(Base):
    """
    Monthly usage counter for quota-limited resources.
    
    One row per (user, resource type, period). Rows are created lazily on the
    first increment of a period and are never deleted; a new month simply
    addresses a new period_key.
    """
    __tablename__ = "usage_counters"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    resource_type = Column(String, nullable=False)  # "job", "project"
    period_key = Column(String(7), nullable=False)  # "YYYY-MM"
    count = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "resource_type", "period_key", name="uq_usage_user_resource_period"),
        CheckConstraint("count >= 0", name="ck_usage_count_non_negative"),
    )
