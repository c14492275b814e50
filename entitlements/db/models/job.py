from sqlalchemy import Column, Integer, String, Text, Float, DateTime, ForeignKey
from sqlalchemy.sql import func
from entitlements.db.base import Base


class Job(Base):
    """Quota-limited job entry owned by a user."""
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    client = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(50), default="pendente", nullable=False)
    value = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
